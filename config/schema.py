import graphene
from challenges.schema import Query as ChallengesQuery, Mutation as ChallengesMutation


class Query(ChallengesQuery, graphene.ObjectType):
    pass


class Mutation(ChallengesMutation, graphene.ObjectType):
    pass

schema = graphene.Schema(query=Query, mutation=Mutation)
