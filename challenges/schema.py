import graphene
from django.contrib.auth import get_user_model
from graphene_django import DjangoObjectType

from .errors import AuthenticationError, ValidationError
from .models import Challenge, CheckIn, Presolution
from challenges.services import challenge_manager, emergency, ledger, progress


def _user_or_none(info):
    user = info.context.user
    return None if user.is_anonymous else user


def _progress(challenge):
    # one ledger read per challenge per request
    cached = getattr(challenge, "_progress_cache", None)
    if cached is None:
        cached = progress.challenge_progress(challenge)
        challenge._progress_cache = cached
    return cached


class PresolutionType(DjangoObjectType):
    class Meta:
        model = Presolution
        fields = ("id", "obstacle", "minimum_practice", "created_at")


class CheckInType(DjangoObjectType):
    completed_habits = graphene.List(graphene.NonNull(graphene.String), required=True)

    class Meta:
        model = CheckIn
        fields = (
            "id", "challenge", "check_in_date", "total_habits", "is_complete",
            "is_emergency", "emergency_reason", "notes", "created_at",
        )

    def resolve_completed_habits(self, info):
        return list(self.completed_habits or [])


class ChallengeType(DjangoObjectType):
    habit_sequence = graphene.List(graphene.NonNull(graphene.String), required=True)
    presolutions = graphene.List(graphene.NonNull(PresolutionType), required=True)
    total_completed_days = graphene.Int()
    progress_percent = graphene.Float()
    days_elapsed = graphene.Int()
    days_left = graphene.Int()
    is_challenge_complete = graphene.Boolean()
    best_streak = graphene.Int()
    emergency_remaining = graphene.Int()

    class Meta:
        model = Challenge
        fields = (
            "id", "title", "duration", "start_date", "end_date", "scheduled_time",
            "declaration_text", "declaration_signature", "status", "current_streak",
            "total_checkins", "emergency_uses", "created_at", "updated_at",
        )
        convert_choices_to_enum = False

    def resolve_habit_sequence(self, info):
        return list(self.habit_sequence or [])

    def resolve_presolutions(self, info):
        return self.presolutions.all()

    def resolve_total_completed_days(self, info):
        return _progress(self).total_completed_days

    def resolve_progress_percent(self, info):
        return _progress(self).progress_percent

    def resolve_days_elapsed(self, info):
        return _progress(self).days_elapsed

    def resolve_days_left(self, info):
        return _progress(self).days_left

    def resolve_is_challenge_complete(self, info):
        return _progress(self).is_challenge_complete

    def resolve_best_streak(self, info):
        return _progress(self).best_streak

    def resolve_emergency_remaining(self, info):
        return self.emergency_remaining


class UserType(DjangoObjectType):
    active_challenge = graphene.Field(ChallengeType)

    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email")

    def resolve_active_challenge(self, info):
        return challenge_manager.get_active_challenge(user=self)


class Query(graphene.ObjectType):
    me = graphene.Field(UserType)
    active_challenge = graphene.Field(ChallengeType)
    challenge = graphene.Field(ChallengeType, id=graphene.ID(required=True))
    today_check_in = graphene.Field(CheckInType, challenge_id=graphene.ID(required=True))
    challenge_check_ins = graphene.List(CheckInType, challenge_id=graphene.ID(required=True))

    def resolve_me(self, info):
        return _user_or_none(info)

    def resolve_active_challenge(self, info):
        user = _user_or_none(info)
        if user is None:
            return None
        return challenge_manager.get_active_challenge(user=user)

    def resolve_challenge(self, info, id):
        return challenge_manager.get_challenge(user=info.context.user, challenge_id=id)

    def resolve_today_check_in(self, info, challenge_id):
        challenge = challenge_manager.get_challenge(user=info.context.user, challenge_id=challenge_id)
        return ledger.get_today_check_in(challenge)

    def resolve_challenge_check_ins(self, info, challenge_id):
        user = _user_or_none(info)
        if user is None:
            return []
        challenge = challenge_manager.get_challenge(user=user, challenge_id=challenge_id)
        return ledger.get_all_check_ins(challenge)


class PresolutionInput(graphene.InputObjectType):
    obstacle = graphene.String(required=True)
    minimum_practice = graphene.String(required=True)


class CreateChallenge(graphene.Mutation):
    class Arguments:
        title = graphene.String(required=True)
        duration = graphene.Int(required=True)
        start_date = graphene.String(required=True)
        scheduled_time = graphene.String(required=True)
        habit_sequence = graphene.List(graphene.String, required=True)
        declaration_text = graphene.String(required=True)
        declaration_signature = graphene.String(required=False)
        presolutions = graphene.List(PresolutionInput, required=False)

    challenge = graphene.Field(ChallengeType)
    warning = graphene.String()

    @classmethod
    def mutate(cls, root, info, presolutions=None, declaration_signature=None, **data):
        challenge = challenge_manager.create_challenge(
            user=info.context.user,
            declaration_signature=declaration_signature,
            presolutions=[dict(ps) for ps in presolutions or []],
            **data,
        )
        return cls(challenge=challenge, warning=challenge.presolution_warning)


class UpdateCheckIn(graphene.Mutation):
    class Arguments:
        challenge_id = graphene.ID(required=True)
        completed_habits = graphene.List(graphene.String, required=True)
        habit_sequence = graphene.List(graphene.String, required=False)
        mark_complete = graphene.Boolean(required=False)
        notes = graphene.String(required=False)

    check_in = graphene.Field(CheckInType)
    challenge = graphene.Field(ChallengeType)

    @classmethod
    def mutate(cls, root, info, challenge_id, completed_habits, habit_sequence=None,
               mark_complete=False, notes=None):
        user = info.context.user
        if user.is_anonymous:
            raise AuthenticationError()

        challenge = challenge_manager.get_challenge(user=user, challenge_id=challenge_id)
        # the client renders habits from its own copy; refuse stale ones
        if habit_sequence is not None and list(habit_sequence) != list(challenge.habit_sequence):
            raise ValidationError("Habit list changed; reload the challenge")

        check_in = ledger.record_check_in(
            user=user,
            challenge=challenge,
            completed_habits=completed_habits,
            require_complete=bool(mark_complete),
            notes=notes,
        )
        return cls(check_in=check_in, challenge=challenge)


class UseEmergencyProtocol(graphene.Mutation):
    class Arguments:
        challenge_id = graphene.ID(required=True)
        reason = graphene.String(required=True)

    success = graphene.Boolean(required=True)
    remaining = graphene.Int()
    message = graphene.String()
    error = graphene.String()
    code = graphene.String()
    challenge = graphene.Field(ChallengeType)

    @classmethod
    def mutate(cls, root, info, challenge_id, reason):
        user = info.context.user
        result = emergency.use_emergency(user=user, challenge_id=challenge_id, reason=reason)

        if isinstance(result, emergency.EmergencyGranted):
            challenge = challenge_manager.get_challenge(user=user, challenge_id=challenge_id)
            return cls(success=True, remaining=result.remaining, message=result.message,
                       challenge=challenge)
        return cls(success=False, error=result.error, code=result.code)


class Mutation(graphene.ObjectType):
    create_challenge = CreateChallenge.Field()
    update_check_in = UpdateCheckIn.Field()
    use_emergency_protocol = UseEmergencyProtocol.Field()
