"""
URL configuration for config project.

The challenge engine is served entirely through the GraphQL endpoint;
sign-in and sign-up live in the front end's auth provider.
"""
from django.contrib import admin
from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from graphene_django.views import GraphQLView


urlpatterns = [
    path('admin/', admin.site.urls),
    path('graphql/', csrf_exempt(GraphQLView.as_view(graphiql=True))),
]
