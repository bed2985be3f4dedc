from strawberry.fastapi import GraphQLRouter

from dotask.core.config import Settings
from dotask.core.security import CredentialService
from dotask.graphql.context import build_context_getter
from dotask.graphql.schema import schema
from dotask.store.base import Store


def create_graphql_router(store: Store, credentials: CredentialService, settings: Settings) -> GraphQLRouter:
    """POST /query exécute, GET /query sert l'explorateur GraphiQL"""
    return GraphQLRouter(
        schema,
        context_getter=build_context_getter(store, credentials, settings),
        graphql_ide="graphiql",
    )
