from fastapi import Request
from strawberry.fastapi import BaseContext

from dotask.core.config import Settings
from dotask.core.security import ACCESS_TOKEN_COOKIE, TOKEN_LIFETIME, CredentialService
from dotask.core.session import RequestIdentity, get_identity
from dotask.store.base import Store


class Context(BaseContext):
    """Per-request GraphQL context: collaborators plus the caller's identity."""

    def __init__(self, store: Store, credentials: CredentialService, settings: Settings,
                 identity: RequestIdentity):
        super().__init__()
        self.store = store
        self.credentials = credentials
        self.settings = settings
        self.identity = identity

    def set_session_cookie(self, token: str) -> None:
        # pas de transport HTTP (ex: schema.execute_sync) -> rien à faire
        if self.response is None:
            return
        self.response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            token,
            max_age=int(TOKEN_LIFETIME.total_seconds()),
            path="/",
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite="lax",
        )

    def clear_session_cookie(self) -> None:
        if self.response is None:
            return
        self.response.delete_cookie(
            ACCESS_TOKEN_COOKIE,
            path="/",
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite="lax",
        )


def build_context_getter(store: Store, credentials: CredentialService, settings: Settings):
    async def get_context(request: Request) -> Context:
        return Context(store, credentials, settings, get_identity(request))

    return get_context
