"""Session middleware: attaches a typed request identity to every request.

The middleware never rejects a request. A missing, malformed, expired or
tampered token simply leaves the anonymous identity in place; resolvers
decide whether an operation needs an authenticated caller.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from dotask.core.security import ACCESS_TOKEN_COOKIE, CredentialService, InvalidToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestIdentity:
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    authenticated: bool = False


ANONYMOUS = RequestIdentity()


def extract_token(request: Request) -> Optional[str]:
    # cookie http-only d'abord, puis header Authorization
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


def resolve_identity(request: Request, credentials: CredentialService) -> RequestIdentity:
    token = extract_token(request)
    if not token:
        return ANONYMOUS
    try:
        claims = credentials.validate_token(token)
    except InvalidToken as e:
        logger.warning(f"Rejected session token: {e}")
        return ANONYMOUS
    return RequestIdentity(
        user_id=claims.user_id,
        email=claims.email,
        name=claims.name,
        authenticated=True,
    )


def get_identity(request: Request) -> RequestIdentity:
    return getattr(request.state, "identity", ANONYMOUS)


class SessionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, credentials: CredentialService):
        super().__init__(app)
        self.credentials = credentials

    async def dispatch(self, request: Request, call_next):
        request.state.identity = resolve_identity(request, self.credentials)
        return await call_next(request)
