import logging
from datetime import timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel

from dotask.core.config import Settings
from dotask.core.dates import utcnow

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=7)
ACCESS_TOKEN_COOKIE = "accessToken"


class InvalidToken(Exception):
    pass


class TokenClaims(BaseModel):
    user_id: str
    email: str
    name: str


class CredentialService:
    """Hash/vérifie les mots de passe et signe/valide les tokens de session"""

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret

    @staticmethod
    def hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except ValueError:
            # hash corrompu ou pas au format bcrypt
            return False

    def issue_token(self, user) -> str:
        now = utcnow()
        payload = {
            "userId": user.id,
            "email": user.email,
            "name": user.name,
            "iat": now,
            "nbf": now,
            "exp": now + TOKEN_LIFETIME,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def validate_token(self, token: str) -> TokenClaims:
        # algorithms=[HS256] rejette tout token signé avec un autre algo
        try:
            payload = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            raise InvalidToken(str(e))

        user_id: Optional[str] = payload.get("userId")
        if not user_id:
            raise InvalidToken("invalid token")
        return TokenClaims(
            user_id=user_id,
            email=payload.get("email", ""),
            name=payload.get("name", ""),
        )
