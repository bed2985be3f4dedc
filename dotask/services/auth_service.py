"""Authentication gate and account operations (register, login, profile)."""

import logging
from typing import Tuple

from pydantic import ValidationError

from dotask.core.errors import AuthenticationRequired, InvalidInput, NotFound
from dotask.core.security import CredentialService
from dotask.core.session import RequestIdentity
from dotask.schemas.user import PasswordChange, UserCreate, UserRecord, UserUpdate
from dotask.store.base import Store

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def require_auth(identity: RequestIdentity) -> str:
    """Return the caller's user id, or fail when the request carries no valid session."""
    if identity is None or not identity.authenticated or not identity.user_id:
        raise AuthenticationRequired()
    return identity.user_id


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    field = ".".join(str(part) for part in err["loc"]) or "input"
    return f"invalid {field}: {err['msg']}"


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")


def register(store: Store, credentials: CredentialService, name: str, email: str,
             password: str) -> Tuple[UserRecord, str]:
    try:
        data = UserCreate(name=name.strip(), email=email, password=password)
    except ValidationError as e:
        raise InvalidInput(_first_error(e))
    if not data.name:
        raise InvalidInput("name is required")
    _check_password(data.password)

    user = store.create_user(data.name, data.email, credentials.hash_password(data.password))
    token = credentials.issue_token(user)
    logger.info(f"Registered user {user.id}")
    return user.scrubbed(), token


def login(store: Store, credentials: CredentialService, email: str,
          password: str) -> Tuple[UserRecord, str]:
    # même message que l'email soit inconnu ou le mdp faux
    try:
        user = store.get_user_by_email(email)
    except NotFound:
        logger.warning("Login failed: unknown email")
        raise AuthenticationRequired("invalid email or password")

    if not credentials.verify_password(password, user.password_hash):
        logger.warning(f"Login failed for user {user.id}: wrong password")
        raise AuthenticationRequired("invalid email or password")

    token = credentials.issue_token(user)
    logger.info(f"User {user.id} logged in")
    return user.scrubbed(), token


def me(store: Store, identity: RequestIdentity) -> UserRecord:
    user_id = require_auth(identity)
    return store.get_user(user_id).scrubbed()


def update_profile(store: Store, identity: RequestIdentity, fields: dict) -> UserRecord:
    user_id = require_auth(identity)
    if "name" in fields and fields["name"] is not None:
        fields = {**fields, "name": fields["name"].strip()}
        if not fields["name"]:
            raise InvalidInput("name cannot be empty")
    try:
        update = UserUpdate(**fields)
    except ValidationError as e:
        raise InvalidInput(_first_error(e))
    return store.update_user(user_id, update).scrubbed()


def change_password(store: Store, credentials: CredentialService, identity: RequestIdentity,
                    current_password: str, new_password: str) -> bool:
    user_id = require_auth(identity)
    change = PasswordChange(current_password=current_password, new_password=new_password)
    user = store.get_user(user_id)
    if not credentials.verify_password(change.current_password, user.password_hash):
        raise InvalidInput("current password is incorrect")
    _check_password(change.new_password)

    store.set_user_password(user_id, credentials.hash_password(change.new_password))
    logger.info(f"User {user_id} changed password")
    return True
