"""Error taxonomy shared by the store, the services and the GraphQL layer.

Every domain error carries a ``code``; graphql-core copies the
``extensions`` mapping of the original exception onto the field error, so
clients receive ``{"message": ..., "extensions": {"code": ...}}``.
"""


class ConfigError(Exception):
    """Startup misconfiguration (missing secret, unknown backend)."""


class DoTaskError(Exception):
    code = "INTERNAL_SERVER_ERROR"
    default_message = "internal error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def extensions(self) -> dict:
        return {"code": self.code}


class AuthenticationRequired(DoTaskError):
    code = "UNAUTHENTICATED"
    default_message = "authentication required"


class NotFound(DoTaskError):
    # Also raised for rows owned by someone else
    code = "NOT_FOUND"
    default_message = "not found"


class AlreadyExists(DoTaskError):
    code = "ALREADY_EXISTS"
    default_message = "already exists"


class HasDependents(DoTaskError):
    code = "HAS_DEPENDENTS"
    default_message = "cannot delete category with associated tasks"


class InvalidInput(DoTaskError):
    code = "BAD_USER_INPUT"
    default_message = "invalid input"
