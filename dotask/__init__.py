"""DoTask API - tasks and categories per user, served over GraphQL."""

__version__ = "0.1.0"
