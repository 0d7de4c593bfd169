from __future__ import annotations


class DecisionGameError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DecisionGameError):
    """Client sent a payload or query that cannot be accepted."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(DecisionGameError):
    status_code = 404


class RepositoryError(DecisionGameError):
    """The score store failed (connectivity, query or commit)."""

    status_code = 500
