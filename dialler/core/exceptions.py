"""Custom exceptions for the dialler queue core."""

from __future__ import annotations


class DiallerException(Exception):
    """Base exception for the dialler application."""

    pass


class DatabaseError(DiallerException):
    """Raised when a database operation fails."""

    pass


class ConfigurationError(DiallerException):
    """Raised when configuration is invalid."""

    pass


class QueueServiceError(DiallerException):
    """Raised when a queue operation fails because of infrastructure, not data."""

    def __init__(self, message: str, queue_type: str, user_id: int | None = None) -> None:
        super().__init__(message)
        self.queue_type = queue_type
        self.user_id = user_id


class SourceOfTruthUnavailableError(DiallerException):
    """Raised when the replica cannot be queried."""

    pass
