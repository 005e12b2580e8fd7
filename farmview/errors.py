"""Exception types shared by data access and form validation."""

from __future__ import annotations


class FarmViewError(Exception):
    """Base class for application errors surfaced to the user."""


class BackendError(FarmViewError):
    """Hosted database request failed.

    Parameters
    ----------
    message : str
        Human readable failure description.
    status : int | None
        HTTP status code, ``None`` for transport failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"


class ValidationError(FarmViewError):
    """Form value rejected before any request is sent.

    Parameters
    ----------
    field : str
        Name of the offending form field.
    message : str
        Explanation shown next to the field.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ImportFormatError(FarmViewError, ValueError):
    """Imported block file is unreadable or holds no polygons."""
