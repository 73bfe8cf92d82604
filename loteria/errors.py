"""Custom exceptions for centralized error handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, message: str = "Not found", details: Any | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", details: Any | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=400, details=details)


class ConflictError(AppError):
    """Conflict (e.g., unique constraint)."""

    def __init__(self, message: str = "Conflict", details: Any | None = None) -> None:
        super().__init__(code="conflict", message=message, status_code=409, details=details)


class InvalidWinningNumbers(ValidationError):
    """Winning numbers are not `arity` distinct values inside the variant's pool."""

    def __init__(self, message: str = "Invalid winning numbers", details: Any | None = None) -> None:
        super().__init__(message=message, details=details)
        self.code = "invalid_winning_numbers"


class InvalidCombination(ValidationError):
    """A generated or submitted combination does not fit its variant."""

    def __init__(self, message: str = "Invalid combination", details: Any | None = None) -> None:
        super().__init__(message=message, details=details)
        self.code = "invalid_combination"


class ConferenceLocked(ConflictError):
    """Manual conference attempted on a set that already has the official result."""

    def __init__(
        self,
        message: str = "Saved set was already checked against the official result",
        details: Any | None = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.code = "conference_locked"


class UpstreamError(AppError):
    """The lottery results API could not provide required data."""

    def __init__(self, message: str = "Lottery results API unavailable", details: Any | None = None) -> None:
        super().__init__(code="upstream_error", message=message, status_code=502, details=details)


class GenerationError(AppError):
    """The combination generator returned nothing usable."""

    def __init__(self, message: str = "Failed to generate combinations", details: Any | None = None) -> None:
        super().__init__(code="generation_failed", message=message, status_code=502, details=details)


class ConfigurationError(AppError):
    """A required setting is missing."""

    def __init__(self, message: str = "Service not configured", details: Any | None = None) -> None:
        super().__init__(code="not_configured", message=message, status_code=503, details=details)
