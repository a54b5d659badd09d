"""Error types surfaced to the learner."""
from typing import Dict, Optional


class HellenikaError(Exception):
    """Base class for errors that carry a user-facing message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HellenikaError):
    """Malformed form input. ``errors`` maps field name to message."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{name}: {text}" for name, text in errors.items()))
        self.errors = errors


class CredentialError(HellenikaError):
    """Duplicate display name or wrong password.

    Messages are deliberately generic so they do not reveal whether an
    account exists.
    """


class NotFoundError(HellenikaError):
    """Unknown activity, group or page."""

    def __init__(self, message: str, recovery_path: Optional[str] = None):
        super().__init__(message)
        self.recovery_path = recovery_path


class RateLimitError(HellenikaError):
    """Too many attempts inside the rolling window."""

    def __init__(self, retry_after: float):
        super().__init__(f"Too many attempts. Try again in {int(retry_after + 0.999)} seconds.")
        self.retry_after = retry_after


class UnexpectedError(HellenikaError):
    """Uncaught fault reported by the top-level error handler."""

    def __init__(self, message: str = "Something went wrong. Please try again."):
        super().__init__(message)
