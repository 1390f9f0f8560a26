from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .models import StepResult


class RotatorError(Exception):
    """Base exception for rotator errors."""
    pass


class ConfigError(RotatorError):
    """Raised when required configuration is missing or invalid."""
    pass


class PayloadError(RotatorError):
    """Raised when the rotation payload cannot be decoded."""
    pass


class PasswordPolicyError(RotatorError, ValueError):
    """Raised when password generation options cannot be satisfied."""
    pass


class ValidationServiceError(RotatorError):
    """Raised when the credential validation authority cannot be reached."""
    pass


class BackendUnavailableError(RotatorError):
    """Raised when a browser session cannot be launched."""
    pass


class StepError(RotatorError):
    """Raised when a single recorded step fails against the page."""

    def __init__(self, step_type: str, message: str):
        super().__init__(message)
        self.step_type = step_type


class UnsupportedStepError(StepError):
    """Raised for step types the automation backend does not implement."""

    def __init__(self, step_type: str):
        super().__init__(step_type, f"Unsupported step type: {step_type}")


class RecordingExecutionError(RotatorError):
    """Raised when replay stops early.

    Carries the results collected up to and including the failing step.
    """

    def __init__(self, message: str, results: Optional[List["StepResult"]] = None):
        super().__init__(message)
        self.results: List["StepResult"] = list(results or [])
