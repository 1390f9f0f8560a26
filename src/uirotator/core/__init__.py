"""Core types shared by the rotator: data model, configuration, errors and password generation."""

from .errors import (
    RotatorError,
    ConfigError,
    PayloadError,
    PasswordPolicyError,
)
from .models import Recording, Step, StepResult, StepStatus, RotationPayload

__all__ = [
    'RotatorError',
    'ConfigError',
    'PayloadError',
    'PasswordPolicyError',
    'Recording',
    'Step',
    'StepResult',
    'StepStatus',
    'RotationPayload',
]
