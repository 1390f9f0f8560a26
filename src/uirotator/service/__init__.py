from .auth import CredentialValidator
from .rotation import RotationResponse, RotationService

__all__ = ['CredentialValidator', 'RotationResponse', 'RotationService']
