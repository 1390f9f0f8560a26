"""Custom UI rotator: rotate web-only credentials by replaying recorded browser flows."""

__version__ = "0.3.0"

# Avoid importing heavy submodules at top-level to prevent side effects
__all__ = ["RotationService", "Settings", "create_app"]


def __getattr__(name):
    if name == "RotationService":
        from .service.rotation import RotationService
        return RotationService
    if name == "Settings":
        from .core.config import Settings
        return Settings
    if name == "create_app":
        from .api.app import create_app
        return create_app
    raise AttributeError(name)
