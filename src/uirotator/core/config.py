import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, List

from .errors import ConfigError


DEFAULT_VALIDATION_URL = "https://auth.akeyless.io/validate-producer-credentials"
DEFAULT_CHROMIUM_PATH = "/usr/bin/chromium"
DEFAULT_BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]
LOG_LEVEL_ALIASES = {
    "fatal": "critical",
    "warn": "warning",
    "http": "info",
    "verbose": "debug",
    "silly": "debug",
    "trace": "debug",
}


def normalize_log_level(value: str) -> str:
    """Map a log level name, including common aliases, to a ``logging`` level name.

    Raises:
        ConfigError: If the name is not a known level
    """
    level = value.strip().lower()
    level = LOG_LEVEL_ALIASES.get(level, level)
    if level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level {value!r}")
    return level


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Process configuration, read once from the environment at startup."""
    expected_access_id: str
    port: int = 3000
    host: str = "0.0.0.0"
    chromium_path: str = DEFAULT_CHROMIUM_PATH
    browser_args: List[str] = field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    log_level: str = "info"
    environment: str = "production"
    validation_url: str = DEFAULT_VALIDATION_URL
    validation_timeout_s: int = 10
    step_timeout_ms: int = 30000
    recording_timeout_s: int = 300
    readiness_interval_s: int = 60

    @property
    def expose_stack(self) -> bool:
        return self.environment.lower() == "development"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Build settings from environment variables.

        Raises:
            ConfigError: If ``GW_ACCESS_ID`` is missing or a numeric value is malformed
        """
        env = os.environ if env is None else env
        access_id = env.get("GW_ACCESS_ID")
        if not access_id:
            raise ConfigError("GW_ACCESS_ID environment variable is not set")

        chromium_path = (
            env.get("CHROMIUM_EXECUTABLE_PATH")
            or env.get("PUPPETEER_EXECUTABLE_PATH")
            or DEFAULT_CHROMIUM_PATH
        )
        return cls(
            expected_access_id=access_id,
            port=_int(env, "PORT", 3000),
            host=env.get("HOST") or "0.0.0.0",
            chromium_path=chromium_path,
            log_level=normalize_log_level(env.get("LOG_LEVEL") or "info"),
            environment=env.get("APP_ENV") or env.get("NODE_ENV") or "production",
            validation_url=env.get("AKEYLESS_VALIDATION_URL") or DEFAULT_VALIDATION_URL,
            validation_timeout_s=_int(env, "VALIDATION_TIMEOUT_S", 10),
            step_timeout_ms=_int(env, "STEP_TIMEOUT_MS", 30000),
            recording_timeout_s=_int(env, "RECORDING_TIMEOUT_S", 300),
            readiness_interval_s=_int(env, "READINESS_INTERVAL_S", 60),
        )
