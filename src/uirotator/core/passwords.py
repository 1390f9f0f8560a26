"""Password generation driven by the caller's ``passwordOptions``.

The option names follow the ``generate-password`` convention used by the
secrets-management control plane: ``length``, ``numbers``, ``symbols``,
``lowercase``, ``uppercase``, ``excludeSimilarCharacters``, ``exclude`` and
``strict``.
"""
import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from .errors import PasswordPolicyError

logger = logging.getLogger("uirotator.passwords")

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
NUMBERS = string.digits
SYMBOLS = '!@#$%^&*()+_-=}{[]|:;"/?.><,`~'
SIMILAR_CHARACTERS = "ilLI|`oO0"

DEFAULT_LENGTH = 10
MAX_LENGTH = 1024


def _flag(options: Dict[str, Any], key: str, default: bool) -> bool:
    value = options.get(key, default)
    if value is None:
        return default
    return bool(value)


def _pools(options: Dict[str, Any]) -> List[str]:
    pools: List[str] = []
    if _flag(options, "lowercase", True):
        pools.append(LOWERCASE)
    if _flag(options, "uppercase", True):
        pools.append(UPPERCASE)
    if _flag(options, "numbers", False):
        pools.append(NUMBERS)

    symbols = options.get("symbols", False)
    if isinstance(symbols, str) and symbols:
        pools.append(symbols)
    elif symbols is True:
        pools.append(SYMBOLS)
    return pools


def _strip(pool: str, excluded: str) -> str:
    return "".join(c for c in pool if c not in excluded)


def generate_password(options: Optional[Dict[str, Any]] = None) -> str:
    """Generate a random password honouring the caller's options.

    Args:
        options: ``passwordOptions`` from the rotation payload; ``None`` uses defaults

    Returns:
        The generated password

    Raises:
        PasswordPolicyError: If the options cannot produce a password
    """
    if options is not None and not isinstance(options, dict):
        raise PasswordPolicyError("Password options must be an object")
    options = dict(options or {})

    length = options.get("length", DEFAULT_LENGTH)
    if isinstance(length, bool) or not isinstance(length, int):
        raise PasswordPolicyError(f"Password length must be an integer, got {length!r}")
    if length < 1 or length > MAX_LENGTH:
        raise PasswordPolicyError(f"Password length must be between 1 and {MAX_LENGTH} characters")

    excluded = str(options.get("exclude") or "")
    if _flag(options, "excludeSimilarCharacters", False):
        excluded += SIMILAR_CHARACTERS

    pools = [_strip(p, excluded) for p in _pools(options)]
    if not pools:
        raise PasswordPolicyError("At least one rule for pools must be true")

    alphabet = "".join(dict.fromkeys("".join(pools)))
    if not alphabet:
        raise PasswordPolicyError("Excluded characters leave nothing to generate from")

    strict = _flag(options, "strict", False)
    if strict:
        if length < len(pools):
            raise PasswordPolicyError("Length must correlate with strict guidelines")
        if any(not p for p in pools):
            raise PasswordPolicyError("Excluded characters empty a pool required by strict mode")

    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if not strict or all(any(c in pool for c in candidate) for pool in pools):
            logger.debug("Generated password of length %d from %d pools", length, len(pools))
            return candidate
