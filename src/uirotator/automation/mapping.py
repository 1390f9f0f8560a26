"""Match recorded ``change`` steps to credential roles.

Callers identify the username, current password and new password inputs by
sending the canonical JSON serialization of a step's ``selectors`` field, for
example ``[["#login"],["xpath///*[@id=\\"login\\"]"]]``. Both sides are decoded
into nested tuples and compared structurally, so formatting differences in the
serialization cannot cause a miss.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional, Tuple, Union

from ..core.models import Step

logger = logging.getLogger("uirotator.mapping")

SelectorGroup = Union[str, Tuple[str, ...]]
SelectorKey = Tuple[SelectorGroup, ...]


class Role(str, Enum):
    USERNAME = "username"
    CURRENT_PASSWORD = "current_password"
    NEW_PASSWORD = "new_password"


# First match wins, in this order.
ROLE_PRIORITY = (Role.USERNAME, Role.CURRENT_PASSWORD, Role.NEW_PASSWORD)


def freeze_selectors(selectors: Any) -> Optional[SelectorKey]:
    """Convert a ``selectors`` value into a hashable key, or ``None`` if malformed."""
    if not isinstance(selectors, (list, tuple)):
        return None
    frozen = []
    for group in selectors:
        if isinstance(group, str):
            frozen.append(group)
        elif isinstance(group, (list, tuple)) and all(isinstance(s, str) for s in group):
            frozen.append(tuple(group))
        else:
            return None
    return tuple(frozen)


def serialize_selectors(selectors: Any) -> str:
    """Canonical serialization of a ``selectors`` value (compact JSON, non-ASCII kept)."""
    return json.dumps(selectors, separators=(",", ":"), ensure_ascii=False)


def _decode_entry(entry: Any) -> Optional[SelectorKey]:
    if isinstance(entry, str):
        try:
            entry = json.loads(entry)
        except ValueError:
            logger.debug("Ignoring mapping entry that is not valid JSON")
            return None
    key = freeze_selectors(entry)
    if key is None:
        logger.debug("Ignoring mapping entry that is not a selector list")
    return key


def _key_set(entries: Optional[Iterable[Any]]) -> FrozenSet[SelectorKey]:
    keys = (_decode_entry(e) for e in (entries or ()))
    return frozenset(k for k in keys if k is not None)


@dataclass(frozen=True)
class SelectorMappings:
    username: FrozenSet[SelectorKey] = field(default_factory=frozenset)
    current_password: FrozenSet[SelectorKey] = field(default_factory=frozenset)
    new_password: FrozenSet[SelectorKey] = field(default_factory=frozenset)

    @classmethod
    def from_lists(
        cls,
        username: Optional[Iterable[Any]] = None,
        current_password: Optional[Iterable[Any]] = None,
        new_password: Optional[Iterable[Any]] = None,
    ) -> 'SelectorMappings':
        return cls(
            username=_key_set(username),
            current_password=_key_set(current_password),
            new_password=_key_set(new_password),
        )

    def for_role(self, role: Role) -> FrozenSet[SelectorKey]:
        return getattr(self, role.value)


def classify(step: Step, mappings: SelectorMappings) -> Optional[Role]:
    """Return the credential role a step should receive, if any."""
    if not step.is_change:
        return None
    key = freeze_selectors(step.selectors)
    if key is None:
        return None
    for role in ROLE_PRIORITY:
        if key in mappings.for_role(role):
            return role
    return None
