from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, List, Dict, Any

from .errors import PayloadError


CHANGE_STEP = "change"


@dataclass(frozen=True)
class Step:
    """A single recorded UI action.

    ``raw`` holds the step exactly as recorded so that fields this package
    does not interpret survive a round trip untouched.
    """
    type: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def selectors(self) -> Any:
        return self.raw.get("selectors")

    @property
    def value(self) -> Optional[str]:
        return self.raw.get("value")

    @property
    def is_change(self) -> bool:
        return self.type == CHANGE_STEP

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def with_value(self, value: str) -> 'Step':
        """Return a copy of the step with ``value`` replaced."""
        raw = dict(self.raw)
        raw["value"] = value
        return replace(self, raw=raw)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Step':
        if not isinstance(data, dict):
            raise PayloadError(f"Recording step must be an object, got {type(data).__name__}")
        step_type = data.get("type")
        if not isinstance(step_type, str) or not step_type:
            raise PayloadError("Recording step is missing its 'type'")
        return cls(type=step_type, raw=dict(data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Step):
            return NotImplemented
        return self.raw == other.raw


@dataclass
class Recording:
    """An ordered list of steps plus caller-owned metadata.

    ``metadata`` keeps every top-level key of the recorded document (the
    original ``steps`` entry included) so key order is preserved on output.
    """
    steps: List[Step] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return str(self.metadata.get("title", ""))

    def __len__(self) -> int:
        return len(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.metadata, "steps": [s.to_dict() for s in self.steps]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Recording':
        if not isinstance(data, dict):
            raise PayloadError("Recording must be a JSON object")
        steps = data.get("steps")
        if not isinstance(steps, list):
            raise PayloadError("Recording must contain a 'steps' list")
        return cls(steps=[Step.from_dict(s) for s in steps], metadata=dict(data))


class StepStatus(str, Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass
class StepResult:
    """Outcome of executing one step."""
    step_type: str
    status: StepStatus
    duration_ms: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "step": self.step_type,
            "status": self.status.value,
            "duration": self.duration_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


def _string_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadError(f"'{key}' must be a list")
    return value


@dataclass
class RotationPayload:
    """Decoded rotation payload sent by the secrets-management control plane."""
    username: str
    password: str
    recording: Recording
    password_options: Dict[str, Any] = field(default_factory=dict)
    username_mappings: List[Any] = field(default_factory=list)
    password_mappings: List[Any] = field(default_factory=list)
    new_password_mappings: List[Any] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RotationPayload':
        if not isinstance(data, dict):
            raise PayloadError("Payload must be a JSON object")
        for key in ("username", "password"):
            if not isinstance(data.get(key), str):
                raise PayloadError(f"Payload field '{key}' must be a string")
        options = data.get("passwordOptions")
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise PayloadError("'passwordOptions' must be an object")
        return cls(
            username=data["username"],
            password=data["password"],
            recording=Recording.from_dict(data.get("recording")),
            password_options=options,
            username_mappings=_string_list(data, "usernameMappings"),
            password_mappings=_string_list(data, "passwordMappings"),
            new_password_mappings=_string_list(data, "newPasswordMappings"),
            raw=dict(data),
        )

    def rotated(self, new_password: str, recording: Recording, results: List[StepResult]) -> Dict[str, Any]:
        """Build the response payload, keeping every caller-defined field."""
        return {
            **self.raw,
            "password": new_password,
            "recording": recording.to_dict(),
            "executionResults": [r.to_dict() for r in results],
        }
