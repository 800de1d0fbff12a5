"""
Machine-readable contract for memory events submitted to the pipeline.

The pydantic models formalise the required envelope fields (id, type,
timestamp, metadata) and accept both snake_case and camelCase keys so that
producers written in other ecosystems can submit payloads unchanged. The
event ``type`` is an open string: the well-known values live in
``MemoryEventType`` but any producer may submit any type.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class EventValidationError(ValueError):
    """Raised when a submitted event is structurally invalid."""


class MemoryEventType(str, Enum):
    """Event types with a dedicated meaning in the memory pipeline."""

    code_generation = "code_generation"
    bug_fix = "bug_fix"
    quality_improvement = "quality_improvement"
    team_interaction = "team_interaction"
    learning_update = "learning_update"
    pattern_recognition = "pattern_recognition"
    mode_change = "mode_change"


Priority = Literal["low", "medium", "high", "critical"]


class EventMetadata(BaseModel):
    """Producer-supplied metadata used for prioritisation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="allow")

    confidence: float = Field(..., ge=0.0, le=1.0)
    source: str = Field(..., min_length=1)
    priority: Priority
    tags: List[str] = Field(default_factory=list)
    project_id: Optional[str] = None


class MemoryEvent(BaseModel):
    """Immutable record of external activity fed into the pipeline."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    timestamp: datetime
    user_id: str = ""
    session_id: str = ""
    data: Any = None
    reasoning: Optional[Any] = None
    metadata: EventMetadata

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        """Accept ``MemoryEventType`` members as well as raw strings."""

        if isinstance(value, MemoryEventType):
            return value.value
        return value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC so events stay comparable."""

        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def parse(cls, payload: Union["MemoryEvent", Mapping[str, Any]]) -> "MemoryEvent":
        """Validate ``payload`` into an event, raising ``EventValidationError``."""

        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, Mapping):
            raise EventValidationError(
                f"Invalid event structure: expected a mapping, got {type(payload).__name__}"
            )
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            missing = sorted(
                ".".join(str(p) for p in err["loc"]) for err in exc.errors() if err["type"] == "missing"
            )
            if missing:
                raise EventValidationError(
                    f"Invalid event structure: missing required fields {missing}"
                ) from exc
            raise EventValidationError(f"Invalid event structure: {exc}") from exc

    def summary(self) -> Dict[str, Any]:
        """Compact representation used in logs and telemetry attributes."""

        return {
            "id": self.id,
            "type": self.type,
            "session_id": self.session_id,
            "priority": self.metadata.priority,
        }


__all__ = [
    "EventMetadata",
    "EventValidationError",
    "MemoryEvent",
    "MemoryEventType",
    "Priority",
]
