from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voicehand_backend.hand.patching import PatchOperation
from voicehand_backend.replay.models import Cursor


class StepStatus(str, Enum):
    COMMITTED = "committed"
    NO_OP = "no_op"
    INTERPRETATION_FAILED = "interpretation_failed"
    APPLICATION_FAILED = "application_failed"


FAILED_STATUSES = frozenset({StepStatus.INTERPRETATION_FAILED, StepStatus.APPLICATION_FAILED})


class ReconcileError(BaseModel):
    code: str
    message: str
    operation_index: int | None = None
    violations: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class HistoryEntry(BaseModel):
    sequence: int
    fragment: str
    status: StepStatus
    operations: list[PatchOperation] | None = None
    error: ReconcileError | None = None
    timestamp: str
    change_cursor: Cursor | None = None
    document_hash: str

    model_config = ConfigDict(extra="forbid")

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES


class EventType(str, Enum):
    FRAGMENT_QUEUED = "FRAGMENT_QUEUED"
    STATE_COMMITTED = "STATE_COMMITTED"
    NO_OP = "NO_OP"
    INTERPRETATION_FAILED = "INTERPRETATION_FAILED"
    APPLICATION_FAILED = "APPLICATION_FAILED"
    SESSION_RESET = "SESSION_RESET"
    DOCUMENT_LOADED = "DOCUMENT_LOADED"


EVENT_FOR_STATUS = {
    StepStatus.COMMITTED: EventType.STATE_COMMITTED,
    StepStatus.NO_OP: EventType.NO_OP,
    StepStatus.INTERPRETATION_FAILED: EventType.INTERPRETATION_FAILED,
    StepStatus.APPLICATION_FAILED: EventType.APPLICATION_FAILED,
}


class EventEnvelope(BaseModel):
    session_id: str
    event_seq: int
    ts: str
    event_type: EventType
    payload: dict[str, Any]

    model_config = ConfigDict(extra="forbid")
