from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voicehand_backend.hand.models import UNKNOWN_HERO_ID, Amount, HandDocument
from voicehand_backend.reconcile.models import EventEnvelope, HistoryEntry
from voicehand_backend.replay.models import PlaybackState, TableSnapshot


class HandConfig(BaseModel):
    table_size: int = Field(default=8, ge=2, le=10)
    dealer_seat: int = Field(default=1, ge=1)
    hero_player_id: int = UNKNOWN_HERO_ID
    small_blind_amount: Amount = Field(default=1, ge=0)
    big_blind_amount: Amount = Field(default=2, ge=0)
    ante_amount: Amount = Field(default=0, ge=0)
    bet_cap: Amount = 0
    bet_type: str = "NL"
    currency: str = "Chips"
    table_name: str = "Sample Table"
    game_number: str = "1"
    enforce_action_rotation: bool | None = None

    model_config = ConfigDict(extra="forbid")

    def build_document(self) -> HandDocument:
        return HandDocument.new(**self.model_dump(exclude={"enforce_action_rotation"}))


class SessionError(BaseModel):
    code: str
    message: str

    model_config = ConfigDict(extra="forbid")


class CreateSessionRequest(BaseModel):
    config: HandConfig = Field(default_factory=HandConfig)

    model_config = ConfigDict(extra="forbid")


class SubmitFragmentRequest(BaseModel):
    text: str = Field(min_length=1)

    model_config = ConfigDict(extra="forbid")


class SubmitFragmentResponse(BaseModel):
    accepted: bool
    pending: int
    entry: HistoryEntry | None = None

    model_config = ConfigDict(extra="forbid")


class SessionView(BaseModel):
    session_id: str
    document: dict[str, Any]
    document_hash: str
    history: list[HistoryEntry]
    pending: int
    in_flight: str | None = None
    playback: PlaybackState

    model_config = ConfigDict(extra="forbid")


class CreateSessionResponse(BaseModel):
    session_id: str
    view: SessionView

    model_config = ConfigDict(extra="forbid")


class HistoryResponse(BaseModel):
    session_id: str
    entries: list[HistoryEntry]
    transcript: list[str]
    failures: int

    model_config = ConfigDict(extra="forbid")


class LoadDocumentRequest(BaseModel):
    document: dict[str, Any]

    model_config = ConfigDict(extra="forbid")


class SnapshotResponse(BaseModel):
    session_id: str
    snapshot: TableSnapshot

    model_config = ConfigDict(extra="forbid")


class ResetSessionResponse(BaseModel):
    dropped_fragments: int
    view: SessionView

    model_config = ConfigDict(extra="forbid")


class SocketMessage(BaseModel):
    type: str
    payload: dict[str, Any]

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_event(cls, event: EventEnvelope) -> SocketMessage:
        return cls(type="EVENT", payload=event.model_dump(mode="json", by_alias=True))
