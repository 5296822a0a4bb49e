from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voicehand_backend.hand.models import HandDocument
from voicehand_backend.hand.patching import PatchOperation


CONTEXT_FIELDS = (
    "table_size",
    "dealer_seat",
    "hero_player_id",
    "small_blind_amount",
    "big_blind_amount",
    "players",
    "rounds",
)


class InterpretationError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class InterpretationResult(BaseModel):
    success: bool
    operations: list[PatchOperation] = Field(default_factory=list)
    error: str | None = None

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def ok(cls, operations: Sequence[PatchOperation]) -> InterpretationResult:
        return cls(success=True, operations=list(operations))

    @classmethod
    def failed(cls, error: str) -> InterpretationResult:
        return cls(success=False, error=error)


def build_state_context(document: HandDocument) -> dict[str, Any]:
    """Reduced view of the document handed to interpreters."""
    payload = document.to_json_dict()
    return {field: payload[field] for field in CONTEXT_FIELDS if field in payload}


class FragmentInterpreter(ABC):
    """Turns one transcript fragment into edit operations.

    Implementations are untrusted: they may fail, time out, or return
    operations that do not apply. The reconciliation loop copes with all of it.
    """

    @abstractmethod
    async def interpret(
        self,
        fragment: str,
        *,
        prior_fragments: Sequence[str],
        state_context: dict[str, Any],
    ) -> InterpretationResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
