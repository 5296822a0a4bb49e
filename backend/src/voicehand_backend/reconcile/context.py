from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from voicehand_backend.hand.models import HandDocument
from voicehand_backend.reconcile.models import HistoryEntry


@dataclass
class SessionContext:
    """The mutable state a reconciliation loop owns: document plus fragment log."""

    document: HandDocument
    history: list[HistoryEntry] = field(default_factory=list)
    transcript: list[str] = field(default_factory=list)

    @property
    def failures(self) -> list[HistoryEntry]:
        return [entry for entry in self.history if entry.failed]

    def next_sequence(self) -> int:
        return len(self.history) + 1

    def record(self, entry: HistoryEntry, document: HandDocument | None = None) -> None:
        if document is not None:
            self.document = document
        self.transcript.append(entry.fragment)
        self.history.append(entry)

    def reset(self, document: HandDocument) -> None:
        self.document = document
        self.history.clear()
        self.transcript.clear()

    @staticmethod
    def now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()
