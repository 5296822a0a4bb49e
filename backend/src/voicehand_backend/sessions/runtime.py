from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from voicehand_backend.interpreters.base import FragmentInterpreter
from voicehand_backend.reconcile.context import SessionContext
from voicehand_backend.reconcile.loop import ReconciliationLoop
from voicehand_backend.replay.playback import Playback
from voicehand_backend.sessions.models import HandConfig


@dataclass
class SessionRuntime:
    session_id: str
    config: HandConfig
    context: SessionContext
    loop: ReconciliationLoop
    interpreter: FragmentInterpreter
    playback: Playback = field(default_factory=Playback)
    event_seq: int = 0
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def next_event_seq(self) -> int:
        self.event_seq += 1
        return self.event_seq
