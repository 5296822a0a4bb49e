from __future__ import annotations

import pytest

from voicehand_backend.config import Settings
from voicehand_backend.hand.models import HandDocument
from voicehand_backend.interpreters.scripted import ScriptedInterpreter, TranscriptScript
from voicehand_backend.repo.in_memory import InMemorySessionRepository
from voicehand_backend.sessions.service import SessionService

from test_utils import heads_up_document, load_transcript


@pytest.fixture
def settings() -> Settings:
    return Settings(interpreter_timeout_s=2.0, event_queue_size=64)


@pytest.fixture
def transcript() -> TranscriptScript:
    return load_transcript()


@pytest.fixture
def service(settings: Settings, transcript: TranscriptScript) -> SessionService:
    return SessionService(
        InMemorySessionRepository(),
        lambda: ScriptedInterpreter.from_script(transcript),
        settings,
    )


@pytest.fixture
def document() -> HandDocument:
    return heads_up_document()
