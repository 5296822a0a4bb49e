from __future__ import annotations

from voicehand_backend.config import Settings
from voicehand_backend.interpreters.base import FragmentInterpreter
from voicehand_backend.interpreters.llm import ChatCompletionInterpreter
from voicehand_backend.repo.in_memory import InMemorySessionRepository
from voicehand_backend.sessions.service import SessionRejected, SessionService


settings = Settings.from_env()


def build_interpreter() -> FragmentInterpreter:
    if not settings.llm_api_key:
        raise SessionRejected(
            "INTERPRETER_UNAVAILABLE",
            "No LLM API key configured; set VOICEHAND_LLM_API_KEY or GROQ_API_KEY.",
        )
    return ChatCompletionInterpreter.from_settings(settings)


repository = InMemorySessionRepository()
session_service = SessionService(repository, build_interpreter, settings)


def get_session_service() -> SessionService:
    return session_service
