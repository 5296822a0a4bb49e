from __future__ import annotations

from voicehand_backend.repo.base import SessionRepository
from voicehand_backend.sessions.runtime import SessionRuntime


class InMemorySessionRepository(SessionRepository):
    def __init__(self) -> None:
        self._sessions: dict[str, SessionRuntime] = {}

    def create(self, session: SessionRuntime) -> None:
        if session.session_id in self._sessions:
            raise ValueError(f"session {session.session_id} already exists")
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> SessionRuntime:
        if session_id not in self._sessions:
            raise KeyError(f"session {session_id} not found")
        return self._sessions[session_id]

    def delete(self, session_id: str) -> SessionRuntime:
        if session_id not in self._sessions:
            raise KeyError(f"session {session_id} not found")
        return self._sessions.pop(session_id)

    def all(self) -> list[SessionRuntime]:
        return list(self._sessions.values())
