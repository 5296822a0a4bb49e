from __future__ import annotations

from abc import ABC, abstractmethod

from voicehand_backend.sessions.runtime import SessionRuntime


class SessionRepository(ABC):
    @abstractmethod
    def create(self, session: SessionRuntime) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, session_id: str) -> SessionRuntime:
        """Return the session or raise ``KeyError``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, session_id: str) -> SessionRuntime:
        raise NotImplementedError

    @abstractmethod
    def all(self) -> list[SessionRuntime]:
        raise NotImplementedError
