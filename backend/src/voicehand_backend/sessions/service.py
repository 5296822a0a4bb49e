from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from voicehand_backend.config import Settings
from voicehand_backend.hand.models import HandDocument
from voicehand_backend.hand.validation import DocumentValidator
from voicehand_backend.interpreters.base import FragmentInterpreter
from voicehand_backend.reconcile.context import SessionContext
from voicehand_backend.reconcile.loop import ReconciliationLoop
from voicehand_backend.reconcile.models import (
    EVENT_FOR_STATUS,
    EventEnvelope,
    EventType,
    HistoryEntry,
    StepStatus,
)
from voicehand_backend.replay.models import Cursor, PlaybackState, TableSnapshot
from voicehand_backend.replay.playback import PlaybackCommand
from voicehand_backend.replay.snapshot import calculate_snapshot
from voicehand_backend.repo.base import SessionRepository
from voicehand_backend.sessions.models import (
    HandConfig,
    HistoryResponse,
    SessionView,
    SubmitFragmentResponse,
)
from voicehand_backend.sessions.runtime import SessionRuntime


logger = logging.getLogger(__name__)

InterpreterFactory = Callable[[], FragmentInterpreter]


class SessionRejected(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class SessionService:
    """Owns live hand sessions: one reconciliation loop and one replay head each."""

    def __init__(
        self,
        repository: SessionRepository,
        interpreter_factory: InterpreterFactory,
        settings: Settings | None = None,
    ) -> None:
        self._repo = repository
        self._interpreter_factory = interpreter_factory
        self._settings = settings or Settings()
        self._subscriptions: dict[str, set[asyncio.Queue[EventEnvelope]]] = defaultdict(set)

    async def create_session(self, config: HandConfig | None = None) -> str:
        config = config or HandConfig()
        session_id = f"ses_{uuid4().hex[:12]}"
        interpreter = self._interpreter_factory()
        rotation = config.enforce_action_rotation
        if rotation is None:
            rotation = self._settings.enforce_action_rotation

        context = SessionContext(document=config.build_document())
        loop = ReconciliationLoop(
            context,
            interpreter,
            validator=DocumentValidator(enforce_action_rotation=rotation),
            interpreter_timeout_s=self._settings.interpreter_timeout_s,
        )
        session = SessionRuntime(
            session_id=session_id,
            config=config,
            context=context,
            loop=loop,
            interpreter=interpreter,
        )
        loop.on_entry = lambda entry: self._on_entry(session, entry)
        self._repo.create(session)
        logger.info("Created session %s (table_size=%d)", session_id, config.table_size)
        return session_id

    async def submit_fragment(
        self,
        session_id: str,
        text: str,
        *,
        wait: bool = False,
    ) -> SubmitFragmentResponse:
        session = self._repo.get(session_id)
        fragment = text.strip()
        if not fragment:
            raise SessionRejected("EMPTY_FRAGMENT", "Fragment text is empty.")

        async with session.lock:
            done = session.loop.submit(fragment)
            pending = session.loop.pending
            self._emit_event(session, EventType.FRAGMENT_QUEUED, {"fragment": fragment, "pending": pending})

        if not wait:
            return SubmitFragmentResponse(accepted=True, pending=pending)
        await asyncio.wait({done})
        if done.cancelled():
            raise SessionRejected("FRAGMENT_DROPPED", "Fragment was dropped before it was processed.")
        entry = done.result()
        return SubmitFragmentResponse(accepted=True, pending=session.loop.pending, entry=entry)

    async def wait_until_idle(self, session_id: str, timeout_s: float | None = None) -> None:
        session = self._repo.get(session_id)
        try:
            await asyncio.wait_for(session.loop.join(), timeout=timeout_s)
        except TimeoutError as exc:
            raise SessionRejected("SESSION_BUSY", "Session did not drain its fragment queue in time.") from exc

    async def get_view(self, session_id: str) -> SessionView:
        session = self._repo.get(session_id)
        async with session.lock:
            return self._build_view(session)

    async def get_history(self, session_id: str) -> HistoryResponse:
        session = self._repo.get(session_id)
        context = session.context
        return HistoryResponse(
            session_id=session_id,
            entries=list(context.history),
            transcript=list(context.transcript),
            failures=len(context.failures),
        )

    async def get_document(self, session_id: str) -> HandDocument:
        return self._repo.get(session_id).context.document

    async def load_document(self, session_id: str, payload: dict[str, Any]) -> SessionView:
        """Replace the committed document wholesale, e.g. from a saved hand."""
        session = self._repo.get(session_id)
        async with session.lock:
            if not session.loop.is_idle:
                raise SessionRejected("SESSION_BUSY", "Fragments are still being processed.")
            document, violations = session.loop.validator.validate_payload(payload.get("ohh", payload))
            if document is None:
                raise SessionRejected("INVALID_DOCUMENT", "; ".join(violations))
            await session.loop.load(document)
            session.playback.sync(document)
            self._emit_event(session, EventType.DOCUMENT_LOADED, {"document_hash": document.fingerprint()})
            logger.info("Loaded document into session %s", session_id)
            return self._build_view(session)

    async def get_snapshot(self, session_id: str, cursor: Cursor | None = None) -> TableSnapshot:
        session = self._repo.get(session_id)
        async with session.lock:
            target = cursor if cursor is not None else session.playback.cursor
            return calculate_snapshot(session.context.document, target)

    async def playback(self, session_id: str, command: PlaybackCommand) -> PlaybackState:
        session = self._repo.get(session_id)
        async with session.lock:
            document = session.context.document
            session.playback.sync(document)
            session.playback.apply(document, command)
            return session.playback.state(document)

    async def reset_session(self, session_id: str, config: HandConfig | None = None) -> tuple[int, SessionView]:
        session = self._repo.get(session_id)
        if config is not None:
            session.config = config
        dropped = await session.loop.reset(session.config.build_document())
        async with session.lock:
            session.playback.rewind(session.context.document)
            self._emit_event(session, EventType.SESSION_RESET, {"dropped_fragments": dropped})
            logger.info("Reset session %s (dropped %d queued fragment(s))", session_id, dropped)
            return dropped, self._build_view(session)

    async def subscribe(self, session_id: str) -> asyncio.Queue[EventEnvelope]:
        session = self._repo.get(session_id)
        queue: asyncio.Queue[EventEnvelope] = asyncio.Queue(maxsize=self._settings.event_queue_size)
        async with session.lock:
            self._subscriptions[session_id].add(queue)
        return queue

    async def unsubscribe(self, session_id: str, queue: asyncio.Queue[EventEnvelope]) -> None:
        try:
            session = self._repo.get(session_id)
        except KeyError:
            return
        async with session.lock:
            self._subscriptions[session_id].discard(queue)

    async def delete_session(self, session_id: str) -> None:
        session = self._repo.delete(session_id)
        dropped = session.loop.pending
        await session.loop.stop()
        await session.interpreter.aclose()
        self._subscriptions.pop(session_id, None)
        logger.info("Deleted session %s (dropped %d queued fragment(s))", session_id, dropped)

    async def close(self) -> None:
        for session in self._repo.all():
            await session.loop.stop()
            await session.interpreter.aclose()
        self._subscriptions.clear()

    async def _on_entry(self, session: SessionRuntime, entry: HistoryEntry) -> None:
        async with session.lock:
            history = session.context.history
            if entry.sequence > len(history) or history[entry.sequence - 1] is not entry:
                # Entry belongs to a context that was reset while it was in flight.
                return
            payload = entry.model_dump(mode="json", by_alias=True)
            if entry.status is StepStatus.COMMITTED and entry.operations:
                cursor = session.playback.follow(session.context.document, entry.operations)
                payload["playback_cursor"] = cursor.model_dump(mode="json", by_alias=True)
            self._emit_event(session, EVENT_FOR_STATUS[entry.status], payload)

    def _build_view(self, session: SessionRuntime) -> SessionView:
        document = session.context.document
        session.playback.sync(document)
        return SessionView(
            session_id=session.session_id,
            document=document.to_json_dict(),
            document_hash=document.fingerprint(),
            history=list(session.context.history),
            pending=session.loop.pending,
            in_flight=session.loop.in_flight,
            playback=session.playback.state(document),
        )

    def _emit_event(
        self,
        session: SessionRuntime,
        event_type: EventType,
        payload: dict[str, Any],
    ) -> None:
        envelope = EventEnvelope(
            session_id=session.session_id,
            event_seq=session.next_event_seq(),
            ts=session.context.now_iso(),
            event_type=event_type,
            payload=payload,
        )
        for queue in list(self._subscriptions.get(session.session_id, set())):
            try:
                queue.put_nowait(envelope)
            except asyncio.QueueFull:
                continue
