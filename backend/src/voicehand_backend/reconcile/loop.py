from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from voicehand_backend.hand.models import HandDocument
from voicehand_backend.hand.patching import PatchOperation, apply_operations
from voicehand_backend.hand.validation import DocumentValidator
from voicehand_backend.interpreters.base import (
    FragmentInterpreter,
    InterpretationError,
    InterpretationResult,
    build_state_context,
)
from voicehand_backend.reconcile.context import SessionContext
from voicehand_backend.reconcile.models import HistoryEntry, ReconcileError, StepStatus
from voicehand_backend.replay.locator import locate_earliest_change
from voicehand_backend.replay.models import Cursor


logger = logging.getLogger(__name__)

EntryCallback = Callable[[HistoryEntry], Awaitable[None]]


class ReconciliationLoop:
    """Serial actor that folds transcript fragments into the committed document.

    Fragments queue up through ``submit`` and a single worker task handles
    them strictly in order: each interpretation depends on every earlier
    fragment and on the document they produced. ``process`` runs one step
    directly for headless callers and shares the same lock.
    """

    def __init__(
        self,
        context: SessionContext,
        interpreter: FragmentInterpreter,
        *,
        validator: DocumentValidator | None = None,
        interpreter_timeout_s: float | None = None,
        on_entry: EntryCallback | None = None,
    ) -> None:
        self.context = context
        self._interpreter = interpreter
        self.validator = validator or DocumentValidator()
        self._timeout_s = interpreter_timeout_s
        self.on_entry = on_entry
        self._queue: asyncio.Queue[tuple[str, asyncio.Future[HistoryEntry]]] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._worker: asyncio.Task[None] | None = None
        self._in_flight: str | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def in_flight(self) -> str | None:
        return self._in_flight

    @property
    def is_idle(self) -> bool:
        return self._in_flight is None and self._queue.empty()

    def submit(self, fragment: str) -> asyncio.Future[HistoryEntry]:
        """Queue a fragment; the returned future resolves to its history entry."""
        self.start()
        done: asyncio.Future[HistoryEntry] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((fragment, done))
        return done

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def join(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self._drain_queue()

    async def reset(self, document: HandDocument) -> int:
        """Drop queued fragments and start over from ``document``."""
        dropped = self._drain_queue()
        async with self._lock:
            self.context.reset(document)
        return dropped

    async def load(self, document: HandDocument) -> None:
        async with self._lock:
            self.context.document = document

    async def process(self, fragment: str) -> HistoryEntry:
        async with self._lock:
            self._in_flight = fragment
            try:
                entry = await self._step(fragment)
            except Exception as exc:
                logger.exception("Reconciliation step crashed for fragment %r", fragment)
                entry = self._record_crash(fragment, exc)
            finally:
                self._in_flight = None
        if self.on_entry is not None:
            try:
                await self.on_entry(entry)
            except Exception:
                logger.exception("Entry callback failed for fragment %d", entry.sequence)
        return entry

    async def _run(self) -> None:
        while True:
            fragment, done = await self._queue.get()
            try:
                entry = await self.process(fragment)
            except asyncio.CancelledError:
                done.cancel()
                raise
            except Exception as exc:
                logger.exception("Reconciliation step crashed for fragment %r", fragment)
                entry = self._record_crash(fragment, exc)
                if not done.done():
                    done.set_result(entry)
            else:
                if not done.done():
                    done.set_result(entry)
            finally:
                self._queue.task_done()

    def _drain_queue(self) -> int:
        dropped = 0
        while True:
            try:
                _, done = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            done.cancel()
            self._queue.task_done()
            dropped += 1

    async def _step(self, fragment: str) -> HistoryEntry:
        context = self.context
        document = context.document
        sequence = context.next_sequence()

        operations, error = await self._interpret(fragment, list(context.transcript), document)
        if error is not None or operations is None:
            error = error or ReconcileError(code="INTERPRETATION_FAILED", message="Failed to generate patch")
            logger.warning("Fragment %d not interpreted (%s): %s", sequence, error.code, error.message)
            return self._record(sequence, fragment, StepStatus.INTERPRETATION_FAILED, None, error)

        if not operations:
            logger.debug("Fragment %d produced no operations", sequence)
            return self._record(sequence, fragment, StepStatus.NO_OP, operations)

        outcome = apply_operations(document.to_json_dict(), operations)
        first_error = outcome.first_error
        if first_error is not None:
            error = ReconcileError(
                code=first_error.code.value,
                message=first_error.message,
                operation_index=first_error.operation_index,
            )
            logger.warning(
                "Fragment %d patch rejected at operation %d (%s): %s",
                sequence,
                first_error.operation_index,
                first_error.code.value,
                first_error.message,
            )
            return self._record(sequence, fragment, StepStatus.APPLICATION_FAILED, operations, error)

        candidate, violations = self.validator.validate_payload(
            outcome.document,
            previous=document,
            operations=operations,
        )
        if candidate is None:
            error = ReconcileError(
                code="INVALID_DOCUMENT",
                message=violations[0] if violations else "patched document is invalid",
                violations=violations,
            )
            logger.warning("Fragment %d left the document invalid: %s", sequence, "; ".join(violations))
            return self._record(sequence, fragment, StepStatus.APPLICATION_FAILED, operations, error)

        change_cursor = locate_earliest_change(candidate, operations)
        logger.info(
            "Fragment %d committed %d operation(s); earliest change at %s",
            sequence,
            len(operations),
            change_cursor.as_tuple(),
        )
        return self._record(
            sequence,
            fragment,
            StepStatus.COMMITTED,
            operations,
            document=candidate,
            change_cursor=change_cursor,
        )

    async def _interpret(
        self,
        fragment: str,
        prior_fragments: list[str],
        document: HandDocument,
    ) -> tuple[list[PatchOperation] | None, ReconcileError | None]:
        try:
            call = self._interpreter.interpret(
                fragment,
                prior_fragments=prior_fragments,
                state_context=build_state_context(document),
            )
            if self._timeout_s is not None:
                result = await asyncio.wait_for(call, timeout=self._timeout_s)
            else:
                result = await call
        except TimeoutError:
            return None, ReconcileError(
                code="INTERPRETER_TIMEOUT",
                message=f"Interpreter did not answer within {self._timeout_s}s",
            )
        except InterpretationError as exc:
            return None, ReconcileError(code=exc.code, message=exc.message)
        except Exception as exc:
            logger.exception("Interpreter raised for fragment %r", fragment)
            return None, ReconcileError(code="INTERPRETER_ERROR", message=str(exc) or type(exc).__name__)

        if not isinstance(result, InterpretationResult):
            logger.warning("Interpreter returned %s instead of a result", type(result).__name__)
            return None, ReconcileError(
                code="INVALID_INTERPRETER_REPLY",
                message=f"Interpreter returned {type(result).__name__}",
            )
        if not result.success:
            return None, ReconcileError(
                code="INTERPRETATION_FAILED",
                message=result.error or "Failed to generate patch",
            )
        return result.operations, None

    def _record(
        self,
        sequence: int,
        fragment: str,
        status: StepStatus,
        operations: list[PatchOperation] | None,
        error: ReconcileError | None = None,
        *,
        document: HandDocument | None = None,
        change_cursor: Cursor | None = None,
    ) -> HistoryEntry:
        committed = document if document is not None else self.context.document
        entry = HistoryEntry(
            sequence=sequence,
            fragment=fragment,
            status=status,
            operations=operations,
            error=error,
            timestamp=SessionContext.now_iso(),
            change_cursor=change_cursor,
            document_hash=committed.fingerprint(),
        )
        self.context.record(entry, document)
        return entry

    def _record_crash(self, fragment: str, exc: Exception) -> HistoryEntry:
        error = ReconcileError(code="RECONCILE_CRASHED", message=str(exc) or type(exc).__name__)
        return self._record(self.context.next_sequence(), fragment, StepStatus.APPLICATION_FAILED, None, error)


async def replay_transcript(
    fragments: Iterable[str],
    interpreter: FragmentInterpreter,
    *,
    document: HandDocument | None = None,
    validator: DocumentValidator | None = None,
    interpreter_timeout_s: float | None = None,
) -> SessionContext:
    """Run a saved transcript through the loop without any service around it."""
    context = SessionContext(document=document if document is not None else HandDocument.new())
    loop = ReconciliationLoop(
        context,
        interpreter,
        validator=validator,
        interpreter_timeout_s=interpreter_timeout_s,
    )
    for fragment in fragments:
        await loop.process(fragment)
    return context
