from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import jsonpointer

from voicehand_backend.hand.models import HandDocument
from voicehand_backend.hand.patching import PatchOperation, to_wire
from voicehand_backend.replay.models import START_CURSOR, Cursor


APPEND_MARKER = "-"


def locate_pointer(document: HandDocument, pointer: Any) -> tuple[int, int]:
    """Earliest (round, action) position touched by one JSON pointer.

    ``document`` is the committed document, so an append marker resolves to
    the element that was just appended. Anything outside ``/rounds/<n>`` and
    anything unparsable restarts the whole timeline.
    """
    if not isinstance(pointer, str):
        return START_CURSOR.as_tuple()
    try:
        parts = jsonpointer.JsonPointer(pointer).parts
    except jsonpointer.JsonPointerException:
        return START_CURSOR.as_tuple()

    if len(parts) < 2 or parts[0] != "rounds":
        return START_CURSOR.as_tuple()
    round_idx = _resolve_index(parts[1], len(document.rounds))
    if round_idx is None:
        return START_CURSOR.as_tuple()

    if len(parts) >= 4 and parts[2] == "actions":
        action_count = len(document.rounds[round_idx].actions) if 0 <= round_idx < len(document.rounds) else 0
        action_idx = _resolve_index(parts[3], action_count)
        if action_idx is not None:
            return round_idx, action_idx
    return round_idx, -1


def locate_earliest_change(
    document: HandDocument,
    operations: Sequence[PatchOperation | dict[str, Any]],
) -> Cursor:
    """Cursor at the earliest timeline position a committed batch affected."""
    positions = []
    for operation in operations:
        wire = to_wire(operation)
        positions.append(locate_pointer(document, wire.get("path")))
        if wire.get("op") == "move":
            positions.append(locate_pointer(document, wire.get("from")))

    if not positions or not document.rounds:
        return START_CURSOR

    round_idx, action_idx = min(positions)
    round_idx = max(0, min(round_idx, len(document.rounds) - 1))
    last_action = len(document.rounds[round_idx].actions) - 1
    action_idx = max(-1, min(action_idx, last_action))
    return Cursor(round_idx=round_idx, action_idx=action_idx)


def _resolve_index(part: str, length: int) -> int | None:
    if part == APPEND_MARKER:
        return length - 1
    if part.isascii() and part.isdigit():
        return int(part)
    return None
