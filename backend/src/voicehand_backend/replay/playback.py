from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from voicehand_backend.hand.models import HandDocument
from voicehand_backend.hand.patching import PatchOperation
from voicehand_backend.replay.locator import locate_earliest_change
from voicehand_backend.replay.models import START_CURSOR, Cursor, PlaybackState
from voicehand_backend.replay.snapshot import (
    calculate_snapshot,
    clamp_cursor,
    end_cursor,
    next_cursor,
    prev_cursor,
    start_cursor,
)


class PlaybackCommand(str, Enum):
    NEXT = "next"
    PREV = "prev"
    START = "start"
    END = "end"
    TICK = "tick"


@dataclass
class Playback:
    """Replay head over a live document.

    Manual navigation stops auto-play; a committed patch batch jumps to the
    earliest change and starts walking forward from there.
    """

    cursor: Cursor = START_CURSOR
    is_playing: bool = False

    def sync(self, document: HandDocument) -> None:
        if not document.rounds or self.cursor.round_idx >= len(document.rounds):
            self.cursor = start_cursor(document)
            self.is_playing = False

    def follow(
        self,
        document: HandDocument,
        operations: Sequence[PatchOperation | dict[str, Any]],
    ) -> Cursor:
        if not operations:
            return self.cursor
        self.cursor = locate_earliest_change(document, operations)
        self.is_playing = True
        return self.cursor

    def tick(self, document: HandDocument) -> bool:
        if not self.is_playing:
            return False
        following = next_cursor(document, self.cursor)
        if following is None:
            self.is_playing = False
            return False
        self.cursor = following
        return True

    def step_forward(self, document: HandDocument) -> None:
        self.is_playing = False
        following = next_cursor(document, self.cursor)
        if following is not None:
            self.cursor = following

    def step_back(self, document: HandDocument) -> None:
        self.is_playing = False
        previous = prev_cursor(document, self.cursor)
        if previous is not None:
            self.cursor = previous

    def rewind(self, document: HandDocument) -> None:
        self.is_playing = False
        self.cursor = start_cursor(document)

    def fast_forward(self, document: HandDocument) -> None:
        self.is_playing = False
        self.cursor = end_cursor(document)

    def apply(self, document: HandDocument, command: PlaybackCommand) -> None:
        if command is PlaybackCommand.NEXT:
            self.step_forward(document)
        elif command is PlaybackCommand.PREV:
            self.step_back(document)
        elif command is PlaybackCommand.START:
            self.rewind(document)
        elif command is PlaybackCommand.END:
            self.fast_forward(document)
        else:
            self.tick(document)

    def state(self, document: HandDocument) -> PlaybackState:
        cursor = clamp_cursor(document, self.cursor)
        return PlaybackState(
            cursor=cursor,
            is_playing=self.is_playing,
            has_next=next_cursor(document, cursor) is not None,
            has_previous=prev_cursor(document, cursor) is not None,
            snapshot=calculate_snapshot(document, cursor),
        )
