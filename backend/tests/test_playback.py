from __future__ import annotations

from voicehand_backend.hand.models import ActionType, HandDocument, Round, Street
from voicehand_backend.replay.models import START_CURSOR, Cursor
from voicehand_backend.replay.playback import Playback, PlaybackCommand

from test_utils import FIXED_START, add_op, heads_up_document, make_action


def _document() -> HandDocument:
    document = heads_up_document()
    document.add_action_to_round(0, make_action(4, 2, ActionType.CALL, 7))
    document.add_round(Round(id=1, street=Street.FLOP, cards=["Th", "Jd", "Qc"]))
    document.add_action_to_round(1, make_action(5, 2, ActionType.CHECK))
    return document


def test_follow_jumps_to_earliest_change_and_autoplays_to_the_end() -> None:
    document = _document()
    playback = Playback(cursor=Cursor(round_idx=1, action_idx=0))

    cursor = playback.follow(document, [add_op("/rounds/0/actions/-", {})])
    assert cursor == Cursor(round_idx=0, action_idx=3)
    assert playback.is_playing

    visited = []
    while playback.tick(document):
        visited.append(playback.cursor.as_tuple())
    assert visited == [(1, -1), (1, 0)]
    assert not playback.is_playing
    assert playback.state(document).snapshot.hand_complete


def test_follow_ignores_empty_batches() -> None:
    playback = Playback(cursor=Cursor(round_idx=0, action_idx=1))
    assert playback.follow(_document(), []) == Cursor(round_idx=0, action_idx=1)
    assert not playback.is_playing


def test_manual_commands_stop_autoplay() -> None:
    document = _document()
    playback = Playback()
    playback.follow(document, [add_op("/rounds/0/actions/0", {})])

    playback.apply(document, PlaybackCommand.NEXT)
    assert not playback.is_playing
    assert playback.cursor == Cursor(round_idx=0, action_idx=1)

    playback.apply(document, PlaybackCommand.END)
    assert playback.cursor == Cursor(round_idx=1, action_idx=0)
    playback.apply(document, PlaybackCommand.NEXT)
    assert playback.cursor == Cursor(round_idx=1, action_idx=0)

    playback.apply(document, PlaybackCommand.PREV)
    assert playback.cursor == Cursor(round_idx=1, action_idx=-1)

    playback.apply(document, PlaybackCommand.START)
    assert playback.cursor == START_CURSOR
    playback.apply(document, PlaybackCommand.PREV)
    assert playback.cursor == START_CURSOR


def test_tick_without_autoplay_does_nothing() -> None:
    document = _document()
    playback = Playback()
    playback.apply(document, PlaybackCommand.TICK)
    assert playback.cursor == START_CURSOR


def test_sync_resets_when_rounds_disappear() -> None:
    playback = Playback(cursor=Cursor(round_idx=1, action_idx=0), is_playing=True)
    playback.sync(HandDocument.new(start_date_utc=FIXED_START))
    assert playback.cursor == START_CURSOR
    assert not playback.is_playing


def test_state_reports_navigation_flags() -> None:
    document = _document()
    state = Playback().state(document)
    assert not state.has_previous
    assert state.has_next
    assert state.snapshot.cursor == START_CURSOR

    last = Playback(cursor=Cursor(round_idx=1, action_idx=0)).state(document)
    assert last.has_previous
    assert not last.has_next
