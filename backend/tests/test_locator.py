from __future__ import annotations

import pytest

from voicehand_backend.hand.models import ActionType, HandDocument, Round, Street
from voicehand_backend.replay.locator import locate_earliest_change, locate_pointer
from voicehand_backend.replay.models import START_CURSOR, Cursor

from test_utils import FIXED_START, add_op, heads_up_document, make_action


def _two_street_document() -> HandDocument:
    document = heads_up_document()
    document.add_action_to_round(0, make_action(4, 2, ActionType.CALL, 7))
    document.add_round(Round(id=1, street=Street.FLOP, cards=["Th", "Jd", "Qc"]))
    document.add_action_to_round(1, make_action(5, 2, ActionType.CHECK))
    document.add_action_to_round(1, make_action(6, 1, ActionType.BET, 5))
    return document


@pytest.mark.parametrize(
    ("pointer", "expected"),
    [
        ("/rounds/1/actions/0", (1, 0)),
        ("/rounds/1/actions/-", (1, 1)),
        ("/rounds/-", (1, -1)),
        ("/rounds/0", (0, -1)),
        ("/rounds/1/cards", (1, -1)),
        ("/rounds/0/actions/2/amount", (0, 2)),
        ("/players/0/cards", (0, -1)),
        ("/hero_player_id", (0, -1)),
        ("rounds/1", (0, -1)),
        ("/rounds/one/actions/0", (0, -1)),
        ("/rounds/\u00b2/actions/0", (0, -1)),
        (None, (0, -1)),
    ],
)
def test_locate_pointer(pointer, expected: tuple[int, int]) -> None:
    assert locate_pointer(_two_street_document(), pointer) == expected


def test_earliest_change_takes_the_minimum() -> None:
    document = _two_street_document()
    operations = [
        add_op("/rounds/1/actions/-", {}),
        {"op": "replace", "path": "/rounds/0/actions/3/amount", "value": 8},
    ]
    assert locate_earliest_change(document, operations) == Cursor(round_idx=0, action_idx=3)


def test_move_source_counts_as_a_change() -> None:
    document = _two_street_document()
    operations = [{"op": "move", "from": "/rounds/0/actions/1", "path": "/rounds/1/actions/0"}]
    assert locate_earliest_change(document, operations) == Cursor(round_idx=0, action_idx=1)


def test_non_timeline_changes_restart_playback() -> None:
    document = _two_street_document()
    operations = [
        add_op("/rounds/1/actions/-", {}),
        {"op": "replace", "path": "/players/0/name", "value": "Hero"},
    ]
    assert locate_earliest_change(document, operations) == START_CURSOR


def test_indices_past_the_end_are_clamped() -> None:
    document = _two_street_document()
    assert locate_earliest_change(document, [add_op("/rounds/7/actions/9", {})]) == Cursor(round_idx=1, action_idx=1)
    assert locate_earliest_change(document, [add_op("/rounds/1/actions/9", {})]) == Cursor(round_idx=1, action_idx=1)


def test_document_without_rounds_locates_start() -> None:
    document = HandDocument.new(start_date_utc=FIXED_START)
    assert locate_earliest_change(document, [add_op("/rounds/0/actions/0", {})]) == START_CURSOR
    assert locate_earliest_change(heads_up_document(), []) == START_CURSOR
