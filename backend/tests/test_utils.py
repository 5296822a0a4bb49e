from __future__ import annotations

from pathlib import Path
from typing import Any

from hypothesis import strategies as st

from voicehand_backend.hand.models import (
    Action,
    ActionType,
    HandDocument,
    Player,
    Round,
    Street,
)
from voicehand_backend.interpreters.scripted import ScriptedStep, TranscriptScript
from voicehand_backend.utils.cards import RANKS, SUITS


TRANSCRIPTS_DIR = Path(__file__).resolve().parents[1] / "transcripts"
TRANSCRIPT_PATH = TRANSCRIPTS_DIR / "hu_fold_turn.json"
FIXED_START = "2026-01-01T20:00:00+00:00"
DECK = [f"{rank}{suit}" for rank in RANKS for suit in SUITS]


def load_transcript(name: str = "hu_fold_turn") -> TranscriptScript:
    return TranscriptScript.load(TRANSCRIPTS_DIR / f"{name}.json")


def make_player(player_id: int, seat: int, stack: int = 200, cards: list[str] | None = None) -> Player:
    return Player(id=player_id, name=f"P{seat}", seat=seat, starting_stack=stack, cards=cards)


def make_action(
    number: int,
    player_id: int,
    action: ActionType,
    amount: int | float | None = None,
    is_allin: bool | None = None,
) -> Action:
    return Action(action_number=number, player_id=player_id, action=action, amount=amount, is_allin=is_allin)


def heads_up_document() -> HandDocument:
    """Two 200 stacks; seat 1 posts 1, seat 2 posts 2, seat 1 raises to 7."""
    document = HandDocument.new(table_size=2, dealer_seat=1, start_date_utc=FIXED_START)
    document.add_player(make_player(1, 1, cards=["As", "Kd"]))
    document.add_player(make_player(2, 2))
    document.add_round(Round(id=0, street=Street.PREFLOP))
    document.add_action_to_round(0, make_action(1, 1, ActionType.POST_SB, 1))
    document.add_action_to_round(0, make_action(2, 2, ActionType.POST_BB, 2))
    document.add_action_to_round(0, make_action(3, 1, ActionType.RAISE, 7))
    return document


def empty_document(**overrides: Any) -> HandDocument:
    config: dict[str, Any] = {"table_size": 6, "dealer_seat": 5, "start_date_utc": FIXED_START}
    config.update(overrides)
    return HandDocument.new(**config)


def add_op(path: str, value: Any) -> dict[str, Any]:
    return {"op": "add", "path": path, "value": value}


def step(fragment: str, *operations: dict[str, Any], **extra: Any) -> ScriptedStep:
    return ScriptedStep.model_validate({"fragment": fragment, "operations": list(operations), **extra})


def player_payload(player_id: int, seat: int, stack: int = 200) -> dict[str, Any]:
    return {"id": player_id, "name": f"P{seat}", "seat": seat, "starting_stack": stack}


def action_payload(number: int, player_id: int, action: str, amount: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"action_number": number, "player_id": player_id, "action": action}
    if amount is not None:
        payload["amount"] = amount
    return payload


ACTION_CHOICES = [
    ActionType.CHECK,
    ActionType.BET,
    ActionType.RAISE,
    ActionType.CALL,
    ActionType.FOLD,
]


@st.composite
def hand_documents(draw: st.DrawFn) -> HandDocument:
    """Structurally sound documents with arbitrary (not necessarily legal) betting."""
    player_count = draw(st.integers(min_value=2, max_value=6))
    stacks = draw(st.lists(st.integers(min_value=50, max_value=5_000), min_size=player_count, max_size=player_count))
    document = HandDocument.new(table_size=player_count, dealer_seat=1, start_date_utc=FIXED_START)
    for index, stack in enumerate(stacks):
        document.add_player(make_player(index + 1, index + 1, stack=stack))

    board = draw(st.permutations(DECK))[:5]
    board_sizes = [0, 3, 4, 5]
    round_count = draw(st.integers(min_value=0, max_value=4))
    streets = list(Street)[:round_count]
    number = 0
    for round_idx, street in enumerate(streets):
        cards = board[: board_sizes[round_idx]] or None
        document.add_round(Round(id=round_idx, street=street, cards=cards))
        action_count = draw(st.integers(min_value=0, max_value=6))
        for _ in range(action_count):
            number += 1
            player_id = draw(st.integers(min_value=1, max_value=player_count))
            kind = draw(st.sampled_from(ACTION_CHOICES))
            amount = None
            if kind in (ActionType.BET, ActionType.RAISE, ActionType.CALL):
                amount = draw(st.integers(min_value=0, max_value=50))
            document.add_action_to_round(round_idx, make_action(number, player_id, kind, amount))
    return document
