from __future__ import annotations

import pytest

from voicehand_backend.hand.models import HandDocument
from voicehand_backend.interpreters.scripted import ScriptedInterpreter
from voicehand_backend.reconcile.loop import replay_transcript
from voicehand_backend.replay.snapshot import calculate_snapshot, end_cursor

from test_utils import load_transcript


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("name", "hero_ranks", "board_ranks", "final_street"),
    [
        ("standard", ["9", "T"], ["T", "J", "Q", "8", "J"], "River"),
        ("hu_fold_turn", ["A", "K"], ["A", "7", "2", "K"], "Turn"),
        ("multiway_allin", ["7", "7"], ["7", "8", "9", "J", "2"], "Showdown"),
    ],
)
async def test_recorded_hands_reach_expected_state(
    name: str,
    hero_ranks: list[str],
    board_ranks: list[str],
    final_street: str,
) -> None:
    script = load_transcript(name)
    context = await replay_transcript(
        script.fragments,
        ScriptedInterpreter.from_script(script),
        document=HandDocument.new(**script.config),
    )
    document = context.document

    assert context.failures == []
    assert len(context.history) == len(script.steps)
    hero = next(player for player in document.players if player.id == document.hero_player_id)
    assert [card[0] for card in hero.cards or []] == hero_ranks

    snapshot = calculate_snapshot(document, end_cursor(document))
    assert [card[0] for card in snapshot.community_cards] == board_ranks
    assert snapshot.current_street_name == final_street
    assert snapshot.hand_complete


@pytest.mark.asyncio
async def test_multiway_all_in_settles_the_pot() -> None:
    script = load_transcript("multiway_allin")
    context = await replay_transcript(
        script.fragments,
        ScriptedInterpreter.from_script(script),
        document=HandDocument.new(**script.config),
    )
    snapshot = calculate_snapshot(context.document, end_cursor(context.document))

    # small blind 1, big blind 10, UTG+1 35, hero and UTG 495 each
    assert snapshot.pot == 1 + 10 + 35 + 495 + 495
    by_id = {player.id: player for player in snapshot.players}
    assert by_id[2].current_stack == 0
    assert by_id[2].hole_cards == ["Ah", "Kh"]
    assert by_id[1].current_stack == 1000 - 495
    assert by_id[3].is_folded
