from __future__ import annotations

from collections.abc import Iterator

from voicehand_backend.hand.models import (
    MONETARY_ACTIONS,
    Action,
    ActionType,
    Amount,
    HandDocument,
    Street,
)
from voicehand_backend.replay.models import START_CURSOR, Cursor, PlayerSnapshot, TableSnapshot


LABELLED_WITH_AMOUNT = frozenset({ActionType.BET, ActionType.RAISE})


def clamp_cursor(document: HandDocument, cursor: Cursor) -> Cursor:
    """Pull ``cursor`` back onto the timeline.

    A round that no longer exists sends the cursor to the start of the hand;
    an action index past the end of its round lands on the last action.
    """
    rounds = document.rounds
    if not rounds or cursor.round_idx < 0 or cursor.round_idx >= len(rounds):
        return START_CURSOR
    last_action = len(rounds[cursor.round_idx].actions) - 1
    action_idx = max(-1, min(cursor.action_idx, last_action))
    if action_idx == cursor.action_idx:
        return cursor
    return Cursor(round_idx=cursor.round_idx, action_idx=action_idx)


def start_cursor(document: HandDocument) -> Cursor:
    return START_CURSOR


def end_cursor(document: HandDocument) -> Cursor:
    if not document.rounds:
        return START_CURSOR
    last_round = len(document.rounds) - 1
    return Cursor(round_idx=last_round, action_idx=len(document.rounds[last_round].actions) - 1)


def next_cursor(document: HandDocument, cursor: Cursor) -> Cursor | None:
    cursor = clamp_cursor(document, cursor)
    rounds = document.rounds
    if 0 <= cursor.round_idx < len(rounds):
        if cursor.action_idx < len(rounds[cursor.round_idx].actions) - 1:
            return Cursor(round_idx=cursor.round_idx, action_idx=cursor.action_idx + 1)
    if cursor.round_idx < len(rounds) - 1:
        return Cursor(round_idx=cursor.round_idx + 1, action_idx=-1)
    return None


def prev_cursor(document: HandDocument, cursor: Cursor) -> Cursor | None:
    cursor = clamp_cursor(document, cursor)
    if cursor.action_idx > -1:
        return Cursor(round_idx=cursor.round_idx, action_idx=cursor.action_idx - 1)
    if cursor.round_idx > 0:
        previous_round = cursor.round_idx - 1
        return Cursor(round_idx=previous_round, action_idx=len(document.rounds[previous_round].actions) - 1)
    return None


def iter_cursors(document: HandDocument) -> Iterator[Cursor]:
    cursor: Cursor | None = START_CURSOR
    while cursor is not None:
        yield cursor
        cursor = next_cursor(document, cursor)


def calculate_snapshot(document: HandDocument, cursor: Cursor) -> TableSnapshot:
    """Replay the hand from the start up to ``cursor`` and describe the table.

    Monetary amounts are the player's total wager for the street, so a raise
    to 7 after posting 1 charges 6 more to the stack.
    """
    cursor = clamp_cursor(document, cursor)
    players: dict[int, PlayerSnapshot] = {
        player.id: PlayerSnapshot(
            id=player.id,
            name=player.name,
            seat=player.seat,
            initial_stack=player.starting_stack,
            current_stack=player.starting_stack,
            hole_cards=list(player.cards) if player.cards else None,
        )
        for player in document.players
    }
    pot: Amount = 0
    board: list[str] = []

    for round_idx, round_ in enumerate(document.rounds[: cursor.round_idx + 1]):
        if round_idx > 0:
            # crossing into a new street always closes the previous one
            for player in players.values():
                pot += player.current_wager
                player.current_wager = 0
                player.last_action = None
            board.extend(round_.cards or [])

        limit = cursor.action_idx if round_idx == cursor.round_idx else len(round_.actions) - 1
        for action in round_.actions[: limit + 1]:
            _apply_action(players, action)

    active_player_id, hand_complete = _next_actor(document, cursor)
    for player in players.values():
        player.is_active = active_player_id is not None and player.id == active_player_id

    if document.rounds:
        street_name = document.rounds[cursor.round_idx].street.value
    else:
        street_name = Street.PREFLOP.value

    return TableSnapshot(
        cursor=cursor,
        pot=pot,
        community_cards=list(dict.fromkeys(board)),
        players=sorted(players.values(), key=lambda player: player.seat),
        current_street_name=street_name,
        dealer_seat=document.dealer_seat,
        active_player_id=active_player_id,
        hand_complete=hand_complete,
    )


def _apply_action(players: dict[int, PlayerSnapshot], action: Action) -> None:
    player = players.get(action.player_id)
    if player is None:
        return

    player.last_action = action.action.value
    if action.action in MONETARY_ACTIONS:
        if action.amount is None:
            return
        player.current_stack -= action.amount - player.current_wager
        player.current_wager = action.amount
        if action.action in LABELLED_WITH_AMOUNT:
            player.last_action = f"{action.action.value} {_format_amount(action.amount)}"
    elif action.action is ActionType.FOLD:
        player.is_folded = True
        player.hole_cards = None


def _next_actor(document: HandDocument, cursor: Cursor) -> tuple[int | None, bool]:
    rounds = document.rounds
    if not rounds:
        return None, False
    actions = rounds[cursor.round_idx].actions
    if cursor.action_idx < len(actions) - 1:
        return actions[cursor.action_idx + 1].player_id, False
    if cursor.round_idx < len(rounds) - 1:
        return None, False
    return None, True


def _format_amount(amount: Amount) -> str:
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)
