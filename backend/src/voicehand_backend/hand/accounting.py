from __future__ import annotations

from voicehand_backend.hand.models import MONETARY_ACTIONS, Amount, HandDocument


def street_wagers(document: HandDocument, round_idx: int) -> dict[int, Amount]:
    """Final wager per player on one street (amounts are absolute per street)."""
    wagers: dict[int, Amount] = {}
    for action in document.rounds[round_idx].actions:
        if action.action in MONETARY_ACTIONS and action.amount is not None:
            wagers[action.player_id] = action.amount
    return wagers


def contributions_by_player(document: HandDocument) -> dict[int, Amount]:
    totals: dict[int, Amount] = {player.id: 0 for player in document.players}
    for round_idx in range(len(document.rounds)):
        for player_id, amount in street_wagers(document, round_idx).items():
            totals[player_id] = totals.get(player_id, 0) + amount
    return totals


def total_pot(document: HandDocument) -> Amount:
    return sum(contributions_by_player(document).values())


def calculate_winning_amount(document: HandDocument, player_id: int) -> Amount:
    """Chips ``player_id`` collects if they win every pot they are eligible for.

    Each opponent contributes at most what the winner put in. The winner's
    own chips come back in full: the matched part as pot, any excess over the
    largest opposing contribution as an uncalled bet.
    """
    contributions = contributions_by_player(document)
    own = contributions.get(player_id, 0)
    others = [amount for other_id, amount in contributions.items() if other_id != player_id]
    return own + sum(min(amount, own) for amount in others)
