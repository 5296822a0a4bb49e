from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from voicehand_backend.hand.models import (
    MONETARY_ACTIONS,
    STREET_ORDER,
    UNKNOWN_HERO_ID,
    ActionType,
    HandDocument,
)
from voicehand_backend.hand.patching import PatchOperation, to_wire
from voicehand_backend.utils.cards import is_valid_card


PROTECTED_ROOT_ARRAYS = ("/rounds", "/players")
MUTATING_OPS = frozenset({"add", "remove", "replace", "move", "copy"})


def parse_document(payload: Any) -> tuple[HandDocument | None, list[str]]:
    try:
        return HandDocument.model_validate(payload), []
    except ValidationError as exc:
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "<root>"
            messages.append(f"{location}: {error['msg']}")
        return None, messages


class DocumentValidator:
    """Checks the structural invariants a patched clone must hold before commit.

    These are bookkeeping rules (references, seat uniqueness, street order,
    cumulative boards, clockwise action order), not poker legality.
    """

    def __init__(self, *, enforce_action_rotation: bool = True) -> None:
        self.enforce_action_rotation = enforce_action_rotation

    def validate(
        self,
        document: HandDocument,
        *,
        previous: HandDocument | None = None,
        operations: Sequence[PatchOperation | dict[str, Any]] = (),
    ) -> list[str]:
        violations: list[str] = []
        violations.extend(self._table_violations(document))
        violations.extend(self._player_violations(document))
        violations.extend(self._round_violations(document))
        violations.extend(self._action_violations(document))
        if self.enforce_action_rotation:
            violations.extend(self._rotation_violations(document))
        if previous is not None:
            violations.extend(self._structure_violations(previous, operations))
        return violations

    def validate_payload(
        self,
        payload: Any,
        *,
        previous: HandDocument | None = None,
        operations: Sequence[PatchOperation | dict[str, Any]] = (),
    ) -> tuple[HandDocument | None, list[str]]:
        document, schema_errors = parse_document(payload)
        if document is None:
            return None, schema_errors
        violations = self.validate(document, previous=previous, operations=operations)
        return (None if violations else document), violations

    def _table_violations(self, document: HandDocument) -> list[str]:
        violations = []
        if document.table_size < 2:
            violations.append(f"table_size must be at least 2, got {document.table_size}")
        if not 1 <= document.dealer_seat <= max(document.table_size, 1):
            violations.append(f"dealer_seat {document.dealer_seat} outside 1..{document.table_size}")
        for field_name in ("small_blind_amount", "big_blind_amount", "ante_amount"):
            if getattr(document, field_name) < 0:
                violations.append(f"{field_name} must be non-negative")
        return violations

    def _player_violations(self, document: HandDocument) -> list[str]:
        violations = []
        seen_ids: set[int] = set()
        seen_seats: set[int] = set()
        for player in document.players:
            if player.id in seen_ids:
                violations.append(f"duplicate player id {player.id}")
            seen_ids.add(player.id)
            if player.seat in seen_seats:
                violations.append(f"seat {player.seat} is occupied by more than one player")
            seen_seats.add(player.seat)
            if not 1 <= player.seat <= document.table_size:
                violations.append(f"player {player.id} seat {player.seat} outside 1..{document.table_size}")
            if player.starting_stack < 0:
                violations.append(f"player {player.id} has a negative starting_stack")
            for card in player.cards or []:
                if not is_valid_card(card):
                    violations.append(f"player {player.id} has invalid card {card!r}")

        if document.hero_player_id != UNKNOWN_HERO_ID and document.hero_player_id not in seen_ids:
            violations.append(f"hero_player_id {document.hero_player_id} does not reference a player")
        return violations

    def _round_violations(self, document: HandDocument) -> list[str]:
        violations = []
        previous_round = None
        board: list[str] = []
        for index, round_ in enumerate(document.rounds):
            if previous_round is not None:
                if round_.id <= previous_round.id:
                    violations.append(f"round {index} id {round_.id} is not greater than {previous_round.id}")
                if STREET_ORDER[round_.street] <= STREET_ORDER[previous_round.street]:
                    violations.append(
                        f"round {index} street {round_.street.value} does not follow "
                        f"{previous_round.street.value}",
                    )
            cards = round_.cards or []
            for card in cards:
                if not is_valid_card(card):
                    violations.append(f"round {index} has invalid card {card!r}")
            if cards:
                if cards[: len(board)] != board:
                    violations.append(f"round {index} board {cards} does not extend {board}")
                board = list(cards)
            previous_round = round_
        return violations

    def _action_violations(self, document: HandDocument) -> list[str]:
        violations = []
        player_ids = {player.id for player in document.players}
        folded: set[int] = set()
        for round_index, round_ in enumerate(document.rounds):
            for action_index, action in enumerate(round_.actions):
                where = f"round {round_index} action {action_index}"
                if action.player_id not in player_ids:
                    violations.append(f"{where} references unknown player {action.player_id}")
                    continue
                if action.player_id in folded:
                    violations.append(f"{where}: player {action.player_id} acts after folding")
                if action.action in MONETARY_ACTIONS and (action.amount is None or action.amount < 0):
                    violations.append(f"{where}: {action.action.value} needs a non-negative amount")
                if action.action is ActionType.FOLD:
                    folded.add(action.player_id)
        return violations

    def _rotation_violations(self, document: HandDocument) -> list[str]:
        violations = []
        seat_by_player = {player.id: player.seat for player in document.players}
        player_by_seat = {player.seat: player.id for player in document.players}
        inactive: set[int] = set()

        for round_index, round_ in enumerate(document.rounds):
            previous_seat: int | None = None
            for action_index, action in enumerate(round_.actions):
                if action.action is ActionType.DEALT_CARD:
                    continue
                seat = seat_by_player.get(action.player_id)
                if seat is None:
                    continue
                if previous_seat is not None:
                    expected = self._next_live_seat(previous_seat, document.table_size, player_by_seat, inactive)
                    if expected is not None and expected != seat:
                        violations.append(
                            f"round {round_index} action {action_index}: seat {seat} acted but seat "
                            f"{expected} was skipped without a recorded Fold",
                        )
                if action.action is ActionType.FOLD or action.is_allin:
                    inactive.add(action.player_id)
                previous_seat = seat
        return violations

    @staticmethod
    def _next_live_seat(
        seat: int,
        table_size: int,
        player_by_seat: dict[int, int],
        inactive: set[int],
    ) -> int | None:
        cursor = seat
        for _ in range(table_size):
            cursor = cursor % table_size + 1
            player_id = player_by_seat.get(cursor)
            if player_id is not None and player_id not in inactive:
                return cursor
        return None

    def _structure_violations(
        self,
        previous: HandDocument,
        operations: Sequence[PatchOperation | dict[str, Any]],
    ) -> list[str]:
        if not previous.rounds:
            return []
        violations = []
        for index, operation in enumerate(operations):
            wire = to_wire(operation)
            if wire.get("op") not in MUTATING_OPS:
                continue
            targets = [wire.get("path")]
            if wire.get("op") == "move":
                targets.append(wire.get("from"))
            for target in targets:
                if target == "" or target in PROTECTED_ROOT_ARRAYS:
                    violations.append(
                        f"operation {index} rewrites {target or '/'} wholesale after rounds have started",
                    )
        return violations
