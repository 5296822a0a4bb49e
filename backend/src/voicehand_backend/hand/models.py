from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voicehand_backend.utils.hashing import stable_hash


SPEC_VERSION = "1.4.6"
UNKNOWN_HERO_ID = 0

Amount = int | float


class Street(str, Enum):
    PREFLOP = "Preflop"
    FLOP = "Flop"
    TURN = "Turn"
    RIVER = "River"
    SHOWDOWN = "Showdown"


STREET_ORDER: dict[Street, int] = {street: index for index, street in enumerate(Street)}


class ActionType(str, Enum):
    DEALT_CARD = "Dealt Card"
    POST_SB = "Post SB"
    POST_BB = "Post BB"
    FOLD = "Fold"
    CHECK = "Check"
    BET = "Bet"
    RAISE = "Raise"
    CALL = "Call"


MONETARY_ACTIONS = frozenset(
    {
        ActionType.POST_SB,
        ActionType.POST_BB,
        ActionType.BET,
        ActionType.RAISE,
        ActionType.CALL,
    },
)


class BetLimit(BaseModel):
    bet_cap: Amount = 0
    bet_type: str = "NL"

    model_config = ConfigDict(extra="allow")


class Player(BaseModel):
    id: int
    name: str
    seat: int
    starting_stack: Amount
    cards: list[str] | None = None

    model_config = ConfigDict(extra="allow")


class Action(BaseModel):
    action_number: int = 0
    player_id: int
    action: ActionType
    amount: Amount | None = None
    is_allin: bool | None = None

    model_config = ConfigDict(extra="allow")


class Round(BaseModel):
    id: int
    street: Street
    cards: list[str] | None = None
    actions: list[Action] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class PlayerWin(BaseModel):
    player_id: int
    win_amount: Amount

    model_config = ConfigDict(extra="allow")


class Pot(BaseModel):
    number: int
    amount: Amount
    rake: Amount | None = None
    player_wins: list[PlayerWin] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class HandDocument(BaseModel):
    """Canonical record of one hand, shaped like an Open Hand History payload.

    The document is deliberately dumb: the helpers below append without
    checking anything. Validation happens in the reconciliation loop before a
    patched clone is committed.
    """

    spec_version: str = SPEC_VERSION
    internal_version: str = SPEC_VERSION
    network_name: str = "CustomGame"
    site_name: str = "HomeGame"
    game_type: str = "Holdem"
    table_name: str = "Sample Table"
    table_size: int = 8
    game_number: str = "1"
    start_date_utc: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    currency: str = "Chips"
    ante_amount: Amount = 0
    small_blind_amount: Amount = 1
    big_blind_amount: Amount = 2
    bet_limit: BetLimit = Field(default_factory=BetLimit)
    dealer_seat: int = 1
    hero_player_id: int = UNKNOWN_HERO_ID
    players: list[Player] = Field(default_factory=list)
    rounds: list[Round] = Field(default_factory=list)
    pots: list[Pot] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @classmethod
    def new(
        cls,
        *,
        table_size: int = 8,
        dealer_seat: int = 1,
        hero_player_id: int = UNKNOWN_HERO_ID,
        small_blind_amount: Amount = 1,
        big_blind_amount: Amount = 2,
        ante_amount: Amount = 0,
        bet_cap: Amount = 0,
        bet_type: str = "NL",
        currency: str = "Chips",
        table_name: str = "Sample Table",
        game_number: str = "1",
        start_date_utc: str | None = None,
    ) -> HandDocument:
        fields: dict[str, Any] = {
            "table_size": table_size,
            "dealer_seat": dealer_seat,
            "hero_player_id": hero_player_id,
            "small_blind_amount": small_blind_amount,
            "big_blind_amount": big_blind_amount,
            "ante_amount": ante_amount,
            "bet_limit": BetLimit(bet_cap=bet_cap, bet_type=bet_type),
            "currency": currency,
            "table_name": table_name,
            "game_number": game_number,
        }
        if start_date_utc is not None:
            fields["start_date_utc"] = start_date_utc
        return cls(**fields)

    def add_player(self, player: Player) -> None:
        self.players.append(player)

    def add_round(self, round_: Round) -> None:
        self.rounds.append(round_)

    def add_action_to_round(self, round_id: int, action: Action) -> None:
        for round_ in self.rounds:
            if round_.id == round_id:
                round_.actions.append(action)
                return

    def add_pot(self, pot: Pot) -> None:
        self.pots.append(pot)

    def find_player(self, player_id: int) -> Player | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def fingerprint(self) -> str:
        return stable_hash(self.to_json_dict())

    def to_ohh(self) -> dict[str, Any]:
        return {"ohh": self.to_json_dict()}

    @classmethod
    def from_ohh(cls, payload: dict[str, Any]) -> HandDocument:
        body = payload.get("ohh", payload)
        return cls.model_validate(body)
