from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from voicehand_backend.hand.models import Amount


class Cursor(BaseModel):
    """A point on the replay timeline.

    ``action_idx == -1`` sits before the first action of the round: board
    cards for the street are out and previous wagers are in the pot.
    """

    round_idx: int = Field(default=0, alias="roundIdx")
    action_idx: int = Field(default=-1, alias="actionIdx")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def as_tuple(self) -> tuple[int, int]:
        return (self.round_idx, self.action_idx)


START_CURSOR = Cursor(round_idx=0, action_idx=-1)


class PlayerSnapshot(BaseModel):
    id: int
    name: str
    seat: int
    initial_stack: Amount
    current_stack: Amount
    current_wager: Amount = 0
    is_folded: bool = False
    hole_cards: list[str] | None = None
    is_active: bool = False
    last_action: str | None = None

    model_config = ConfigDict(extra="forbid")


class TableSnapshot(BaseModel):
    cursor: Cursor
    pot: Amount
    community_cards: list[str]
    players: list[PlayerSnapshot]
    current_street_name: str
    dealer_seat: int
    active_player_id: int | None = None
    hand_complete: bool = False

    model_config = ConfigDict(extra="forbid")


class PlaybackState(BaseModel):
    cursor: Cursor
    is_playing: bool
    has_next: bool
    has_previous: bool
    snapshot: TableSnapshot

    model_config = ConfigDict(extra="forbid")
