from __future__ import annotations

from dataclasses import dataclass

import pokerkit


RANKS = "23456789TJQKA"
SUITS = "cdhs"


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    @classmethod
    def parse(cls, raw: str) -> Card:
        """Parse a two-character card code such as ``"Ts"`` or ``"Ah"``.

        Ten is always ``T`` and the suit is always lowercase; placeholder
        codes (``"Ax"``, ``"??"``) are rejected.
        """
        if not isinstance(raw, str) or len(raw) != 2:
            raise ValueError(f"card code must be two characters, got {raw!r}")
        try:
            parsed = list(pokerkit.Card.parse(raw))
        except ValueError as exc:
            raise ValueError(f"invalid card code {raw!r}") from exc
        if len(parsed) != 1:
            raise ValueError(f"invalid card code {raw!r}")
        rank = str(parsed[0].rank.value)
        suit = str(parsed[0].suit.value)
        if rank not in RANKS or suit not in SUITS:
            raise ValueError(f"card code {raw!r} is not a concrete card")
        return cls(rank=rank, suit=suit)

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"


def format_card(card: Card) -> str:
    return str(card)


def parse_cards(raw_cards: list[str]) -> list[Card]:
    return [Card.parse(raw) for raw in raw_cards]


def is_valid_card(raw: str) -> bool:
    try:
        Card.parse(raw)
    except ValueError:
        return False
    return True
