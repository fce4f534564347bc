from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence

from .errors import GameError, GameErrorCode

RANKS = "23456789TJQKA"
SUITS = "shdc"

_SYSTEM_RNG = random.SystemRandom()


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"


class Dealt(NamedTuple):
    cards: List[str]
    remaining: List[str]


def create_deck() -> List[str]:
    return [f"{rank}{suit}" for suit in SUITS for rank in RANKS]


def shuffle(deck: Sequence[str], rng: Optional[random.Random] = None) -> List[str]:
    """Fisher-Yates shuffle into a new list. Pass a seeded ``random.Random`` for repeatable order."""
    rng = rng or _SYSTEM_RNG
    shuffled = list(deck)
    for idx in range(len(shuffled) - 1, 0, -1):
        swap = rng.randrange(idx + 1)
        shuffled[idx], shuffled[swap] = shuffled[swap], shuffled[idx]
    return shuffled


def deal(deck: Sequence[str], count: int) -> Dealt:
    if count > len(deck):
        raise GameError(GameErrorCode.DECK_EXHAUSTED, requested=count, available=len(deck))
    return Dealt(list(deck[:count]), list(deck[count:]))


def burn(deck: Sequence[str]) -> List[str]:
    if not deck:
        raise GameError(GameErrorCode.DECK_EXHAUSTED, requested=1, available=0)
    return list(deck[1:])


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    return Card(label[0], label[1])


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
