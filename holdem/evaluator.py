from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from .cards import Card, parse_cards

RANK_ORDER = "23456789TJQKA"
RANK_VALUE = {rank: idx for idx, rank in enumerate(RANK_ORDER, start=2)}

HIGH_CARD = 0
PAIR = 1
TWO_PAIR = 2
THREE_OF_A_KIND = 3
STRAIGHT = 4
FLUSH = 5
FULL_HOUSE = 6
FOUR_OF_A_KIND = 7
STRAIGHT_FLUSH = 8
ROYAL_FLUSH = 9

HAND_NAMES = {
    HIGH_CARD: "High Card",
    PAIR: "One Pair",
    TWO_PAIR: "Two Pair",
    THREE_OF_A_KIND: "Three of a Kind",
    STRAIGHT: "Straight",
    FLUSH: "Flush",
    FULL_HOUSE: "Full House",
    FOUR_OF_A_KIND: "Four of a Kind",
    STRAIGHT_FLUSH: "Straight Flush",
    ROYAL_FLUSH: "Royal Flush",
}


class HandRank(NamedTuple):
    """Comparable hand strength: category first, then the tiebreak vector."""

    category: int
    tiebreak: Tuple[int, ...]

    @property
    def name(self) -> str:
        return HAND_NAMES[self.category]


@dataclass
class HandResult:
    player_id: str
    hole_cards: List[str]
    rank: HandRank
    best_cards: List[str]

    @property
    def name(self) -> str:
        return self.rank.name


@dataclass
class ShowdownResults:
    winners: List[HandResult]
    results: List[HandResult]

    @property
    def winner_ids(self) -> List[str]:
        return [result.player_id for result in self.winners]


def evaluate(labels: Sequence[str]) -> HandRank:
    """Rank the best five-card hand out of 5 to 7 cards. Higher is better."""
    return _best_of(parse_cards(labels))[0]


def evaluate_with_cards(labels: Sequence[str]) -> Tuple[HandRank, List[str]]:
    rank, combo = _best_of(parse_cards(labels))
    return rank, [card.label for card in combo]


def _best_of(cards: Sequence[Card]) -> Tuple[HandRank, Tuple[Card, ...]]:
    if not 5 <= len(cards) <= 7:
        raise ValueError(f"Expected 5 to 7 cards, got {len(cards)}")
    best: Optional[Tuple[HandRank, Tuple[Card, ...]]] = None
    for combo in itertools.combinations(cards, 5):
        rank = _evaluate_five(combo)
        if best is None or rank > best[0]:
            best = (rank, combo)
    assert best is not None
    return best


def _evaluate_five(cards: Sequence[Card]) -> HandRank:
    ranks = sorted((RANK_VALUE[card.rank] for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(ranks)

    counts: Dict[int, int] = {}
    for value in ranks:
        counts[value] = counts.get(value, 0) + 1

    # Group by multiplicity, then by rank: (3, 9), (2, 4) for nines full of fours.
    grouped = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in grouped]
    by_group = tuple(value for value, _ in grouped)

    if straight_high and is_flush:
        if straight_high == 14:
            return HandRank(ROYAL_FLUSH, (14,))
        return HandRank(STRAIGHT_FLUSH, (straight_high,))
    if shape[0] == 4:
        return HandRank(FOUR_OF_A_KIND, by_group)
    if shape[:2] == [3, 2]:
        return HandRank(FULL_HOUSE, by_group)
    if is_flush:
        return HandRank(FLUSH, tuple(ranks))
    if straight_high:
        return HandRank(STRAIGHT, (straight_high,))
    if shape[0] == 3:
        return HandRank(THREE_OF_A_KIND, by_group)
    if shape[:2] == [2, 2]:
        return HandRank(TWO_PAIR, by_group)
    if shape[0] == 2:
        return HandRank(PAIR, by_group)
    return HandRank(HIGH_CARD, tuple(ranks))


def _straight_high(ranks: Sequence[int]) -> Optional[int]:
    unique = sorted(set(ranks), reverse=True)
    if len(unique) != 5:
        return None
    if unique[0] - unique[4] == 4:
        return unique[0]
    # Wheel: the ace plays low and the five is the high card.
    if unique == [14, 5, 4, 3, 2]:
        return 5
    return None


def determine_winners(players: Mapping[str, Sequence[str]], community_cards: Sequence[str]) -> ShowdownResults:
    """Evaluate each player's hole cards with the board and return every player sharing the best hand."""
    results: List[HandResult] = []
    for player_id, hole_cards in players.items():
        rank, best_cards = evaluate_with_cards(list(hole_cards) + list(community_cards))
        results.append(HandResult(player_id=player_id, hole_cards=list(hole_cards), rank=rank, best_cards=best_cards))
    return ShowdownResults(winners=best_results(results), results=results)


def best_results(results: Sequence[HandResult]) -> List[HandResult]:
    if not results:
        return []
    top = max(result.rank for result in results)
    return [result for result in results if result.rank == top]
