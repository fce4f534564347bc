from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from .errors import GameError, GameErrorCode
from .evaluator import ShowdownResults, best_results
from .models import Game, Pot, SeatStatus


@dataclass
class Contribution:
    player_id: str
    total_bet: int
    status: SeatStatus
    seat_number: int = 0


def contributions_from_game(game: Game) -> List[Contribution]:
    """Every seat that put chips in this hand, folded seats included."""
    return [
        Contribution(player_id=seat.player_id, total_bet=seat.total_bet, status=seat.status, seat_number=num)
        for num, seat in game.occupied()
        if seat.total_bet > 0
    ]


def calculate_side_pots(players: Sequence[Contribution]) -> List[Pot]:
    # Folded chips are dead money: they fund the main pot but buy no eligibility.
    dead_money = sum(p.total_bet for p in players if p.status == SeatStatus.FOLDED)

    live = sorted(
        (p for p in players if p.status != SeatStatus.FOLDED and p.total_bet > 0),
        key=lambda p: p.total_bet,
    )
    if not live:
        return []

    pots: List[Pot] = []
    previous = 0
    for idx, player in enumerate(live):
        level = player.total_bet
        step = level - previous
        if step > 0:
            contributors = live[idx:]
            amount = step * len(contributors)
            if not pots:
                amount += dead_money
            pots.append(
                Pot(
                    amount=amount,
                    eligible_player_ids=[p.player_id for p in contributors],
                    level=len(pots) + 1,
                    is_main_pot=not pots,
                )
            )
        previous = level
    return pots


def distribute_pots(
    pots: Sequence[Pot],
    showdown: ShowdownResults,
    players: Sequence[Contribution],
    dealer_seat: int,
    total_seats: int,
) -> Dict[str, int]:
    """Split each pot among its best eligible hands. The odd chip goes to the winner nearest the dealer."""
    seat_numbers = {p.player_id: p.seat_number for p in players}
    winnings: Dict[str, int] = {}

    for pot in pots:
        eligible = [r for r in showdown.results if r.player_id in pot.eligible_player_ids]
        if not eligible:
            raise GameError(
                GameErrorCode.INVALID_GAME_STATE,
                "Pot has no eligible showdown participant",
                level=pot.level,
                amount=pot.amount,
            )
        winners = [r.player_id for r in best_results(eligible)]
        share, remainder = divmod(pot.amount, len(winners))
        for player_id in winners:
            winnings[player_id] = winnings.get(player_id, 0) + share
        if remainder:
            closest = min(
                winners,
                key=lambda pid: (seat_numbers.get(pid, 0) - dealer_seat + total_seats) % total_seats,
            )
            winnings[closest] += remainder

    return winnings
