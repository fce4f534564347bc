"""Hand states, transition rules and betting-order helpers.

WAITING -> DEALING -> PREFLOP -> FLOP -> TURN -> RIVER -> SHOWDOWN -> SETTLING -> WAITING
Any street may short-circuit to LAST_MAN (everyone else folded) or SHOWDOWN (no betting left).
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .errors import GameError, GameErrorCode
from .models import Game, HandState, Round, Seat, SeatStatus

VALID_TRANSITIONS: Dict[HandState, Tuple[HandState, ...]] = {
    HandState.WAITING: (HandState.DEALING,),
    HandState.DEALING: (HandState.PREFLOP,),
    HandState.PREFLOP: (HandState.FLOP, HandState.LAST_MAN, HandState.SHOWDOWN),
    HandState.FLOP: (HandState.TURN, HandState.LAST_MAN, HandState.SHOWDOWN),
    HandState.TURN: (HandState.RIVER, HandState.LAST_MAN, HandState.SHOWDOWN),
    HandState.RIVER: (HandState.SHOWDOWN, HandState.LAST_MAN),
    HandState.LAST_MAN: (HandState.SETTLING,),
    HandState.SHOWDOWN: (HandState.SETTLING,),
    HandState.SETTLING: (HandState.WAITING,),
}

NEXT_STREET: Dict[Round, HandState] = {
    Round.PREFLOP: HandState.FLOP,
    Round.FLOP: HandState.TURN,
    Round.TURN: HandState.RIVER,
    Round.RIVER: HandState.SHOWDOWN,
}


def validate_state_transition(current: HandState, target: HandState) -> None:
    if target not in VALID_TRANSITIONS.get(current, ()):
        raise GameError(
            GameErrorCode.INVALID_ACTION,
            f"Invalid state transition from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )


# Seat queries ----------------------------------------------------


def get_active_players(game: Game) -> List[Seat]:
    """Seats that can still bet: not folded, not all-in, not sitting out."""
    return [seat for _, seat in game.occupied() if seat.status == SeatStatus.ACTIVE]


def get_players_in_hand(game: Game) -> List[Seat]:
    return [seat for _, seat in game.occupied() if seat.in_hand]


def is_last_man_standing(game: Game) -> bool:
    return len(get_players_in_hand(game)) == 1


def is_effective_all_in(game: Game) -> bool:
    # Nobody left to bet against: at most one player in the hand still has chips behind.
    in_hand = get_players_in_hand(game)
    if len(in_hand) <= 1:
        return False
    return sum(1 for seat in in_hand if seat.status != SeatStatus.ALL_IN) <= 1


def bets_settled(game: Game) -> bool:
    return all(seat.current_bet == game.table.current_bet for seat in get_active_players(game))


def is_round_complete(game: Game) -> bool:
    active = get_active_players(game)
    if len(active) <= 1:
        return True
    return all(seat.has_acted and seat.current_bet == game.table.current_bet for seat in active)


def get_next_state(game: Game) -> HandState:
    if is_last_man_standing(game):
        return HandState.LAST_MAN

    in_hand = get_players_in_hand(game)
    if len(in_hand) > 1 and all(seat.status == SeatStatus.ALL_IN for seat in in_hand):
        return HandState.SHOWDOWN

    current = game.table.current_round
    if current is None:
        return HandState.WAITING
    return NEXT_STREET[current]


# Betting order ---------------------------------------------------


def _owes_action(game: Game, seat: Seat) -> bool:
    return seat.status == SeatStatus.ACTIVE and seat.chips > 0 and (
        not seat.has_acted or seat.current_bet < game.table.current_bet
    )


def _clockwise_from(game: Game, seat_number: int) -> List[Tuple[int, Seat]]:
    """Occupied seats strictly after ``seat_number``, wrapping once around the table."""
    ordered = game.occupied()
    after = [entry for entry in ordered if entry[0] > seat_number]
    before = [entry for entry in ordered if entry[0] <= seat_number]
    return after + before


def find_next_player(game: Game) -> Optional[str]:
    found = game.find_seat(game.table.current_turn)
    start = found[0] if found else game.table.dealer_seat
    for _, seat in _clockwise_from(game, start):
        if _owes_action(game, seat):
            return seat.player_id
    return None


def dealt_in_seats(game: Game) -> List[int]:
    return [num for num, seat in game.occupied() if seat.status != SeatStatus.SITTING_OUT]


def get_preflop_first_to_act(game: Game) -> Optional[str]:
    seats = dealt_in_seats(game)
    if game.table.dealer_seat not in seats:
        return None
    dealer_index = seats.index(game.table.dealer_seat)
    if len(seats) == 2:
        first_index = dealer_index
    else:
        first_index = (dealer_index + 3) % len(seats)

    # A blind that went all-in cannot open; pass to the next seat able to act.
    for offset in range(len(seats)):
        seat = game.seats[seats[(first_index + offset) % len(seats)]]
        if seat is not None and _owes_action(game, seat):
            return seat.player_id
    return None


def get_postflop_first_to_act(game: Game) -> Optional[str]:
    active = [(num, seat) for num, seat in game.occupied() if seat.status == SeatStatus.ACTIVE and seat.chips > 0]
    if not active:
        return None
    for num, seat in active:
        if num > game.table.dealer_seat:
            return seat.player_id
    return active[0][1].player_id


def get_first_to_act(game: Game) -> Optional[str]:
    if game.table.current_round == Round.PREFLOP:
        return get_preflop_first_to_act(game)
    return get_postflop_first_to_act(game)
