from __future__ import annotations

from typing import Union

from .errors import GameError, GameErrorCode
from .models import ActionType, Game, GameStatus, SeatStatus


def validate_player_action(game: Game, player_id: str, action: Union[ActionType, str], amount: int = 0) -> None:
    """Raise GameError unless ``player_id`` may perform ``action`` right now. Never mutates ``game``."""
    if game.table.current_turn != player_id:
        raise GameError(GameErrorCode.NOT_YOUR_TURN, current_turn=game.table.current_turn)

    seat = game.seat_of(player_id)
    if seat is None:
        raise GameError(GameErrorCode.PLAYER_NOT_FOUND, player_id=player_id)
    if seat.status == SeatStatus.FOLDED:
        raise GameError(GameErrorCode.ALREADY_FOLDED)
    if seat.status != SeatStatus.ACTIVE:
        raise GameError(GameErrorCode.INVALID_PLAYER_STATUS, status=seat.status.value)

    try:
        kind = ActionType(action)
    except ValueError:
        raise GameError(GameErrorCode.INVALID_ACTION, action=str(action)) from None

    current_bet = game.table.current_bet
    call_amount = current_bet - seat.current_bet

    if kind == ActionType.FOLD:
        return

    if kind == ActionType.CHECK:
        if call_amount > 0:
            raise GameError(GameErrorCode.CANNOT_CHECK, call_amount=call_amount)
        if game.meta.strict_check:
            for _, other in game.occupied():
                if (
                    other.player_id != player_id
                    and other.status == SeatStatus.ALL_IN
                    and other.current_bet > seat.current_bet
                ):
                    raise GameError(
                        GameErrorCode.CANNOT_CHECK,
                        "Cannot check after a bigger all-in, must call or fold",
                        all_in_bet=other.current_bet,
                    )
        return

    if kind == ActionType.CALL:
        if call_amount == 0:
            raise GameError(GameErrorCode.NOTHING_TO_CALL)
        if call_amount > seat.chips:
            raise GameError(GameErrorCode.NOT_ENOUGH_CHIPS, required=call_amount, available=seat.chips)
        return

    if kind == ActionType.RAISE:
        if not amount or amount <= 0:
            raise GameError(GameErrorCode.INVALID_RAISE_AMOUNT, "Raise amount must be positive", amount=amount)
        min_total = current_bet + (game.table.min_raise or game.meta.blinds.big)
        if seat.current_bet + amount < min_total:
            raise GameError(
                GameErrorCode.INVALID_RAISE_AMOUNT,
                f"Minimum raise is {min_total - seat.current_bet}",
                min_raise=min_total - seat.current_bet,
                provided=amount,
            )
        if amount > seat.chips:
            raise GameError(GameErrorCode.INSUFFICIENT_CHIPS, required=amount, available=seat.chips)
        return

    if kind == ActionType.ALL_IN:
        if seat.chips <= 0:
            raise GameError(GameErrorCode.NO_CHIPS_FOR_ALL_IN)
        return

    raise GameError(GameErrorCode.INVALID_ACTION, action=kind.value)


def validate_game_start(game: Game) -> None:
    funded = [seat for _, seat in game.occupied() if seat.chips > 0]
    if len(funded) < 2:
        raise GameError(GameErrorCode.NOT_ENOUGH_PLAYERS, count=len(funded))
    if game.status != GameStatus.WAITING:
        raise GameError(GameErrorCode.GAME_ALREADY_IN_PROGRESS, status=game.status.value)


def validate_join_seat(game: Game, seat_number: int, buy_in: int, player_id: str) -> None:
    if game.find_seat(player_id) is not None:
        raise GameError(GameErrorCode.ALREADY_SEATED)
    if seat_number not in game.seats:
        raise GameError(GameErrorCode.INVALID_SEAT_NUMBER, seat=seat_number)
    if game.seats[seat_number] is not None:
        raise GameError(GameErrorCode.SEAT_ALREADY_OCCUPIED, seat=seat_number)
    if buy_in < game.meta.min_buy_in:
        raise GameError(GameErrorCode.INVALID_BUY_IN, f"Minimum buy-in is {game.meta.min_buy_in}", buy_in=buy_in)
    if buy_in > game.meta.max_buy_in:
        raise GameError(GameErrorCode.INVALID_BUY_IN, f"Maximum buy-in is {game.meta.max_buy_in}", buy_in=buy_in)
