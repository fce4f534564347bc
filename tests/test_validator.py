import pytest

from holdem.errors import GameError, GameErrorCode
from holdem.models import ActionType, GameStatus, SeatStatus
from holdem.validator import validate_game_start, validate_join_seat, validate_player_action

from .helpers import act, seated_game, start_hand


def expect_code(code, fn, *args):
    with pytest.raises(GameError) as excinfo:
        fn(*args)
    assert excinfo.value.code == code
    return excinfo.value


def test_only_the_player_holding_the_turn_may_act():
    game, _ = start_hand(seated_game())
    assert game.table.current_turn == "p0"
    expect_code(GameErrorCode.NOT_YOUR_TURN, validate_player_action, game, "p1", ActionType.CALL)


def test_check_facing_a_bet_is_rejected():
    game, _ = start_hand(seated_game())
    error = expect_code(GameErrorCode.CANNOT_CHECK, validate_player_action, game, "p0", ActionType.CHECK)
    assert error.details["call_amount"] == 20


def test_call_with_nothing_to_call_is_rejected_but_check_is_fine():
    game, _ = start_hand(seated_game())
    game = act(game, "p0", ActionType.CALL)
    game = act(game, "p1", ActionType.CALL)
    assert game.table.current_turn == "p2"
    expect_code(GameErrorCode.NOTHING_TO_CALL, validate_player_action, game, "p2", ActionType.CALL)
    validate_player_action(game, "p2", ActionType.CHECK)


def test_short_stack_cannot_call_but_can_go_all_in():
    game, _ = start_hand(seated_game())
    game.seat_of("p0").chips = 15
    error = expect_code(GameErrorCode.NOT_ENOUGH_CHIPS, validate_player_action, game, "p0", ActionType.CALL)
    assert error.details == {"required": 20, "available": 15}
    validate_player_action(game, "p0", ActionType.ALL_IN)


def test_raise_boundaries():
    game, _ = start_hand(seated_game())
    error = expect_code(
        GameErrorCode.INVALID_RAISE_AMOUNT, validate_player_action, game, "p0", ActionType.RAISE, 39
    )
    assert error.details["min_raise"] == 40
    validate_player_action(game, "p0", ActionType.RAISE, 40)
    expect_code(GameErrorCode.INVALID_RAISE_AMOUNT, validate_player_action, game, "p0", ActionType.RAISE, 0)
    expect_code(GameErrorCode.INSUFFICIENT_CHIPS, validate_player_action, game, "p0", ActionType.RAISE, 1_001)
    validate_player_action(game, "p0", ActionType.RAISE, 1_000)


def test_reraise_must_match_previous_increment():
    game, _ = start_hand(seated_game())
    game = act(game, "p0", ActionType.RAISE, 60)
    assert game.table.current_bet == 60
    assert game.table.min_raise == 40
    # p1 posted 10, so reaching 100 takes 90 more.
    error = expect_code(
        GameErrorCode.INVALID_RAISE_AMOUNT, validate_player_action, game, "p1", ActionType.RAISE, 80
    )
    assert error.details["min_raise"] == 90
    validate_player_action(game, "p1", ActionType.RAISE, 90)


def test_seat_status_errors():
    game, _ = start_hand(seated_game())
    game.seat_of("p0").status = SeatStatus.FOLDED
    expect_code(GameErrorCode.ALREADY_FOLDED, validate_player_action, game, "p0", ActionType.FOLD)

    game.seat_of("p0").status = SeatStatus.ALL_IN
    expect_code(GameErrorCode.INVALID_PLAYER_STATUS, validate_player_action, game, "p0", ActionType.FOLD)

    game.table.current_turn = "ghost"
    expect_code(GameErrorCode.PLAYER_NOT_FOUND, validate_player_action, game, "ghost", ActionType.FOLD)


def test_all_in_without_chips_and_unknown_actions():
    game, _ = start_hand(seated_game())
    expect_code(GameErrorCode.INVALID_ACTION, validate_player_action, game, "p0", "bet", 50)
    game.seat_of("p0").chips = 0
    expect_code(GameErrorCode.NO_CHIPS_FOR_ALL_IN, validate_player_action, game, "p0", ActionType.ALL_IN)


def test_strict_check_refuses_check_behind_bigger_all_in():
    game, _ = start_hand(seated_game())
    game.table.current_bet = 0
    for _, seat in game.occupied():
        seat.current_bet = 0
    game.seat_of("p2").status = SeatStatus.ALL_IN
    game.seat_of("p2").current_bet = 50

    validate_player_action(game, "p0", ActionType.CHECK)
    game.meta.strict_check = True
    expect_code(GameErrorCode.CANNOT_CHECK, validate_player_action, game, "p0", ActionType.CHECK)


def test_validator_never_mutates_the_game():
    game, _ = start_hand(seated_game())
    before = repr(game)
    with pytest.raises(GameError):
        validate_player_action(game, "p0", ActionType.CHECK)
    validate_player_action(game, "p0", ActionType.RAISE, 100)
    assert repr(game) == before


def test_game_start_checks():
    game = seated_game((1_000, 0))
    expect_code(GameErrorCode.NOT_ENOUGH_PLAYERS, validate_game_start, game)

    game = seated_game()
    validate_game_start(game)
    game.status = GameStatus.PLAYING
    expect_code(GameErrorCode.GAME_ALREADY_IN_PROGRESS, validate_game_start, game)


def test_join_seat_checks():
    game = seated_game((1_000,), seats=4)
    expect_code(GameErrorCode.ALREADY_SEATED, validate_join_seat, game, 2, 1_000, "p0")
    expect_code(GameErrorCode.INVALID_SEAT_NUMBER, validate_join_seat, game, 9, 1_000, "new")
    expect_code(GameErrorCode.SEAT_ALREADY_OCCUPIED, validate_join_seat, game, 0, 1_000, "new")
    expect_code(GameErrorCode.INVALID_BUY_IN, validate_join_seat, game, 1, 100, "new")
    expect_code(GameErrorCode.INVALID_BUY_IN, validate_join_seat, game, 1, 10_000, "new")
    validate_join_seat(game, 1, 400, "new")
