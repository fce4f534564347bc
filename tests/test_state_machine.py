import pytest

from holdem.errors import GameError, GameErrorCode
from holdem.models import ActionType, HandState, Round, SeatStatus
from holdem.state_machine import (
    find_next_player,
    get_first_to_act,
    get_next_state,
    is_effective_all_in,
    is_round_complete,
    validate_state_transition,
)

from .helpers import act, seated_game, start_hand


def test_legal_transitions_pass_and_others_raise():
    validate_state_transition(HandState.WAITING, HandState.DEALING)
    validate_state_transition(HandState.FLOP, HandState.LAST_MAN)
    validate_state_transition(HandState.RIVER, HandState.SHOWDOWN)
    validate_state_transition(HandState.SETTLING, HandState.WAITING)

    for current, target in [
        (HandState.WAITING, HandState.FLOP),
        (HandState.RIVER, HandState.FLOP),
        (HandState.SHOWDOWN, HandState.WAITING),
        (HandState.DEALING, HandState.SHOWDOWN),
    ]:
        with pytest.raises(GameError) as excinfo:
            validate_state_transition(current, target)
        assert excinfo.value.code == GameErrorCode.INVALID_ACTION


def test_next_state_follows_streets():
    game, _ = start_hand(seated_game())
    assert get_next_state(game) == HandState.FLOP
    game.table.current_round = Round.RIVER
    assert get_next_state(game) == HandState.SHOWDOWN


def test_last_man_standing_short_circuits():
    game, _ = start_hand(seated_game())
    game.seat_of("p0").status = SeatStatus.FOLDED
    game.seat_of("p1").status = SeatStatus.FOLDED
    assert get_next_state(game) == HandState.LAST_MAN


def test_everyone_all_in_goes_to_showdown():
    game, _ = start_hand(seated_game())
    for _, seat in game.occupied():
        seat.status = SeatStatus.ALL_IN
    assert get_next_state(game) == HandState.SHOWDOWN


def test_big_blind_keeps_preflop_option():
    game, _ = start_hand(seated_game())
    game = act(game, "p0", ActionType.CALL)
    game = act(game, "p1", ActionType.CALL)
    # Every bet matches, but the big blind has not acted yet.
    assert not is_round_complete(game)
    assert game.table.current_turn == "p2"
    game = act(game, "p2", ActionType.CHECK)
    assert game.table.current_round == Round.FLOP


def test_round_complete_with_single_active_seat():
    game, _ = start_hand(seated_game())
    game.seat_of("p0").status = SeatStatus.FOLDED
    game.seat_of("p1").status = SeatStatus.ALL_IN
    assert is_round_complete(game)
    assert is_effective_all_in(game)


def test_three_handed_first_to_act():
    game, _ = start_hand(seated_game())
    assert game.table.dealer_seat == 0
    assert game.seat_of("p1").is_small_blind and game.seat_of("p2").is_big_blind
    assert get_first_to_act(game) == "p0"

    game.table.current_round = Round.FLOP
    assert get_first_to_act(game) == "p1"


def test_four_handed_first_to_act_wraps():
    game, _ = start_hand(seated_game((1_000,) * 4))
    assert game.table.current_turn == "p3"
    game.table.current_round = Round.FLOP
    game.seat_of("p1").status = SeatStatus.FOLDED
    assert get_first_to_act(game) == "p2"


def test_heads_up_dealer_posts_small_blind_and_acts_first():
    game, _ = start_hand(seated_game((1_000, 1_000)))
    dealer = game.seats[game.table.dealer_seat]
    assert dealer.player_id == "p0"
    assert dealer.is_small_blind and dealer.current_bet == 10
    assert game.seat_of("p1").is_big_blind
    assert game.table.current_turn == "p0"

    game = act(game, "p0", ActionType.CALL)
    game = act(game, "p1", ActionType.CHECK)
    assert game.table.current_round == Round.FLOP
    assert game.table.current_turn == "p1"


def test_first_to_act_skips_all_in_blind():
    # The seat after the big blind went all-in before the deal finished.
    game = seated_game((1_000, 1_000, 1_000, 1_000))
    game, _ = start_hand(game)
    game.seat_of("p3").status = SeatStatus.ALL_IN
    assert get_first_to_act(game) == "p0"


def test_find_next_player_wraps_and_skips_non_active():
    game, _ = start_hand(seated_game((1_000,) * 4))
    game.table.current_turn = "p3"
    game.seat_of("p0").status = SeatStatus.FOLDED
    assert find_next_player(game) == "p1"
