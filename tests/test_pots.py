import pytest

from holdem.errors import GameError, GameErrorCode
from holdem.evaluator import determine_winners
from holdem.models import Pot, SeatStatus
from holdem.pots import Contribution, calculate_side_pots, distribute_pots


def test_dead_money_funds_only_the_main_pot():
    players = [
        Contribution("p0", 50, SeatStatus.FOLDED, 0),
        Contribution("p1", 200, SeatStatus.ACTIVE, 1),
        Contribution("p2", 200, SeatStatus.ACTIVE, 2),
    ]
    pots = calculate_side_pots(players)
    assert len(pots) == 1
    assert pots[0].amount == 450
    assert pots[0].eligible_player_ids == ["p1", "p2"]
    assert pots[0].is_main_pot


def test_layered_all_ins_build_three_pots():
    players = [
        Contribution("p0", 100, SeatStatus.ALL_IN, 0),
        Contribution("p1", 300, SeatStatus.ALL_IN, 1),
        Contribution("p2", 500, SeatStatus.ACTIVE, 2),
    ]
    pots = calculate_side_pots(players)
    assert [(pot.amount, sorted(pot.eligible_player_ids)) for pot in pots] == [
        (300, ["p0", "p1", "p2"]),
        (400, ["p1", "p2"]),
        (200, ["p2"]),
    ]
    assert [pot.level for pot in pots] == [1, 2, 3]
    assert [pot.is_main_pot for pot in pots] == [True, False, False]
    assert sum(pot.amount for pot in pots) == 900


def test_equal_levels_merge_into_one_pot():
    players = [
        Contribution("p0", 100, SeatStatus.ALL_IN, 0),
        Contribution("p1", 100, SeatStatus.ACTIVE, 1),
        Contribution("p2", 40, SeatStatus.FOLDED, 2),
    ]
    pots = calculate_side_pots(players)
    assert len(pots) == 1
    assert pots[0].amount == 240


def test_no_live_contributors_means_no_pots():
    assert calculate_side_pots([Contribution("p0", 30, SeatStatus.FOLDED, 0)]) == []


def test_odd_chip_goes_to_winner_closest_to_dealer():
    board = ["Ah", "Kd", "Qs", "Jc", "Th"]
    showdown = determine_winners({"p1": ["2c", "3d"], "p3": ["4c", "5d"]}, board)
    players = [
        Contribution("p1", 50, SeatStatus.ACTIVE, 1),
        Contribution("p3", 50, SeatStatus.ACTIVE, 3),
        Contribution("p0", 1, SeatStatus.FOLDED, 0),
    ]
    pots = calculate_side_pots(players)
    assert pots[0].amount == 101

    # Dealer on seat 2: seat 3 is one step clockwise, seat 1 is three steps.
    winnings = distribute_pots(pots, showdown, players, dealer_seat=2, total_seats=4)
    assert winnings == {"p1": 50, "p3": 51}

    winnings = distribute_pots(pots, showdown, players, dealer_seat=0, total_seats=4)
    assert winnings == {"p1": 51, "p3": 50}


def test_side_pot_winner_differs_from_main_pot_winner():
    board = ["2h", "7d", "9s", "Jc", "4h"]
    showdown = determine_winners(
        {"p0": ["Ac", "Ad"], "p1": ["Kc", "Kd"], "p2": ["Qc", "Qd"]},
        board,
    )
    players = [
        Contribution("p0", 100, SeatStatus.ALL_IN, 0),
        Contribution("p1", 300, SeatStatus.ALL_IN, 1),
        Contribution("p2", 300, SeatStatus.ACTIVE, 2),
    ]
    pots = calculate_side_pots(players)
    winnings = distribute_pots(pots, showdown, players, dealer_seat=0, total_seats=3)
    assert winnings == {"p0": 300, "p1": 400}


def test_pot_without_eligible_showdown_player_is_fatal():
    showdown = determine_winners({"p0": ["Ac", "Ad"]}, ["2h", "7d", "9s", "Jc", "4h"])
    pots = [Pot(amount=100, eligible_player_ids=["p1"], level=1)]
    with pytest.raises(GameError) as excinfo:
        distribute_pots(pots, showdown, [Contribution("p1", 100, SeatStatus.ALL_IN, 1)], 0, 2)
    assert excinfo.value.code == GameErrorCode.INVALID_GAME_STATE
