import random

import pytest

from holdem.cards import create_deck, shuffle
from holdem.evaluator import (
    FLUSH,
    FOUR_OF_A_KIND,
    FULL_HOUSE,
    HIGH_CARD,
    PAIR,
    ROYAL_FLUSH,
    STRAIGHT,
    STRAIGHT_FLUSH,
    THREE_OF_A_KIND,
    TWO_PAIR,
    determine_winners,
    evaluate,
    evaluate_with_cards,
)


def test_evaluate_identifies_all_hand_categories():
    cases = [
        (ROYAL_FLUSH, ["Ah", "Kh", "Qh", "Jh", "Th"]),
        (STRAIGHT_FLUSH, ["9h", "8h", "7h", "6h", "5h"]),
        (FOUR_OF_A_KIND, ["As", "Ah", "Ad", "Ac", "Kd"]),
        (FULL_HOUSE, ["Qc", "Qd", "Qs", "9h", "9s"]),
        (FLUSH, ["Ah", "Jh", "9h", "6h", "2h"]),
        (STRAIGHT, ["9h", "8d", "7c", "6s", "5h"]),
        (THREE_OF_A_KIND, ["8h", "8d", "8s", "Qd", "Js"]),
        (TWO_PAIR, ["7h", "7d", "4s", "4c", "As"]),
        (PAIR, ["6h", "6s", "Qh", "8d", "4c"]),
        (HIGH_CARD, ["As", "Kd", "Jh", "9c", "4d"]),
    ]

    for expected, labels in cases:
        assert evaluate(labels).category == expected, f"labels={labels}"


def test_evaluate_handles_wheel_straight():
    rank = evaluate(["Ah", "2d", "3c", "4s", "5h", "9d", "Kd"])
    assert rank.category == STRAIGHT
    assert rank.tiebreak == (5,)
    assert evaluate(["6h", "2d", "3c", "4s", "5h"]) > rank


def test_steel_wheel_is_a_straight_flush_not_royal():
    rank = evaluate(["Ad", "2d", "3d", "4d", "5d", "Kc", "Qc"])
    assert rank.category == STRAIGHT_FLUSH
    assert rank.tiebreak == (5,)


def test_evaluate_compares_kickers_for_equal_pairs():
    hand_a = ["Ah", "Ad", "Kc", "Qs", "9h", "2d", "3c"]
    hand_b = ["Ah", "Ad", "Qc", "Js", "8h", "2d", "3c"]
    assert evaluate(hand_a) > evaluate(hand_b)


def test_full_house_ranks_trips_before_pair():
    assert evaluate(["9c", "9d", "9s", "2h", "2s"]) > evaluate(["8c", "8d", "8s", "Ah", "As"])


def test_evaluate_rejects_wrong_card_counts():
    with pytest.raises(ValueError):
        evaluate(["Ah", "Kh", "Qh", "Jh"])
    with pytest.raises(ValueError):
        evaluate(create_deck()[:8])


def test_best_five_cards_are_reported():
    rank, best = evaluate_with_cards(["Ah", "Kh", "Qh", "Jh", "Th", "2c", "3d"])
    assert rank.category == ROYAL_FLUSH
    assert sorted(best) == sorted(["Ah", "Kh", "Qh", "Jh", "Th"])


def test_determine_winners_returns_every_tied_player():
    board = ["Ah", "Kd", "Qs", "Jc", "Th"]
    results = determine_winners({"p0": ["2c", "3d"], "p1": ["4c", "5d"], "p2": ["9c", "9d"]}, board)
    assert sorted(results.winner_ids) == ["p0", "p1", "p2"]
    assert all(result.name == "Straight" for result in results.results)


def test_determine_winners_picks_single_best_hand():
    board = ["2h", "7d", "9s", "Jc", "Kh"]
    results = determine_winners({"p0": ["Ac", "Ad"], "p1": ["Kc", "Qd"]}, board)
    assert results.winner_ids == ["p0"]
    assert {r.player_id: r.name for r in results.results} == {"p0": "One Pair", "p1": "One Pair"}


def test_evaluate_supports_many_seven_card_hands():
    deck = shuffle(create_deck(), random.Random(777))
    for idx in range(0, 42, 7):
        rank = evaluate(deck[idx : idx + 7])
        assert 0 <= rank.category <= ROYAL_FLUSH
