"""Texas Hold'em engine: pure transforms over a Game record."""

from .cards import Card, RANKS, SUITS, burn, create_deck, deal, shuffle
from .errors import GameError, GameErrorCode
from .evaluator import HandRank, ShowdownResults, determine_winners, evaluate
from .game import (
    RunItTwice,
    WinnerInfo,
    abort_hand,
    advance_after_action,
    advance_round,
    auto_action_for,
    betting_open,
    calculate_winners,
    deal_flop,
    deal_hole_cards,
    deal_turn_or_river,
    initialize_hand,
    process_action,
    renew_turn,
    run_it_twice,
    run_out_board,
    settle_last_man,
    settle_run_it_twice,
    settle_showdown,
)
from .models import ActionType, Game, GameMeta, GameStatus, HandState, Round, Seat, SeatStatus
from .pots import Contribution, calculate_side_pots, distribute_pots
from .state_machine import get_first_to_act, get_next_state, is_round_complete, validate_state_transition
from .validator import validate_game_start, validate_join_seat, validate_player_action

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "burn",
    "create_deck",
    "deal",
    "shuffle",
    "GameError",
    "GameErrorCode",
    "HandRank",
    "ShowdownResults",
    "determine_winners",
    "evaluate",
    "RunItTwice",
    "WinnerInfo",
    "abort_hand",
    "advance_after_action",
    "advance_round",
    "auto_action_for",
    "betting_open",
    "calculate_winners",
    "deal_flop",
    "deal_hole_cards",
    "deal_turn_or_river",
    "initialize_hand",
    "process_action",
    "renew_turn",
    "run_it_twice",
    "run_out_board",
    "settle_last_man",
    "settle_run_it_twice",
    "settle_showdown",
    "ActionType",
    "Game",
    "GameMeta",
    "GameStatus",
    "HandState",
    "Round",
    "Seat",
    "SeatStatus",
    "Contribution",
    "calculate_side_pots",
    "distribute_pots",
    "get_first_to_act",
    "get_next_state",
    "is_round_complete",
    "validate_state_transition",
    "validate_game_start",
    "validate_join_seat",
    "validate_player_action",
]
