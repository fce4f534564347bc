from __future__ import annotations

import random
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from holdem.cards import create_deck
from holdem.game import (
    advance_after_action,
    betting_open,
    deal_hole_cards,
    initialize_hand,
    process_action,
    settle_last_man,
    settle_run_it_twice,
    settle_showdown,
)
from holdem.models import ActionType, Blinds, Game, GameMeta, HandState, Seat
from holdem.validator import validate_player_action


def seated_game(
    stacks: Sequence[int] = (1_000, 1_000, 1_000),
    *,
    seats: Optional[int] = None,
    sb: int = 10,
    bb: int = 20,
    game_id: str = "T-1",
) -> Game:
    """Game with players p0, p1, ... seated in order with the given stacks."""
    meta = GameMeta(max_players=seats or max(len(stacks), 2), blinds=Blinds(small=sb, big=bb))
    game = Game.create(game_id, meta)
    for idx, chips in enumerate(stacks):
        game.seats[idx] = Seat(player_id=f"p{idx}", display_name=f"Player{idx}", chips=chips)
    return game


def start_hand(game: Game, seed: int = 42) -> Tuple[Game, Dict[str, List[str]]]:
    game = initialize_hand(game, random.Random(seed))
    return deal_hole_cards(game)


def act(game: Game, player_id: str, action: ActionType, amount: int = 0) -> Game:
    """Validate, apply and advance one action, the way the service does."""
    validate_player_action(game, player_id, action, amount)
    return advance_after_action(process_action(game, player_id, action, amount))


def perform_actions(game: Game, actions: Iterable[Tuple[str, ActionType, int]]) -> Game:
    """Apply a scripted sequence of actions (player, action, amount)."""
    for player_id, action, amount in actions:
        game = act(game, player_id, action, amount)
    return game


def play_passively(game: Game) -> Game:
    """Check or call (all-in when short) until betting is over."""
    while betting_open(game) and game.table.current_turn:
        player_id = game.table.current_turn
        seat = game.seat_of(player_id)
        assert seat is not None
        to_call = game.table.current_bet - seat.current_bet
        if to_call == 0:
            action = ActionType.CHECK
        elif to_call <= seat.chips:
            action = ActionType.CALL
        else:
            action = ActionType.ALL_IN
        game = act(game, player_id, action)
    return game


def settle(game: Game, hole_cards: Dict[str, List[str]]) -> Game:
    if game.table.stage == HandState.LAST_MAN:
        return settle_last_man(game)
    if len(game.table.community_cards) < 5:
        return settle_run_it_twice(game, hole_cards, random.Random(7))
    return settle_showdown(game, hole_cards)


def scripted_deck(holes: Sequence[Sequence[str]], board: Sequence[str]) -> List[str]:
    """Deck order that deals ``holes`` (listed left of the button first) and then ``board``."""
    top = [hole[0] for hole in holes] + [hole[1] for hole in holes]
    used = set(top) | set(board)
    spare = [card for card in create_deck() if card not in used]
    burns, rest = spare[:3], spare[3:]
    return (
        top
        + [burns[0]]
        + list(board[:3])
        + [burns[1], board[3]]
        + [burns[2], board[4]]
        + rest
    )


def use_deck(monkeypatch, deck: Sequence[str]) -> None:
    """Make the next fresh deck come out in ``deck`` order; partial decks keep their order."""

    def fake_shuffle(cards, rng=None):
        return list(deck) if len(cards) == 52 else list(cards)

    monkeypatch.setattr("holdem.game.shuffle", fake_shuffle)
