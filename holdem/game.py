from __future__ import annotations

import copy
import random
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Union

from .cards import burn, create_deck, deal, shuffle
from .errors import GameError, GameErrorCode
from .evaluator import ShowdownResults, determine_winners
from .models import (
    ActionType,
    EndReason,
    Game,
    GameStatus,
    HandState,
    HandSummary,
    Pot,
    Round,
    SeatStatus,
)
from .pots import calculate_side_pots, contributions_from_game, distribute_pots
from .state_machine import (
    bets_settled,
    dealt_in_seats,
    find_next_player,
    get_next_state,
    get_players_in_hand,
    get_postflop_first_to_act,
    get_preflop_first_to_act,
    is_effective_all_in,
    is_last_man_standing,
    is_round_complete,
    validate_state_transition,
)

# Every public function here takes a Game and returns a new one; inputs are
# never mutated. Storage, timers and private card storage belong to the caller.


class HoleDeal(NamedTuple):
    game: Game
    hole_cards: Dict[str, List[str]]


@dataclass
class WinnerInfo:
    winners: List[str]
    pot: int
    reason: Optional[EndReason]
    showdown: Optional[ShowdownResults] = None


@dataclass
class Runout:
    community_cards: List[str]


@dataclass
class RunItTwice:
    runout1: Runout
    runout2: Runout
    original_pot: int
    player_ids: List[str] = field(default_factory=list)


def _new_turn_id() -> str:
    return uuid.uuid4().hex


def _set_turn(game: Game, player_id: Optional[str]) -> None:
    game.table.current_turn = player_id
    game.table.current_turn_id = _new_turn_id() if player_id else None
    game.table.turn_expires_at = None


def _transition(game: Game, target: HandState) -> None:
    validate_state_transition(game.table.stage, target)
    game.table.stage = target


# Hand lifecycle --------------------------------------------------


def initialize_hand(game: Game, rng: Optional[random.Random] = None) -> Game:
    game = copy.deepcopy(game)
    table = game.table
    funded = [num for num, seat in game.occupied() if seat.chips > 0]
    if len(funded) < 2:
        raise GameError(GameErrorCode.NOT_ENOUGH_PLAYERS, count=len(funded))
    if table.stage != HandState.WAITING:
        raise GameError(GameErrorCode.GAME_ALREADY_IN_PROGRESS, stage=table.stage.value)

    big_blind = game.meta.blinds.big
    table.pot = 0
    table.side_pots = []
    table.community_cards = []
    table.current_round = Round.PREFLOP
    table.current_bet = 0
    table.min_raise = big_blind
    table.last_raise = 0
    table.deck = shuffle(create_deck(), rng)
    table.next_hand_id = None
    table.run_it_twice_votes = []
    table.last_hand = None

    for _, seat in game.occupied():
        seat.reset_for_hand()

    # Move button to the next funded seat, wrapping around the table.
    dealer = table.dealer_seat
    for _ in range(game.meta.max_players):
        dealer = (dealer + 1) % game.meta.max_players
        if dealer in funded:
            break
    table.dealer_seat = dealer

    dealer_index = funded.index(dealer)
    if len(funded) == 2:
        sb_seat = dealer
        bb_seat = funded[(dealer_index + 1) % 2]
    else:
        sb_seat = funded[(dealer_index + 1) % len(funded)]
        bb_seat = funded[(dealer_index + 2) % len(funded)]

    dealer_player = game.seats[dealer]
    sb_player = game.seats[sb_seat]
    bb_player = game.seats[bb_seat]
    assert dealer_player and sb_player and bb_player
    dealer_player.is_dealer = True
    sb_player.is_small_blind = True
    bb_player.is_big_blind = True

    table.pot += sb_player.commit(game.meta.blinds.small)
    table.pot += bb_player.commit(big_blind)
    table.current_bet = big_blind

    game.status = GameStatus.PLAYING
    game.hand_number += 1
    _transition(game, HandState.DEALING)
    _transition(game, HandState.PREFLOP)
    _set_turn(game, get_preflop_first_to_act(game))
    return game


def deal_hole_cards(game: Game) -> HoleDeal:
    game = copy.deepcopy(game)
    seats = dealt_in_seats(game)
    dealer = game.table.dealer_seat
    # One card at a time, starting left of the button.
    order = [num for num in seats if num > dealer] + [num for num in seats if num <= dealer]

    deck = game.table.deck
    hole_cards: Dict[str, List[str]] = {}
    for _ in range(2):
        for num in order:
            seat = game.seats[num]
            assert seat is not None
            dealt = deal(deck, 1)
            hole_cards.setdefault(seat.player_id, []).extend(dealt.cards)
            deck = dealt.remaining
    game.table.deck = deck
    return HoleDeal(game, hole_cards)


def _deal_street(game: Game, street: Round, count: int) -> None:
    table = game.table
    dealt = deal(burn(table.deck), count)
    table.community_cards = table.community_cards + dealt.cards
    table.deck = dealt.remaining
    table.current_round = street
    table.current_bet = 0
    table.min_raise = game.meta.blinds.big
    table.last_raise = 0
    for _, seat in game.occupied():
        seat.reset_for_round()


def deal_flop(game: Game) -> Game:
    game = copy.deepcopy(game)
    if game.table.community_cards:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "Flop already dealt")
    _deal_street(game, Round.FLOP, 3)
    return game


def deal_turn_or_river(game: Game, street: Union[Round, str]) -> Game:
    street = Round(street)
    expected = {Round.TURN: 3, Round.RIVER: 4}
    if street not in expected:
        raise GameError(GameErrorCode.INVALID_ACTION, f"Cannot deal a single card for {street.value}")
    game = copy.deepcopy(game)
    if len(game.table.community_cards) != expected[street]:
        raise GameError(
            GameErrorCode.INVALID_GAME_STATE,
            f"Board has {len(game.table.community_cards)} cards before the {street.value}",
        )
    _deal_street(game, street, 1)
    return game


def _deal_next_street(game: Game) -> None:
    dealt = len(game.table.community_cards)
    if dealt == 0:
        _deal_street(game, Round.FLOP, 3)
    elif dealt == 3:
        _deal_street(game, Round.TURN, 1)
    elif dealt == 4:
        _deal_street(game, Round.RIVER, 1)
    else:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, f"Cannot deal past {dealt} board cards")


# Action handling -------------------------------------------------


def process_action(game: Game, player_id: str, action: Union[ActionType, str], amount: int = 0) -> Game:
    """Apply an already-validated action to chips, bets and pot."""
    game = copy.deepcopy(game)
    table = game.table
    seat = game.seat_of(player_id)
    if seat is None:
        raise GameError(GameErrorCode.PLAYER_NOT_FOUND, player_id=player_id)
    try:
        kind = ActionType(action)
    except ValueError:
        raise GameError(GameErrorCode.INVALID_ACTION, action=str(action)) from None

    previous_bet = table.current_bet

    if kind == ActionType.FOLD:
        seat.status = SeatStatus.FOLDED
    elif kind == ActionType.CHECK:
        pass
    elif kind == ActionType.CALL:
        table.pot += seat.commit(max(table.current_bet - seat.current_bet, 0))
    elif kind in (ActionType.RAISE, ActionType.ALL_IN):
        chips = amount if kind == ActionType.RAISE else seat.chips
        table.pot += seat.commit(chips)
        if seat.current_bet > previous_bet:
            increment = seat.current_bet - previous_bet
            table.current_bet = seat.current_bet
            # A short all-in lifts the bet without changing the minimum raise.
            if kind == ActionType.RAISE or increment >= table.min_raise:
                table.min_raise = increment
                table.last_raise = increment

    seat.has_acted = True
    if table.current_bet > previous_bet:
        for _, other in game.occupied():
            if other is not seat and other.status == SeatStatus.ACTIVE:
                other.has_acted = False
    return game


def auto_action_for(game: Game) -> ActionType:
    """Timeout fallback for the seat holding the turn: check when free, otherwise fold."""
    seat = game.seat_of(game.table.current_turn) if game.table.current_turn else None
    if seat is None:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "No seat holds the turn")
    return ActionType.CHECK if game.table.current_bet - seat.current_bet <= 0 else ActionType.FOLD


def wants_run_it_twice(game: Game) -> bool:
    in_hand = {seat.player_id for seat in get_players_in_hand(game)}
    return (
        len(in_hand) == 2
        and in_hand.issubset(game.table.run_it_twice_votes)
        and len(game.table.community_cards) < 5
    )


def _run_out(game: Game) -> None:
    while len(game.table.community_cards) < 5:
        _deal_next_street(game)
    _transition(game, HandState.SHOWDOWN)
    _set_turn(game, None)


def _to_showdown(game: Game) -> None:
    # An agreed run-it-twice leaves the board incomplete for settle_run_it_twice.
    if wants_run_it_twice(game):
        _transition(game, HandState.SHOWDOWN)
        _set_turn(game, None)
    else:
        _run_out(game)


def run_out_board(game: Game) -> Game:
    game = copy.deepcopy(game)
    _run_out(game)
    return game


def _advance_round(game: Game) -> None:
    target = get_next_state(game)
    if target == HandState.LAST_MAN:
        _transition(game, target)
        _set_turn(game, None)
        return
    if target == HandState.SHOWDOWN:
        _to_showdown(game)
        return

    _deal_next_street(game)
    _transition(game, target)
    if is_effective_all_in(game):
        _to_showdown(game)
        return
    first = get_postflop_first_to_act(game)
    if first is None:
        _to_showdown(game)
        return
    _set_turn(game, first)


def advance_round(game: Game) -> Game:
    game = copy.deepcopy(game)
    _advance_round(game)
    return game


def advance_after_action(game: Game) -> Game:
    """Decide what follows an applied action: pass the turn, open the next street, or end betting."""
    game = copy.deepcopy(game)
    if is_last_man_standing(game):
        _transition(game, HandState.LAST_MAN)
        _set_turn(game, None)
        return game

    settled = bets_settled(game)
    if is_effective_all_in(game) and settled:
        _to_showdown(game)
        return game
    if is_round_complete(game) and settled:
        _advance_round(game)
        return game

    next_player = find_next_player(game)
    if next_player is None:
        _advance_round(game)
    else:
        _set_turn(game, next_player)
    return game


def renew_turn(game: Game) -> Game:
    """Re-issue the current turn under a new id so timers armed for the old one go stale."""
    game = copy.deepcopy(game)
    if game.table.current_turn is None:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "No seat holds the turn")
    _set_turn(game, game.table.current_turn)
    return game


def betting_open(game: Game) -> bool:
    return game.table.stage in (HandState.PREFLOP, HandState.FLOP, HandState.TURN, HandState.RIVER)


# Showdown & settlement -------------------------------------------


def calculate_winners(game: Game, hole_cards: Mapping[str, Sequence[str]]) -> WinnerInfo:
    in_hand = get_players_in_hand(game)
    if not in_hand:
        return WinnerInfo(winners=[], pot=0, reason=None)
    if len(in_hand) == 1:
        return WinnerInfo(winners=[in_hand[0].player_id], pot=game.table.pot, reason=EndReason.WIN_BY_FOLD)

    showdown = determine_winners(_hands_for(in_hand_ids(game), hole_cards), game.table.community_cards)
    return WinnerInfo(
        winners=showdown.winner_ids,
        pot=game.table.pot,
        reason=EndReason.SHOWDOWN,
        showdown=showdown,
    )


def in_hand_ids(game: Game) -> List[str]:
    return [seat.player_id for seat in get_players_in_hand(game)]


def _hands_for(player_ids: Sequence[str], hole_cards: Mapping[str, Sequence[str]]) -> Dict[str, List[str]]:
    hands: Dict[str, List[str]] = {}
    for player_id in player_ids:
        cards = hole_cards.get(player_id)
        if not cards or len(cards) != 2:
            raise GameError(GameErrorCode.INVALID_GAME_STATE, "Missing hole cards", player_id=player_id)
        hands[player_id] = list(cards)
    return hands


def _finish_hand(game: Game, summary: HandSummary) -> None:
    table = game.table
    _transition(game, HandState.SETTLING)
    table.pot = 0
    # The breakdown is kept on last_hand only; the chips are back on the seats.
    table.side_pots = []
    table.last_hand = summary
    table.deck = []
    table.current_round = None
    table.current_bet = 0
    table.run_it_twice_votes = []
    _set_turn(game, None)
    for _, seat in game.occupied():
        seat.current_bet = 0
        seat.total_bet = 0
        if seat.chips == 0:
            seat.status = SeatStatus.SITTING_OUT
    _transition(game, HandState.WAITING)
    game.status = GameStatus.ENDED if game.meta.pause_after_hand else GameStatus.WAITING


def settle_last_man(game: Game) -> Game:
    game = copy.deepcopy(game)
    in_hand = get_players_in_hand(game)
    if len(in_hand) != 1:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "Invalid last man standing state", players=len(in_hand))
    if game.table.stage != HandState.LAST_MAN:
        _transition(game, HandState.LAST_MAN)

    winner = in_hand[0]
    amount = game.table.pot
    winner.chips += amount
    summary = HandSummary(
        hand_number=game.hand_number,
        end_reason=EndReason.WIN_BY_FOLD,
        winners=[winner.player_id],
        winnings={winner.player_id: amount},
        pot=amount,
        boards=[list(game.table.community_cards)],
    )
    _finish_hand(game, summary)
    return game


def _check_payout(game: Game, winnings: Mapping[str, int]) -> None:
    paid = sum(winnings.values())
    if paid != game.table.pot:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "Payout does not match pot", paid=paid, pot=game.table.pot)


def _credit(game: Game, winnings: Mapping[str, int]) -> None:
    for player_id, amount in winnings.items():
        seat = game.seat_of(player_id)
        if seat is None:
            raise GameError(GameErrorCode.INVALID_GAME_STATE, "Winner left the table", player_id=player_id)
        seat.chips += amount


def settle_showdown(game: Game, hole_cards: Mapping[str, Sequence[str]]) -> Game:
    game = copy.deepcopy(game)
    if game.table.stage != HandState.SHOWDOWN:
        _transition(game, HandState.SHOWDOWN)
    if len(game.table.community_cards) != 5:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "Board incomplete at showdown")

    info = calculate_winners(game, hole_cards)
    if info.showdown is None:
        raise GameError(GameErrorCode.INVALID_GAME_STATE, "Showdown needs at least two players")

    contributions = contributions_from_game(game)
    pots = calculate_side_pots(contributions)
    winnings = distribute_pots(
        pots, info.showdown, contributions, game.table.dealer_seat, game.meta.max_players
    )
    _check_payout(game, winnings)
    _credit(game, winnings)

    summary = HandSummary(
        hand_number=game.hand_number,
        end_reason=EndReason.SHOWDOWN,
        winners=info.winners,
        winnings=winnings,
        pot=game.table.pot,
        pots=pots,
        boards=[list(game.table.community_cards)],
        shown_hands={r.player_id: list(r.hole_cards) for r in info.showdown.results},
        hand_names={r.player_id: r.name for r in info.showdown.results},
    )
    _finish_hand(game, summary)
    return game


# Run it twice ----------------------------------------------------


def _deal_runout(deck: Sequence[str], board: Sequence[str]) -> List[str]:
    cards = list(board)
    remaining = list(deck)
    while len(cards) < 5:
        dealt = deal(burn(remaining), 3 if not cards else 1)
        cards.extend(dealt.cards)
        remaining = dealt.remaining
    return cards


def run_it_twice(game: Game, player_ids: Sequence[str], rng: Optional[random.Random] = None) -> RunItTwice:
    """Deal the rest of the board twice: once from the live deck, once from a reshuffled copy of it."""
    ids = list(dict.fromkeys(player_ids))
    if len(ids) != 2:
        raise GameError(GameErrorCode.INVALID_ACTION, "Run it twice needs exactly two players", players=ids)
    if set(in_hand_ids(game)) != set(ids):
        raise GameError(GameErrorCode.INVALID_ACTION, "Run it twice players must be the only ones left", players=ids)
    if not (is_effective_all_in(game) and bets_settled(game)):
        raise GameError(GameErrorCode.INVALID_ACTION, "Betting is still open")
    if len(game.table.community_cards) >= 5:
        raise GameError(GameErrorCode.INVALID_ACTION, "Board is already complete")

    deck = list(game.table.deck)
    board = list(game.table.community_cards)
    first = _deal_runout(deck, board)
    second = _deal_runout(shuffle(deck, rng), board)
    return RunItTwice(
        runout1=Runout(first),
        runout2=Runout(second),
        original_pot=game.table.pot,
        player_ids=ids,
    )


def _split_pots(pots: Sequence[Pot]) -> List[List[Pot]]:
    # The odd chip of each pot rides on the first run.
    first = [Pot(p.amount - p.amount // 2, list(p.eligible_player_ids), p.level, p.is_main_pot) for p in pots]
    second = [Pot(p.amount // 2, list(p.eligible_player_ids), p.level, p.is_main_pot) for p in pots]
    return [first, second]


def settle_run_it_twice(
    game: Game,
    hole_cards: Mapping[str, Sequence[str]],
    rng: Optional[random.Random] = None,
) -> Game:
    ids = in_hand_ids(game)
    result = run_it_twice(game, ids, rng)
    game = copy.deepcopy(game)
    if game.table.stage != HandState.SHOWDOWN:
        _transition(game, HandState.SHOWDOWN)

    hands = _hands_for(ids, hole_cards)
    contributions = contributions_from_game(game)
    pots = calculate_side_pots(contributions)

    winnings: Dict[str, int] = {}
    winners: List[str] = []
    names: Dict[str, str] = {}
    boards = [result.runout1.community_cards, result.runout2.community_cards]
    for board, half in zip(boards, _split_pots(pots)):
        showdown = determine_winners(hands, board)
        run_winnings = distribute_pots(
            half, showdown, contributions, game.table.dealer_seat, game.meta.max_players
        )
        for player_id, amount in run_winnings.items():
            winnings[player_id] = winnings.get(player_id, 0) + amount
        for player_id in showdown.winner_ids:
            if player_id not in winners:
                winners.append(player_id)
        for hand in showdown.results:
            names.setdefault(hand.player_id, hand.name)

    _check_payout(game, winnings)
    _credit(game, winnings)
    game.table.community_cards = list(result.runout1.community_cards)
    summary = HandSummary(
        hand_number=game.hand_number,
        end_reason=EndReason.RUN_IT_TWICE,
        winners=winners,
        winnings=winnings,
        pot=game.table.pot,
        pots=pots,
        boards=[list(board) for board in boards],
        shown_hands=hands,
        hand_names=names,
    )
    _finish_hand(game, summary)
    return game


def abort_hand(game: Game) -> Game:
    """Refund every contribution and return to waiting after a structural failure."""
    game = copy.deepcopy(game)
    table = game.table
    for _, seat in game.occupied():
        seat.chips += seat.total_bet
        seat.total_bet = 0
        seat.current_bet = 0
        seat.has_acted = False
        if seat.status != SeatStatus.SITTING_OUT:
            seat.status = SeatStatus.ACTIVE if seat.chips > 0 else SeatStatus.SITTING_OUT
    table.pot = 0
    table.side_pots = []
    table.community_cards = []
    table.deck = []
    table.current_round = None
    table.current_bet = 0
    table.run_it_twice_votes = []
    table.next_hand_id = None
    table.stage = HandState.WAITING
    _set_turn(game, None)
    game.status = GameStatus.WAITING
    return game
