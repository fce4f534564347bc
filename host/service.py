from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from holdem.errors import GameError, GameErrorCode
from holdem.game import (
    abort_hand,
    advance_after_action,
    auto_action_for,
    betting_open,
    deal_hole_cards,
    initialize_hand,
    process_action,
    renew_turn,
    settle_last_man,
    settle_run_it_twice,
    settle_showdown,
)
from holdem.models import ActionType, EndReason, Game, GameMeta, GameStatus, HandState, Seat, SeatStatus
from holdem.state_machine import get_players_in_hand
from holdem.validator import validate_game_start, validate_join_seat, validate_player_action

from .store import GameStore, Transaction

LOGGER = logging.getLogger("holdem_host")

# Failures that leave the hand unrecoverable; the hand is refunded instead of retried.
STRUCTURAL_ERRORS = (GameErrorCode.DECK_EXHAUSTED, GameErrorCode.INVALID_GAME_STATE)

TURN_TIMEOUT = "turn_timeout"
NEXT_HAND = "next_hand"


@dataclass
class TimerRequest:
    kind: str
    game_id: str
    token: str
    deadline: float


@dataclass
class Outcome:
    game: Game
    timers: List[TimerRequest] = field(default_factory=list)
    stale: bool = False
    # Freshly dealt hole cards, to be delivered privately to their owners.
    hole_cards: Dict[str, List[str]] = field(default_factory=dict)
    action: Optional[ActionType] = None
    stacks: Dict[str, int] = field(default_factory=dict)


class TableService:
    """Every state change goes through ``GameStore.transact``: read, transform, compare-and-commit.

    Timer requests in an outcome are only meaningful once the call has returned,
    i.e. after the commit succeeded.
    """

    def __init__(
        self,
        store: Optional[GameStore] = None,
        *,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store or GameStore()
        self.clock = clock
        self.rng = rng

    # Table setup -------------------------------------------------

    def create_game(self, meta: Optional[GameMeta] = None, game_id: Optional[str] = None) -> Game:
        game = Game.create(game_id or uuid.uuid4().hex[:8], meta)
        return self.store.create(game)

    def get_game(self, game_id: str) -> Game:
        return self.store.get(game_id)

    def hole_cards(self, game_id: str, player_id: str) -> Optional[List[str]]:
        return self.store.hole_cards(game_id, player_id)

    def sit_down(self, game_id: str, player_id: str, display_name: str, seat_number: int, buy_in: int) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status == GameStatus.COMPLETED:
                raise GameError(GameErrorCode.GAME_NOT_ACTIVE, status=game.status.value)
            validate_join_seat(game, seat_number, buy_in, player_id)
            # New seats sit out until the next hand is dealt.
            game.seats[seat_number] = Seat(player_id=player_id, display_name=display_name, chips=buy_in)
            txn.write(game)
            return Outcome(game=game)

        outcome = self.store.transact(game_id, step)
        LOGGER.info("Seat %s claimed by %s in %s (buy-in=%s)", seat_number, player_id, game_id, buy_in)
        return outcome

    def leave_seat(self, game_id: str, player_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            found = game.find_seat(player_id)
            if found is None:
                raise GameError(GameErrorCode.PLAYER_NOT_FOUND, player_id=player_id)
            num, seat = found
            # Chips committed this hand stay on the table until it is settled.
            if game.table.stage != HandState.WAITING and seat.status != SeatStatus.SITTING_OUT:
                raise GameError(GameErrorCode.GAME_ALREADY_IN_PROGRESS, "Cannot leave during a hand")
            game.seats[num] = None
            txn.write(game)
            return Outcome(game=game, stacks={player_id: seat.chips})

        outcome = self.store.transact(game_id, step)
        LOGGER.info("%s left %s with %s chips", player_id, game_id, outcome.stacks.get(player_id))
        return outcome

    # Hand flow ---------------------------------------------------

    def start_hand(self, game_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status == GameStatus.PAUSED:
                raise GameError(GameErrorCode.GAME_PAUSED)
            validate_game_start(game)
            # A manual start re-arms auto-next after AFK protection kicked in.
            game.table.is_auto_next = True
            game.table.consecutive_auto_actions = 0
            return self._deal(txn, game)

        return self._apply(game_id, step)

    def handle_player_action(
        self,
        game_id: str,
        player_id: str,
        action: str,
        amount: int = 0,
        turn_id: Optional[str] = None,
    ) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status == GameStatus.PAUSED:
                raise GameError(GameErrorCode.GAME_PAUSED)
            if game.status != GameStatus.PLAYING:
                raise GameError(GameErrorCode.GAME_NOT_ACTIVE, status=game.status.value)
            if turn_id != game.table.current_turn_id:
                LOGGER.debug(
                    "%s: action from %s in %s (turn_id=%s)", GameErrorCode.STALE_ACTION.value, player_id, game_id, turn_id
                )
                return Outcome(game=game, stale=True)

            validate_player_action(game, player_id, action, amount)
            game = process_action(game, player_id, action, amount)
            game.table.consecutive_auto_actions = 0
            LOGGER.debug("Applied %s %s amount=%s in %s", player_id, action, amount, game_id)
            game = advance_after_action(game)
            outcome = self._progress(txn, game)
            outcome.action = ActionType(action)
            return outcome

        return self._apply(game_id, step)

    def handle_turn_timeout(self, game_id: str, turn_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if turn_id != game.table.current_turn_id:
                LOGGER.debug("%s: zombie timeout for %s (turn_id=%s)", GameErrorCode.STALE_ACTION.value, game_id, turn_id)
                return Outcome(game=game, stale=True)
            if game.status != GameStatus.PLAYING:
                LOGGER.debug("Ignoring timeout for %s while %s", game_id, game.status.value)
                return Outcome(game=game, stale=True)

            player_id = game.table.current_turn
            assert player_id is not None
            action = auto_action_for(game)

            table = game.table
            table.consecutive_auto_actions += 1
            contenders = len(get_players_in_hand(game))
            if contenders and table.consecutive_auto_actions >= contenders:
                if table.is_auto_next:
                    LOGGER.info("Everyone timed out in %s; next hand needs a manual start", game_id)
                table.is_auto_next = False

            game = process_action(game, player_id, action)
            LOGGER.debug("Timeout %s for %s in %s", action.value, player_id, game_id)
            game = advance_after_action(game)
            outcome = self._progress(txn, game)
            outcome.action = action
            return outcome

        return self._apply(game_id, step)

    def handle_start_next_hand(self, game_id: str, next_hand_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if next_hand_id != game.table.next_hand_id:
                LOGGER.debug("%s: next-hand timer for %s", GameErrorCode.STALE_ACTION.value, game_id)
                return Outcome(game=game, stale=True)
            game.table.next_hand_id = None
            if game.status != GameStatus.WAITING or not game.table.is_auto_next:
                txn.write(game)
                return Outcome(game=game)
            funded = [seat for _, seat in game.occupied() if seat.chips > 0]
            if len(funded) < 2:
                LOGGER.info("Not enough funded seats in %s to deal another hand", game_id)
                txn.write(game)
                return Outcome(game=game)
            return self._deal(txn, game)

        return self._apply(game_id, step)

    # Table controls ----------------------------------------------

    def toggle_pause(self, game_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status == GameStatus.PLAYING:
                game.status = GameStatus.PAUSED
                game.table.turn_expires_at = None
                txn.write(game)
                LOGGER.info("Paused %s", game_id)
                return Outcome(game=game)
            if game.status == GameStatus.PAUSED:
                game.status = GameStatus.PLAYING
                game.table.consecutive_auto_actions = 0
                if game.table.current_turn is not None:
                    game = renew_turn(game)
                LOGGER.info("Resumed %s", game_id)
                return self._progress(txn, game)
            if game.status == GameStatus.ENDED:
                game.status = GameStatus.WAITING
                game.meta.pause_after_hand = False
                LOGGER.info("Resumed %s between hands", game_id)
                outcome = Outcome(game=game, timers=self._schedule_next_hand(game))
                txn.write(game)
                return outcome
            raise GameError(GameErrorCode.GAME_NOT_ACTIVE, status=game.status.value)

        return self._apply(game_id, step)

    def request_run_it_twice(self, game_id: str, player_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status != GameStatus.PLAYING:
                raise GameError(GameErrorCode.GAME_NOT_ACTIVE, status=game.status.value)
            seat = game.seat_of(player_id)
            if seat is None:
                raise GameError(GameErrorCode.PLAYER_NOT_FOUND, player_id=player_id)
            if not seat.in_hand:
                raise GameError(GameErrorCode.INVALID_PLAYER_STATUS, status=seat.status.value)
            if not betting_open(game):
                raise GameError(GameErrorCode.INVALID_ACTION, "Hand is no longer in betting")
            if len(get_players_in_hand(game)) != 2:
                raise GameError(GameErrorCode.INVALID_ACTION, "Run it twice needs exactly two players")
            if player_id not in game.table.run_it_twice_votes:
                game.table.run_it_twice_votes.append(player_id)
            txn.write(game)
            return Outcome(game=game)

        outcome = self.store.transact(game_id, step)
        LOGGER.info("%s agreed to run it twice in %s", player_id, game_id)
        return outcome

    def end_after_hand(self, game_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            game.meta.pause_after_hand = True
            if game.status == GameStatus.WAITING:
                game.status = GameStatus.ENDED
                game.table.next_hand_id = None
            txn.write(game)
            return Outcome(game=game)

        return self.store.transact(game_id, step)

    def stop_next_hand(self, game_id: str) -> Outcome:
        """Turn off auto-next without pausing; the current hand plays on."""

        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status == GameStatus.COMPLETED:
                raise GameError(GameErrorCode.GAME_NOT_ACTIVE, status=game.status.value)
            game.table.is_auto_next = False
            txn.write(game)
            return Outcome(game=game)

        outcome = self.store.transact(game_id, step)
        LOGGER.info("Auto-next stopped in %s", game_id)
        return outcome

    def show_cards(self, game_id: str, player_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            summary = game.table.last_hand
            # Only the winner of a hand that ended without showdown may show, and only once it is over.
            if (
                summary is None
                or summary.end_reason != EndReason.WIN_BY_FOLD
                or player_id not in summary.winners
                or betting_open(game)
            ):
                raise GameError(GameErrorCode.INVALID_ACTION, "Cards cannot be shown at this time")
            if player_id in summary.shown_hands:
                return Outcome(game=game)
            cards = txn.hole_cards().get(player_id)
            if not cards:
                raise GameError(GameErrorCode.INVALID_ACTION, "No cards to show", player_id=player_id)
            summary.shown_hands[player_id] = list(cards)
            txn.write(game)
            return Outcome(game=game)

        outcome = self.store.transact(game_id, step)
        LOGGER.info("%s showed cards in %s", player_id, game_id)
        return outcome

    def settle_game(self, game_id: str) -> Outcome:
        def step(txn: Transaction) -> Outcome:
            game = txn.read()
            if game.status in (GameStatus.PLAYING, GameStatus.PAUSED):
                raise GameError(GameErrorCode.GAME_ALREADY_IN_PROGRESS, status=game.status.value)
            game.status = GameStatus.COMPLETED
            game.table.next_hand_id = None
            txn.write(game)
            stacks = {seat.player_id: seat.chips for _, seat in game.occupied()}
            return Outcome(game=game, stacks=stacks)

        outcome = self.store.transact(game_id, step)
        LOGGER.info("Settled %s: %s", game_id, outcome.stacks)
        return outcome

    # Internals ---------------------------------------------------

    def _apply(self, game_id: str, step: Callable[[Transaction], Outcome]) -> Outcome:
        failures: List[GameError] = []

        def guarded(txn: Transaction) -> Outcome:
            failures.clear()
            try:
                return step(txn)
            except GameError as exc:
                if exc.code not in STRUCTURAL_ERRORS:
                    raise
                base = txn.base()
                LOGGER.error("Aborting hand %s in %s: %r", base.hand_number, game_id, exc)
                game = abort_hand(base)
                txn.write(game)
                txn.clear_hole_cards()
                failures.append(exc)
                return Outcome(game=game)

        outcome = self.store.transact(game_id, guarded)
        if failures:
            raise failures[0]
        return outcome

    def _deal(self, txn: Transaction, game: Game) -> Outcome:
        game = initialize_hand(game, self.rng)
        game, hole_cards = deal_hole_cards(game)
        txn.set_hole_cards(hole_cards)
        LOGGER.info("Hand %s started in %s (dealer seat %s)", game.hand_number, game.game_id, game.table.dealer_seat)
        outcome = self._progress(txn, game)
        outcome.hole_cards = hole_cards
        return outcome

    def _progress(self, txn: Transaction, game: Game) -> Outcome:
        """Settle a finished hand or arm the clock for the seat holding the turn, then stage the write."""
        # Blinds alone can leave nobody able to act.
        if betting_open(game) and game.table.current_turn is None:
            game = advance_after_action(game)

        timers: List[TimerRequest] = []
        stage = game.table.stage
        if stage in (HandState.LAST_MAN, HandState.SHOWDOWN):
            game, winnings = self._settle(txn, game)
            LOGGER.info("Hand %s finished in %s: %s", game.hand_number, game.game_id, winnings)
            timers.extend(self._schedule_next_hand(game))
        elif game.table.current_turn is not None and game.status == GameStatus.PLAYING:
            deadline = self.clock() + game.meta.turn_timeout
            game.table.turn_expires_at = deadline
            assert game.table.current_turn_id is not None
            timers.append(TimerRequest(TURN_TIMEOUT, game.game_id, game.table.current_turn_id, deadline))

        txn.write(game)
        return Outcome(game=game, timers=timers)

    def _settle(self, txn: Transaction, game: Game) -> Tuple[Game, Dict[str, int]]:
        hole_cards = txn.hole_cards()
        if game.table.stage == HandState.LAST_MAN:
            game = settle_last_man(game)
            # The fold winner may still choose to show until the next deal.
            winner = game.table.last_hand.winners[0] if game.table.last_hand else None
            kept = {winner: hole_cards[winner]} if winner in hole_cards else {}
            txn.set_hole_cards(kept)
        elif len(game.table.community_cards) < 5:
            game = settle_run_it_twice(game, hole_cards, self.rng)
            txn.clear_hole_cards()
        else:
            game = settle_showdown(game, hole_cards)
            txn.clear_hole_cards()
        summary = game.table.last_hand
        return game, (summary.winnings if summary else {})

    def _schedule_next_hand(self, game: Game) -> List[TimerRequest]:
        if game.status != GameStatus.WAITING or not game.table.is_auto_next:
            return []
        token = uuid.uuid4().hex
        game.table.next_hand_id = token
        return [TimerRequest(NEXT_HAND, game.game_id, token, self.clock() + game.meta.showdown_delay)]
