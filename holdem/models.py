from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class GameStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    COMPLETED = "completed"


class SeatStatus(str, Enum):
    ACTIVE = "active"
    FOLDED = "folded"
    ALL_IN = "all_in"
    SITTING_OUT = "sitting_out"


class Round(str, Enum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"


class HandState(str, Enum):
    WAITING = "waiting"
    DEALING = "dealing"
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    LAST_MAN = "last_man_standing"
    SHOWDOWN = "showdown"
    SETTLING = "settling"


class ActionType(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"
    ALL_IN = "all_in"


class EndReason(str, Enum):
    WIN_BY_FOLD = "win_by_fold"
    SHOWDOWN = "showdown"
    RUN_IT_TWICE = "run_it_twice"


@dataclass
class Blinds:
    small: int = 10
    big: int = 20


@dataclass
class GameMeta:
    max_players: int = 9
    blinds: Blinds = field(default_factory=Blinds)
    min_buy_in: int = 400
    max_buy_in: int = 4_000
    turn_timeout: int = 30
    showdown_delay: int = 5
    pause_after_hand: bool = False
    # Refuse a check while another all-in seat has a bigger street bet.
    strict_check: bool = False


@dataclass
class Seat:
    player_id: str
    display_name: str
    chips: int
    current_bet: int = 0
    total_bet: int = 0
    has_acted: bool = False
    status: SeatStatus = SeatStatus.SITTING_OUT
    is_dealer: bool = False
    is_small_blind: bool = False
    is_big_blind: bool = False

    @property
    def in_hand(self) -> bool:
        return self.status in (SeatStatus.ACTIVE, SeatStatus.ALL_IN)

    def reset_for_hand(self) -> None:
        self.current_bet = 0
        self.total_bet = 0
        self.has_acted = False
        self.status = SeatStatus.ACTIVE if self.chips > 0 else SeatStatus.SITTING_OUT
        self.is_dealer = False
        self.is_small_blind = False
        self.is_big_blind = False

    def reset_for_round(self) -> None:
        self.current_bet = 0
        self.has_acted = False

    def commit(self, amount: int) -> int:
        amount = min(amount, self.chips)
        self.chips -= amount
        self.current_bet += amount
        self.total_bet += amount
        if self.chips == 0 and self.status == SeatStatus.ACTIVE:
            self.status = SeatStatus.ALL_IN
        return amount


@dataclass
class Pot:
    amount: int
    eligible_player_ids: List[str]
    level: int = 1
    is_main_pot: bool = True


@dataclass
class HandSummary:
    hand_number: int
    end_reason: EndReason
    winners: List[str]
    winnings: Dict[str, int]
    pot: int
    pots: List[Pot] = field(default_factory=list)
    boards: List[List[str]] = field(default_factory=list)
    # Hands that reached showdown, plus a fold winner who chose to show.
    shown_hands: Dict[str, List[str]] = field(default_factory=dict)
    hand_names: Dict[str, str] = field(default_factory=dict)


@dataclass
class Table:
    pot: int = 0
    side_pots: List[Pot] = field(default_factory=list)
    community_cards: List[str] = field(default_factory=list)
    current_round: Optional[Round] = None
    current_bet: int = 0
    min_raise: int = 0
    last_raise: int = 0
    dealer_seat: int = -1
    current_turn: Optional[str] = None
    current_turn_id: Optional[str] = None
    turn_expires_at: Optional[float] = None
    deck: List[str] = field(default_factory=list)
    stage: HandState = HandState.WAITING
    is_auto_next: bool = True
    consecutive_auto_actions: int = 0
    next_hand_id: Optional[str] = None
    run_it_twice_votes: List[str] = field(default_factory=list)
    last_hand: Optional[HandSummary] = None


@dataclass
class Game:
    game_id: str
    meta: GameMeta = field(default_factory=GameMeta)
    status: GameStatus = GameStatus.WAITING
    hand_number: int = 0
    table: Table = field(default_factory=Table)
    seats: Dict[int, Optional[Seat]] = field(default_factory=dict)

    @classmethod
    def create(cls, game_id: str, meta: Optional[GameMeta] = None) -> "Game":
        meta = meta or GameMeta()
        return cls(game_id=game_id, meta=meta, seats={idx: None for idx in range(meta.max_players)})

    def occupied(self) -> List[Tuple[int, Seat]]:
        return [(num, seat) for num, seat in sorted(self.seats.items()) if seat is not None]

    def find_seat(self, player_id: Optional[str]) -> Optional[Tuple[int, Seat]]:
        if player_id is None:
            return None
        for num, seat in self.occupied():
            if seat.player_id == player_id:
                return num, seat
        return None

    def seat_of(self, player_id: str) -> Optional[Seat]:
        found = self.find_seat(player_id)
        return found[1] if found else None

    def total_chips(self) -> int:
        side = sum(pot.amount for pot in self.table.side_pots)
        return sum(seat.chips for _, seat in self.occupied()) + self.table.pot + side
