from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TypeVar

from holdem.errors import GameError, GameErrorCode
from holdem.models import Game

LOGGER = logging.getLogger("holdem_store")

T = TypeVar("T")


class CommitConflict(Exception):
    """Raised when a transaction's base version is no longer current."""

    def __init__(self, game_id: str, expected: int, actual: int) -> None:
        super().__init__(f"game {game_id}: expected version {expected}, found {actual}")
        self.game_id = game_id
        self.expected = expected
        self.actual = actual


@dataclass
class _Record:
    game: Game
    version: int = 0
    # Private area: hole cards never live on the Game record.
    hole_cards: Dict[str, List[str]] = field(default_factory=dict)


class Transaction:
    def __init__(self, game_id: str, record: _Record) -> None:
        self.game_id = game_id
        self.version = record.version
        self._base = copy.deepcopy(record.game)
        self._game: Optional[Game] = None
        self._hole_cards = copy.deepcopy(record.hole_cards)
        self._hole_dirty = False

    def read(self) -> Game:
        """Fresh copy of the game as of the read (or as last written in this transaction)."""
        return copy.deepcopy(self._game if self._game is not None else self._base)

    def base(self) -> Game:
        return copy.deepcopy(self._base)

    def write(self, game: Game) -> None:
        self._game = game

    @property
    def dirty(self) -> bool:
        return self._game is not None or self._hole_dirty

    def hole_cards(self) -> Dict[str, List[str]]:
        return copy.deepcopy(self._hole_cards)

    def set_hole_cards(self, hole_cards: Dict[str, List[str]]) -> None:
        self._hole_cards = copy.deepcopy(hole_cards)
        self._hole_dirty = True

    def clear_hole_cards(self) -> None:
        self.set_hole_cards({})


class GameStore:
    """In-memory games with compare-and-commit writes."""

    def __init__(self, max_retries: int = 5) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, _Record] = {}
        self.max_retries = max_retries

    def create(self, game: Game) -> Game:
        with self._lock:
            if game.game_id in self._records:
                raise ValueError(f"Game {game.game_id} already exists")
            self._records[game.game_id] = _Record(game=copy.deepcopy(game))
        LOGGER.info("Created game %s", game.game_id)
        return copy.deepcopy(game)

    def _record(self, game_id: str) -> _Record:
        record = self._records.get(game_id)
        if record is None:
            raise GameError(GameErrorCode.GAME_NOT_FOUND, game_id=game_id)
        return record

    def get(self, game_id: str) -> Game:
        with self._lock:
            return copy.deepcopy(self._record(game_id).game)

    def version(self, game_id: str) -> int:
        with self._lock:
            return self._record(game_id).version

    def hole_cards(self, game_id: str, player_id: str) -> Optional[List[str]]:
        with self._lock:
            cards = self._record(game_id).hole_cards.get(player_id)
            return list(cards) if cards else None

    def begin(self, game_id: str) -> Transaction:
        with self._lock:
            return Transaction(game_id, self._record(game_id))

    def commit(self, txn: Transaction) -> int:
        with self._lock:
            record = self._record(txn.game_id)
            if record.version != txn.version:
                raise CommitConflict(txn.game_id, txn.version, record.version)
            if not txn.dirty:
                return record.version
            if txn._game is not None:
                record.game = copy.deepcopy(txn._game)
            if txn._hole_dirty:
                record.hole_cards = txn.hole_cards()
            record.version += 1
            return record.version

    def transact(self, game_id: str, fn: Callable[[Transaction], T]) -> T:
        """Run ``fn`` against a fresh read and commit its writes, re-running it on version conflicts.

        An exception raised by ``fn`` discards the attempt; nothing is written.
        """
        for attempt in range(1, self.max_retries + 1):
            txn = self.begin(game_id)
            result = fn(txn)
            try:
                self.commit(txn)
            except CommitConflict as exc:
                LOGGER.warning("Commit conflict on %s (attempt %s/%s): %s", game_id, attempt, self.max_retries, exc)
                continue
            return result
        raise CommitConflict(game_id, -1, self.version(game_id))
