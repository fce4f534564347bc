from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class GameErrorCode(str, Enum):
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    ALREADY_FOLDED = "ALREADY_FOLDED"
    INVALID_PLAYER_STATUS = "INVALID_PLAYER_STATUS"
    CANNOT_CHECK = "CANNOT_CHECK"
    NOTHING_TO_CALL = "NOTHING_TO_CALL"
    NOT_ENOUGH_CHIPS = "NOT_ENOUGH_CHIPS"
    INVALID_RAISE_AMOUNT = "INVALID_RAISE_AMOUNT"
    INSUFFICIENT_CHIPS = "INSUFFICIENT_CHIPS"
    NO_CHIPS_FOR_ALL_IN = "NO_CHIPS_FOR_ALL_IN"
    INVALID_ACTION = "INVALID_ACTION"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    GAME_ALREADY_IN_PROGRESS = "GAME_ALREADY_IN_PROGRESS"
    DECK_EXHAUSTED = "DECK_EXHAUSTED"
    STALE_ACTION = "STALE_ACTION"
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    GAME_NOT_ACTIVE = "GAME_NOT_ACTIVE"
    GAME_PAUSED = "GAME_PAUSED"
    SEAT_ALREADY_OCCUPIED = "SEAT_ALREADY_OCCUPIED"
    ALREADY_SEATED = "ALREADY_SEATED"
    INVALID_SEAT_NUMBER = "INVALID_SEAT_NUMBER"
    INVALID_BUY_IN = "INVALID_BUY_IN"
    INVALID_GAME_STATE = "INVALID_GAME_STATE"


ERROR_MESSAGES: Dict[GameErrorCode, str] = {
    GameErrorCode.NOT_YOUR_TURN: "It is not your turn",
    GameErrorCode.PLAYER_NOT_FOUND: "Player not found at this table",
    GameErrorCode.ALREADY_FOLDED: "You have already folded",
    GameErrorCode.INVALID_PLAYER_STATUS: "Player cannot act in the current status",
    GameErrorCode.CANNOT_CHECK: "Cannot check, must call or fold",
    GameErrorCode.NOTHING_TO_CALL: "Nothing to call",
    GameErrorCode.NOT_ENOUGH_CHIPS: "Not enough chips to call",
    GameErrorCode.INVALID_RAISE_AMOUNT: "Invalid raise amount",
    GameErrorCode.INSUFFICIENT_CHIPS: "Not enough chips to raise",
    GameErrorCode.NO_CHIPS_FOR_ALL_IN: "No chips to go all-in",
    GameErrorCode.INVALID_ACTION: "Invalid action",
    GameErrorCode.NOT_ENOUGH_PLAYERS: "At least 2 players with chips are needed",
    GameErrorCode.GAME_ALREADY_IN_PROGRESS: "Game already in progress",
    GameErrorCode.DECK_EXHAUSTED: "Not enough cards left in deck",
    GameErrorCode.STALE_ACTION: "Action arrived after the turn ended",
    GameErrorCode.GAME_NOT_FOUND: "Game not found",
    GameErrorCode.GAME_NOT_ACTIVE: "Game is not in a hand",
    GameErrorCode.GAME_PAUSED: "Game is paused",
    GameErrorCode.SEAT_ALREADY_OCCUPIED: "Seat already occupied",
    GameErrorCode.ALREADY_SEATED: "Already seated at this table",
    GameErrorCode.INVALID_SEAT_NUMBER: "Invalid seat number",
    GameErrorCode.INVALID_BUY_IN: "Invalid buy-in amount",
    GameErrorCode.INVALID_GAME_STATE: "Hand state is inconsistent",
}


class GameError(Exception):
    """Rule violation or structural failure, identified by a closed error code."""

    def __init__(self, code: GameErrorCode, msg: Optional[str] = None, **details: object) -> None:
        self.code = code
        self.msg = msg or ERROR_MESSAGES.get(code, code.value)
        self.details: Dict[str, object] = dict(details)
        super().__init__(self.msg)

    def to_payload(self) -> Dict[str, object]:
        return {"code": self.code.value, "msg": self.msg, "details": dict(self.details)}

    def __repr__(self) -> str:
        return f"GameError({self.code.value}, {self.msg!r}, {self.details!r})"
