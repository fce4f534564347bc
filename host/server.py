from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import websockets
from websockets.server import WebSocketServerProtocol

from holdem.errors import GameError
from holdem.models import GameMeta

from .scheduler import TurnScheduler
from .service import Outcome, TableService
from .views import public_state

LOGGER = logging.getLogger("holdem_host")

# HostServer exposes one table to WebSocket clients.
# Rules and state live in the service; this class only routes messages.


@dataclass
class ClientSession:
    player_id: str
    name: str
    websocket: WebSocketServerProtocol


class HostServer:
    def __init__(
        self,
        meta: Optional[GameMeta] = None,
        service: Optional[TableService] = None,
        game_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.service = service or TableService(clock=clock)
        self.game_id = self.service.create_game(meta, game_id).game_id
        self.sessions: Dict[str, ClientSession] = {}
        self.lock = asyncio.Lock()
        self.scheduler = TurnScheduler(self.service, on_update=self._publish, clock=clock)

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Table %s listening on %s:%s", self.game_id, host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: WebSocketServerProtocol) -> None:
        # First message must be "hello" so we know who we are talking to.
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return
        player_raw = hello.get("player_id")
        if not isinstance(player_raw, str) or not player_raw.strip():
            await self._send_error(websocket, code="BAD_SCHEMA", msg="player_id required")
            await websocket.close()
            return
        player_id = player_raw.strip()
        name_raw = hello.get("name")
        name = name_raw.strip() if isinstance(name_raw, str) and name_raw.strip() else player_id

        previous = self.sessions.get(player_id)
        if previous:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")
        session = ClientSession(player_id=player_id, name=name, websocket=websocket)
        self.sessions[player_id] = session
        LOGGER.info("%s connected to %s", player_id, self.game_id)

        await self._send_json(websocket, "welcome", self._welcome_payload(player_id))
        await self._send_view(session)

        try:
            async for raw in websocket:
                await self._handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            if self.sessions.get(player_id) is session:
                self.sessions.pop(player_id, None)
        LOGGER.info("%s disconnected from %s", player_id, self.game_id)

    async def _handle_message(self, session: ClientSession, message: Dict[str, object]) -> None:
        msg_type = message.get("type")
        try:
            async with self.lock:
                outcome = self._dispatch(session, msg_type, message)
        except GameError as exc:
            LOGGER.warning("Rejected %s from %s: %s %s", msg_type, session.player_id, exc.code.value, exc.msg)
            await self._send_json(session.websocket, "error", exc.to_payload())
            return
        except _BadMessage as exc:
            await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
            return

        if outcome.stale:
            return
        self.scheduler.arm(outcome.timers)
        await self._publish(outcome)

    def _dispatch(self, session: ClientSession, msg_type: object, message: Dict[str, object]) -> Outcome:
        player_id = session.player_id
        if msg_type == "sit":
            seat = message.get("seat")
            buy_in = message.get("buy_in")
            if not isinstance(seat, int) or not isinstance(buy_in, int):
                raise _BadMessage("BAD_SCHEMA", "seat and buy_in must be integers")
            return self.service.sit_down(self.game_id, player_id, session.name, seat, buy_in)
        if msg_type == "leave":
            return self.service.leave_seat(self.game_id, player_id)
        if msg_type == "start":
            return self.service.start_hand(self.game_id)
        if msg_type == "action":
            action = message.get("action")
            amount = message.get("amount") or 0
            turn_id = message.get("turn_id")
            if not isinstance(action, str) or not isinstance(amount, int):
                raise _BadMessage("BAD_SCHEMA", "action must be a string and amount an integer")
            if turn_id is not None and not isinstance(turn_id, str):
                raise _BadMessage("BAD_SCHEMA", "turn_id must be a string")
            return self.service.handle_player_action(self.game_id, player_id, action, amount, turn_id)
        if msg_type == "pause":
            return self.service.toggle_pause(self.game_id)
        if msg_type == "run_it_twice":
            return self.service.request_run_it_twice(self.game_id, player_id)
        if msg_type == "show_cards":
            return self.service.show_cards(self.game_id, player_id)
        if msg_type == "stop_next_hand":
            return self.service.stop_next_hand(self.game_id)
        raise _BadMessage("UNKNOWN_TYPE", "Unsupported message type")

    async def _publish(self, outcome: Outcome) -> None:
        for player_id, cards in outcome.hole_cards.items():
            session = self.sessions.get(player_id)
            if session:
                await self._send_json(session.websocket, "hole", {"cards": list(cards)})
        for session in list(self.sessions.values()):
            await self._send_json(
                session.websocket, "state", public_state(outcome.game, session.player_id)
            )

    async def _send_view(self, session: ClientSession) -> None:
        game = self.service.get_game(self.game_id)
        cards = self.service.hole_cards(self.game_id, session.player_id)
        if cards:
            await self._send_json(session.websocket, "hole", {"cards": cards})
        await self._send_json(session.websocket, "state", public_state(game, session.player_id))

    def _welcome_payload(self, player_id: str) -> Dict[str, object]:
        meta = self.service.get_game(self.game_id).meta
        return {
            "game_id": self.game_id,
            "player_id": player_id,
            "config": {
                "max_players": meta.max_players,
                "sb": meta.blinds.small,
                "bb": meta.blinds.big,
                "min_buy_in": meta.min_buy_in,
                "max_buy_in": meta.max_buy_in,
                "turn_timeout": meta.turn_timeout,
                "showdown_delay": meta.showdown_delay,
            },
        }

    async def _send_json(self, websocket: WebSocketServerProtocol, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: WebSocketServerProtocol, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg, "details": {}})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: WebSocketServerProtocol) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}


class _BadMessage(Exception):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg
