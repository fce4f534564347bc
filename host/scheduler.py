from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from holdem.errors import GameError

from .service import NEXT_HAND, TURN_TIMEOUT, Outcome, TableService, TimerRequest
from .store import CommitConflict

LOGGER = logging.getLogger("holdem_scheduler")

UpdateCallback = Callable[[Outcome], Awaitable[None]]


class TurnScheduler:
    """Fires turn timeouts and delayed hand starts back through the service.

    Holds no game state: every callback carries the token it was armed with and
    the service decides whether it is still current.
    """

    def __init__(
        self,
        service: TableService,
        on_update: Optional[UpdateCallback] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.service = service
        self.on_update = on_update
        self.clock = clock
        self._tasks: Dict[Tuple[str, str], asyncio.Task] = {}

    def arm(self, requests: Iterable[TimerRequest]) -> None:
        for request in requests:
            key = (request.game_id, request.kind)
            previous = self._tasks.pop(key, None)
            if previous is not None and not previous.done():
                previous.cancel()
            delay = max(0.0, request.deadline - self.clock())
            self._tasks[key] = asyncio.create_task(self._fire(request, delay))

    def pending(self) -> Dict[Tuple[str, str], asyncio.Task]:
        return dict(self._tasks)

    def cancel_all(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    async def _fire(self, request: TimerRequest, delay: float) -> None:
        await asyncio.sleep(delay)
        key = (request.game_id, request.kind)
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]

        try:
            if request.kind == TURN_TIMEOUT:
                outcome = self.service.handle_turn_timeout(request.game_id, request.token)
            elif request.kind == NEXT_HAND:
                outcome = self.service.handle_start_next_hand(request.game_id, request.token)
            else:
                LOGGER.warning("Unknown timer kind %s", request.kind)
                return
        except (GameError, CommitConflict) as exc:
            LOGGER.warning("Timer %s for %s failed: %r", request.kind, request.game_id, exc)
            return

        if outcome.stale:
            LOGGER.debug("Timer %s for %s was stale", request.kind, request.game_id)
            return
        self.arm(outcome.timers)
        if self.on_update is not None:
            await self.on_update(outcome)
