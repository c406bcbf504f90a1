"""
Client-side game session controller.

Drives the join / fire / await-opponent protocol against a ``GameServer`` and
publishes an immutable ``GameSession`` snapshot after every transition. Only
one background job (the join exchange or the opponent polling loop) runs at a
time; launching a new one cancels the previous one.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from dataclasses import replace
from functools import partial
from types import TracebackType
from typing import TypeVar

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.sinkdestroy.core.config import ControllerSettings
from src.sinkdestroy.core.result import ErrorKind, ServiceResult
from src.sinkdestroy.game.fleet import (
    Ship,
    validate_fleet,
    validate_identifiers,
    validate_target_cell,
)
from src.sinkdestroy.game.session import GameSession, Phase
from src.sinkdestroy.net.client import GameServer
from src.sinkdestroy.net.schemas import EnemyFireResponse, FireResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GameController:
    """Owns one game session; use as ``async with GameController(server):``."""

    def __init__(
        self,
        server: GameServer,
        settings: ControllerSettings | None = None,
    ) -> None:
        self._server = server
        self.settings = settings or ControllerSettings()
        self._session = GameSession()
        self._retry_count = 0
        self._generation = 0
        self.last_error: str | None = None

        self._stack: AsyncExitStack | None = None
        self._task_group: TaskGroup | None = None
        self._active: anyio.CancelScope | None = None
        self._changed: anyio.Event | None = None
        self._subscribers: list[MemoryObjectSendStream[GameSession]] = []
        self._notice_subscribers: list[MemoryObjectSendStream[str]] = []

    async def __aenter__(self) -> GameController:
        self._changed = anyio.Event()
        self._stack = AsyncExitStack()
        self._task_group = await self._stack.enter_async_context(
            anyio.create_task_group()
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        self._cancel_active()
        self._task_group.cancel_scope.cancel()
        try:
            return await self._stack.__aexit__(exc_type, exc, tb)
        finally:
            self._task_group = None
            self._stack = None
            for stream in [*self._subscribers, *self._notice_subscribers]:
                stream.close()
            self._subscribers.clear()
            self._notice_subscribers.clear()

    # -- observation ------------------------------------------------------

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def retry_count(self) -> int:
        return self._retry_count

    def subscribe(self) -> MemoryObjectReceiveStream[GameSession]:
        """Stream of session snapshots, starting with the current one."""
        send, receive = anyio.create_memory_object_stream(math.inf)
        send.send_nowait(self._session)
        self._subscribers.append(send)
        return receive

    def notifications(self) -> MemoryObjectReceiveStream[str]:
        """Stream of transient error messages meant for display."""
        send, receive = anyio.create_memory_object_stream(math.inf)
        self._notice_subscribers.append(send)
        return receive

    async def wait_for(
        self,
        predicate: Callable[[GameSession], bool],
        timeout: float | None = None,
    ) -> GameSession:
        """Block until a published snapshot satisfies ``predicate``."""
        with anyio.fail_after(timeout):
            while not predicate(self._session):
                await self._changed.wait()
        return self._session

    # -- operations -------------------------------------------------------

    async def ping(self) -> ServiceResult[bool]:
        return await self._server.ping()

    def join_game(
        self, player: str, game_key: str, ships: list[Ship]
    ) -> ServiceResult[GameSession]:
        """Validate locally, then start the join exchange in the background."""
        ids = validate_identifiers(player, game_key)
        if not ids.success:
            return self._reject(ids.error)

        fleet = validate_fleet(ships)
        if not fleet.success:
            return self._reject(fleet.error)

        self._require_context()
        self._retry_count = 0
        self._generation += 1
        self._publish(GameSession.joining(player, game_key, ships))
        self._launch(self._join_flow, "join")
        return ServiceResult.ok(self._session)

    async def fire(self, x: int, y: int) -> ServiceResult[FireResponse]:
        session = self._session
        if session.phase is Phase.FINISHED:
            return self._reject("Game is over")
        if session.phase is not Phase.PLAYING or not session.is_my_turn:
            return self._reject("Not your turn")

        target = validate_target_cell(x, y)
        if not target.success:
            return self._reject(target.error)
        if (x, y) in session.fired_cells:
            return self._reject("Already fired here")

        generation = self._generation
        self._publish(session.with_status(f"Firing at ({x}, {y})..."))
        result = await self._server.fire(session.player, session.game_key, x, y)

        if generation != self._generation:
            logger.info("Dropping fire result for a replaced session")
            return ServiceResult.fail("Session was replaced")

        if not result.success:
            self._handle_fire_failure(result)
            return result

        self._retry_count = 0
        response = result.data
        updated = self._session.record_fire(
            (x, y), hit=response.hit, ships_sunk=response.ships_sunk
        )
        self._publish(updated)
        if updated.phase is Phase.PLAYING:
            self._launch(self._poll_loop, "poll")
        return result

    def reset(self) -> GameSession:
        """Drop the current game and return to setup."""
        self._cancel_active()
        self._generation += 1
        self._retry_count = 0
        self._publish(GameSession())
        return self._session

    # -- background jobs --------------------------------------------------

    async def _join_flow(self) -> None:
        session = self._session
        joined = await self._exchange(
            partial(self._join, session.player, session.game_key, list(session.ships)),
            joining=True,
        )
        if joined is None:
            return

        response = joined.data
        if not response.gameover and not response.has_shot:
            self._publish(self._session.with_status("Waiting for game to start..."))
            first = await self._exchange(
                partial(self._await_opponent, session.player, session.game_key),
                joining=True,
                long_poll=True,
            )
            if first is None:
                return
            response = first.data

        if response.gameover:
            self._publish(self._session.finished("Game ended unexpectedly"))
        elif response.has_shot:
            self._publish(
                replace(
                    self._session,
                    phase=Phase.PLAYING,
                    status="Opponent starts. Processing their move...",
                )
            )
            self._apply_enemy_shot(response)
        else:
            self._publish(
                replace(
                    self._session,
                    phase=Phase.PLAYING,
                    is_my_turn=True,
                    status="You go first!",
                )
            )

    async def _poll_loop(self) -> None:
        while self._session.phase is Phase.PLAYING and not self._session.is_my_turn:
            session = self._session
            result = await self._exchange(
                partial(self._await_opponent, session.player, session.game_key),
                long_poll=True,
            )
            if result is None:
                return

            response = result.data
            if response.gameover:
                self._publish(self._session.finished("Game Over!"))
            elif response.has_shot:
                self._apply_enemy_shot(response)
            else:
                await anyio.sleep(self.settings.polling_delay)

    async def _await_opponent(
        self, player: str, game_key: str
    ) -> ServiceResult[EnemyFireResponse]:
        try:
            with anyio.fail_after(self.settings.long_poll_timeout):
                result = await self._server.enemy_fire(player, game_key)
        except TimeoutError:
            return ServiceResult.fail("No move from opponent yet", ErrorKind.TIMEOUT)
        return _checked_shot(result)

    async def _join(
        self, player: str, game_key: str, ships: list[Ship]
    ) -> ServiceResult[EnemyFireResponse]:
        return _checked_shot(await self._server.join_game(player, game_key, ships))

    async def _exchange(
        self,
        call: Callable[[], Awaitable[ServiceResult[T]]],
        *,
        joining: bool = False,
        long_poll: bool = False,
    ) -> ServiceResult[T] | None:
        """Issue ``call`` until it succeeds; None once the session has ended."""
        while True:
            result = await call()
            if result.success:
                self._retry_count = 0
                return result
            if long_poll and result.kind is ErrorKind.TIMEOUT:
                logger.debug("Long poll timed out, polling again")
                continue
            if not self._register_failure(result, joining=joining):
                return None
            await anyio.sleep(self.settings.polling_delay * self._retry_count)

    # -- failure policy ---------------------------------------------------

    def _register_failure(self, result: ServiceResult, *, joining: bool = False) -> bool:
        """Apply the failure policy; return True if the request should be retried."""
        kind = result.kind or ErrorKind.SERVER
        self._notify(result.error)

        if kind.ends_session:
            logger.error("Session ended by server: %s", result.error)
            self._publish(self._session.finished(result.error))
            return False

        if joining and kind.rejects_join:
            logger.warning("Join rejected: %s", result.error)
            self._publish(
                replace(
                    self._session,
                    phase=Phase.SETUP,
                    status="Failed to join game. Please try again.",
                )
            )
            return False

        limit = self.settings.max_retries
        if self._retry_count >= limit:
            logger.error("Giving up after %d failed attempts: %s", limit, result.error)
            self._publish(
                self._session.finished(f"Connection lost after {limit} retries")
            )
            return False

        self._retry_count += 1
        logger.warning(
            "Network failure (%s), retry %d/%d", result.error, self._retry_count, limit
        )
        self._publish(
            self._session.with_status(
                f"Connection issue, retrying... (Attempt {self._retry_count}/{limit})"
            )
        )
        return True

    def _handle_fire_failure(self, result: ServiceResult) -> None:
        if result.kind is ErrorKind.NOT_YOUR_TURN:
            self._notify(result.error)
            self._publish(
                replace(
                    self._session,
                    is_my_turn=False,
                    status="Not your turn. Waiting for opponent...",
                )
            )
            self._launch(self._poll_loop, "poll")
            return

        if self._register_failure(result):
            self._publish(self._session.with_status(f"Fire failed: {result.error}"))

    # -- plumbing ---------------------------------------------------------

    def _apply_enemy_shot(self, response: EnemyFireResponse) -> None:
        updated, outcome = self._session.receive_shot((response.x, response.y))
        logger.info(
            "Enemy shot at %s: hit=%s sunk=%s",
            outcome.cell,
            outcome.hit_ship is not None,
            outcome.sunk,
        )
        self._publish(updated)

    def _reject(self, message: str) -> ServiceResult:
        logger.debug("Rejected locally: %s", message)
        self._notify(message)
        self._publish(self._session.with_status(message))
        return ServiceResult.fail(message, ErrorKind.LOCAL)

    def _launch(self, job: Callable[[], Awaitable[None]], name: str) -> None:
        self._require_context()
        self._cancel_active()
        scope = anyio.CancelScope()
        self._active = scope

        async def run() -> None:
            with scope:
                await job()

        self._task_group.start_soon(run, name=name)

    def _require_context(self) -> None:
        if self._task_group is None:
            raise RuntimeError("GameController must be used inside 'async with'")

    def _cancel_active(self) -> None:
        if self._active is not None:
            self._active.cancel()
            self._active = None

    def _publish(self, session: GameSession) -> None:
        if session.phase is not self._session.phase:
            logger.info("Phase %s -> %s", self._session.phase.name, session.phase.name)
        self._session = session
        if self._changed is not None:
            self._changed.set()
            self._changed = anyio.Event()
        for stream in list(self._subscribers):
            try:
                stream.send_nowait(session)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                self._subscribers.remove(stream)

    def _notify(self, message: str) -> None:
        self.last_error = message
        for stream in list(self._notice_subscribers):
            try:
                stream.send_nowait(message)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                self._notice_subscribers.remove(stream)


def _checked_shot(
    result: ServiceResult[EnemyFireResponse],
) -> ServiceResult[EnemyFireResponse]:
    """Treat an opponent move outside the grid as an unusable response."""
    if result.success and result.data.has_shot:
        cell = validate_target_cell(result.data.x, result.data.y)
        if not cell.success:
            return ServiceResult.fail(
                f"Invalid opponent move: {cell.error}", ErrorKind.EMPTY_RESPONSE
            )
    return result
