"""Shared fixtures: a scripted in-memory game server and a standard fleet."""

from __future__ import annotations

from collections import deque
from collections.abc import AsyncGenerator
from typing import Any

import anyio
import pytest

from src.sinkdestroy.core.config import ControllerSettings
from src.sinkdestroy.core.result import ServiceResult
from src.sinkdestroy.game.controller import GameController
from src.sinkdestroy.game.fleet import HORIZONTAL, Ship
from src.sinkdestroy.net.schemas import EnemyFireResponse, FireResponse

PLAYER = "alice"
GAME_KEY = "game42"

FAST_SETTINGS = ControllerSettings(long_poll_timeout=5.0, polling_delay=0.0)


def standard_fleet() -> list[Ship]:
    """All five ships stacked horizontally in rows 0-4 from the left edge."""
    return [
        Ship("Carrier", 0, 0, HORIZONTAL),
        Ship("Battleship", 0, 1, HORIZONTAL),
        Ship("Destroyer", 0, 2, HORIZONTAL),
        Ship("Submarine", 0, 3, HORIZONTAL),
        Ship("PatrolBoat", 0, 4, HORIZONTAL),
    ]


def opponent_move(x: int | None = None, y: int | None = None, *, gameover: bool = False) -> ServiceResult:
    return ServiceResult.ok(EnemyFireResponse(x=x, y=y, gameover=gameover))


def fire_result(*, hit: bool, sunk: list[str] | None = None) -> ServiceResult:
    return ServiceResult.ok(FireResponse(hit=hit, ships_sunk=sunk or []))


class FakeServer:
    """GameServer double fed with scripted results.

    ``enemy_fire`` behaves like a long poll that never answers once its script
    runs dry, so the controller's own timeout decides what happens next.
    """

    def __init__(self) -> None:
        self.join_results: deque[ServiceResult] = deque()
        self.fire_results: deque[ServiceResult] = deque()
        self.poll_results: deque[ServiceResult] = deque()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def ping(self) -> ServiceResult[bool]:
        self.calls.append(("ping", ()))
        return ServiceResult.ok(True)

    async def join_game(self, player: str, game_key: str, ships: list[Ship]) -> ServiceResult:
        self.calls.append(("join_game", (player, game_key, tuple(ships))))
        await anyio.sleep(0)
        if self.join_results:
            return self.join_results.popleft()
        return opponent_move()

    async def fire(self, player: str, game_key: str, x: int, y: int) -> ServiceResult:
        self.calls.append(("fire", (player, game_key, x, y)))
        await anyio.sleep(0)
        if self.fire_results:
            return self.fire_results.popleft()
        return fire_result(hit=False)

    async def enemy_fire(self, player: str, game_key: str) -> ServiceResult:
        self.calls.append(("enemy_fire", (player, game_key)))
        await anyio.sleep(0)
        if self.poll_results:
            return self.poll_results.popleft()
        await anyio.sleep_forever()
        raise AssertionError("unreachable")


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture()
async def controller(server: FakeServer) -> AsyncGenerator[GameController, None]:
    async with GameController(server, FAST_SETTINGS) as ctl:
        yield ctl
