"""Async HTTP client for the Sink & Destroy game server."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from src.sinkdestroy.core.config import HTTP_TIMEOUT, SERVER_URL
from src.sinkdestroy.core.result import ErrorKind, ServiceResult
from src.sinkdestroy.game.fleet import Ship
from src.sinkdestroy.net.schemas import (
    EnemyFireRequest,
    EnemyFireResponse,
    ErrorResponse,
    FireRequest,
    FireResponse,
    JoinGameRequest,
    PingResponse,
    ShipPayload,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Canonical messages, keyed by the substring the server is known to send.
ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.GAME_EXISTS: "Game already exists",
    ErrorKind.INVALID_GAME: "Invalid game",
    ErrorKind.GAME_NOT_FOUND: "Game not found",
    ErrorKind.NOT_YOUR_TURN: "Not your turn",
    ErrorKind.INVALID_COORDINATES: "Invalid coordinates",
    ErrorKind.ID_TOO_SHORT: "ID too short",
    ErrorKind.INVALID_SHIPS: "Invalid ship placement",
}

_ERROR_MARKERS: tuple[tuple[str, ErrorKind], ...] = (
    ("not found", ErrorKind.GAME_NOT_FOUND),
    ("invalid game", ErrorKind.INVALID_GAME),
    ("already exists", ErrorKind.GAME_EXISTS),
    ("not your turn", ErrorKind.NOT_YOUR_TURN),
    ("invalid coordinates", ErrorKind.INVALID_COORDINATES),
    ("too short", ErrorKind.ID_TOO_SHORT),
    ("invalid ship", ErrorKind.INVALID_SHIPS),
)


def classify_error(message: str) -> ErrorKind:
    """Map a server error text onto an ErrorKind; unknown text is SERVER."""
    lowered = message.lower()
    for marker, kind in _ERROR_MARKERS:
        if marker in lowered:
            return kind
    return ErrorKind.SERVER


def parse_error(body: str | None) -> str:
    """Extract the message from an ``{"Error": ...}`` body, else the raw text."""
    if not body:
        return "Server returned no error details"
    if "Error" not in body:
        return body
    try:
        payload = ErrorResponse.model_validate_json(body)
    except ValidationError:
        return body
    return payload.error or "Unknown server error"


def server_failure(body: str | None) -> ServiceResult:
    message = parse_error(body)
    kind = classify_error(message)
    return ServiceResult.fail(ERROR_MESSAGES.get(kind, message), kind)


class GameServer(Protocol):
    """The three game calls plus a health check."""

    async def ping(self) -> ServiceResult[bool]: ...

    async def join_game(
        self, player: str, game_key: str, ships: list[Ship]
    ) -> ServiceResult[EnemyFireResponse]: ...

    async def fire(
        self, player: str, game_key: str, x: int, y: int
    ) -> ServiceResult[FireResponse]: ...

    async def enemy_fire(
        self, player: str, game_key: str
    ) -> ServiceResult[EnemyFireResponse]: ...


class BattleshipClient:
    """httpx-backed GameServer; every call returns a ServiceResult."""

    def __init__(
        self,
        base_url: str = SERVER_URL,
        *,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> BattleshipClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def ping(self) -> ServiceResult[bool]:
        result = await self._request("GET", "ping", PingResponse)
        if not result.success:
            return ServiceResult.fail(result.error, result.kind)
        return ServiceResult.ok(result.data.ping is True)

    async def join_game(
        self, player: str, game_key: str, ships: list[Ship]
    ) -> ServiceResult[EnemyFireResponse]:
        request = JoinGameRequest(
            player=player,
            gamekey=game_key,
            ships=[ShipPayload.from_ship(ship) for ship in ships],
        )
        return await self._request("POST", "game/join", EnemyFireResponse, request)

    async def fire(
        self, player: str, game_key: str, x: int, y: int
    ) -> ServiceResult[FireResponse]:
        request = FireRequest(player=player, gamekey=game_key, x=x, y=y)
        return await self._request("POST", "game/fire", FireResponse, request)

    async def enemy_fire(
        self, player: str, game_key: str
    ) -> ServiceResult[EnemyFireResponse]:
        request = EnemyFireRequest(player=player, gamekey=game_key)
        return await self._request(
            "POST", "game/enemyFire", EnemyFireResponse, request
        )

    async def _request(
        self,
        method: str,
        path: str,
        model: type[M],
        payload: BaseModel | None = None,
    ) -> ServiceResult[M]:
        body = payload.model_dump(by_alias=True) if payload is not None else None
        logger.debug("%s /%s request: %s", method, path, body)
        try:
            response = await self._http.request(method, path, json=body)
        except httpx.TimeoutException as e:
            logger.warning("%s /%s timed out: %s", method, path, e)
            return ServiceResult.fail("Request timed out", ErrorKind.TIMEOUT)
        except httpx.HTTPError as e:
            logger.error("%s /%s transport error: %s", method, path, e)
            return ServiceResult.fail(str(e) or "Network error", ErrorKind.TRANSPORT)

        logger.debug("%s /%s response %d: %s", method, path, response.status_code, response.text)

        if not response.is_success:
            result = server_failure(response.text)
            logger.error("%s /%s error: %s", method, path, result.error)
            return result

        if not response.content.strip():
            logger.error("%s /%s empty response", method, path)
            return ServiceResult.fail(
                "Server returned empty response", ErrorKind.EMPTY_RESPONSE
            )

        try:
            data = model.model_validate_json(response.content)
        except ValidationError as e:
            logger.error("%s /%s malformed response: %s", method, path, e)
            return ServiceResult.fail(
                "Failed to parse server response", ErrorKind.EMPTY_RESPONSE
            )
        return ServiceResult.ok(data)
