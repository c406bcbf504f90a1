from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Closed set of failure categories the controller branches on."""

    LOCAL = "local"
    GAME_NOT_FOUND = "game_not_found"
    INVALID_GAME = "invalid_game"
    GAME_EXISTS = "game_exists"
    NOT_YOUR_TURN = "not_your_turn"
    INVALID_COORDINATES = "invalid_coordinates"
    ID_TOO_SHORT = "id_too_short"
    INVALID_SHIPS = "invalid_ships"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    EMPTY_RESPONSE = "empty_response"
    SERVER = "server"

    @property
    def ends_session(self) -> bool:
        return self in (ErrorKind.GAME_NOT_FOUND, ErrorKind.INVALID_GAME)

    @property
    def rejects_join(self) -> bool:
        return self in (
            ErrorKind.GAME_EXISTS,
            ErrorKind.ID_TOO_SHORT,
            ErrorKind.INVALID_SHIPS,
        )


@dataclass
class ServiceResult(Generic[T]):
    success: bool
    data: T | None = None
    error: str = ""
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: T = None) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls, message: str, kind: ErrorKind = ErrorKind.LOCAL
    ) -> ServiceResult[T]:
        return cls(success=False, error=message, kind=kind)
