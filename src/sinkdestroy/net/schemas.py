"""Pydantic schemas for the game server's JSON wire contract."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.sinkdestroy.game.fleet import HORIZONTAL, Ship

# Request payloads


class ShipPayload(BaseModel):
    """One placement as the server expects it."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(alias="ship")
    x: int
    y: int
    orientation: str = HORIZONTAL

    @classmethod
    def from_ship(cls, ship: Ship) -> ShipPayload:
        return cls(type=ship.type, x=ship.x, y=ship.y, orientation=ship.orientation)

    def to_ship(self) -> Ship:
        return Ship(self.type, self.x, self.y, self.orientation)


class JoinGameRequest(BaseModel):
    player: str
    gamekey: str
    ships: list[ShipPayload]


class FireRequest(BaseModel):
    player: str
    gamekey: str
    x: int
    y: int


class EnemyFireRequest(BaseModel):
    player: str
    gamekey: str


# Response models


class EnemyFireResponse(BaseModel):
    """Opponent move; also returned by join. Absent x/y means no move yet."""

    x: int | None = None
    y: int | None = None
    gameover: bool = False

    @property
    def has_shot(self) -> bool:
        return self.x is not None and self.y is not None


class FireResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hit: bool
    ships_sunk: list[str] = Field(default_factory=list, alias="shipsSunk")


class PingResponse(BaseModel):
    ping: bool | None = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str | None = Field(default=None, alias="Error")
