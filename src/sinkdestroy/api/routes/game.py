"""JSON routes that translate UI events into controller operations."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from src.sinkdestroy.core.result import ErrorKind, ServiceResult
from src.sinkdestroy.game.controller import GameController
from src.sinkdestroy.game.fleet import (
    FLEET_ORDER,
    Coord,
    is_valid_addition,
    next_ship_to_place,
    placement_preview,
    ship_description,
    validate_placement,
)
from src.sinkdestroy.game.session import GameSession
from src.sinkdestroy.net.schemas import ShipPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/game", tags=["game"])


def get_controller(request: Request) -> GameController:
    return request.app.state.controller


ControllerDep = Annotated[GameController, Depends(get_controller)]

# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class JoinBody(BaseModel):
    player: str
    game_key: str
    ships: list[ShipPayload]


class FireBody(BaseModel):
    x: int
    y: int


class PreviewBody(BaseModel):
    ship: ShipPayload
    placed: list[ShipPayload] = Field(default_factory=list)


class ShipInfo(BaseModel):
    name: str
    size: int
    description: str


class PreviewView(BaseModel):
    cells: list[Coord]
    valid: bool
    reason: str | None = None
    next_ship: str | None = None


class SessionView(BaseModel):
    """Serializable snapshot of the controller's current session."""

    phase: str
    player: str | None
    game_key: str | None
    ships: list[ShipPayload]
    enemy_shots: list[Coord]
    player_hits: list[Coord]
    player_misses: list[Coord]
    sunk_enemy_ships: list[str]
    is_my_turn: bool
    is_game_over: bool
    status: str
    stats: dict[str, int | float | bool]
    own_board: list[list[dict[str, bool]]]
    target_board: list[list[dict[str, bool]]]

    @classmethod
    def from_session(cls, session: GameSession) -> SessionView:
        return cls(
            phase=session.phase.value,
            player=session.player,
            game_key=session.game_key,
            ships=[ShipPayload.from_ship(ship) for ship in session.ships],
            enemy_shots=sorted(session.enemy_shots),
            player_hits=sorted(session.player_hits),
            player_misses=sorted(session.player_misses),
            sunk_enemy_ships=list(session.sunk_enemy_ships),
            is_my_turn=session.is_my_turn,
            is_game_over=session.is_game_over,
            status=session.status,
            stats=session.get_stats(),
            own_board=session.own_board,
            target_board=session.target_board,
        )


def _raise_for(result: ServiceResult) -> None:
    if result.success:
        return
    status = (
        HTTPStatus.BAD_REQUEST
        if result.kind is ErrorKind.LOCAL
        else HTTPStatus.BAD_GATEWAY
    )
    raise HTTPException(status_code=status, detail=result.error)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/ships", response_model=list[ShipInfo])
async def list_ships() -> list[ShipInfo]:
    return [
        ShipInfo(
            name=ship_type.name,
            size=ship_type.size,
            description=ship_description(ship_type),
        )
        for ship_type in FLEET_ORDER
    ]


@router.post("/preview", response_model=PreviewView)
async def preview_placement(body: PreviewBody) -> PreviewView:
    """Cells a candidate ship would cover and whether it fits the fleet so far."""
    candidate = body.ship.to_ship()
    placed = [payload.to_ship() for payload in body.placed]
    checked = validate_placement(candidate)
    ship_type = candidate.ship_type
    cells = (
        placement_preview(candidate.x, candidate.y, ship_type, candidate.orientation)
        if ship_type is not None
        else []
    )
    valid = is_valid_addition(candidate, placed)
    reason = None
    if not checked.success:
        reason = checked.error
    elif not valid:
        reason = "Ships cannot overlap"
    upcoming = next_ship_to_place(placed + [candidate] if valid else placed)
    return PreviewView(
        cells=cells,
        valid=valid,
        reason=reason,
        next_ship=upcoming.name if upcoming else None,
    )


@router.get("/state", response_model=SessionView)
async def get_state(controller: ControllerDep) -> SessionView:
    return SessionView.from_session(controller.session)


@router.post("/join", response_model=SessionView)
async def join_game(body: JoinBody, controller: ControllerDep) -> SessionView:
    result = controller.join_game(
        body.player, body.game_key, [payload.to_ship() for payload in body.ships]
    )
    _raise_for(result)
    logger.info("Join requested: player=%s game=%s", body.player, body.game_key)
    return SessionView.from_session(controller.session)


@router.post("/fire", response_model=SessionView)
async def fire(body: FireBody, controller: ControllerDep) -> SessionView:
    result = await controller.fire(body.x, body.y)
    _raise_for(result)
    return SessionView.from_session(controller.session)


@router.post("/reset", response_model=SessionView)
async def reset_game(controller: ControllerDep) -> SessionView:
    return SessionView.from_session(controller.reset())
