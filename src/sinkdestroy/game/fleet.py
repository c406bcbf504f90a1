"""
Fleet rules: ship types, placement geometry and the local validators.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.sinkdestroy.core.result import ServiceResult

BOARD_SIZE = 10
MIN_ID_LENGTH = 3

HORIZONTAL = "horizontal"
VERTICAL = "vertical"
ORIENTATIONS = (HORIZONTAL, VERTICAL)

Coord = tuple[int, int]


class ShipType(Enum):
    """The five ships of a standard fleet; the value is the wire name."""

    Carrier = "Carrier"
    Battleship = "Battleship"
    Destroyer = "Destroyer"
    Submarine = "Submarine"
    PatrolBoat = "PatrolBoat"

    @property
    def size(self) -> int:
        return SHIP_SIZES[self]

    @classmethod
    def parse(cls, name: str) -> ShipType | None:
        return cls.__members__.get(name)


SHIP_SIZES: dict[ShipType, int] = {
    ShipType.Carrier: 5,
    ShipType.Battleship: 4,
    ShipType.Destroyer: 3,
    ShipType.Submarine: 3,
    ShipType.PatrolBoat: 2,
}


FLEET_ORDER: tuple[ShipType, ...] = tuple(ShipType)

SHIP_DESCRIPTIONS: dict[ShipType, str] = {
    ShipType.Carrier: "Aircraft Carrier (5 spaces): The largest ship in your fleet",
    ShipType.Battleship: "Battleship (4 spaces): A powerful warship",
    ShipType.Destroyer: "Destroyer (3 spaces): Fast and maneuverable",
    ShipType.Submarine: "Submarine (3 spaces): Stealthy underwater vessel",
    ShipType.PatrolBoat: "Patrol Boat (2 spaces): Small but essential",
}


@dataclass(frozen=True)
class Ship:
    """A single placement: type name, origin cell and orientation."""

    type: str
    x: int
    y: int
    orientation: str = HORIZONTAL

    @property
    def ship_type(self) -> ShipType | None:
        return ShipType.parse(self.type)


def occupied_cells(ship: Ship) -> list[Coord]:
    """Return the contiguous run of cells covered by ``ship``."""
    ship_type = ship.ship_type
    if ship_type is None:
        return []
    if ship.orientation == HORIZONTAL:
        return [(x, ship.y) for x in range(ship.x, ship.x + ship_type.size)]
    return [(ship.x, y) for y in range(ship.y, ship.y + ship_type.size)]


def placement_preview(
    x: int, y: int, ship_type: ShipType, orientation: str
) -> list[Coord]:
    return occupied_cells(Ship(ship_type.name, x, y, orientation))


def ships_overlap(first: Ship, second: Ship) -> bool:
    return not set(occupied_cells(first)).isdisjoint(occupied_cells(second))


def validate_placement(ship: Ship) -> ServiceResult[Ship]:
    """Check type, orientation and board bounds of a single ship."""
    ship_type = ship.ship_type
    if ship_type is None:
        return ServiceResult.fail(f"Invalid ship type: {ship.type}")

    if ship.orientation not in ORIENTATIONS:
        return ServiceResult.fail(
            f"Invalid orientation for {ship.type}: {ship.orientation}"
        )

    if ship.x < 0 or ship.y < 0:
        return ServiceResult.fail(f"{ship.type} position cannot be negative")

    end_x = ship.x + ship_type.size - 1 if ship.orientation == HORIZONTAL else ship.x
    end_y = ship.y + ship_type.size - 1 if ship.orientation == VERTICAL else ship.y
    if end_x >= BOARD_SIZE or end_y >= BOARD_SIZE:
        return ServiceResult.fail(f"{ship.type} placement exceeds board boundaries")

    return ServiceResult.ok(ship)


def validate_fleet(ships: list[Ship]) -> ServiceResult[list[Ship]]:
    """Check a complete fleet: one ship of each type, in bounds, no overlap."""
    names = [ship.type for ship in ships]
    required = {ship_type.name for ship_type in FLEET_ORDER}

    if len(names) != len(set(names)):
        return ServiceResult.fail("Duplicate ship types are not allowed")

    if set(names) != required:
        return ServiceResult.fail(
            "Must place all ship types: "
            + ", ".join(ship_type.name for ship_type in FLEET_ORDER)
        )

    for ship in ships:
        result = validate_placement(ship)
        if not result.success:
            return ServiceResult.fail(result.error)

    for i, first in enumerate(ships):
        for second in ships[i + 1 :]:
            if ships_overlap(first, second):
                return ServiceResult.fail(
                    f"Ships cannot overlap: {first.type} and {second.type}"
                )

    return ServiceResult.ok(list(ships))


def is_valid_addition(candidate: Ship, existing: list[Ship]) -> bool:
    """Return True if ``candidate`` fits on the board next to ``existing``."""
    if not validate_placement(candidate).success:
        return False
    return not any(ships_overlap(ship, candidate) for ship in existing)


def validate_identifiers(player: str, game_key: str) -> ServiceResult[tuple[str, str]]:
    if len(player) < MIN_ID_LENGTH:
        return ServiceResult.fail(
            f"Player ID must be at least {MIN_ID_LENGTH} characters long"
        )
    if len(game_key) < MIN_ID_LENGTH:
        return ServiceResult.fail(
            f"Game key must be at least {MIN_ID_LENGTH} characters long"
        )
    return ServiceResult.ok((player, game_key))


def validate_target_cell(x: int, y: int) -> ServiceResult[Coord]:
    if not (0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE):
        return ServiceResult.fail(
            f"Coordinates ({x}, {y}) are outside the game grid (0-{BOARD_SIZE - 1})"
        )
    return ServiceResult.ok((x, y))


def next_ship_to_place(placed: list[Ship]) -> ShipType | None:
    """Return the next type in fleet order that has not been placed yet."""
    placed_names = {ship.type for ship in placed}
    for ship_type in FLEET_ORDER:
        if ship_type.name not in placed_names:
            return ship_type
    return None


def ship_description(ship_type: ShipType) -> str:
    return SHIP_DESCRIPTIONS.get(ship_type, "")
