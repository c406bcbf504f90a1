"""
Immutable client-side session record and the pure transitions applied to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from src.sinkdestroy.game.fleet import (
    BOARD_SIZE,
    FLEET_ORDER,
    Coord,
    Ship,
    occupied_cells,
)


class Phase(Enum):
    SETUP = "setup"
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


@dataclass(frozen=True)
class ShotOutcome:
    """What an incoming shot did to the local fleet."""

    cell: Coord
    hit_ship: Ship | None = None
    sunk: bool = False
    fleet_destroyed: bool = False


@dataclass(frozen=True)
class GameSession:
    """Snapshot of one game as seen by the local player."""

    phase: Phase = Phase.SETUP
    player: str | None = None
    game_key: str | None = None
    ships: tuple[Ship, ...] = ()
    enemy_shots: frozenset[Coord] = field(default_factory=frozenset)
    player_hits: frozenset[Coord] = field(default_factory=frozenset)
    player_misses: frozenset[Coord] = field(default_factory=frozenset)
    sunk_enemy_ships: tuple[str, ...] = ()
    is_my_turn: bool = False
    is_game_over: bool = False
    status: str = "Enter Player ID and Game ID to start"

    @classmethod
    def joining(cls, player: str, game_key: str, ships: list[Ship]) -> GameSession:
        return cls(
            phase=Phase.WAITING,
            player=player,
            game_key=game_key,
            ships=tuple(ships),
            status="Joining game...",
        )

    @property
    def is_waiting_for_opponent(self) -> bool:
        return self.phase is Phase.WAITING

    @property
    def fired_cells(self) -> frozenset[Coord]:
        return self.player_hits | self.player_misses

    @property
    def has_won(self) -> bool:
        return len(self.sunk_enemy_ships) >= len(FLEET_ORDER)

    def with_status(self, status: str) -> GameSession:
        return replace(self, status=status)

    def finished(self, status: str) -> GameSession:
        return replace(
            self,
            phase=Phase.FINISHED,
            is_game_over=True,
            is_my_turn=False,
            status=status,
        )

    def receive_shot(self, cell: Coord) -> tuple[GameSession, ShotOutcome]:
        """Record an opponent shot on the local fleet and hand the turn back."""
        shots = self.enemy_shots | {cell}
        hit_ship = next(
            (ship for ship in self.ships if cell in occupied_cells(ship)), None
        )
        sunk = hit_ship is not None and shots.issuperset(occupied_cells(hit_ship))
        destroyed = bool(self.ships) and all(
            shots.issuperset(occupied_cells(ship)) for ship in self.ships
        )
        outcome = ShotOutcome(cell, hit_ship, sunk, destroyed)

        x, y = cell
        if destroyed:
            status = "Game Over! All your ships have been sunk."
        elif sunk:
            status = f"Enemy sunk your {hit_ship.type} at ({x}, {y})! Your turn."
        elif hit_ship is not None:
            status = f"Enemy hit your {hit_ship.type} at ({x}, {y})! Your turn."
        else:
            status = f"Enemy missed at ({x}, {y})! Your turn."

        updated = replace(
            self,
            enemy_shots=shots,
            phase=Phase.FINISHED if destroyed else Phase.PLAYING,
            is_game_over=destroyed,
            is_my_turn=not destroyed,
            status=status,
        )
        return updated, outcome

    def record_fire(self, cell: Coord, *, hit: bool, ships_sunk: list[str]) -> GameSession:
        """Record the result of a local shot and pass the turn to the opponent."""
        sunk = list(self.sunk_enemy_ships)
        sunk.extend(name for name in ships_sunk if name not in sunk)
        won = len(sunk) >= len(FLEET_ORDER)

        x, y = cell
        if won:
            status = "You won! All enemy ships sunk!"
        elif ships_sunk:
            status = f"Hit and sunk {', '.join(ships_sunk)}! Waiting for opponent..."
        elif hit:
            status = f"Hit at ({x}, {y})! Waiting for opponent..."
        else:
            status = f"Miss at ({x}, {y})! Waiting for opponent..."

        return replace(
            self,
            player_hits=self.player_hits | {cell} if hit else self.player_hits,
            player_misses=self.player_misses if hit else self.player_misses | {cell},
            sunk_enemy_ships=tuple(sunk),
            phase=Phase.FINISHED if won else Phase.PLAYING,
            is_game_over=won,
            is_my_turn=False,
            status=status,
        )

    # -- board views ------------------------------------------------------

    @property
    def own_board(self) -> list[list[dict[str, bool]]]:
        grid = _empty_grid(ship=False, hit=False, miss=False)
        ship_cells = {cell for ship in self.ships for cell in occupied_cells(ship)}
        for x, y in ship_cells:
            grid[y][x]["ship"] = True
        for x, y in self.enemy_shots:
            grid[y][x]["hit" if (x, y) in ship_cells else "miss"] = True
        return grid

    @property
    def target_board(self) -> list[list[dict[str, bool]]]:
        grid = _empty_grid(hit=False, miss=False)
        for x, y in self.player_hits:
            grid[y][x]["hit"] = True
        for x, y in self.player_misses:
            grid[y][x]["miss"] = True
        return grid

    def get_stats(self) -> dict[str, int | float | bool]:
        shots_fired = len(self.player_hits) + len(self.player_misses)
        accuracy = len(self.player_hits) / shots_fired * 100 if shots_fired > 0 else 0.0
        ship_cells = {cell for ship in self.ships for cell in occupied_cells(ship)}
        return {
            "shots_fired": shots_fired,
            "hits": len(self.player_hits),
            "accuracy": round(accuracy, 1),
            "enemy_ships_sunk": len(self.sunk_enemy_ships),
            "shots_received": len(self.enemy_shots),
            "own_cells_remaining": len(ship_cells - self.enemy_shots),
            "game_over": self.is_game_over,
        }


def _empty_grid(**flags: bool) -> list[list[dict[str, bool]]]:
    return [[dict(flags) for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]
