"""Integration tests for the local control API."""

from __future__ import annotations

import time
from collections.abc import Generator
from http import HTTPStatus

import pytest
from fastapi.testclient import TestClient

from src.sinkdestroy.main import create_app
from tests.conftest import (
    FAST_SETTINGS,
    GAME_KEY,
    PLAYER,
    FakeServer,
    opponent_move,
    standard_fleet,
)

# pylint: disable=redefined-outer-name

FLEET_PAYLOAD = [
    {"ship": ship.type, "x": ship.x, "y": ship.y, "orientation": ship.orientation}
    for ship in standard_fleet()
]


@pytest.fixture()
def fake() -> FakeServer:
    """Scripted game server behind the app."""
    return FakeServer()


@pytest.fixture()
def client(fake: FakeServer) -> Generator[TestClient, None, None]:
    """Test client running the app lifespan."""
    with TestClient(create_app(fake, FAST_SETTINGS)) as test_client:
        yield test_client


def wait_for_state(client: TestClient, **expected: object) -> dict:
    """Poll GET /game/state until every expected field matches."""
    deadline = time.monotonic() + 2
    while True:
        data = client.get("/game/state").json()
        if all(data[key] == value for key, value in expected.items()):
            return data
        if time.monotonic() > deadline:
            raise AssertionError(f"state never reached {expected}: {data}")
        time.sleep(0.01)


def test_health(client: TestClient) -> None:
    """Health endpoint reports ok."""
    resp = client.get("/health")
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["status"] == "ok"


def test_ping_uses_game_server(client: TestClient, fake: FakeServer) -> None:
    """Ping is forwarded to the game server."""
    resp = client.get("/ping")
    assert resp.json() == {"ping": True}
    assert fake.count("ping") == 1


def test_ship_catalog(client: TestClient) -> None:
    """Ship catalog lists the fleet in placement order."""
    ships = client.get("/game/ships").json()
    assert [ship["name"] for ship in ships] == [
        "Carrier",
        "Battleship",
        "Destroyer",
        "Submarine",
        "PatrolBoat",
    ]
    assert [ship["size"] for ship in ships] == [5, 4, 3, 3, 2]


def test_preview_valid_placement(client: TestClient) -> None:
    """A free placement previews as valid with its cells."""
    resp = client.post(
        "/game/preview",
        json={"ship": FLEET_PAYLOAD[0], "placed": []},
    )
    data = resp.json()
    assert data["valid"] is True
    assert data["cells"] == [[x, 0] for x in range(5)]
    assert data["next_ship"] == "Battleship"


def test_preview_overlap(client: TestClient) -> None:
    """An overlapping placement previews as invalid."""
    candidate = {"ship": "Battleship", "x": 2, "y": 0, "orientation": "vertical"}
    resp = client.post(
        "/game/preview",
        json={"ship": candidate, "placed": [FLEET_PAYLOAD[0]]},
    )
    data = resp.json()
    assert data["valid"] is False
    assert data["reason"] == "Ships cannot overlap"
    assert data["next_ship"] == "Battleship"


def test_join_with_short_id_is_bad_request(client: TestClient, fake: FakeServer) -> None:
    """Local validation failures map to 400 and skip the server."""
    resp = client.post(
        "/game/join",
        json={"player": "ab", "game_key": GAME_KEY, "ships": FLEET_PAYLOAD},
    )
    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert "Player ID" in resp.json()["detail"]
    assert fake.calls == []


def test_join_and_fire_flow(client: TestClient, fake: FakeServer) -> None:
    """Join, shoot first, receive a shot, then refuse a repeat target."""
    fake.poll_results.extend([opponent_move(), opponent_move(3, 4)])

    resp = client.post(
        "/game/join",
        json={"player": PLAYER, "game_key": GAME_KEY, "ships": FLEET_PAYLOAD},
    )
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["phase"] == "waiting"

    wait_for_state(client, phase="playing", is_my_turn=True)

    resp = client.post("/game/fire", json={"x": 0, "y": 0})
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["player_misses"] == [[0, 0]]

    data = wait_for_state(client, is_my_turn=True, enemy_shots=[[3, 4]])
    assert data["stats"]["shots_fired"] == 1
    assert data["own_board"][4][3] == {"ship": False, "hit": False, "miss": True}
    assert data["own_board"][0][0] == {"ship": True, "hit": False, "miss": False}
    assert data["target_board"][0][0] == {"hit": False, "miss": True}

    resp = client.post("/game/fire", json={"x": 0, "y": 0})
    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json()["detail"] == "Already fired here"
    assert fake.count("fire") == 1


def test_reset(client: TestClient) -> None:
    """Reset returns the session to setup."""
    resp = client.post("/game/reset")
    assert resp.json()["phase"] == "setup"
    assert resp.json()["target_board"][0][0] == {"hit": False, "miss": False}
