# tests/test_player.py

import math
from types import SimpleNamespace

import pytest

from wolfcast.defs import Entity, Pose
from wolfcast.player import TURN_SPEED, Player
from tests.builders import make_grid, place

CORRIDOR = ["#####", "#...#", "#####"]
ROOM = ["#####", "#...#", "#...#", "#...#", "#####"]


def _level(rows):
    grid = make_grid(rows)
    return SimpleNamespace(grid=grid, is_passable=grid.is_passable)


def test_walks_forward() -> None:
    level = _level(CORRIDOR)
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(1.0, 0.0, 0.0, 0.1, level)
    assert player.pose.x == pytest.approx(1.8)
    assert player.pose.y == pytest.approx(1.5)


def test_running_doubles_speed() -> None:
    level = _level(CORRIDOR)
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(1.0, 0.0, 0.0, 0.1, level, running=True)
    assert player.pose.x == pytest.approx(2.1)


def test_wall_stops_movement() -> None:
    level = _level(CORRIDOR)
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(1.0, 0.0, 0.0, 1.0, level)
    assert (player.pose.x, player.pose.y) == (1.5, 1.5)


def test_slides_along_wall() -> None:
    level = _level(ROOM)
    player = Player(Pose(2.5, 1.5, -math.pi / 4))
    player.move(1.0, 0.0, 0.0, 0.5, level)
    # the northward part runs into the wall, the eastward part survives
    assert player.pose.x == pytest.approx(2.5 + 1.5 * math.cos(math.pi / 4))
    assert player.pose.y == pytest.approx(1.5)


def test_strafe_right_moves_south_when_facing_east() -> None:
    level = _level(ROOM)
    player = Player(Pose(2.5, 1.5, 0.0))
    player.move(0.0, 1.0, 0.0, 0.1, level)
    assert player.pose.x == pytest.approx(2.5)
    assert player.pose.y == pytest.approx(1.8)


def test_turning() -> None:
    level = _level(CORRIDOR)
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(0.0, 0.0, 1.0, 1.0, level)
    assert player.pose.heading == pytest.approx(TURN_SPEED)
    player.move(0.0, 0.0, -1.0, 2.0, level)
    assert player.pose.heading == pytest.approx(2 * math.pi - TURN_SPEED)


def test_negative_dt_is_ignored() -> None:
    level = _level(CORRIDOR)
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(1.0, 0.0, 1.0, -1.0, level)
    assert player.pose == Pose(1.5, 1.5, 0.0)


def test_blocking_entity_stops_movement() -> None:
    level = _level(CORRIDOR)
    place(level.grid, 2, 1, Entity(x=2.5, y=1.5, cell=0, texture=3, code=24, blocking=True))
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(1.0, 0.0, 0.0, 0.1, level)
    assert player.pose.x == 1.5


def test_closed_door_blocks_until_open() -> None:
    level = _level(["#####", "#.V.#", "#####"])
    player = Player(Pose(1.5, 1.5, 0.0))
    player.move(1.0, 0.0, 0.0, 0.1, level)
    assert player.pose.x == 1.5

    level.grid.cell_at(2, 1).progress = 1.0
    player.move(1.0, 0.0, 0.0, 0.1, level)
    assert player.pose.x == pytest.approx(1.8)


def test_collects_items_on_entering_cell() -> None:
    level = _level(CORRIDOR)
    food = Entity(x=2.5, y=1.5, cell=0, texture=8, code=29, collectable=True)
    place(level.grid, 2, 1, food)
    player = Player(Pose(1.5, 1.5, 0.0))

    player.move(1.0, 0.0, 0.0, 0.2, level)
    assert player.pose.cell == (2, 1)
    assert player.collected == [29]
    assert not food.renders
    assert level.grid.cell_at(2, 1).entity is None


@pytest.mark.parametrize(
    "heading, expected",
    [
        (0.0, (2, 1)),
        (math.pi / 2, (1, 2)),
        (3.0, (0, 1)),
        (3 * math.pi / 2 + 0.2, (1, 0)),
    ],
)
def test_facing_cell(heading, expected) -> None:
    player = Player(Pose(1.5, 1.5, heading))
    assert player.facing_cell() == expected
