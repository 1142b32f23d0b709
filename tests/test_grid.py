# tests/test_grid.py

import logging
import math

import pytest

from wolfcast.defs import (
    Direction, Door, DoorKind, Empty, Enemy, LoadError, PushWall, Wall,
    door_page, normalize_angle, wall_page,
)
from wolfcast.grid import build_grid, classify, make_entity

FLOOR = 106


@pytest.mark.parametrize("texture_id", range(256))
def test_classify_partitions_all_ids(texture_id: int) -> None:
    kind = classify(texture_id)
    if texture_id <= 63:
        assert kind is Wall
    elif 64 <= texture_id <= 101:
        assert kind is Door
    else:
        assert kind is Empty


@pytest.mark.parametrize(
    "texture, vertical, kind",
    [
        (90, True, DoorKind.NORMAL),
        (91, False, DoorKind.NORMAL),
        (92, True, DoorKind.LOCKED),
        (95, False, DoorKind.LOCKED),
        (100, True, DoorKind.ELEVATOR),
        (101, False, DoorKind.ELEVATOR),
    ],
)
def test_door_orientation_and_kind(texture: int, vertical: bool, kind: DoorKind) -> None:
    door = Door(texture=texture)
    assert door.vertical is vertical
    assert door.kind is kind


def test_page_tables() -> None:
    assert wall_page(1, vertical=True) == 1
    assert wall_page(1, vertical=False) == 0
    assert wall_page(5, vertical=True) == 9
    assert door_page(Door(texture=90), 100) == 101
    assert door_page(Door(texture=91), 100) == 100
    assert door_page(Door(texture=101), 100) == 104
    assert door_page(Door(texture=92), 100) == 107


def test_normalize_angle_and_directions() -> None:
    assert normalize_angle(-math.pi / 2) == pytest.approx(3 * math.pi / 2)
    assert normalize_angle(2 * math.pi) == 0.0
    assert 0.0 <= normalize_angle(-1e-18) < 2 * math.pi
    assert Direction.SOUTH.angle == pytest.approx(math.pi / 2)
    assert Direction.NORTH.angle == pytest.approx(3 * math.pi / 2)
    assert Direction.from_angle(0.1) is Direction.EAST
    assert Direction.from_angle(math.pi / 2 + 0.2) is Direction.SOUTH
    assert Direction.from_angle(math.pi) is Direction.WEST
    assert Direction.from_angle(-math.pi / 2) is Direction.NORTH


# ---------------------------------------------------------------------------
# Object table
# ---------------------------------------------------------------------------


def test_static_prop_mapping() -> None:
    lamp = make_entity(23, 1, 1, 4)
    assert lamp.texture == 2
    assert lamp.renders and not lamp.blocking and not lamp.orientable

    barrel = make_entity(58, 1, 1, 4)
    assert barrel.blocking

    food = make_entity(47, 1, 1, 4)
    assert food.collectable
    assert (food.x, food.y) == (1.5, 1.5)


@pytest.mark.parametrize(
    "code, facing",
    [
        (108, Direction.EAST),
        (109, Direction.NORTH),
        (110, Direction.WEST),
        (111, Direction.SOUTH),
        (112, Direction.EAST),
        (144, Direction.EAST),
    ],
)
def test_guard_facing(code: int, facing: Direction) -> None:
    guard = make_entity(code, 2, 3, 0)
    assert isinstance(guard, Enemy)
    assert guard.heading is facing
    assert guard.orientable and guard.blocking and guard.alive
    assert guard.texture == 50


def test_unmapped_code_is_inert() -> None:
    thing = make_entity(250, 0, 0, 0)
    assert not thing.renders
    assert not thing.blocking


# ---------------------------------------------------------------------------
# build_grid
# ---------------------------------------------------------------------------


def _planes(rows):
    """rows of (terrain, object) pairs -> flat planes."""
    terrain = [t for row in rows for t, _ in row]
    objects = [o for row in rows for _, o in row]
    return len(rows[0]), len(rows), terrain, objects


W = (1, 0)
F = (FLOOR, 0)


def test_build_grid_start_and_cells() -> None:
    width, height, terrain, objects = _planes([
        [W, W, W, W],
        [W, (FLOOR, 21), (90, 0), W],
        [W, W, W, W],
    ])
    grid, start = build_grid(width, height, terrain, objects)
    assert (start.x, start.y) == (1.5, 1.5)
    assert start.heading == pytest.approx(math.pi / 2)
    assert isinstance(grid.cell_at(0, 0), Wall)
    assert isinstance(grid.cell_at(2, 1), Door)
    start_cell = grid.cell_at(1, 1)
    assert isinstance(start_cell, Empty) and start_cell.entity is None
    assert grid.cell_at(-1, 0) is None
    assert grid.entities == []


def test_build_grid_requires_start() -> None:
    width, height, terrain, objects = _planes([[F, F], [F, F]])
    with pytest.raises(LoadError):
        build_grid(width, height, terrain, objects)


def test_build_grid_rejects_plane_size() -> None:
    with pytest.raises(LoadError):
        build_grid(2, 2, [FLOOR] * 3, [0] * 4)


def test_pushwall_marker(caplog: pytest.LogCaptureFixture) -> None:
    width, height, terrain, objects = _planes([
        [(3, 98), (FLOOR, 98), (FLOOR, 19)],
    ])
    with caplog.at_level(logging.WARNING, logger="wolfcast.grid"):
        grid, _ = build_grid(width, height, terrain, objects)
    assert isinstance(grid.cells[0], PushWall)
    assert grid.cells[0].texture == 3
    assert isinstance(grid.cells[1], Empty)
    assert "push-wall marker" in caplog.text


def test_entities_attach_to_cells(caplog: pytest.LogCaptureFixture) -> None:
    width, height, terrain, objects = _planes([
        [(FLOOR, 19), (FLOOR, 58), (FLOOR, 250), (FLOOR, 250), (1, 23)],
    ])
    with caplog.at_level(logging.WARNING, logger="wolfcast.grid"):
        grid, _ = build_grid(width, height, terrain, objects)

    # object on the wall cell is dropped
    assert len(grid.entities) == 3
    barrel = grid.entity_at(1)
    assert barrel.code == 58 and barrel.cell == 1
    assert not grid.is_walkable(1, 0)
    assert grid.is_walkable(2, 0)
    assert caplog.text.count("unmapped object code 250") == 1


def test_passability() -> None:
    width, height, terrain, objects = _planes([[(FLOOR, 19), (90, 0), W]])
    grid, _ = build_grid(width, height, terrain, objects)
    door = grid.cell_at(1, 0)
    assert grid.is_passable(0, 0)
    assert not grid.is_passable(1, 0)
    door.progress = 1.0
    assert grid.is_passable(1, 0)
    assert not grid.is_walkable(1, 0)
    assert not grid.is_passable(2, 0)
    assert not grid.is_passable(3, 0)
    assert grid.point_passable(0.9, 0.1)
