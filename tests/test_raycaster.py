# tests/test_raycaster.py

import math

import pytest

from wolfcast.cells import CellStateMachine
from wolfcast.defs import Direction
from wolfcast.raycaster import Raycaster
from tests.builders import make_grid

FOV = math.radians(60)
DOOR_BASE = 8

ROOM = [
    "#####",
    "#...#",
    "#...#",
    "#...#",
    "#####",
]

DOORWAY = [
    "#####",
    "#.#.#",
    "#.V.#",
    "#.#.#",
    "#####",
]


def _single(grid, x, y, heading, moving=None):
    """Cast one centre column."""
    caster = Raycaster(1, FOV, door_base=DOOR_BASE)
    (hit,) = caster.cast_all(grid, x, y, heading, moving=moving)
    return hit


@pytest.mark.parametrize(
    "heading, cell, vertical, texture",
    [
        (0.0, (4, 2), True, 1),
        (math.pi, (0, 2), True, 1),
        (math.pi / 2, (2, 4), False, 0),
        (3 * math.pi / 2, (2, 0), False, 0),
    ],
)
def test_axis_rays_in_room(heading, cell, vertical, texture) -> None:
    grid = make_grid(ROOM)
    hit = _single(grid, 2.5, 2.5, heading)
    assert hit.distance == pytest.approx(1.5)
    assert hit.raw_distance == pytest.approx(1.5)
    assert hit.cell == grid.index(*cell)
    assert hit.vertical is vertical
    assert hit.texture == texture
    assert hit.u == pytest.approx(0.5)


def test_hit_point_and_texture_coordinate() -> None:
    grid = make_grid(ROOM)
    hit = _single(grid, 2.5, 2.25, 0.0)
    assert (hit.x, hit.y) == pytest.approx((4.0, 2.25))
    assert hit.u == pytest.approx(0.25)

    # looking west the face is seen from the other side, so u runs the other way
    hit = _single(grid, 2.5, 2.25, math.pi)
    assert hit.u == pytest.approx(0.75)


def test_diagonal_ray_distance() -> None:
    grid = make_grid(ROOM)
    hit = _single(grid, 1.5, 1.5, math.pi / 4)
    # corner-adjacent walls at x=4 or y=4, both reached at 2.5 * sqrt(2)
    assert hit.raw_distance == pytest.approx(2.5 * math.sqrt(2))


def test_texture_id_selects_page_pair() -> None:
    grid = make_grid(["#####", "#..5#", "#####"])
    hit = _single(grid, 1.5, 1.5, 0.0)
    assert hit.texture == 9  # 2 * 5 - 1


def test_fisheye_correction_flattens_wall() -> None:
    grid = make_grid(["#########"] + ["#.......#"] * 7 + ["#########"])
    caster = Raycaster(3, FOV)
    hits = caster.cast_all(grid, 1.5, 4.5, 0.0)
    for hit in hits:
        assert hit.distance == pytest.approx(6.5)
    assert hits[0].raw_distance == pytest.approx(6.5 / math.cos(math.radians(20)))
    assert hits[1].raw_distance == pytest.approx(6.5)
    assert hits[0].raw_distance == pytest.approx(hits[2].raw_distance)


def test_column_offsets_are_symmetric() -> None:
    caster = Raycaster(4, FOV)
    assert caster.column_offsets[0] == pytest.approx(-caster.column_offsets[3])
    assert caster.column_offsets[0] > -FOV / 2
    # left half of the screen looks counter-clockwise of the heading
    assert caster.column_offsets[0] < 0 < caster.column_offsets[3]


def test_rays_leaving_the_grid_miss() -> None:
    grid = make_grid(["...", "...", "..."])
    hit = _single(grid, 1.5, 1.5, 0.3)
    assert hit.is_miss
    assert math.isinf(hit.distance)
    assert hit.cell is None


# ---------------------------------------------------------------------------
# Doors
# ---------------------------------------------------------------------------


def test_closed_door_hit_at_midline() -> None:
    grid = make_grid(DOORWAY)
    hit = _single(grid, 1.5, 2.5, 0.0)
    assert hit.distance == pytest.approx(1.0)
    assert hit.cell == grid.index(2, 2)
    assert hit.texture == DOOR_BASE + 1
    assert hit.u == pytest.approx(0.5)


def test_open_door_lets_ray_through() -> None:
    grid = make_grid(DOORWAY)
    grid.cell_at(2, 2).progress = 1.0
    hit = _single(grid, 1.5, 2.5, 0.0)
    assert hit.distance == pytest.approx(2.5)
    assert hit.cell == grid.index(4, 2)


def test_partially_open_door() -> None:
    grid = make_grid(DOORWAY)
    door = grid.cell_at(2, 2)

    door.progress = 0.4
    hit = _single(grid, 1.5, 2.5, 0.0)
    assert hit.cell == grid.index(2, 2)
    assert hit.u == pytest.approx(0.1)

    door.progress = 0.6
    hit = _single(grid, 1.5, 2.5, 0.0)
    assert hit.cell == grid.index(4, 2)


def test_door_jamb_texture() -> None:
    grid = make_grid(DOORWAY)
    hit = _single(grid, 2.5, 2.5, 3 * math.pi / 2)
    assert hit.cell == grid.index(2, 1)
    assert hit.distance == pytest.approx(0.5)
    assert hit.texture == DOOR_BASE + 2


def test_horizontal_door_and_jamb() -> None:
    grid = make_grid([
        "#####",
        "#...#",
        "##H##",
        "#...#",
        "#####",
    ])
    hit = _single(grid, 2.5, 1.5, math.pi / 2)
    assert hit.distance == pytest.approx(1.0)
    assert hit.texture == DOOR_BASE + 0

    hit = _single(grid, 2.5, 2.5, 0.0)
    assert hit.cell == grid.index(3, 2)
    assert hit.texture == DOOR_BASE + 3


# ---------------------------------------------------------------------------
# Push-walls
# ---------------------------------------------------------------------------


def test_ready_pushwall_is_solid() -> None:
    grid = make_grid(["#####", "#.P.#", "#####"])
    hit = _single(grid, 1.5, 1.5, 0.0)
    assert hit.distance == pytest.approx(0.5)
    assert hit.cell == grid.index(2, 1)


def test_moving_pushwall_face_follows_progress() -> None:
    grid = make_grid(["#####", "#.P.#", "#####"])
    machine = CellStateMachine(grid, pushwall_speed=0.5)
    origin = grid.index(2, 1)
    machine.interact(origin, Direction.EAST)
    machine.advance(1.0)

    hit = _single(grid, 1.5, 1.5, 0.0, moving=machine.moving_pushwalls())
    assert hit.distance == pytest.approx(1.0)
    assert hit.cell == origin
    assert hit.texture == 1


def test_moving_pushwall_found_without_block_list() -> None:
    grid = make_grid(["#####", "#.P.#", "#####"])
    machine = CellStateMachine(grid, pushwall_speed=0.5)
    origin = grid.index(2, 1)
    machine.interact(origin, Direction.EAST)
    machine.advance(1.0)

    hit = _single(grid, 1.5, 1.5, 0.0)
    assert hit.cell == origin
    assert hit.distance == pytest.approx(1.0)

    # an explicit empty list means nothing is sliding
    hit = _single(grid, 1.5, 1.5, 0.0, moving=[])
    assert hit.cell == grid.index(4, 1)


# ---------------------------------------------------------------------------
# Visibility and repeatability
# ---------------------------------------------------------------------------


def test_visible_set_tracks_traversed_cells() -> None:
    grid = make_grid(ROOM)
    caster = Raycaster(1, FOV)
    visible = {999}
    caster.cast_all(grid, 1.5, 2.5, 0.0, visible)
    assert visible == {grid.index(1, 2), grid.index(2, 2), grid.index(3, 2)}


def test_cast_all_is_idempotent() -> None:
    grid = make_grid(DOORWAY)
    grid.cell_at(2, 2).progress = 0.3
    caster = Raycaster(64, FOV, door_base=DOOR_BASE)
    first_visible, second_visible = set(), set()
    first = caster.cast_all(grid, 1.3, 2.6, 0.2, first_visible)
    second = caster.cast_all(grid, 1.3, 2.6, 0.2, second_visible)
    assert first == second
    assert first_visible == second_visible
    assert len(first) == 64
