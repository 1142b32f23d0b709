"""
Level grid for wolfcast: cell classification and construction from the
terrain and object planes.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from wolfcast.defs import (
    Cell, Empty, Wall, Door, PushWall, Entity, Enemy, Direction, Pose,
    LoadError,
    MAX_WALL_ID, FIRST_DOOR_ID, LAST_DOOR_ID,
    PUSHWALL_CODE, PLAYER_START_NORTH, PLAYER_START_WEST,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Object plane table
# ---------------------------------------------------------------------------

# Static props: codes 23..70 map to sprites 2..49
FIRST_STATIC_CODE = 23
LAST_STATIC_CODE = 70
STATIC_SPRITE_SHIFT = 21

BLOCKING_STATICS = frozenset({
    24, 25, 26, 28, 30, 31, 33, 34, 35, 36, 39, 40, 41, 45,
    58, 59, 60, 62, 63, 68, 69,
})
COLLECTABLE_STATICS = frozenset({
    29, 43, 44, 47, 48, 49, 50, 51, 52, 53, 54, 55, 56, 57, 61,
})

DEAD_GUARD_CODE = 124
DEAD_GUARD_SPRITE = 95


@dataclass(frozen=True)
class EnemyType:
    name: str
    codes: tuple          # first code of each 8-code block (standing + patrol)
    sprite: int           # first rotation frame
    death_frames: tuple   # dying frames then the corpse


ENEMY_TYPES = (
    EnemyType("guard", (108, 144, 180), 50, (91, 92, 93, 95)),
    EnemyType("ss",    (126, 162, 198), 138, (179, 180, 181, 183)),
    EnemyType("dog",   (134, 170, 206), 99, (131, 132, 133, 134)),
)

# Facing encoded in the low two bits of an enemy code
_ENEMY_FACING = (Direction.EAST, Direction.NORTH, Direction.WEST, Direction.SOUTH)

_START_HEADINGS = {
    19: Direction.NORTH,
    20: Direction.EAST,
    21: Direction.SOUTH,
    22: Direction.WEST,
}


def _enemy_for_code(code: int) -> tuple | None:
    for etype in ENEMY_TYPES:
        for base in etype.codes:
            if base <= code < base + 8:
                return etype, _ENEMY_FACING[(code - base) % 4]
    return None


def classify(texture_id: int) -> type:
    """Return the cell class for a terrain plane value."""
    if texture_id <= MAX_WALL_ID:
        return Wall
    if FIRST_DOOR_ID <= texture_id <= LAST_DOOR_ID:
        return Door
    return Empty


def make_entity(code: int, col: int, row: int, index: int) -> Entity:
    """Materialize the object-plane *code* found at (col, row)."""
    x, y = col + 0.5, row + 0.5

    if FIRST_STATIC_CODE <= code <= LAST_STATIC_CODE:
        return Entity(
            x=x, y=y, cell=index,
            texture=code - STATIC_SPRITE_SHIFT,
            code=code,
            blocking=code in BLOCKING_STATICS,
            collectable=code in COLLECTABLE_STATICS,
        )

    if code == DEAD_GUARD_CODE:
        return Entity(x=x, y=y, cell=index, texture=DEAD_GUARD_SPRITE, code=code)

    found = _enemy_for_code(code)
    if found is not None:
        etype, facing = found
        return Enemy(
            x=x, y=y, cell=index,
            texture=etype.sprite,
            code=code,
            orientable=True,
            blocking=True,
            heading=facing,
            death_frames=etype.death_frames,
        )

    # Unmapped: keep the slot but never draw it
    return Entity(x=x, y=y, cell=index, texture=0, code=code, renders=False)


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------

@dataclass
class Grid:
    width: int
    height: int
    cells: list = field(default_factory=list)
    entities: list = field(default_factory=list)

    def index(self, col: int, row: int) -> int:
        return row * self.width + col

    def coords(self, index: int) -> tuple[int, int]:
        return index % self.width, index // self.width

    def contains(self, col: int, row: int) -> bool:
        return 0 <= col < self.width and 0 <= row < self.height

    def cell_at(self, col: int, row: int) -> Optional[Cell]:
        """Cell at (col, row), or None off the grid."""
        if not self.contains(col, row):
            return None
        return self.cells[row * self.width + col]

    def entity_at(self, index: int) -> Optional[Entity]:
        cell = self.cells[index]
        if isinstance(cell, Empty) and cell.entity is not None:
            return self.entities[cell.entity]
        return None

    def is_walkable(self, col: int, row: int) -> bool:
        """In bounds, Empty, and not occupied by a blocking entity."""
        cell = self.cell_at(col, row)
        if not isinstance(cell, Empty):
            return False
        if cell.entity is not None and self.entities[cell.entity].blocking:
            return False
        return True

    def is_passable(self, col: int, row: int) -> bool:
        """Walkable, or a door that has fully opened."""
        cell = self.cell_at(col, row)
        if isinstance(cell, Door):
            return cell.progress >= 1.0
        return self.is_walkable(col, row)

    def point_passable(self, x: float, y: float) -> bool:
        return self.is_passable(int(math.floor(x)), int(math.floor(y)))


def build_grid(width: int, height: int, terrain: list, objects: list) -> tuple[Grid, Pose]:
    """
    Build the Grid from the terrain and object planes.

    Returns the grid and the player start pose.  A level without a player
    start cannot be played and raises LoadError.
    """
    n = width * height
    if len(terrain) != n or len(objects) != n:
        raise LoadError(
            f"plane sizes {len(terrain)}/{len(objects)} do not match {width}x{height}"
        )

    grid = Grid(width=width, height=height)
    start: Optional[Pose] = None
    unmapped: set[int] = set()

    for index in range(n):
        tile = terrain[index]
        kind = classify(tile)
        if kind is Wall:
            grid.cells.append(Wall(texture=tile))
        elif kind is Door:
            grid.cells.append(Door(texture=tile))
        else:
            grid.cells.append(Empty(texture=tile))

    for index in range(n):
        code = objects[index]
        if code == 0:
            continue
        col, row = grid.coords(index)
        cell = grid.cells[index]

        if PLAYER_START_NORTH <= code <= PLAYER_START_WEST:
            start = Pose(x=col + 0.5, y=row + 0.5, heading=_START_HEADINGS[code].angle)
            continue

        if code == PUSHWALL_CODE:
            if isinstance(cell, Wall):
                grid.cells[index] = PushWall(texture=cell.texture)
            else:
                log.warning("push-wall marker on non-wall cell (%d, %d) ignored", col, row)
            continue

        if not isinstance(cell, Empty):
            log.debug("object code %d on solid cell (%d, %d) ignored", code, col, row)
            continue

        entity = make_entity(code, col, row, index)
        if not entity.renders and code not in unmapped:
            unmapped.add(code)
            log.warning("unmapped object code %d (first at %d, %d) kept inert", code, col, row)
        cell.entity = len(grid.entities)
        grid.entities.append(entity)

    if start is None:
        raise LoadError("no player start in level")

    log.info(
        "grid %dx%d: %d entities, start (%.1f, %.1f)",
        width, height, len(grid.entities), start.x, start.y,
    )
    return grid, start
