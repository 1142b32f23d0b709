"""
Level lifecycle for wolfcast.

    fetch_bundle()  ordered async read of the four asset files
    open_assets()   parse the archive, palette and map directory once
    load_level()    decode, build and validate one level -> LevelState

A LevelState owns everything that changes while a level is played.  The
host holds exactly one and replaces it wholesale on a level switch.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from wolfcast.actors import EnemyRoster
from wolfcast.assets import AssetStore
from wolfcast.cells import CellStateMachine
from wolfcast.defs import (
    Direction, Door, Enemy, LoadError, Pose, PushWall, Wall,
    DOOR_SPEED, PUSHWALL_SPEED, NEAR_CLIP,
    door_page, wall_page,
)
from wolfcast.grid import Grid, build_grid
from wolfcast.maps import GameMaps, MapDirectory
from wolfcast.perf import perf
from wolfcast.raycaster import Raycaster
from wolfcast.sprites import ROTATION_FRAMES

log = logging.getLogger(__name__)

# Half the world width of a billboard; a shot must pass within it
_SPRITE_HALF_WIDTH = 0.5


# ---------------------------------------------------------------------------
# Asset batch
# ---------------------------------------------------------------------------

@dataclass
class AssetBundle:
    archive: bytes
    map_directory: bytes
    map_data: bytes
    palette: bytes


def bundle_paths(data_dir: str | Path, extension: str, palette: str) -> list[Path]:
    """Archive, map directory, map data and palette paths, in fetch order."""
    root = Path(data_dir)
    return [
        root / f"VSWAP.{extension}",
        root / f"MAPHEAD.{extension}",
        root / f"GAMEMAPS.{extension}",
        root / palette,
    ]


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise LoadError(f"cannot read {path}: {e.strerror or e}") from e


async def fetch_bundle(data_dir: str | Path, extension: str = "WL6", palette: str = "wolf.pal") -> AssetBundle:
    """Read all asset files concurrently; the first failure aborts the batch."""
    paths = bundle_paths(data_dir, extension, palette)
    results = await asyncio.gather(*(
        perf.atimer("read_file", asyncio.to_thread(_read, p), file=p.name)
        for p in paths
    ))
    for p, data in zip(paths, results):
        log.info("read %s (%d bytes)", p.name, len(data))
    return AssetBundle(*results)


def open_assets(bundle: AssetBundle) -> tuple[AssetStore, GameMaps]:
    store = AssetStore(bundle.archive, bundle.palette)
    maps = GameMaps(MapDirectory(bundle.map_directory), bundle.map_data)
    log.info("map directory: %d levels", maps.directory.level_count)
    return store, maps


# ---------------------------------------------------------------------------
# Level state
# ---------------------------------------------------------------------------

@dataclass
class LevelState:
    index: int
    name: str
    grid: Grid
    cells: CellStateMachine
    roster: EnemyRoster
    viewer: Pose
    hits: list = field(default_factory=list)
    visible: set = field(default_factory=set)

    def step(self, dt: float) -> None:
        """Advance doors, push-walls and dying enemies by *dt* seconds."""
        self.cells.advance(dt)
        self.roster.advance(dt)

    def cast(self, raycaster: Raycaster) -> list:
        """Rebuild the hit list and visible-cell set from the current viewer pose."""
        self.hits = raycaster.cast_all(
            self.grid, self.viewer.x, self.viewer.y, self.viewer.heading,
            self.visible, self.cells.moving_pushwalls(),
        )
        return self.hits

    def is_passable(self, col: int, row: int) -> bool:
        """Grid passability, also blocking cells a push-wall is sliding into."""
        if not self.grid.is_passable(col, row):
            return False
        index = self.grid.index(col, row)
        for moving in self.cells.moving_pushwalls():
            if self.grid.cells[moving].target == index:
                return False
        return True

    def interact(self) -> bool:
        """Use whatever the viewer is facing.  False when nothing started."""
        direction = Direction.from_angle(self.viewer.heading)
        col, row = self.viewer.cell
        col, row = col + direction.dx, row + direction.dy
        if not self.grid.contains(col, row):
            return False
        return self.cells.interact(self.grid.index(col, row), direction)

    def shoot(self) -> Optional[int]:
        """
        Fire along the view centre.  Kills the nearest live enemy whose
        billboard crosses the centre line in front of the wall there, and
        returns its entity index.
        """
        pose = self.viewer
        cos_h, sin_h = math.cos(pose.heading), math.sin(pose.heading)
        wall = self.hits[len(self.hits) // 2].distance if self.hits else math.inf

        best: Optional[int] = None
        best_depth = wall
        for i in self.roster.active:
            enemy = self.grid.entities[i]
            if not enemy.alive or enemy.cell not in self.visible:
                continue
            dx, dy = enemy.x - pose.x, enemy.y - pose.y
            depth = dx * cos_h + dy * sin_h
            lateral = -dx * sin_h + dy * cos_h
            if depth <= NEAR_CLIP or abs(lateral) > _SPRITE_HALF_WIDTH:
                continue
            if depth < best_depth:
                best, best_depth = i, depth

        if best is not None:
            self.roster.kill(best)
        return best


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def validate_level(grid: Grid, store: AssetStore) -> None:
    """Reject levels that reference pages or sprites the archive does not hold."""
    walls = store.wall_count
    for index, cell in enumerate(grid.cells):
        if isinstance(cell, (Wall, PushWall)):
            pages = (wall_page(cell.texture, True), wall_page(cell.texture, False))
        elif isinstance(cell, Door):
            pages = (door_page(cell, store.door_base),)
        else:
            continue
        for page in pages:
            if not 0 <= page < walls:
                col, row = grid.coords(index)
                raise LoadError(
                    f"cell ({col}, {row}) texture {cell.texture} needs wall page {page}, "
                    f"archive has {walls}"
                )

    sprites = store.sprite_count
    for entity in grid.entities:
        if not entity.renders:
            continue
        needed = [entity.texture]
        if entity.orientable:
            needed.append(entity.texture + ROTATION_FRAMES - 1)
        if isinstance(entity, Enemy):
            needed.extend(entity.death_frames)
        for sprite in needed:
            if not 0 <= sprite < sprites:
                raise LoadError(
                    f"object code {entity.code} needs sprite {sprite}, archive has {sprites}"
                )


def load_level(
    store: AssetStore,
    maps: GameMaps,
    index: int,
    door_speed: float = DOOR_SPEED,
    pushwall_speed: float = PUSHWALL_SPEED,
) -> LevelState:
    """Decode, build and validate level *index*.  Raises LoadError on any failure."""
    planes = maps.load_planes(index)
    terrain, objects = planes.planes[0], planes.planes[1]
    grid, start = build_grid(planes.width, planes.height, terrain, objects)
    validate_level(grid, store)

    level = LevelState(
        index=index,
        name=planes.name,
        grid=grid,
        cells=CellStateMachine(grid, door_speed, pushwall_speed),
        roster=EnemyRoster(grid.entities),
        viewer=start,
    )
    log.info(
        "level %d %r ready: %d enemies", index, planes.name, len(level.roster.active)
    )
    return level
