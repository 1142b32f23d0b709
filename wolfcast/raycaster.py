"""
Grid raycaster for wolfcast.

One ray per screen column.  Each ray runs two independent DDA walks:

  - the vertical-line walk steps from one x = integer crossing to the next,
    deriving y from the slope;
  - the horizontal-line walk does the same over y = integer crossings.

Each walk stops at the first solid surface on its own axis; the nearer of
the two wins.  Doors are refined to their sliding leaf at the cell midline
and moving push-walls to their displaced block, so partially open doors and
sliding walls let rays through only where they are actually open.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from wolfcast.defs import (
    Door, PushWall, PushWallStatus, Wall, Hit,
    JAMB_HORIZONTAL, JAMB_VERTICAL,
    normalize_angle, wall_page, door_page,
)
from wolfcast.grid import Grid

# Direction components below this are treated as axis-aligned
_AXIS_EPSILON = 1e-9


@dataclass
class _Intercept:
    """Terminal surface found by one walk."""
    distance: float
    x: float
    y: float
    cell: int
    texture: int
    u: float
    vertical: bool


@dataclass
class _Block:
    """A moving push-wall's displaced unit square."""
    cell: int
    x0: float
    y0: float
    texture: int


def _nearer(a: Optional[_Intercept], b: Optional[_Intercept]) -> Optional[_Intercept]:
    if a is None:
        return b
    if b is None:
        return a
    return a if a.distance <= b.distance else b


class Raycaster:
    """
    Casts a fan of rays over a Grid.

    Usage:
        caster = Raycaster(320, math.radians(60), door_base=assets.door_base)
        hits   = caster.cast_all(grid, x, y, heading, visible)
    """

    def __init__(self, columns: int, fov: float, door_base: int = 0) -> None:
        self.columns = columns
        self.fov = fov
        self.door_base = door_base

        # Per-column angle relative to the view centre, and its cosine for
        # fish-eye correction
        self.column_offsets: list[float] = [
            (c + 0.5) * fov / columns - fov / 2 for c in range(columns)
        ]
        self.column_cosines: list[float] = [math.cos(a) for a in self.column_offsets]

    # -----------------------------------------------------------------------
    # Public entry points
    # -----------------------------------------------------------------------

    def cast_all(
        self,
        grid: Grid,
        x: float,
        y: float,
        heading: float,
        visible: Optional[set] = None,
        moving: Optional[Iterable[int]] = None,
    ) -> list[Hit]:
        """
        Cast every column and return one Hit per column.

        *visible*, when given, is cleared and refilled with every cell index
        a ray passed through.  *moving* lists push-walls currently sliding; when
        omitted the grid is scanned for them.
        """
        if visible is None:
            visible = set()
        visible.clear()

        col, row = int(math.floor(x)), int(math.floor(y))
        if grid.contains(col, row):
            visible.add(grid.index(col, row))

        if moving is None:
            moving = range(len(grid.cells))
        blocks = self._blocks(grid, moving)

        hits = []
        for c in range(self.columns):
            angle = normalize_angle(heading + self.column_offsets[c])
            found = self.cast_ray(grid, x, y, angle, visible, blocks)
            if found is None:
                hits.append(Hit.miss())
                continue
            hits.append(Hit(
                distance=found.distance * self.column_cosines[c],
                raw_distance=found.distance,
                cell=found.cell,
                vertical=found.vertical,
                x=found.x,
                y=found.y,
                texture=found.texture,
                u=found.u,
            ))
        return hits

    def cast_ray(
        self,
        grid: Grid,
        x: float,
        y: float,
        angle: float,
        visible: set,
        blocks: list = (),
    ) -> Optional[_Intercept]:
        """Return the nearest surface along *angle*, or None if the ray leaves the grid."""
        cos_a = math.cos(angle)
        sin_a = math.sin(angle)

        vert = self._walk_vertical(grid, x, y, cos_a, sin_a, visible)
        horiz = self._walk_horizontal(grid, x, y, cos_a, sin_a, visible)
        for block in blocks:
            vert = _nearer(vert, self._block_vertical_face(block, x, y, cos_a, sin_a))
            horiz = _nearer(horiz, self._block_horizontal_face(block, x, y, cos_a, sin_a))
        return _nearer(vert, horiz)

    # -----------------------------------------------------------------------
    # Vertical grid lines (x = const)
    # -----------------------------------------------------------------------

    def _walk_vertical(
        self, grid: Grid, ox: float, oy: float, cos_a: float, sin_a: float, visible: set
    ) -> Optional[_Intercept]:
        if abs(cos_a) < _AXIS_EPSILON:
            return None

        step = 1 if cos_a > 0 else -1
        slope = sin_a / cos_a
        x = math.floor(ox) + 1 if step > 0 else math.floor(ox)
        y = oy + (x - ox) * slope

        while True:
            col = x if step > 0 else x - 1
            row = math.floor(y)
            if not grid.contains(col, row):
                return None
            index = grid.index(col, row)
            cell = grid.cells[index]

            if isinstance(cell, Wall) or (
                isinstance(cell, PushWall) and cell.status is PushWallStatus.READY
            ):
                # Face on the near side of the cell the ray came from
                if isinstance(grid.cell_at(col - step, row), Door):
                    texture = self.door_base + JAMB_VERTICAL
                else:
                    texture = wall_page(cell.texture, vertical=True)
                u = y - row if step > 0 else 1.0 - (y - row)
                return _Intercept(
                    math.hypot(x - ox, y - oy), x, y, index, texture, u, True
                )

            if isinstance(cell, Door) and cell.vertical:
                # Leaf sits on the cell midline and slides along y
                hx = x + step * 0.5
                hy = y + step * 0.5 * slope
                if math.floor(hy) == row:
                    offset = hy - row
                    if offset >= cell.progress:
                        return _Intercept(
                            math.hypot(hx - ox, hy - oy), hx, hy, index,
                            door_page(cell, self.door_base), offset - cell.progress, True,
                        )

            visible.add(index)
            x += step
            y += step * slope

    # -----------------------------------------------------------------------
    # Horizontal grid lines (y = const)
    # -----------------------------------------------------------------------

    def _walk_horizontal(
        self, grid: Grid, ox: float, oy: float, cos_a: float, sin_a: float, visible: set
    ) -> Optional[_Intercept]:
        if abs(sin_a) < _AXIS_EPSILON:
            return None

        step = 1 if sin_a > 0 else -1
        inv_slope = cos_a / sin_a
        y = math.floor(oy) + 1 if step > 0 else math.floor(oy)
        x = ox + (y - oy) * inv_slope

        while True:
            row = y if step > 0 else y - 1
            col = math.floor(x)
            if not grid.contains(col, row):
                return None
            index = grid.index(col, row)
            cell = grid.cells[index]

            if isinstance(cell, Wall) or (
                isinstance(cell, PushWall) and cell.status is PushWallStatus.READY
            ):
                if isinstance(grid.cell_at(col, row - step), Door):
                    texture = self.door_base + JAMB_HORIZONTAL
                else:
                    texture = wall_page(cell.texture, vertical=False)
                u = 1.0 - (x - col) if step > 0 else x - col
                return _Intercept(
                    math.hypot(x - ox, y - oy), x, y, index, texture, u, False
                )

            if isinstance(cell, Door) and not cell.vertical:
                hy = y + step * 0.5
                hx = x + step * 0.5 * inv_slope
                if math.floor(hx) == col:
                    offset = hx - col
                    if offset >= cell.progress:
                        return _Intercept(
                            math.hypot(hx - ox, hy - oy), hx, hy, index,
                            door_page(cell, self.door_base), offset - cell.progress, False,
                        )

            visible.add(index)
            y += step
            x += step * inv_slope

    # -----------------------------------------------------------------------
    # Moving push-walls
    # -----------------------------------------------------------------------

    def _blocks(self, grid: Grid, moving: Iterable[int]) -> list[_Block]:
        blocks = []
        for index in moving:
            cell = grid.cells[index]
            if not isinstance(cell, PushWall) or cell.status is not PushWallStatus.MOVING:
                continue
            col, row = grid.coords(index)
            blocks.append(_Block(
                cell=index,
                x0=col + cell.progress * cell.direction.dx,
                y0=row + cell.progress * cell.direction.dy,
                texture=cell.texture,
            ))
        return blocks

    def _block_vertical_face(
        self, block: _Block, ox: float, oy: float, cos_a: float, sin_a: float
    ) -> Optional[_Intercept]:
        """Intersect the ray with the block face it would enter on the x axis."""
        if abs(cos_a) < _AXIS_EPSILON:
            return None
        fx = block.x0 if cos_a > 0 else block.x0 + 1.0
        t = (fx - ox) / cos_a
        if t < 0:
            return None
        fy = oy + t * sin_a
        if not block.y0 <= fy <= block.y0 + 1.0:
            return None
        u = fy - block.y0 if cos_a > 0 else 1.0 - (fy - block.y0)
        return _Intercept(
            t, fx, fy, block.cell, wall_page(block.texture, vertical=True),
            min(max(u, 0.0), 1.0 - 1e-9), True,
        )

    def _block_horizontal_face(
        self, block: _Block, ox: float, oy: float, cos_a: float, sin_a: float
    ) -> Optional[_Intercept]:
        """Intersect the ray with the block face it would enter on the y axis."""
        if abs(sin_a) < _AXIS_EPSILON:
            return None
        fy = block.y0 if sin_a > 0 else block.y0 + 1.0
        t = (fy - oy) / sin_a
        if t < 0:
            return None
        fx = ox + t * cos_a
        if not block.x0 <= fx <= block.x0 + 1.0:
            return None
        u = 1.0 - (fx - block.x0) if sin_a > 0 else fx - block.x0
        return _Intercept(
            t, fx, fy, block.cell, wall_page(block.texture, vertical=False),
            min(max(u, 0.0), 1.0 - 1e-9), False,
        )
