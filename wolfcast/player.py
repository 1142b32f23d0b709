"""Viewer controller: movement with grid collision and item pickup."""

import logging
import math

from wolfcast.defs import Direction, Empty, Pose, normalize_angle

log = logging.getLogger(__name__)

# Cells per second / radians per second
WALK_SPEED = 3.0
RUN_SPEED = 6.0
TURN_SPEED = math.radians(150)

# Collision half-extent of the viewer box
RADIUS = 0.2


class Player:
    """
    Moves a Pose through a level.

    Angles follow the map convention: 0 = east, increasing clockwise on the
    map (toward +y, south), so a positive turn looks right.
    """

    def __init__(self, pose: Pose):
        self.pose = pose
        self.collected: list[int] = []

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def move(
        self,
        forward: float,
        strafe: float,
        turn: float,
        dt: float,
        level,
        running: bool = False,
    ) -> None:
        """Advance the viewer by *dt* seconds.

        Args:
            forward: -1 (backward) to +1 (forward).
            strafe:  -1 (left) to +1 (right).
            turn:    -1 (left) to +1 (right).
            level:   anything with is_passable(col, row) and a grid.
            running: double movement speed.
        """
        dt = max(0.0, dt)
        pose = self.pose
        pose.heading = normalize_angle(pose.heading + turn * TURN_SPEED * dt)

        speed = (RUN_SPEED if running else WALK_SPEED) * dt
        cos_h, sin_h = math.cos(pose.heading), math.sin(pose.heading)
        # Strafe right is heading + 90 degrees: (-sin, cos)
        dx = (forward * cos_h - strafe * sin_h) * speed
        dy = (forward * sin_h + strafe * cos_h) * speed
        if dx == 0.0 and dy == 0.0:
            return

        new_x, new_y = pose.x + dx, pose.y + dy
        if self._try_move(new_x, new_y, level):
            pose.x, pose.y = new_x, new_y
        else:
            # Wall-slide: try axis-separated moves
            if self._try_move(new_x, pose.y, level):
                pose.x = new_x
            elif self._try_move(pose.x, new_y, level):
                pose.y = new_y

        self._collect(level.grid)

    def facing_cell(self) -> tuple[int, int]:
        """The neighbouring cell along the dominant axis of the heading."""
        direction = Direction.from_angle(self.pose.heading)
        col, row = self.pose.cell
        return col + direction.dx, row + direction.dy

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _try_move(self, x: float, y: float, level) -> bool:
        """True if the viewer box centred on (x, y) overlaps only passable cells."""
        here = self.pose.cell
        for cx in (x - RADIUS, x + RADIUS):
            for cy in (y - RADIUS, y + RADIUS):
                cell = int(math.floor(cx)), int(math.floor(cy))
                # Never trap the viewer in the cell it already stands in
                if cell == here:
                    continue
                if not level.is_passable(*cell):
                    return False
        return True

    def _collect(self, grid) -> None:
        col, row = self.pose.cell
        if not grid.contains(col, row):
            return
        index = grid.index(col, row)
        cell = grid.cells[index]
        if not isinstance(cell, Empty) or cell.entity is None:
            return
        entity = grid.entities[cell.entity]
        if entity.collectable:
            cell.entity = None
            entity.renders = False
            self.collected.append(entity.code)
            log.debug("picked up object %d at (%d, %d)", entity.code, col, row)
