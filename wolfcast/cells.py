"""
Door and push-wall animation for wolfcast.

Both machines are driven once per frame from an explicit list of
animating cell indices, so the cost scales with what moves rather than
with the grid size.

    Door:     CLOSED --interact--> OPENING --progress=1--> OPEN --> (inactive)
    PushWall: READY --interact--> MOVING --progress=1--> MOVED
              (origin becomes Empty, target becomes Wall or a READY PushWall)
"""

import logging

from wolfcast.defs import (
    Door, DoorStatus, Empty, PushWall, PushWallStatus, Wall, Direction,
    DOOR_SPEED, PUSHWALL_SPEED,
)
from wolfcast.grid import Grid

log = logging.getLogger(__name__)


class CellStateMachine:
    """Owns the active-cell list of one level."""

    def __init__(
        self,
        grid: Grid,
        door_speed: float = DOOR_SPEED,
        pushwall_speed: float = PUSHWALL_SPEED,
    ) -> None:
        self.grid = grid
        self.door_speed = door_speed
        self.pushwall_speed = pushwall_speed
        self.active: list[int] = []

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def interact(self, index: int, direction: Direction | None = None) -> bool:
        """
        Trigger the cell at *index*.  *direction* is the push direction for
        push-walls.  Returns True when an animation started; every other
        case is a silent no-op.
        """
        cell = self.grid.cells[index]

        if isinstance(cell, Door):
            if cell.status is not DoorStatus.CLOSED:
                return False
            cell.status = DoorStatus.OPENING
            self.active.append(index)
            log.debug("door %d opening", index)
            return True

        if isinstance(cell, PushWall):
            if cell.status is not PushWallStatus.READY or direction is None:
                return False
            col, row = self.grid.coords(index)
            tcol, trow = col + direction.dx, row + direction.dy
            if not self.grid.is_walkable(tcol, trow):
                return False
            # the target must hold no entity, not even a pickup
            if self.grid.cell_at(tcol, trow).entity is not None:
                return False
            cell.status = PushWallStatus.MOVING
            cell.direction = direction
            cell.target = self.grid.index(tcol, trow)
            self.active.append(index)
            log.debug("push-wall %d moving %s", index, direction.name)
            return True

        return False

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def advance(self, dt: float) -> None:
        """Advance every active cell by *dt* seconds (negative dt counts as 0)."""
        dt = max(0.0, dt)
        still_active: list[int] = []

        for index in self.active:
            cell = self.grid.cells[index]

            if isinstance(cell, Door):
                if cell.status is DoorStatus.OPEN:
                    continue  # one tick at OPEN, then dropped
                cell.progress = min(1.0, cell.progress + dt * self.door_speed)
                if cell.progress >= 1.0:
                    cell.status = DoorStatus.OPEN
                    log.debug("door %d open", index)
                still_active.append(index)

            elif isinstance(cell, PushWall) and cell.status is PushWallStatus.MOVING:
                cell.progress = min(1.0, cell.progress + dt * self.pushwall_speed)
                if cell.progress >= 1.0:
                    self._finish_push(index, cell)
                else:
                    still_active.append(index)

        self.active = still_active

    def _finish_push(self, index: int, pushwall: PushWall) -> None:
        grid = self.grid
        target = pushwall.target
        direction = pushwall.direction
        pushwall.status = PushWallStatus.MOVED

        old_target = grid.cells[target]
        floor = old_target.texture if isinstance(old_target, Empty) else 0
        grid.cells[index] = Empty(texture=floor)

        tcol, trow = grid.coords(target)
        if grid.is_walkable(tcol + direction.dx, trow + direction.dy):
            grid.cells[target] = PushWall(texture=pushwall.texture)
        else:
            grid.cells[target] = Wall(texture=pushwall.texture)
        log.debug("push-wall %d settled at %d as %s", index, target,
                  type(grid.cells[target]).__name__)

    def moving_pushwalls(self) -> list[int]:
        return [
            i for i in self.active
            if isinstance(self.grid.cells[i], PushWall)
            and self.grid.cells[i].status is PushWallStatus.MOVING
        ]
