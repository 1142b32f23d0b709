"""Enemy lifecycle: Alive -> Dead on a hit, death animation, then retired."""

import logging

from wolfcast.defs import Enemy

log = logging.getLogger(__name__)


class EnemyRoster:
    """Tracks the enemies that are alive or still playing their death animation."""

    def __init__(self, entities: list) -> None:
        self.entities = entities
        self.active: list[int] = [
            i for i, e in enumerate(entities) if isinstance(e, Enemy) and e.alive
        ]

    def kill(self, entity_index: int) -> bool:
        """Apply a hit event.  Returns False if the target is not a live enemy."""
        enemy = self.entities[entity_index]
        if not isinstance(enemy, Enemy) or not enemy.alive:
            return False
        enemy.alive = False
        enemy.blocking = False
        enemy.orientable = False
        enemy.death_elapsed = 0.0
        log.debug("enemy %d (code %d) killed", entity_index, enemy.code)
        return True

    def advance(self, dt: float) -> None:
        dt = max(0.0, dt)
        remaining = []
        for i in self.active:
            enemy = self.entities[i]
            if not enemy.alive:
                enemy.death_elapsed = min(enemy.death_duration, enemy.death_elapsed + dt)
                if enemy.death_elapsed >= enemy.death_duration:
                    continue
            remaining.append(i)
        self.active = remaining
