"""Main game class for wolfcast.

Per frame:
  - input -> key edges and movement axes
  - CellStateMachine / enemy animation advance
  - raycast rebuilds hits and the visible-cell set
  - renderer composes the frame, which is scaled to the window
"""

import logging

import pygame

from wolfcast.assets import AssetStore
from wolfcast.config import Settings, console
from wolfcast.defs import LoadError
from wolfcast.input import KeyEdges, held_keys
from wolfcast.level import LevelState, load_level
from wolfcast.maps import GameMaps
from wolfcast.perf import perf
from wolfcast.player import Player
from wolfcast.raycaster import Raycaster
from wolfcast.renderer import Renderer

log = logging.getLogger(__name__)

# Window is the frame scaled by this factor
WINDOW_SCALE = 3

# Longest simulated step; longer frames (window drags, breakpoints) are clamped
MAX_FRAME_MS = 200

_EDGE_KEYS = (
    pygame.K_SPACE,
    pygame.K_LCTRL, pygame.K_RCTRL,
    pygame.K_PAGEUP, pygame.K_PAGEDOWN,
)


class Game:
    """Top-level host.  Create once with loaded assets, then call game.run()."""

    def __init__(self, store: AssetStore, maps: GameMaps, settings: Settings):
        self.store = store
        self.maps = maps
        self.settings = settings

        # ── Level (a bad first level fails before any window opens) ──
        self.level: LevelState = self._load(settings.level)
        self.player = Player(self.level.viewer)

        pygame.init()

        # ── Display ──
        self.screen = pygame.display.set_mode(
            (settings.width * WINDOW_SCALE, settings.height * WINDOW_SCALE)
        )
        pygame.display.set_caption(f"wolfcast - {self.level.name}")

        # ── Projection ──
        self.raycaster = Raycaster(settings.width, settings.fov, door_base=store.door_base)
        self.renderer = Renderer(settings.width, settings.height, store, settings.fov)

        self.edges = KeyEdges()
        self.clock = pygame.time.Clock()
        self.running = True

    # ── Level switching ──

    def _load(self, index: int) -> LevelState:
        with perf.timer("load_level", level=index):
            level = load_level(
                self.store, self.maps, index,
                self.settings.door_speed, self.settings.pushwall_speed,
            )
        return level

    def switch_level(self, delta: int) -> bool:
        """Discard the current level and load the one *delta* away; wraps around."""
        count = self.maps.directory.level_count
        if count == 0:
            return False
        index = (self.level.index + delta) % count
        try:
            level = self._load(index)
        except LoadError as e:
            log.warning("level %d not loaded: %s", index, e)
            return False
        self.level = level
        self.player = Player(level.viewer)
        pygame.display.set_caption(f"wolfcast - {level.name}")
        console.print(f"Level {index}: {level.name}")
        return True

    # ── Main loop ──

    def run(self) -> None:
        """Main game loop.  Returns when the user quits."""
        while self.running:
            frame_ms = self.clock.tick(60)
            frame_ms = min(frame_ms, MAX_FRAME_MS)
            dt = frame_ms / 1000.0

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    self.running = False
            if not self.running:
                break

            keys = pygame.key.get_pressed()
            fresh = self.edges.update(held_keys(keys, _EDGE_KEYS))
            self._handle_presses(fresh)

            forward = 0.0
            if keys[pygame.K_w] or keys[pygame.K_UP]:
                forward += 1.0
            if keys[pygame.K_s] or keys[pygame.K_DOWN]:
                forward -= 1.0
            strafe = 0.0
            if keys[pygame.K_a]:
                strafe -= 1.0
            if keys[pygame.K_d]:
                strafe += 1.0
            turn = 0.0
            if keys[pygame.K_LEFT]:
                turn -= 1.0
            if keys[pygame.K_RIGHT]:
                turn += 1.0
            running = keys[pygame.K_LSHIFT] or keys[pygame.K_RSHIFT]

            self.player.move(forward, strafe, turn, dt, self.level, bool(running))

            with perf.timer("advance"):
                self.level.step(dt)
            with perf.timer("cast"):
                self.level.cast(self.raycaster)
            with perf.timer("draw"):
                frame = self.renderer.render(self.level)

            pygame.transform.scale(frame, self.screen.get_size(), self.screen)
            pygame.display.flip()

        pygame.quit()

    def _handle_presses(self, fresh: set) -> None:
        if pygame.K_SPACE in fresh:
            self.level.interact()
        if pygame.K_LCTRL in fresh or pygame.K_RCTRL in fresh:
            killed = self.level.shoot()
            if killed is not None:
                log.debug("shot enemy %d", killed)
        if pygame.K_PAGEUP in fresh:
            self.switch_level(1)
        elif pygame.K_PAGEDOWN in fresh:
            self.switch_level(-1)
