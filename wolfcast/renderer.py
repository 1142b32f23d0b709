"""
Column renderer for wolfcast.

Composes one frame from the per-column hits already cast for a level:

  1. ceiling and floor halves filled with flat palette colours
  2. one textured wall strip per column, scaled by corrected distance
  3. entity billboards, farthest first, clipped against the wall strips
  4. the weapon overlay
"""

from __future__ import annotations

import math

import pygame

from wolfcast.assets import AssetStore
from wolfcast.defs import TEXTURE_SIZE
from wolfcast.sprites import Frame, SpriteProjector, projected_height

# Flat ceiling and floor colours (palette indices)
CEILING_COLOR = 0x1D
FLOOR_COLOR = 0x19


class Renderer:
    """
    Draws a level's current hits into a 32-bit surface.

    Usage:
        renderer = Renderer(320, 200, assets, math.radians(60))
        surface  = renderer.render(level)
    """

    def __init__(self, screen_width: int, screen_height: int, assets: AssetStore, fov: float) -> None:
        self.width = screen_width
        self.height = screen_height
        self.assets = assets
        self.fov = fov
        self.sprites = SpriteProjector(assets, fov)

        self._screen = pygame.Surface((screen_width, screen_height), 0, 32)
        self._ceiling = assets.palette_color(CEILING_COLOR)
        self._floor = assets.palette_color(FLOOR_COLOR)

    # -----------------------------------------------------------------------
    # Public render entry point
    # -----------------------------------------------------------------------

    def render(self, level, weapon: bool = True) -> pygame.Surface:
        """Render the level's last cast and return the frame surface."""
        half = self.height // 2
        self._screen.fill(self._ceiling, pygame.Rect(0, 0, self.width, half))
        self._screen.fill(self._floor, pygame.Rect(0, half, self.width, self.height - half))

        with Frame(self._screen, self.assets.palette) as frame:
            for sx, hit in enumerate(level.hits):
                if not hit.is_miss:
                    self._draw_wall_column(frame, sx, hit)
            self.sprites.draw_entities(level, frame)
            if weapon:
                self.sprites.draw_weapon(frame)

        return self._screen

    # -----------------------------------------------------------------------
    # Wall strips
    # -----------------------------------------------------------------------

    def _draw_wall_column(self, frame: Frame, sx: int, hit) -> None:
        size = projected_height(hit.distance, self.width, self.fov)
        if size <= 0:
            return

        column = min(TEXTURE_SIZE - 1, int(hit.u * TEXTURE_SIZE))
        texels = self.assets.wall_column(hit.texture, column)
        scale = TEXTURE_SIZE / size
        top = self.height / 2 - size / 2

        y0 = max(0, math.ceil(top - 0.5))
        y1 = min(self.height, math.ceil(top + size - 0.5))
        colors = frame.colors
        pixels = frame.pixels
        for sy in range(y0, y1):
            row = min(TEXTURE_SIZE - 1, int((sy + 0.5 - top) * scale))
            pixels[sx, sy] = colors[texels[row]]
