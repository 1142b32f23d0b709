"""
Billboard projection for wolfcast.

Sprites are square 64x64 shapes scaled with distance into the same screen
space as the wall hits.  Each destination column is clipped against the
column's wall distance, so the per-column Hit list doubles as a depth
buffer.
"""

from __future__ import annotations

import math
from typing import Optional

import pygame

from wolfcast.assets import AssetStore, Sprite
from wolfcast.defs import Enemy, Pose, TEXTURE_SIZE, TWO_PI, NEAR_CLIP

# Pistol "ready" frame counted back from the end of the sprite range
WEAPON_FROM_END = 15

ROTATION_FRAMES = 8


def projected_height(distance: float, width: int, fov: float) -> int:
    """Even on-screen size of a unit-tall object at *distance*; 0 when not drawable."""
    if not distance > 0 or math.isinf(distance):
        return 0
    return 2 * round(width / (2 * fov) / distance)


def relative_bearing(bearing: float, heading: float) -> float:
    """Angle of *bearing* relative to *heading*, wrapped into (-pi, pi]."""
    rel = math.fmod(bearing - heading, TWO_PI)
    if rel <= -math.pi:
        rel += TWO_PI
    elif rel > math.pi:
        rel -= TWO_PI
    return rel


def rotation_frame(viewer_x: float, viewer_y: float, x: float, y: float, heading: float) -> int:
    """Which of the eight rotation frames faces a viewer standing at (viewer_x, viewer_y)."""
    a = math.atan2(viewer_y - y, viewer_x - x) - heading
    a %= TWO_PI
    return int((a + math.pi / 8) / (math.pi / 4)) % ROTATION_FRAMES


class Frame:
    """
    Pixel target for one rendered frame.

    Usage:
        with Frame(surface, assets.palette) as frame:
            frame.put(x, y, palette_index)
    """

    def __init__(self, surface: pygame.Surface, palette: list) -> None:
        self.surface = surface
        self.width, self.height = surface.get_size()
        # Palette indices pre-mapped to the surface's pixel format
        self.colors = [surface.map_rgb(c) for c in palette]
        self.pixels: Optional[pygame.PixelArray] = None

    def __enter__(self) -> "Frame":
        self.pixels = pygame.PixelArray(self.surface)
        return self

    def __exit__(self, *exc) -> None:
        self.pixels.close()
        self.pixels = None

    def put(self, x: int, y: int, palette_index: int) -> None:
        self.pixels[x, y] = self.colors[palette_index]


class SpriteProjector:
    """Draws entity billboards and the weapon overlay."""

    def __init__(self, assets: AssetStore, fov: float) -> None:
        self.assets = assets
        self.fov = fov

    # -----------------------------------------------------------------------
    # Projection
    # -----------------------------------------------------------------------

    def project(
        self,
        sprite: Sprite,
        x: float,
        y: float,
        pose: Pose,
        hits: list,
        frame: Frame,
    ) -> bool:
        """
        Draw *sprite* standing at world (x, y) as seen from *pose*.

        Returns False when the sprite is behind the near plane or too small
        to cover a pixel.
        """
        dx, dy = x - pose.x, y - pose.y
        depth = dx * math.cos(pose.heading) + dy * math.sin(pose.heading)
        if depth <= NEAR_CLIP:
            return False

        rel = relative_bearing(math.atan2(dy, dx), pose.heading)
        centre = (rel + self.fov / 2) * frame.width / self.fov - 0.5
        return self._blit(sprite, centre, depth, hits, frame)

    def _blit(
        self,
        sprite: Sprite,
        centre: float,
        depth: float,
        hits: Optional[list],
        frame: Frame,
    ) -> bool:
        size = projected_height(depth, frame.width, self.fov)
        if size <= 0:
            return False

        # Pixel sx is covered when its centre lies in [left, left + size)
        left = centre + 0.5 - size / 2
        top = frame.height / 2 - size / 2
        first_col = max(0, math.ceil(left - 0.5))
        last_col = min(frame.width, math.ceil(left + size - 0.5))
        scale = TEXTURE_SIZE / size

        for sx in range(first_col, last_col):
            if hits is not None and hits[sx].distance < depth:
                continue
            column = min(TEXTURE_SIZE - 1, int((sx + 0.5 - left) * scale))
            for post in sprite.posts(column):
                y0 = max(0, math.ceil(top + post.start / scale - 0.5))
                y1 = min(frame.height, math.ceil(top + post.end / scale - 0.5))
                for sy in range(y0, y1):
                    row = int((sy + 0.5 - top) * scale)
                    row = min(post.end - 1, max(post.start, row))
                    frame.put(sx, sy, sprite.texel(post, row))
        return True

    # -----------------------------------------------------------------------
    # Frame passes
    # -----------------------------------------------------------------------

    def draw_entities(self, level, frame: Frame) -> int:
        """Draw every rendering entity in a visible cell, farthest first.  Returns the count."""
        pose = level.viewer
        cos_h, sin_h = math.cos(pose.heading), math.sin(pose.heading)

        candidates = []
        for index in level.visible:
            entity = level.grid.entity_at(index)
            if entity is None or not entity.renders:
                continue
            depth = (entity.x - pose.x) * cos_h + (entity.y - pose.y) * sin_h
            if depth <= NEAR_CLIP:
                continue
            candidates.append((depth, entity))
        candidates.sort(key=lambda c: c[0], reverse=True)

        drawn = 0
        for _, entity in candidates:
            texture = entity.current_texture() if isinstance(entity, Enemy) else entity.texture
            if entity.orientable:
                texture += rotation_frame(pose.x, pose.y, entity.x, entity.y, entity.heading.angle)
            if self.project(self.assets.sprite(texture), entity.x, entity.y, pose, level.hits, frame):
                drawn += 1
        return drawn

    def weapon_sprite(self) -> Optional[int]:
        index = self.assets.sprite_count - WEAPON_FROM_END
        return index if index >= 0 else None

    def draw_weapon(self, frame: Frame, sprite_index: Optional[int] = None) -> bool:
        """Overlay the weapon at the screen centre, never occluded."""
        if sprite_index is None:
            sprite_index = self.weapon_sprite()
        if sprite_index is None:
            return False
        depth = frame.width / (self.fov * frame.height)
        return self._blit(
            self.assets.sprite(sprite_index), frame.width / 2 - 0.5, depth, None, frame
        )
