"""Shared constants and data structures for wolfcast."""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

# Screen dimensions (VGA mode 13h resolution)
SCREENWIDTH = 320
SCREENHEIGHT = 200

# Field of view in radians
FOV = math.radians(60)

TWO_PI = 2.0 * math.pi

# Textures are 64x64 palettised pixels, stored column-major
TEXTURE_SIZE = 64
WALL_PAGE_SIZE = TEXTURE_SIZE * TEXTURE_SIZE

# Palette file layout
PALETTE_FILE_SIZE = 893
PALETTE_FOOTER_SIZE = 6
PALETTE_COLORS = 256
PALETTE_DATA_SIZE = PALETTE_COLORS * 3

# Carmack compression sentinels
NEARTAG = 0xA7
FARTAG = 0xA8

# Map data
MAP_HEADER_SIZE = 42
MAP_PLANES = 3
RLEW_TAG = 0xABCD

# Terrain plane thresholds
MAX_WALL_ID = 63
FIRST_DOOR_ID = 64
LAST_DOOR_ID = 101

# Object plane codes
PUSHWALL_CODE = 98
PLAYER_START_NORTH = 19
PLAYER_START_WEST = 22

# Door pages sit at the end of the wall range
DOOR_PAGE_COUNT = 8
JAMB_HORIZONTAL = 2
JAMB_VERTICAL = 3

# Animation speeds (progress per second)
DOOR_SPEED = 1.0
PUSHWALL_SPEED = 0.5

# Projection
NEAR_CLIP = 0.05


class LoadError(ValueError):
    """A level or asset bundle could not be loaded."""


class DecodeError(LoadError):
    """A compressed plane is malformed."""


# ─── Headings ───

class Direction(Enum):
    EAST = (1, 0)
    SOUTH = (0, 1)
    WEST = (-1, 0)
    NORTH = (0, -1)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @property
    def angle(self) -> float:
        return math.atan2(self.dy, self.dx) % TWO_PI

    @classmethod
    def from_angle(cls, angle: float) -> "Direction":
        """Return the axis direction closest to *angle*."""
        c, s = math.cos(angle), math.sin(angle)
        if abs(c) >= abs(s):
            return cls.EAST if c > 0 else cls.WEST
        return cls.SOUTH if s > 0 else cls.NORTH


def normalize_angle(angle: float) -> float:
    """Wrap *angle* into [0, 2pi)."""
    angle = math.fmod(angle, TWO_PI)
    if angle < 0:
        angle += TWO_PI
    # fmod of a tiny negative can round up to exactly 2pi
    if angle >= TWO_PI:
        angle = 0.0
    return angle


@dataclass
class Pose:
    x: float
    y: float
    heading: float

    @property
    def cell(self) -> tuple[int, int]:
        return int(math.floor(self.x)), int(math.floor(self.y))


# ─── Cells ───

class DoorStatus(Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


class DoorKind(Enum):
    NORMAL = "normal"
    LOCKED = "locked"
    ELEVATOR = "elevator"


class PushWallStatus(Enum):
    READY = "ready"
    MOVING = "moving"
    MOVED = "moved"


@dataclass
class Empty:
    texture: int = 0
    entity: Optional[int] = None  # index into Grid.entities


@dataclass
class Wall:
    texture: int


@dataclass
class Door:
    texture: int
    status: DoorStatus = DoorStatus.CLOSED
    progress: float = 0.0

    @property
    def vertical(self) -> bool:
        """Even ids run north-south through the cell centre."""
        return self.texture % 2 == 0

    @property
    def kind(self) -> DoorKind:
        if 92 <= self.texture <= 95:
            return DoorKind.LOCKED
        if self.texture in (100, 101):
            return DoorKind.ELEVATOR
        return DoorKind.NORMAL


@dataclass
class PushWall:
    texture: int
    status: PushWallStatus = PushWallStatus.READY
    progress: float = 0.0
    direction: Optional[Direction] = None
    target: Optional[int] = None


Cell = Union[Empty, Wall, Door, PushWall]


def wall_page(texture: int, vertical: bool) -> int:
    """Archive page for a wall face; each wall id owns a light/dark pair."""
    return 2 * texture - (1 if vertical else 2)


# (horizontal, vertical) page offsets from the first door page
DOOR_PAGES = {
    DoorKind.NORMAL: (0, 1),
    DoorKind.ELEVATOR: (4, 5),
    DoorKind.LOCKED: (6, 7),
}


def door_page(door: Door, door_base: int) -> int:
    horizontal, vertical = DOOR_PAGES[door.kind]
    return door_base + (vertical if door.vertical else horizontal)


# ─── Entities ───

@dataclass
class Entity:
    x: float
    y: float
    cell: int
    texture: int          # sprite index
    code: int = 0
    orientable: bool = False
    blocking: bool = False
    collectable: bool = False
    renders: bool = True
    heading: Direction = Direction.SOUTH


@dataclass
class Enemy(Entity):
    alive: bool = True
    death_frames: tuple = ()
    death_duration: float = 0.6
    death_elapsed: float = 0.0

    @property
    def dying(self) -> bool:
        return not self.alive and self.death_elapsed < self.death_duration

    def current_texture(self) -> int:
        """Sprite to draw: standing frame while alive, else the death frame."""
        if self.alive or not self.death_frames:
            return self.texture
        n = len(self.death_frames)
        i = int(self.death_elapsed / self.death_duration * n) if self.death_duration > 0 else n
        return self.death_frames[min(i, n - 1)]


# ─── Ray hits ───

@dataclass
class Hit:
    distance: float           # fish-eye corrected
    raw_distance: float
    cell: Optional[int] = None
    vertical: bool = False    # struck a vertical grid line (x = const)
    x: float = 0.0
    y: float = 0.0
    texture: int = -1
    u: float = 0.0            # texture column coordinate in [0, 1)

    @classmethod
    def miss(cls) -> "Hit":
        return cls(distance=math.inf, raw_distance=math.inf)

    @property
    def is_miss(self) -> bool:
        return self.cell is None


@dataclass
class MapPlanes:
    """Decoded planes of one level."""
    name: str
    width: int
    height: int
    planes: list = field(default_factory=list)
