"""
Page archive reader, palette loader and sprite decoder for wolfcast.

Archive layout (little-endian):
    H   chunk count
    H   first sprite chunk
    H   first sound chunk
    count * I   chunk offsets
    count * H   chunk lengths
    ...         payloads

Wall chunks are 64x64 column-major palette indices.  Sprite chunks are
column-indexed run-length shapes (see Sprite).  Sound chunks are indexed
but never decoded.
"""

import logging
import struct
from dataclasses import dataclass, field

from wolfcast.defs import (
    LoadError,
    TEXTURE_SIZE, WALL_PAGE_SIZE,
    PALETTE_FILE_SIZE, PALETTE_FOOTER_SIZE, PALETTE_COLORS, PALETTE_DATA_SIZE,
    DOOR_PAGE_COUNT,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Page archive
# ---------------------------------------------------------------------------

class PageFile:
    """
    Indexes an already-fetched page archive and provides chunk access.
    All offsets and lengths are validated up front.
    """

    _HEADER_FMT = "<HHH"
    _HEADER_SIZE = struct.calcsize(_HEADER_FMT)  # 6

    def __init__(self, data: bytes) -> None:
        self._data = data

        if len(data) < self._HEADER_SIZE:
            raise LoadError(f"archive too small for header: {len(data)} bytes")

        count, sprite_start, sound_start = struct.unpack_from(self._HEADER_FMT, data, 0)
        if not sprite_start <= sound_start <= count:
            raise LoadError(
                f"archive header out of order: sprites at {sprite_start}, "
                f"sounds at {sound_start}, {count} chunks"
            )

        table_end = self._HEADER_SIZE + count * 6
        if table_end > len(data):
            raise LoadError(f"archive chunk table truncated ({count} chunks)")

        offsets = struct.unpack_from(f"<{count}I", data, self._HEADER_SIZE)
        lengths = struct.unpack_from(f"<{count}H", data, self._HEADER_SIZE + count * 4)

        for i, (offset, length) in enumerate(zip(offsets, lengths)):
            if length == 0 and i >= sound_start:
                continue  # sparse sound chunk
            if offset < table_end or offset + length > len(data):
                raise LoadError(
                    f"chunk {i} at {offset}+{length} lies outside the archive"
                )

        self.chunk_count = count
        self.sprite_start = sprite_start
        self.sound_start = sound_start
        self._offsets = offsets
        self._lengths = lengths

    @property
    def wall_count(self) -> int:
        return self.sprite_start

    @property
    def sprite_count(self) -> int:
        return self.sound_start - self.sprite_start

    @property
    def sound_count(self) -> int:
        return self.chunk_count - self.sound_start

    def read_chunk(self, index: int) -> bytes:
        """Return the raw bytes of chunk *index*."""
        if not 0 <= index < self.chunk_count:
            raise LoadError(f"chunk index {index} out of range 0..{self.chunk_count - 1}")
        offset = self._offsets[index]
        return self._data[offset: offset + self._lengths[index]]

    def chunk_length(self, index: int) -> int:
        return self._lengths[index]


# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------

def load_palette(data: bytes) -> list:
    """
    Return the 256 (r, g, b) colours of a palette file.

    The file is exactly 893 bytes; the 768 bytes before the 6-byte footer
    are 6-bit VGA triplets, scaled x4 here to 8-bit.
    """
    if len(data) != PALETTE_FILE_SIZE:
        raise LoadError(
            f"palette must be {PALETTE_FILE_SIZE} bytes, got {len(data)}"
        )
    end = len(data) - PALETTE_FOOTER_SIZE
    raw = data[end - PALETTE_DATA_SIZE: end]
    palette = []
    for i in range(PALETTE_COLORS):
        r, g, b = raw[i * 3], raw[i * 3 + 1], raw[i * 3 + 2]
        if r > 63 or g > 63 or b > 63:
            raise LoadError(f"palette entry {i} is not 6-bit: {(r, g, b)}")
        palette.append((r * 4, g * 4, b * 4))
    return palette


# ---------------------------------------------------------------------------
# Sprites
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpritePost:
    """One opaque run of a sprite column: rows [start, end)."""
    start: int
    end: int
    offset: int  # page offset of row 0; texel for row r is page[offset + r]


@dataclass
class Sprite:
    """
    Decoded sprite shape.

    Chunk layout:
        H   leftpix
        H   rightpix
        (rightpix - leftpix + 1) * H   command list offset per column
    Command list, repeated until an end word of 0:
        H   end row * 2
        h   pixel offset corrected by the start row
        H   start row * 2
    """
    left: int
    right: int
    columns: list = field(default_factory=list)  # per column: [SpritePost]
    data: bytes = b""

    @property
    def column_range(self) -> range:
        return range(self.left, self.right + 1)

    def posts(self, column: int) -> list:
        if column < self.left or column > self.right:
            return []
        return self.columns[column - self.left]

    def texel(self, post: SpritePost, row: int) -> int:
        return self.data[post.offset + row]

    @classmethod
    def parse(cls, data: bytes, index: int = -1) -> "Sprite":
        size = len(data)
        if size < 4:
            raise LoadError(f"sprite {index}: chunk too small ({size} bytes)")
        left, right = struct.unpack_from("<HH", data, 0)
        if left > right or right >= TEXTURE_SIZE:
            raise LoadError(f"sprite {index}: bad column range {left}..{right}")
        n_cols = right - left + 1
        if 4 + n_cols * 2 > size:
            raise LoadError(f"sprite {index}: column table truncated")
        col_offsets = struct.unpack_from(f"<{n_cols}H", data, 4)

        columns = []
        for col, pos in zip(range(left, right + 1), col_offsets):
            posts = []
            while True:
                if pos + 2 > size:
                    raise LoadError(f"sprite {index}: column {col} commands truncated")
                end2, = struct.unpack_from("<H", data, pos)
                if end2 == 0:
                    break
                if pos + 6 > size:
                    raise LoadError(f"sprite {index}: column {col} commands truncated")
                _, corrected, start2 = struct.unpack_from("<HhH", data, pos)
                pos += 6
                start, end = start2 // 2, end2 // 2
                if not 0 <= start < end <= TEXTURE_SIZE:
                    raise LoadError(
                        f"sprite {index}: column {col} post rows {start}..{end}"
                    )
                if corrected + start < 0 or corrected + end > size:
                    raise LoadError(
                        f"sprite {index}: column {col} texels outside chunk"
                    )
                posts.append(SpritePost(start, end, corrected))
            columns.append(posts)

        return cls(left=left, right=right, columns=columns, data=data)


# ---------------------------------------------------------------------------
# Asset store
# ---------------------------------------------------------------------------

class AssetStore:
    """
    Texel and colour lookups over a validated archive and palette.

    *expected* optionally pins the (walls, sprites, sounds) chunk counts;
    any mismatch aborts the load.
    """

    def __init__(self, archive: bytes, palette: bytes, expected: tuple | None = None) -> None:
        self.pages = PageFile(archive)
        self.palette = load_palette(palette)

        counts = (self.pages.wall_count, self.pages.sprite_count, self.pages.sound_count)
        if expected is not None and tuple(expected) != counts:
            raise LoadError(
                f"archive declares walls/sprites/sounds {counts}, expected {tuple(expected)}"
            )
        if self.pages.wall_count < DOOR_PAGE_COUNT:
            raise LoadError(
                f"archive holds {self.pages.wall_count} wall pages, "
                f"need at least {DOOR_PAGE_COUNT} door pages"
            )

        self._walls: list[bytes] = []
        for i in range(self.pages.wall_count):
            page = self.pages.read_chunk(i)
            if len(page) != WALL_PAGE_SIZE:
                raise LoadError(f"wall page {i} is {len(page)} bytes, expected {WALL_PAGE_SIZE}")
            self._walls.append(page)

        self._sprites: list[Sprite] = [
            Sprite.parse(self.pages.read_chunk(self.pages.sprite_start + i), i)
            for i in range(self.pages.sprite_count)
        ]

        log.info(
            "archive: %d walls, %d sprites, %d sounds",
            self.pages.wall_count, self.pages.sprite_count, self.pages.sound_count,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def wall_count(self) -> int:
        return self.pages.wall_count

    @property
    def sprite_count(self) -> int:
        return self.pages.sprite_count

    @property
    def door_base(self) -> int:
        """First of the eight door/jamb pages at the end of the wall range."""
        return self.pages.wall_count - DOOR_PAGE_COUNT

    def texel(self, page: int, linear_offset: int) -> int:
        """Palette index at *linear_offset* (column * 64 + row) of wall *page*."""
        return self._walls[page][linear_offset]

    def wall_column(self, page: int, column: int) -> bytes:
        start = column * TEXTURE_SIZE
        return self._walls[page][start: start + TEXTURE_SIZE]

    def palette_color(self, index: int) -> tuple:
        return self.palette[index]

    def sprite(self, index: int) -> Sprite:
        return self._sprites[index]

    def column_range(self, index: int) -> range:
        return self._sprites[index].column_range

    def column_posts(self, index: int, column: int) -> list:
        return self._sprites[index].posts(column)
