"""
Map directory and map data readers for wolfcast.

Map directory (MAPHEAD):
    H       RLEW tag for every plane in the map data
    n * I   level header offsets into the map data (0 = no level)

Level header (42 bytes, at its offset in GAMEMAPS):
    3i   plane offsets
    3H   compressed plane lengths
    H    width
    H    height
    16s  name (NUL padded)
    4s   signature
"""

import logging
import struct
from dataclasses import dataclass

from wolfcast.decoder import decode_plane
from wolfcast.defs import DecodeError, LoadError, MapPlanes, MAP_HEADER_SIZE, MAP_PLANES

log = logging.getLogger(__name__)

# Planes 0 (terrain) and 1 (objects) are stored; plane 2 is runtime-only
_STORED_PLANES = 2


@dataclass
class LevelHeader:
    plane_offsets: tuple
    plane_lengths: tuple
    width: int
    height: int
    name: str


class MapDirectory:
    """Parses the map directory: RLEW tag plus per-level header offsets."""

    def __init__(self, data: bytes) -> None:
        if len(data) < 2:
            raise LoadError(f"map directory too small: {len(data)} bytes")
        self.rlew_tag, = struct.unpack_from("<H", data, 0)
        n = (len(data) - 2) // 4
        self.offsets = list(struct.unpack_from(f"<{n}I", data, 2))

    @property
    def level_count(self) -> int:
        """Number of leading levels with a nonzero header offset."""
        count = 0
        for offset in self.offsets:
            if offset == 0:
                break
            count += 1
        return count

    def level_offset(self, index: int) -> int:
        if not 0 <= index < len(self.offsets) or self.offsets[index] == 0:
            raise LoadError(f"level {index} is not present in the map directory")
        return self.offsets[index]


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()


class GameMaps:
    """Reads level headers and decodes planes from the map data buffer."""

    _HEADER_FMT = "<3i3H2H16s4s"

    def __init__(self, directory: MapDirectory, data: bytes) -> None:
        self.directory = directory
        self._data = data

    def header(self, index: int) -> LevelHeader:
        offset = self.directory.level_offset(index)
        if offset + MAP_HEADER_SIZE > len(self._data):
            raise LoadError(f"level {index} header at {offset} lies outside the map data")
        fields = struct.unpack_from(self._HEADER_FMT, self._data, offset)
        header = LevelHeader(
            plane_offsets=fields[0:3],
            plane_lengths=fields[3:6],
            width=fields[6],
            height=fields[7],
            name=_decode_name(fields[8]),
        )
        if header.width == 0 or header.height == 0:
            raise LoadError(f"level {index} has empty dimensions {header.width}x{header.height}")
        return header

    def load_planes(self, index: int) -> MapPlanes:
        """
        Decode the stored planes of level *index* and synthesize the third.
        Any decode failure is fatal to the load.
        """
        header = self.header(index)
        n_cells = header.width * header.height
        planes = []
        for p in range(_STORED_PLANES):
            start = header.plane_offsets[p]
            length = header.plane_lengths[p]
            if start < 0 or start + length > len(self._data):
                raise LoadError(f"level {index} plane {p} lies outside the map data")
            compressed = self._data[start: start + length]
            try:
                planes.append(decode_plane(compressed, self.directory.rlew_tag, n_cells))
            except DecodeError as e:
                raise DecodeError(f"level {index} plane {p}: {e}") from e

        for _ in range(MAP_PLANES - _STORED_PLANES):
            planes.append([0] * n_cells)

        log.info("level %d %r: %dx%d", index, header.name, header.width, header.height)
        return MapPlanes(name=header.name, width=header.width, height=header.height, planes=planes)
