"""
Plane decompression for wolfcast.

Level planes are stored twice-compressed: first run-length encoded with a
per-archive RLEW tag word, then the RLEW stream is Carmack-compressed
(near/far back-references).  Decoding reverses the order:

    compressed --carmack_expand--> RLEW stream --rlew_expand--> plane words

Both streams start with a little-endian u16 holding the expanded length in
bytes.  Every malformed input raises DecodeError; no index errors escape.
"""

import struct

from wolfcast.defs import NEARTAG, FARTAG, DecodeError


def _expanded_words(data: bytes, what: str) -> int:
    if len(data) < 2:
        raise DecodeError(f"{what}: missing length prefix")
    length, = struct.unpack_from("<H", data, 0)
    if length % 2:
        raise DecodeError(f"{what}: odd expanded length {length}")
    return length // 2


def _pack(words: list) -> bytes:
    return struct.pack(f"<{len(words)}H", *words)


def carmack_expand(data: bytes) -> bytes:
    """
    Expand a Carmack-compressed buffer.

    Word layout (little-endian):
        0xA7nn  near copy of nn words; next byte = distance back in words
        0xA8nn  far copy of nn words;  next u16 = word offset from output start
        0xA700 / 0xA800 followed by one byte b: literal word 0xA7bb / 0xA8bb
    """
    total = _expanded_words(data, "carmack")
    out: list[int] = []
    size = len(data)
    pos = 2

    while len(out) < total:
        if pos + 2 > size:
            raise DecodeError(f"carmack: truncated at byte {pos} ({len(out)}/{total} words)")
        word = data[pos] | (data[pos + 1] << 8)
        pos += 2
        tag = word >> 8
        count = word & 0xFF

        if tag != NEARTAG and tag != FARTAG:
            out.append(word)
            continue

        if count == 0:
            # Escaped literal: the sentinel byte plus the following byte
            if pos >= size:
                raise DecodeError("carmack: truncated escaped literal")
            out.append((tag << 8) | data[pos])
            pos += 1
            continue

        if tag == NEARTAG:
            if pos >= size:
                raise DecodeError("carmack: truncated near offset")
            distance = data[pos]
            pos += 1
            start = len(out) - distance
            if distance == 0 or start < 0:
                raise DecodeError(
                    f"carmack: near reference {distance} words back from {len(out)}"
                )
        else:
            if pos + 2 > size:
                raise DecodeError("carmack: truncated far offset")
            start = data[pos] | (data[pos + 1] << 8)
            pos += 2
            if start >= len(out):
                raise DecodeError(
                    f"carmack: far reference to word {start}, only {len(out)} written"
                )

        if len(out) + count > total:
            raise DecodeError(
                f"carmack: copy of {count} words overflows {total}-word output"
            )
        # Word-by-word so overlapping references repeat a pattern
        for i in range(count):
            out.append(out[start + i])

    return _pack(out)


def rlew_expand(data: bytes, tag: int) -> bytes:
    """
    Expand an RLEW buffer.  The word *tag* introduces a run: the next two
    words are a repeat count and the value.  A zero count emits nothing.
    """
    total = _expanded_words(data, "rlew")
    if len(data) % 2:
        raise DecodeError("rlew: stream is not word aligned")
    n_words = len(data) // 2
    words = struct.unpack_from(f"<{n_words}H", data, 0)
    out: list[int] = []
    i = 1

    while len(out) < total:
        if i >= n_words:
            raise DecodeError(f"rlew: truncated ({len(out)}/{total} words)")
        word = words[i]
        if word != tag:
            out.append(word)
            i += 1
            continue
        if i + 2 >= n_words:
            raise DecodeError("rlew: truncated run")
        count, value = words[i + 1], words[i + 2]
        i += 3
        if len(out) + count > total:
            raise DecodeError(f"rlew: run of {count} overflows {total}-word output")
        out.extend([value] * count)

    return _pack(out)


def decode_plane(data: bytes, tag: int, expected_words: int | None = None) -> list[int]:
    """
    Fully decode one compressed plane and return its words.

    Raises DecodeError on any malformed stage or when the result does not
    hold *expected_words* words.
    """
    raw = rlew_expand(carmack_expand(data), tag)
    n = len(raw) // 2
    if expected_words is not None and n != expected_words:
        raise DecodeError(f"plane decoded to {n} words, expected {expected_words}")
    return list(struct.unpack(f"<{n}H", raw))
