"""Conversions between UTF-8 byte strings and little-endian UCS-2 strings."""

from __future__ import annotations

import struct
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8", "surrogatepass")
    return bytes(data)


def _ucs2_units(data: BytesLike) -> list[int]:
    raw = _as_bytes(data)
    usable = len(raw) - len(raw) % 2
    return [unit for (unit,) in struct.iter_unpack("<H", raw[:usable])]


def ucs2_len(data: BytesLike, limit: int = -1) -> int:
    """Count the UCS-2 characters before the NUL terminator.

    A non-negative ``limit`` caps the number of characters examined.
    """
    count = 0
    for unit in _ucs2_units(data):
        if 0 <= limit <= count or unit == 0:
            break
        count += 1
    return count


def ucs2_size(data: BytesLike, limit: int = -1) -> int:
    """Return the size in bytes of a UCS-2 string, terminator included.

    A positive ``limit`` is also the largest value returned.
    """
    size = ucs2_len(data, limit) * 2 + 2
    if limit > 0 and size > limit:
        return limit
    return size


def _utf8_step(lead: int) -> int:
    if lead & 0xE0 == 0xC0:
        return 2
    if lead & 0xF0 == 0xE0:
        return 3
    return 1


def utf8_len(data: BytesLike, limit: int = -1) -> int:
    """Count UTF-8 characters before a NUL; only sequences up to 3 bytes are understood."""
    raw = _as_bytes(data)
    end = len(raw) if limit < 0 else min(limit, len(raw))
    pos = count = 0
    while pos < end and raw[pos] != 0:
        pos += _utf8_step(raw[pos])
        count += 1
    return count


def utf8_size(data: BytesLike, limit: int = -1) -> int:
    """Return the character count of a UTF-8 string plus one for its terminator."""
    length = utf8_len(data, limit)
    bound = limit if limit >= 0 else length + 1
    if length < bound:
        length += 1
    return length


def ucs2_to_utf8(data: BytesLike, limit: int = -1) -> bytes:
    """Convert a UCS-2 string to UTF-8, stopping at NUL or after ``limit`` characters."""
    out = bytearray()
    for count, unit in enumerate(_ucs2_units(data)):
        if 0 <= limit <= count or unit == 0:
            break
        if unit <= 0x7F:
            out.append(unit)
        elif unit <= 0x7FF:
            out += bytes((0xC0 | (unit >> 6) & 0x1F, 0x80 | unit & 0x3F))
        else:
            out += bytes(
                (
                    0xE0 | (unit >> 12) & 0x0F,
                    0x80 | (unit >> 6) & 0x3F,
                    0x80 | unit & 0x3F,
                )
            )
    return bytes(out)


def utf8_to_ucs2(utf8: BytesLike, terminate: bool = True) -> bytes:
    """Convert UTF-8 to little-endian UCS-2.

    With ``terminate`` a NUL character is appended, except that an empty
    input always yields an empty result.
    """
    raw = _as_bytes(utf8).split(b"\0", 1)[0]
    if not raw:
        return b""
    padded = raw + b"\0\0"
    units = []
    pos = 0
    while pos < len(raw):
        lead = padded[pos]
        step = _utf8_step(lead)
        if step == 3:
            value = (
                (lead & 0x0F) << 12
                | (padded[pos + 1] & 0x3F) << 6
                | padded[pos + 2] & 0x3F
            )
        elif step == 2:
            value = (lead & 0x1F) << 6 | padded[pos + 1] & 0x3F
        else:
            value = lead & 0x7F
        units.append(value)
        pos += step
    if terminate:
        units.append(0)
    return struct.pack(f"<{len(units)}H", *units)