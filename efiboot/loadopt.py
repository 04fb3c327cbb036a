"""EFI load options: building, parsing and validating them."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from os import PathLike
from typing import Iterator, Union

from .ucs2 import ucs2_size, ucs2_to_utf8, utf8_len, utf8_to_ucs2

_HEADER = struct.Struct("<IH")
_NODE = struct.Struct("<BBH")
_DESCRIPTION_LIMIT = 1024
_END_TYPE = 0x7F
_END_ENTIRE = 0xFF


class LoadOptionError(ValueError):
    """Raised when a load option or its device path is malformed."""


def _device_path_size(data: bytes, start: int) -> int:
    pos = start
    while pos + _NODE.size <= len(data):
        node_type, subtype, length = _NODE.unpack_from(data, pos)
        if length < _NODE.size or pos + length > len(data):
            raise LoadOptionError("efi device path is not valid")
        pos += length
        if node_type == _END_TYPE and subtype == _END_ENTIRE:
            return pos - start
    raise LoadOptionError("efi device path is not valid")


def _path_sizes(data: bytes) -> Iterator[int]:
    if not data:
        raise LoadOptionError("efi device path is not valid")
    pos = 0
    while pos < len(data):
        size = _device_path_size(data, pos)
        yield size
        pos += size


def optional_data_size(data: bytes) -> int:
    """Return the number of optional-data bytes in a serialized load option."""
    data = bytes(data)
    remaining = len(data) - _HEADER.size
    if remaining < 0:
        raise LoadOptionError(
            f"load option size is too small for header ({len(data)}/{_HEADER.size})"
        )
    _, path_len = _HEADER.unpack_from(data)
    if remaining < path_len:
        raise LoadOptionError(
            f"load option size is too small for path ({len(data)}/{path_len})"
        )
    remaining -= path_len
    desc_size = ucs2_size(data[_HEADER.size:], remaining)
    remaining -= desc_size
    if remaining < 0:
        raise LoadOptionError(f"leftover size is negative ({remaining})")
    start = _HEADER.size + desc_size
    total = sum(_path_sizes(data[start:start + path_len]))
    if total != path_len:
        raise LoadOptionError(
            f"size does not match file path size ({total}/{path_len})"
        )
    return remaining


def is_valid(data: bytes) -> bool:
    """Tell whether ``data`` is a well-formed load option."""
    try:
        optional_data_size(data)
    except LoadOptionError:
        return False
    return True


@dataclass
class LoadOption:
    """An EFI load option: attributes, description, device path and optional data."""

    attributes: int
    description: str
    device_path: bytes
    optional_data: bytes = b""

    @classmethod
    def from_bytes(cls, data: bytes) -> "LoadOption":
        """Parse a serialized load option."""
        data = bytes(data)
        opt_size = optional_data_size(data)
        attributes, path_len = _HEADER.unpack_from(data)
        desc_size = len(data) - _HEADER.size - path_len - opt_size
        path_start = _HEADER.size + desc_size
        path_end = path_start + path_len
        description = ucs2_to_utf8(data[_HEADER.size:path_start])
        return cls(
            attributes=attributes,
            description=description.decode("utf-8", "surrogatepass"),
            device_path=data[path_start:path_end],
            optional_data=data[path_end:],
        )

    def to_bytes(self) -> bytes:
        """Serialize the load option."""
        desc = self.description.encode("utf-8", "surrogatepass")
        desc_chars = utf8_len(desc, _DESCRIPTION_LIMIT)
        if utf8_len(desc) > desc_chars:
            raise LoadOptionError("description is too long")
        desc_len = desc_chars * 2 + 2
        path = bytes(self.device_path)
        if _device_path_size(path, 0) != len(path):
            raise LoadOptionError("device path size does not match its contents")
        if len(path) > 0xFFFF:
            raise LoadOptionError("device path is too long")
        return b"".join(
            (
                _HEADER.pack(self.attributes & 0xFFFFFFFF, len(path)),
                utf8_to_ucs2(desc, terminate=True).ljust(desc_len, b"\0"),
                path,
                bytes(self.optional_data),
            )
        )

    def set_attribute(self, attr: int) -> None:
        """Set the given attribute bits."""
        self.attributes |= attr & 0xFFFF

    def clear_attribute(self, attr: int) -> None:
        """Clear the given attribute bits."""
        self.attributes &= ~(attr & 0xFFFF)


def args_from_file(filename: Union[str, PathLike]) -> bytes:
    """Read optional-data arguments from a file."""
    with open(filename, "rb") as handle:
        return handle.read()


def args_as_utf8(text: Union[str, bytes]) -> bytes:
    """Return arguments as UTF-8 bytes, without a terminator."""
    raw = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    return raw.split(b"\0", 1)[0]


def args_as_ucs2(text: Union[str, bytes]) -> bytes:
    """Return arguments as UCS-2 bytes, without a terminator."""
    return utf8_to_ucs2(text, terminate=False)