"""Parsing of NVDIMM-P (pmem / btt) segments in sysfs device links."""

from __future__ import annotations

import os
import re
import uuid
from typing import Optional

from .device import Device, DeviceError, InterfaceType
from .sysfs import Sysfs

_SWIZZLE_ENV = "LIBEFIBOOT_SWIZZLE_PMEM_UUID"
_PREFIX = "../../devices/"
_HEX = r"\s*[+-]?(?:0[xX])?[0-9a-fA-F]+"
_DEC = r"\s*[+-]?\d+"
_FIELDS = (
    ("LNXSYSTM:", _HEX),
    ("/LNXSYBUS:", _HEX),
    ("/ACPI", _HEX),
    (":", _HEX),
    ("/ndbus", _DEC),
    ("/region", _DEC),
    ("/btt", _DEC),
    (".", _DEC),
)
_STEPS = tuple(re.compile(re.escape(literal) + number) for literal, number in _FIELDS)
_REQUIRED_FIELDS = 8
_GUID = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def _scan_link(path: str) -> tuple[int, Optional[int]]:
    """Return how many numeric fields matched and where the match ends, if it is whole."""
    if not path.startswith(_PREFIX):
        return 0, None
    pos = len(_PREFIX)
    count = 0
    for step in _STEPS:
        match = step.match(path, pos)
        if match is None:
            return count, None
        count += 1
        pos = match.end()
    if path.startswith("/", pos):
        return count, pos + 1
    return count, None


def _read(sysfs: Sysfs, path: str) -> bytes:
    try:
        content = sysfs.read_file(path)
    except OSError as exc:
        raise DeviceError(f"could not read /sys/{path}") from exc
    if not content:
        raise DeviceError(f"/sys/{path} is empty")
    return content


def _parse_guid(content: bytes, path: str) -> uuid.UUID:
    match = _GUID.match(content.decode("ascii", "replace").strip())
    if match is None:
        raise DeviceError(f"could not parse GUID in /sys/{path}")
    return uuid.UUID(match.group(0))


def _swizzle(guid: uuid.UUID) -> uuid.UUID:
    # Reorder so the mixed-endian EFI encoding carries the plain UUID byte order.
    return uuid.UUID(bytes_le=guid.bytes)


def parse_pmem(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Recognise an nd_pmem btt device and read its namespace and NVDIMM labels.

    Returns the characters of ``path`` consumed, or 0 when this is not a
    pmem device.  Setting LIBEFIBOOT_SWIZZLE_PMEM_UUID in the environment
    stores both labels so that their EFI encoding is in plain UUID order.
    """
    if dev.driver != "nd_pmem":
        return 0

    count, end = _scan_link(path)
    if count < _REQUIRED_FIELDS:
        return 0
    if end is None:
        raise DeviceError(f"malformed nvdimm device link {path!r}")

    namespace_path = f"class/block/{dev.disk_name}/device/namespace"
    tokens = _read(sysfs, namespace_path).decode("utf-8", "replace").split()
    if not tokens:
        raise DeviceError(f"no namespace in /sys/{namespace_path}")
    namespace = tokens[0]

    ns_uuid_path = f"bus/nd/devices/{namespace}/uuid"
    namespace_label = _parse_guid(_read(sysfs, ns_uuid_path), ns_uuid_path)

    dev_uuid_path = f"class/block/{dev.disk_name}/device/uuid"
    nvdimm_label = _parse_guid(_read(sysfs, dev_uuid_path), dev_uuid_path)

    if os.environ.get(_SWIZZLE_ENV) is not None:
        namespace_label = _swizzle(namespace_label)
        nvdimm_label = _swizzle(nvdimm_label)

    dev.nvdimm_namespace_label = namespace_label
    dev.nvdimm_label = nvdimm_label
    dev.interface_type = InterfaceType.ND_PMEM
    return end