"""Parsing of SoC roots, virtual roots and virtio block segments in device links."""

from __future__ import annotations

import re

from .device import Device, DeviceError, InterfaceType
from .sysfs import Sysfs

_SOC_ROOT = re.compile(r"\.\./\.\./devices/platform/soc/[^/]+/")
_VIRTIO = re.compile(r"virtio\s*[+-]?(?:0[xX])?[0-9a-fA-F]+")
_VIRTUAL_SUBDIRS = (
    "../../devices/virtual/",
    "nvme-subsystem/",
    "nvme-fabrics/ctl/",
)


def parse_soc_root(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Consume ``../../devices/platform/soc/<node>/``; return its length or 0."""
    match = _SOC_ROOT.match(path)
    return match.end() if match else 0


def parse_virtblk(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Consume ``virtioN/`` and mark the device as virtio block; return 0 if absent."""
    match = _VIRTIO.match(path)
    if match is None:
        return 0
    dev.interface_type = InterfaceType.VIRTBLK
    if not path.startswith("/", match.end()):
        raise DeviceError(f"malformed virtio segment in {path!r}")
    return match.end() + 1


def parse_virtual_root(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Consume a virtual NVMe subsystem or fabrics root; return its length or 0."""
    consumed = 0
    for index, subdir in enumerate(_VIRTUAL_SUBDIRS):
        if not path.startswith(subdir, consumed):
            continue
        consumed += len(subdir)
        if index > 0:
            return consumed
    return 0