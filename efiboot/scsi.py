"""Parsing of SCSI segments in sysfs device links."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .device import Device, DeviceError, InterfaceType
from .sysfs import Sysfs

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF

_NUM = r"\s*([+-]?\d+)"

_HOST = re.compile(rf"host{_NUM}/")
_PORT = re.compile(rf"port-{_NUM}:{_NUM}(?::{_NUM})?")
_PORT_HEAD = re.compile(rf"port-{_NUM}")
_EXPANDER = re.compile(rf"expander-{_NUM}:{_NUM}/")
_EXPANDER_PORT = re.compile(rf"port-{_NUM}:{_NUM}:{_NUM}/")
_END_DEVICE = re.compile(rf"end_device-{_NUM}:{_NUM}(?::{_NUM})?")
_TARGET = re.compile(rf"target{_NUM}:{_NUM}:{_NUM}/")
_HBTL = re.compile(rf"{_NUM}:{_NUM}:{_NUM}:{_NUM}/")
_DEVICE_HBTL = re.compile(rf"\.\./\.\./\.\./{_NUM}:{_NUM}:{_NUM}:{_NUM}")


def _u32(text: str) -> int:
    return int(text) & _U32


def _u64(text: str) -> int:
    return int(text) & _U64


@dataclass
class ScsiLink:
    """What the SCSI part of a device link says about a device."""

    host: int
    bus: int
    device: int
    target: int
    lun: int
    local_port_id: int = 0
    remote_port_id: int = 0
    remote_target_id: int = 0
    consumed: int = 0


def _skip_slash(path: str, pos: int) -> int:
    return pos + 1 if path.startswith("/", pos) else pos


def parse_scsi_link(path: str) -> Optional[ScsiLink]:
    """Parse ``hostN/[port-.../][expander-.../port-.../][end_device-.../]targetX:Y:Z/B:D:T:L/``.

    Returns None when ``path`` does not have that shape.
    """
    local_port_id = remote_port_id = remote_target_id = 0

    match = _HOST.match(path)
    if match is None:
        return None
    host = _u32(match.group(1))
    pos = match.end()

    match = _PORT.match(path, pos)
    if match is not None:
        if match.group(3) is not None:
            remote_port_id = _u32(match.group(3))
        else:
            local_port_id = _u32(match.group(2))
        pos = match.end()
    elif pos >= len(path) or _PORT_HEAD.match(path, pos) is not None:
        return None
    pos = _skip_slash(path, pos)

    match = _EXPANDER.match(path, pos)
    if match is not None:
        remote_target_id = _u32(match.group(2))
        pos = match.end()
        match = _EXPANDER_PORT.match(path, pos)
        if match is None:
            return None
        pos = match.end()

    match = _END_DEVICE.match(path, pos)
    if match is not None:
        if match.group(3) is not None:
            remote_port_id = _u32(match.group(3))
        else:
            local_port_id = _u32(match.group(2))
        pos = match.end()
    pos = _skip_slash(path, pos)

    match = _TARGET.match(path, pos)
    if match is None:
        return None
    pos = match.end()

    match = _HBTL.match(path, pos)
    if match is None:
        return None
    bus, device, target, lun = match.groups()
    pos = match.end()

    return ScsiLink(
        host=host,
        bus=_u32(bus),
        device=_u32(device),
        target=_u32(target),
        lun=_u64(lun),
        local_port_id=local_port_id,
        remote_port_id=remote_port_id,
        remote_target_id=remote_target_id,
        consumed=pos,
    )


def parse_scsi(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Recognise an old-style SCSI disk; return the characters of ``path`` consumed."""
    match = _DEVICE_HBTL.match(dev.device)
    if match is None:
        return 0
    bus, device, target, lun = match.groups()
    dev.scsi_bus = _u32(bus)
    dev.scsi_device = _u32(device)
    dev.scsi_target = _u32(target)
    dev.scsi_lun = _u64(lun)

    link = parse_scsi_link(path)
    if link is None:
        return 0

    # SCSI disks have 16 minors each: 4 bits of partition, the rest disk number.
    if dev.major == 8:
        disknum = dev.minor >> 4
    elif 65 <= dev.major <= 71:
        disknum = 16 * (dev.major - 64) + (dev.minor >> 4)
    elif 128 <= dev.major <= 135:
        disknum = 16 * (dev.major - 128) + (dev.minor >> 4)
    else:
        raise DeviceError("couldn't parse scsi major/minor")

    dev.interface_type = InterfaceType.SCSI
    dev.disknum = disknum
    dev.set_part(dev.minor & 0xF)
    return link.consumed