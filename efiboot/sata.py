"""Parsing of SATA (and some other ATA) segments in sysfs device links."""

from __future__ import annotations

import re

from .device import Device, DeviceError, InterfaceType
from .sysfs import Sysfs

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF
_PMP_MAX = 0x7FFF
_NO_PMP = 0xFFFF

_NUM = r"\s*([+-]?\d+)"

_ATA = re.compile(rf"ata{_NUM}/")
_HOST = re.compile(rf"host{_NUM}/")
_TARGET = re.compile(rf"target{_NUM}:{_NUM}:{_NUM}/")
_HBTL = re.compile(rf"{_NUM}:{_NUM}:{_NUM}:{_NUM}/")
_ATA_DEVICE = re.compile(rf"dev{_NUM}\.{_NUM}(?:\.{_NUM})?")
_PORT_NO = re.compile(_NUM)


def _u32(text: str) -> int:
    return int(text) & _U32


def _u64(text: str) -> int:
    return int(text) & _U64


def _read_port_info(print_id: int, dev: Device, sysfs: Sysfs) -> None:
    try:
        names = sysfs.listdir("class/ata_device")
    except OSError as exc:
        raise DeviceError("could not open /sys/class/ata_device/") from exc

    for name in names:
        match = _ATA_DEVICE.match(name)
        if match is None:
            raise DeviceError(f"cannot parse ata device name {name!r}")
        if _u32(match.group(1)) != print_id:
            continue
        if match.group(3) is not None:
            # Without a port multiplier the kernel names the device devM.N.
            pmp = _u32(match.group(2))
            if pmp > _PMP_MAX:
                raise DeviceError(f"invalid port multiplier number in {name!r}")
            dev.ata_devno = 0
            dev.ata_pmp = pmp
        else:
            dev.ata_devno = 0
            dev.ata_pmp = _NO_PMP
        break

    port_path = f"class/ata_port/ata{print_id}/port_no"
    try:
        content = sysfs.read_file(port_path)
    except OSError as exc:
        raise DeviceError(f"could not read /sys/{port_path}") from exc
    if not content:
        raise DeviceError(f"/sys/{port_path} is empty")
    match = _PORT_NO.match(content.decode("ascii", "replace"))
    if match is None:
        raise DeviceError(f"could not parse /sys/{port_path}")
    port = _u32(match.group(1))
    # libata numbers ports from 1, the specification from 0.
    if port == 0:
        raise DeviceError(f"invalid ata port number in /sys/{port_path}")
    dev.ata_port = port - 1


def parse_sata(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Recognise ``ataN/hostB/targetD:T:L/H:B:T:L/``; return the characters consumed.

    Returns 0 when ``path`` does not start with an ata segment and raises
    DeviceError when it does but the rest cannot be understood.
    """
    match = _ATA.match(path)
    if match is None:
        return 0
    print_id = _u32(match.group(1))
    pos = match.end()

    match = _HOST.match(path, pos)
    if match is None:
        raise DeviceError(f"cannot parse ata host in {path!r}")
    scsi_bus = _u32(match.group(1))
    pos = match.end()

    match = _TARGET.match(path, pos)
    if match is None:
        raise DeviceError(f"cannot parse ata target in {path!r}")
    scsi_device = _u32(match.group(1))
    scsi_target = _u32(match.group(2))
    scsi_lun = _u64(match.group(3))
    pos = match.end()

    match = _HBTL.match(path, pos)
    if match is None:
        raise DeviceError(f"cannot parse scsi address in {path!r}")
    pos = match.end()

    _read_port_info(print_id, dev, sysfs)

    dev.scsi_bus = scsi_bus
    dev.scsi_device = scsi_device
    dev.scsi_target = scsi_target
    dev.scsi_lun = scsi_lun
    if dev.interface_type == InterfaceType.UNKNOWN:
        dev.interface_type = InterfaceType.SATA
    return pos