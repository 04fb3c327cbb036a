"""Parsing of SAS segments in sysfs device links."""

from __future__ import annotations

import re
from typing import Optional

from .device import Device, InterfaceType
from .scsi import ScsiLink, parse_scsi_link
from .sysfs import Sysfs

_HEX = re.compile(r"\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+)")
_U64 = 0xFFFFFFFFFFFFFFFF


def _read_hex(sysfs: Sysfs, path: str) -> Optional[int]:
    try:
        content = sysfs.read_file(path)
    except OSError:
        return None
    match = _HEX.match(content.decode("ascii", "replace"))
    if match is None:
        return None
    value = int(match.group(2), 16)
    if match.group(1) == "-":
        value = -value
    return value & _U64


def _port_expander_sas_address(sysfs: Sysfs, link: ScsiLink) -> Optional[int]:
    host = link.host
    target = link.remote_target_id
    port = link.remote_port_id
    end_device = f"end_device-{host}:{target}:{port}"
    path = (
        f"class/scsi_host/host{host}/device/port-{host}:{link.local_port_id}"
        f"/expander-{host}:{target}/port-{host}:{target}:{port}"
        f"/{end_device}/sas_device/{end_device}/sas_address"
    )
    return _read_hex(sysfs, path)


def _local_sas_address(sysfs: Sysfs, dev: Device) -> Optional[int]:
    return _read_hex(sysfs, f"class/block/{dev.disk_name}/device/sas_address")


def parse_sas(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Recognise a SAS disk; return the characters of ``path`` consumed, or 0."""
    link = parse_scsi_link(path)
    if link is None:
        return 0

    if sysfs.exists(f"class/scsi_host/host{link.host}/host_sas_address"):
        sas_address = _local_sas_address(sysfs, dev)
    elif sysfs.exists(f"class/sas_host/host{link.host}"):
        # Behind a port expander the address lives on the remote port.
        sas_address = _port_expander_sas_address(sysfs, link)
    else:
        return 0
    if sas_address is None:
        return 0

    dev.sas_address = sas_address
    dev.scsi_bus = link.bus
    dev.scsi_device = link.device
    dev.scsi_target = link.target
    dev.scsi_lun = link.lun
    dev.interface_type = InterfaceType.SAS
    return link.consumed