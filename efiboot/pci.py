"""Parsing of PCI device segments in sysfs device links."""

from __future__ import annotations

import re

from .device import Device, DeviceError, PciDevInfo
from .sysfs import Sysfs

_PCI_DEV = re.compile(
    r"([0-9a-fA-F]+):([0-9a-fA-F]+):([0-9a-fA-F]+)\.([0-9a-fA-F]+)/"
)


def parse_pci(dev: Device, path: str, root: str, sysfs: Sysfs) -> int:
    """Consume ``dddd:bb:dd.f/`` segments from ``path``, recording each PCI device.

    ``path`` is a suffix of ``root``, the full device link.  Returns the
    number of characters consumed.
    """
    base = len(root) - len(path)
    pos = 0
    while pos < len(path):
        match = _PCI_DEV.match(path, pos)
        if match is None:
            break
        domain, bus, device, function = (int(group, 16) for group in match.groups())
        pos = match.end()

        prefix = root[: base + pos]
        driver_path = f"class/block/{prefix}driver"
        driverlink = None
        if sysfs.exists(driver_path):
            try:
                driverlink = sysfs.readlink(driver_path)
            except OSError as exc:
                raise DeviceError(
                    f"Could not find driver for pci device {prefix}"
                ) from exc

        dev.pci_devs.append(
            PciDevInfo(
                domain=domain & 0xFFFF,
                bus=bus & 0xFF,
                device=device & 0xFF,
                function=function & 0xFF,
                driverlink=driverlink,
            )
        )
    return pos