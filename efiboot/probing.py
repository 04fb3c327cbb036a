"""Walking a sysfs device link with the device probes to describe a block device."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from .device import DeviceError, DevProbe, Device, InterfaceType, ProbeFlags
from .pathseg import pathseg
from .pci import parse_pci
from .pmem import parse_pmem
from .roots import parse_soc_root, parse_virtblk, parse_virtual_root
from .sas import parse_sas
from .sata import parse_sata
from .scsi import parse_scsi
from .sysfs import Sysfs

_SEGMENT = re.compile(r"[^/]+/")
_PARTITION = re.compile(r"\s*([+-]?\d+)")
_STOPPING_FLAGS = (
    ProbeFlags.PROVIDES_HD | ProbeFlags.PROVIDES_ROOT | ProbeFlags.ABBREV_ONLY
)


def default_probes() -> list[DevProbe]:
    """Return the device probes in the order they are tried.

    pmem comes before PCI so that, when it provides the root, it is found first.
    """
    return [
        DevProbe(
            name="pmem",
            parse=parse_pmem,
            iftypes=(InterfaceType.ND_PMEM,),
            flags=ProbeFlags.PROVIDES_ROOT | ProbeFlags.PROVIDES_HD,
        ),
        DevProbe(
            name="soc_root",
            parse=parse_soc_root,
            iftypes=(InterfaceType.SOC_ROOT,),
            flags=ProbeFlags.ABBREV_ONLY | ProbeFlags.PROVIDES_ROOT,
        ),
        DevProbe(
            name="virtual_root",
            parse=parse_virtual_root,
            iftypes=(InterfaceType.VIRTUAL_ROOT,),
            flags=ProbeFlags.ABBREV_ONLY | ProbeFlags.PROVIDES_ROOT,
        ),
        DevProbe(name="pci", parse=parse_pci, iftypes=(InterfaceType.PCI,)),
        DevProbe(
            name="virtio block",
            parse=parse_virtblk,
            iftypes=(InterfaceType.VIRTBLK,),
            flags=ProbeFlags.PROVIDES_HD,
        ),
        DevProbe(
            name="sas",
            parse=parse_sas,
            iftypes=(InterfaceType.SAS,),
            flags=ProbeFlags.PROVIDES_HD,
        ),
        DevProbe(
            name="sata",
            parse=parse_sata,
            iftypes=(InterfaceType.SATA,),
            flags=ProbeFlags.PROVIDES_HD,
        ),
        DevProbe(
            name="scsi",
            parse=parse_scsi,
            iftypes=(InterfaceType.SCSI,),
            flags=ProbeFlags.PROVIDES_HD,
        ),
    ]


def _finished(current: str) -> bool:
    return not current or current.startswith("block/")


def _skip_segment(current: str) -> int:
    match = _SEGMENT.match(current)
    pos = match.end() if match else 0
    while pos < len(current) and current[pos] == "/":
        pos += 1
    if pos >= len(current) or pos == 0:
        raise DeviceError(f'Cannot parse device link segment "{current}"')
    return pos


def probe_link(dev: Device, probes: Sequence[DevProbe], sysfs: Sysfs) -> str:
    """Run ``probes`` over ``dev.link``, recording every probe that matched.

    Segments no probe understands are skipped, which marks the device as
    only able to produce abbreviated paths.  Returns the unparsed rest of
    the link.
    """
    current = dev.link
    needs_root = True
    last_successful = -1
    index = 0
    while index < len(probes) and current:
        probe = probes[index]
        if not needs_root and probe.flags & ProbeFlags.PROVIDES_ROOT:
            index += 1
            continue

        try:
            pos = probe.parse(dev, current, dev.link, sysfs)
        except DeviceError as exc:
            raise DeviceError(f"parsing {probe.name} failed: {exc}") from exc

        if pos > 0:
            dev.flags |= probe.flags
            if probe.flags & _STOPPING_FLAGS:
                needs_root = False
            dev.probes.append(probe)
            current = current[pos:]
            last_successful = index
            if _finished(current):
                break
            index += 1
            continue

        if index + 1 == len(probes) and dev.interface_type == InterfaceType.UNKNOWN:
            current = current[_skip_segment(current):]
            dev.flags |= ProbeFlags.ABBREV_ONLY
            index = last_successful
            if _finished(current):
                break
        index += 1

    if (
        dev.interface_type == InterfaceType.UNKNOWN
        and not dev.flags & ProbeFlags.ABBREV_ONLY
        and current == "block/"
    ):
        raise DeviceError("unknown storage interface")
    return current


def _read_partition(dev: Device, sysfs: Sysfs) -> None:
    try:
        content = sysfs.read_file(f"dev/block/{dev.link}/partition")
    except OSError:
        return
    match = _PARTITION.match(content.decode("ascii", "replace"))
    if match is not None:
        dev.part = int(match.group(1))


def _read_driver(dev: Device, sysfs: Sysfs) -> str:
    filepath = sysfs.find_device_file("driver", f"block/{dev.disk_name}")
    if filepath is None:
        return ""
    try:
        target = sysfs.readlink(filepath)
    except OSError as exc:
        raise DeviceError(f"readlink of /sys/{filepath} failed") from exc
    driver = pathseg(target, -1)
    if driver is None:
        raise DeviceError(f'could not get segment -1 of "{target}"')
    return driver


def device_get(
    major: int,
    minor: int,
    partition: int = -1,
    sysfs: Optional[Sysfs] = None,
) -> Device:
    """Describe the block device ``major:minor`` from sysfs.

    A ``partition`` of -1 means the partition number is read from sysfs.
    """
    sysfs = sysfs or Sysfs()
    dev = Device(part=partition, major=major, minor=minor)

    try:
        dev.link = sysfs.readlink(f"dev/block/{major}:{minor}")
    except OSError as exc:
        raise DeviceError(f"readlink of /sys/dev/block/{major}:{minor} failed") from exc

    if dev.part == -1:
        _read_partition(dev, sysfs)

    dev.set_disk_and_part_name()

    try:
        dev.device = sysfs.readlink(f"block/{dev.disk_name}/device")
    except OSError:
        dev.device = ""

    dev.driver = _read_driver(dev, sysfs)

    probe_link(dev, default_probes(), sysfs)
    return dev