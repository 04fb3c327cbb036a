"""Block and network device descriptions built from sysfs links."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Callable, Optional

from .pathseg import pathseg
from .sysfs import Sysfs


class DeviceError(Exception):
    """Raised when a device cannot be described from its sysfs data."""


class InterfaceType(IntEnum):
    """The kind of bus or controller a device sits on."""

    UNKNOWN = 0
    ISA = 1
    ACPI_ROOT = 2
    PCI_ROOT = 3
    SOC_ROOT = 4
    VIRTUAL_ROOT = 5
    PCI = 6
    NETWORK = 7
    ATA = 8
    ATAPI = 9
    SCSI = 10
    SATA = 11
    SAS = 12
    USB = 13
    I1394 = 14
    FIBRE = 15
    I2O = 16
    MD = 17
    VIRTBLK = 18
    NVME = 19
    ND_PMEM = 20
    EMMC = 21


class ProbeFlags(IntFlag):
    """What a successful probe contributes to a device path."""

    NONE = 0
    PROVIDES_ROOT = 1
    PROVIDES_HD = 2
    ABBREV_ONLY = 4


@dataclass
class PciDevInfo:
    """One PCI device found along a device link."""

    domain: int
    bus: int
    device: int
    function: int
    driverlink: Optional[str] = None


ParseFunc = Callable[["Device", str, str, Sysfs], int]
PartNameFunc = Callable[["Device"], str]


@dataclass(frozen=True)
class DevProbe:
    """A parser for one kind of segment in a sysfs device link.

    ``parse(dev, path, root, sysfs)`` returns how many characters of
    ``path`` it consumed, 0 when the segment is not its kind, and raises
    DeviceError when the segment is its kind but cannot be understood.
    """

    name: str
    parse: ParseFunc
    iftypes: tuple[InterfaceType, ...] = ()
    flags: ProbeFlags = ProbeFlags.NONE
    make_part_name: Optional[PartNameFunc] = None


@dataclass
class Device:
    """Everything learned about a device while walking its sysfs link."""

    interface_type: InterfaceType = InterfaceType.UNKNOWN
    flags: ProbeFlags = ProbeFlags.NONE
    link: str = ""
    device: str = ""
    driver: str = ""
    probes: list[DevProbe] = field(default_factory=list)

    controllernum: int = 0
    disknum: int = 0
    part: int = 0
    major: int = 0
    minor: int = 0
    edd10_devicenum: int = 0

    disk_name: Optional[str] = None
    part_name: Optional[str] = None

    acpi_hid: int = 0
    acpi_uid: int = 0
    acpi_cid: int = 0
    acpi_hid_str: Optional[str] = None
    acpi_uid_str: Optional[str] = None
    acpi_cid_str: Optional[str] = None

    pci_root_domain: int = 0xFFFF
    pci_root_bus: int = 0xFF
    pci_devs: list[PciDevInfo] = field(default_factory=list)

    scsi_bus: int = 0
    scsi_device: int = 0
    scsi_target: int = 0
    scsi_lun: int = 0
    scsi_host: int = 0
    sas_address: int = 0

    ata_devno: int = 0
    ata_port: int = 0
    ata_pmp: int = 0
    ata_print_id: int = 0

    nvme_ctrl_id: int = 0
    nvme_ns_id: int = 0
    nvme_eui: Optional[bytes] = None

    emmc_slot_id: int = 0

    nvdimm_namespace_label: Optional[uuid.UUID] = None
    nvdimm_label: Optional[uuid.UUID] = None

    ifname: Optional[str] = None

    def _set_part_name(self, name: str) -> None:
        if self.part > 0:
            self.part_name = name

    def reset_part_name(self) -> None:
        """Recompute the partition name from the disk name and partition number."""
        self.part_name = None
        if self.part < 1:
            return
        last = self.probes[-1] if self.probes else None
        if last is not None and last.make_part_name is not None:
            self.part_name = last.make_part_name(self)
        else:
            self.part_name = f"{self.disk_name or ''}{self.part}"

    def set_part(self, value: int) -> None:
        """Change the partition number, renaming the partition if it changed."""
        if self.part == value:
            return
        self.part = value
        self.reset_part_name()

    def set_disk_and_part_name(self) -> None:
        """Derive the disk and partition names from the device link."""
        link = self.link
        ultimate = pathseg(link, -1)
        penultimate = pathseg(link, -2)
        approximate = pathseg(link, -3)
        proximate = pathseg(link, -4)
        psl5 = pathseg(link, -5)

        if (
            ultimate is not None
            and penultimate is not None
            and (proximate == "nvme" or approximate == "block")
        ):
            self.disk_name = penultimate
            self._set_part_name(ultimate)
        elif ultimate is not None and approximate == "nvme":
            self.disk_name = ultimate
            self._set_part_name(f"{ultimate}p{self.part}")
        elif ultimate is not None and penultimate == "block":
            self.disk_name = ultimate
            self._set_part_name(f"{ultimate}{self.part}")
        elif ultimate is not None and approximate == "mtd":
            self.disk_name = ultimate
        elif ultimate is not None and (
            proximate == "nvme-fabrics" or approximate == "nvme-subsystem"
        ):
            self.disk_name = ultimate
        elif (
            ultimate is not None
            and penultimate is not None
            and (psl5 == "nvme-fabrics" or proximate == "nvme-subsystem")
        ):
            self.disk_name = penultimate
            self._set_part_name(ultimate)
        else:
            raise DeviceError(f'Could not parse disk name:"{link}"')


def find_parent_devpath(child: str, sysfs: Optional[Sysfs] = None) -> str:
    """Return the /dev path of the whole disk that holds partition ``child``."""
    sysfs = sysfs or Sysfs()
    if "/" not in child:
        raise DeviceError(f"{child!r} is not a device path")
    node = child.rsplit("/", 1)[1]
    try:
        linkbuf = sysfs.readlink(f"class/block/{node}")
    except OSError as exc:
        raise DeviceError(f"readlink of /sys/class/block/{node} failed") from exc
    if "/" not in linkbuf:
        raise DeviceError(f"cannot find parent in link {linkbuf!r}")
    parent_path = linkbuf.rsplit("/", 1)[0]
    if "/" not in parent_path:
        raise DeviceError(f"cannot find parent in link {linkbuf!r}")
    return f"/dev/{parent_path.rsplit('/', 1)[1]}"