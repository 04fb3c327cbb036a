import uuid
from pathlib import Path

import pytest

from efiboot.device import Device, DeviceError, InterfaceType
from efiboot.pmem import parse_pmem
from efiboot.sysfs import Sysfs

LINK = (
    "../../devices/LNXSYSTM:00/LNXSYBUS:00/ACPI0012:00/ndbus0/"
    "region12/btt12.1/block/pmem12s"
)
NAMESPACE_UUID = "11111111-2222-3333-4444-555555555555"
DEVICE_UUID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"


def _write(root: Path, rel: str, content: str) -> None:
    target = root / rel
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)


@pytest.fixture
def sysfs(tmp_path):
    _write(tmp_path, "class/block/pmem12s/device/namespace", "namespace12.0\n")
    _write(tmp_path, "bus/nd/devices/namespace12.0/uuid", NAMESPACE_UUID + "\n")
    _write(tmp_path, "class/block/pmem12s/device/uuid", DEVICE_UUID + "\n")
    return Sysfs(root=tmp_path)


def _dev(driver="nd_pmem"):
    return Device(driver=driver, disk_name="pmem12s", link=LINK)


def test_parses_btt_device(sysfs, monkeypatch):
    monkeypatch.delenv("LIBEFIBOOT_SWIZZLE_PMEM_UUID", raising=False)
    dev = _dev()
    consumed = parse_pmem(dev, LINK, LINK, sysfs)
    assert LINK[consumed:] == "block/pmem12s"
    assert dev.interface_type == InterfaceType.ND_PMEM
    assert dev.nvdimm_namespace_label == uuid.UUID(NAMESPACE_UUID)
    assert dev.nvdimm_label == uuid.UUID(DEVICE_UUID)


def test_swizzle_environment(sysfs, monkeypatch):
    monkeypatch.setenv("LIBEFIBOOT_SWIZZLE_PMEM_UUID", "1")
    dev = _dev()
    parse_pmem(dev, LINK, LINK, sysfs)
    assert dev.nvdimm_namespace_label.bytes_le == uuid.UUID(NAMESPACE_UUID).bytes
    assert dev.nvdimm_label.bytes_le == uuid.UUID(DEVICE_UUID).bytes


def test_other_driver_is_ignored(sysfs):
    dev = _dev(driver="sd")
    assert parse_pmem(dev, LINK, LINK, sysfs) == 0
    assert dev.interface_type == InterfaceType.UNKNOWN
    assert dev.nvdimm_label is None


def test_pfn_device_is_not_matched(sysfs):
    link = (
        "../../devices/LNXSYSTM:00/LNXSYBUS:00/ACPI0012:00/ndbus0/"
        "region12/pfn12.1/block/pmem12.2"
    )
    assert parse_pmem(_dev(), link, link, sysfs) == 0


def test_pci_link_is_not_matched(sysfs):
    link = "../../devices/pci0000:00/0000:00:1d.0/0000:05:00.0/nvme/nvme0/nvme0n1"
    assert parse_pmem(_dev(), link, link, sysfs) == 0


def test_missing_namespace_is_an_error(tmp_path):
    with pytest.raises(DeviceError):
        parse_pmem(_dev(), LINK, LINK, Sysfs(root=tmp_path))


def test_bad_uuid_is_an_error(sysfs, tmp_path):
    _write(tmp_path, "class/block/pmem12s/device/uuid", "not-a-guid\n")
    with pytest.raises(DeviceError):
        parse_pmem(_dev(), LINK, LINK, sysfs)


def test_empty_namespace_is_an_error(sysfs, tmp_path):
    _write(tmp_path, "class/block/pmem12s/device/namespace", "\n")
    with pytest.raises(DeviceError):
        parse_pmem(_dev(), LINK, LINK, sysfs)