import os

import pytest

from efiboot.device import DeviceError, DevProbe, Device, InterfaceType, ProbeFlags
from efiboot.probing import default_probes, device_get, probe_link
from efiboot.sysfs import Sysfs

VIRTIO_LINK = "../../devices/pci0000:00/0000:00:07.0/virtio2/block/vda/vda1"


def _prefix_probe(name, prefix, flags=ProbeFlags.NONE, calls=None, iftype=None):
    def parse(dev, path, root, sysfs):
        if calls is not None:
            calls.append(name)
        if path.startswith(prefix):
            if iftype is not None:
                dev.interface_type = iftype
            return len(prefix)
        return 0

    return DevProbe(name=name, parse=parse, flags=flags)


def _failing_probe(name):
    def parse(dev, path, root, sysfs):
        raise DeviceError("broken")

    return DevProbe(name=name, parse=parse)


@pytest.fixture
def virtio_sysfs(tmp_path):
    (tmp_path / "dev" / "block").mkdir(parents=True)
    (tmp_path / "class" / "block").mkdir(parents=True)
    part_dir = tmp_path / "devices/pci0000:00/0000:00:07.0/virtio2/block/vda/vda1"
    part_dir.mkdir(parents=True)
    (part_dir / "partition").write_text("1\n")
    os.symlink(VIRTIO_LINK, tmp_path / "dev" / "block" / "252:1")
    return Sysfs(tmp_path)


def test_default_probes_order():
    names = [probe.name for probe in default_probes()]
    assert names == [
        "pmem",
        "soc_root",
        "virtual_root",
        "pci",
        "virtio block",
        "sas",
        "sata",
        "scsi",
    ]


def test_default_probes_flags():
    probes = {probe.name: probe for probe in default_probes()}
    assert probes["pmem"].flags == ProbeFlags.PROVIDES_ROOT | ProbeFlags.PROVIDES_HD
    assert probes["soc_root"].flags == ProbeFlags.ABBREV_ONLY | ProbeFlags.PROVIDES_ROOT
    assert probes["pci"].flags == ProbeFlags.NONE
    assert probes["scsi"].iftypes == (InterfaceType.SCSI,)


def test_probe_link_stops_at_block(tmp_path):
    dev = Device(link="ctl0/disk1/block/sda")
    probes = [
        _prefix_probe("ctl", "ctl0/"),
        _prefix_probe("disk", "disk1/", ProbeFlags.PROVIDES_HD, iftype=InterfaceType.SCSI),
    ]
    rest = probe_link(dev, probes, Sysfs(tmp_path))
    assert rest == "block/sda"
    assert [probe.name for probe in dev.probes] == ["ctl", "disk"]
    assert dev.flags == ProbeFlags.PROVIDES_HD


def test_probe_link_skips_root_probes_once_rooted(tmp_path):
    calls = []
    dev = Device(link="hd0/part/block/sda")
    probes = [
        _prefix_probe("hd", "hd0/", ProbeFlags.PROVIDES_HD, calls),
        _prefix_probe("root", "part/", ProbeFlags.PROVIDES_ROOT, calls),
        _prefix_probe("tail", "part/", ProbeFlags.NONE, calls, InterfaceType.SATA),
    ]
    rest = probe_link(dev, probes, Sysfs(tmp_path))
    assert "root" not in calls
    assert [probe.name for probe in dev.probes] == ["hd", "tail"]
    assert rest == "block/sda"


def test_probe_link_skips_unknown_segments(tmp_path):
    dev = Device(link="x/y/block/sda")
    probes = [_prefix_probe("never", "zzz/")]
    rest = probe_link(dev, probes, Sysfs(tmp_path))
    assert rest == "block/sda"
    assert dev.flags & ProbeFlags.ABBREV_ONLY
    assert dev.probes == []


def test_probe_link_unparsable_segment_raises(tmp_path):
    dev = Device(link="abc")
    with pytest.raises(DeviceError, match="Cannot parse device link segment"):
        probe_link(dev, [_prefix_probe("never", "zzz/")], Sysfs(tmp_path))


def test_probe_link_unknown_storage_interface(tmp_path):
    dev = Device(link="ctl0/block/")
    with pytest.raises(DeviceError, match="unknown storage interface"):
        probe_link(dev, [_prefix_probe("ctl", "ctl0/")], Sysfs(tmp_path))


def test_probe_link_probe_error_propagates(tmp_path):
    dev = Device(link="abc/block/sda")
    with pytest.raises(DeviceError, match="parsing bad failed"):
        probe_link(dev, [_failing_probe("bad")], Sysfs(tmp_path))


def test_device_get_virtio_partition(virtio_sysfs):
    dev = device_get(252, 1, -1, virtio_sysfs)
    assert dev.link == VIRTIO_LINK
    assert dev.part == 1
    assert dev.disk_name == "vda"
    assert dev.part_name == "vda1"
    assert dev.interface_type == InterfaceType.VIRTBLK
    assert [probe.name for probe in dev.probes] == ["pci", "virtio block"]
    assert dev.flags & ProbeFlags.ABBREV_ONLY
    assert dev.flags & ProbeFlags.PROVIDES_HD
    assert dev.device == ""
    assert dev.driver == ""


def test_device_get_records_pci_device(virtio_sysfs):
    dev = device_get(252, 1, -1, virtio_sysfs)
    assert len(dev.pci_devs) == 1
    pci = dev.pci_devs[0]
    assert (pci.domain, pci.bus, pci.device, pci.function) == (0, 0, 7, 0)
    assert pci.driverlink is None


def test_device_get_explicit_partition(virtio_sysfs):
    dev = device_get(252, 1, 3, virtio_sysfs)
    assert dev.part == 3
    assert dev.major == 252
    assert dev.minor == 1


def test_device_get_missing_link_raises(tmp_path):
    (tmp_path / "dev" / "block").mkdir(parents=True)
    with pytest.raises(DeviceError, match="readlink of /sys/dev/block/8:0 failed"):
        device_get(8, 0, -1, Sysfs(tmp_path))