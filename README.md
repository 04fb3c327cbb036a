# efiboot

Helpers for working with EFI boot entries on Linux, with no third-party
dependencies:

- `efiboot.loadopt`: parse, validate and build binary `EFI_LOAD_OPTION`
  records, and prepare optional argument data.
- `efiboot.probing`, `efiboot.device` and the interface parsers
  (`pci`, `scsi`, `sas`, `sata`, `pmem`, `roots`): walk the sysfs link of a
  block device and record its disk and partition names, interface type,
  PCI devices, SCSI/SAS/SATA addressing and NVDIMM labels.
- `efiboot.sysfs`: file, link and directory access below a sysfs root.
- `efiboot.ucs2` and `efiboot.pathseg`: UCS-2/UTF-8 conversion and path
  segment lookup.
- `efiboot.guidtable`: read a tab-separated table of well-known GUIDs and
  render it as a C source file, a header and a linker script.

## Installing

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Load options

```python
from efiboot.loadopt import LoadOption, is_valid, optional_data_size

with open("Boot0001.bin", "rb") as f:
    raw = f.read()

if is_valid(raw):
    opt = LoadOption.from_bytes(raw)
    print(opt.attributes, opt.description, opt.device_path, opt.optional_data)
    print(optional_data_size(raw))
    opt.set_attribute(0x1)
    raw = opt.to_bytes()
```

`LoadOption` holds `attributes`, `description`, `device_path` (raw bytes) and
`optional_data`. `to_bytes()` requires the device path to be a sequence of
well-formed nodes ending in an End Entire node, and a description of at most
1024 bytes of UTF-8. `set_attribute()` and `clear_attribute()` act on the low
16 attribute bits. Malformed records raise `LoadOptionError`.

Optional data can be prepared with `args_from_file(filename)` (raw file
contents), `args_as_utf8(text)` and `args_as_ucs2(text)` (both without a
terminator).

## Text helpers

```python
from efiboot.pathseg import pathseg, split_spans
from efiboot.ucs2 import utf8_to_ucs2, ucs2_to_utf8

pathseg("../../devices/pci0000:00/0000:00:1f.2/ata1/host0/block/sda/sda1", -2)
# 'sda'
split_spans("/foo/bar")
# ['/', 'foo', 'bar']
ucs2_to_utf8(utf8_to_ucs2("Linux"))
# b'Linux'
```

`pathseg()` returns `None` for a segment that does not exist;
`find_path_segment()` raises `IndexError` instead. The UTF-8 helpers only
understand sequences of up to three bytes.

## Probing a block device

```python
from efiboot.sysfs import Sysfs
from efiboot.probing import device_get

dev = device_get(8, 1, -1, Sysfs())
print(dev.interface_type, dev.disk_name, dev.part_name, dev.driver)
```

`device_get(major, minor, partition, sysfs)` reads `/sys/dev/block/MAJ:MIN`,
reads the partition number from sysfs when `partition` is -1, derives the
disk and partition names, finds the driver, and runs the probes from
`default_probes()` in this order: pmem, soc_root, virtual_root, pci,
virtio block, sas, sata, scsi. `probe_link(dev, probes, sysfs)` runs any list
of `DevProbe` objects over `dev.link`; link segments that no probe
recognises are skipped and the device gets the `ProbeFlags.ABBREV_ONLY`
flag. Failures raise `DeviceError`.

`Sysfs(root)` can point at a directory other than `/sys`, which is how the
tests build fake device trees. `find_parent_devpath(child, sysfs)` maps a
partition such as `/dev/sda1` to its whole disk, `/dev/sda`.

For nvdimm devices, setting `LIBEFIBOOT_SWIZZLE_PMEM_UUID` in the environment
stores both labels so that their EFI encoding is in plain UUID byte order.

## Generating GUID tables

```
efiboot-makeguids guids.txt guid-symbols.c efivar-guids.h guids.lds
efiboot-makeguids -T guids.txt guid-symbols.c efivar-guids.h guids.lds
```

Each input line holds a GUID, a name and an optional description, separated
by tabs. `-T` appends `INSERT AFTER .data` to the linker script. The same
work is available as `read_guids()`, `parse_guids()`, `render_symbols()`,
`render_header()` and `render_linker_script()`; errors raise
`GuidTableError`.

## What this package does not do

- It does not encode binary EFI device path nodes for a probed device; the
  probes only record what the sysfs link says about it.
- There are no probes for ACPI or PCI roots, NVMe, PATA, eMMC or I2O
  devices; segments belonging to those are skipped as unrecognised.
- It has no support for network interfaces or MAC address paths.
- It does not read or write EFI variables.