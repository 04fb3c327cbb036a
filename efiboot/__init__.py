"""EFI load options, block device description from sysfs, and GUID table rendering."""

__version__ = "0.1.0"

__all__ = [
    "device",
    "guidtable",
    "loadopt",
    "pathseg",
    "pci",
    "pmem",
    "probing",
    "roots",
    "sas",
    "sata",
    "scsi",
    "sysfs",
    "ucs2",
]