import pytest

from efiboot.pathseg import count_spans, find_path_segment, pathseg, split_spans

SATA_LINK = "../../devices/pci0000:00/0000:00:1f.2/ata1/host0/target0:0:0/0:0:0:0/block/sda"
NVME_LINK = "../../devices/pci0000:00/0000:00:1d.0/0000:05:00.0/nvme/nvme0/nvme0n1/nvme0n1p1"
SOC_LINK = "../../devices/platform/soc/1a400000.sata/ata1/host0/target0:0:0/0:0:0:0/block/sda/sda1"


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", 1),
        ("/foo", 2),
        ("foo/bar", 2),
        ("foo/bar/", 2),
        ("/foo/bar", 3),
        ("/foo/bar/", 3),
        ("foo/bar/baz", 3),
    ],
)
def test_count_spans_documented_examples(path, expected):
    count, _ = count_spans(path, "/")
    assert count == expected


@pytest.mark.parametrize("path", ["/", "/foo", "foo//bar/", "/a/bb/ccc"])
def test_count_spans_chars_cover_segments(path):
    count, chars = count_spans(path, "/")
    parts = split_spans(path, "/")
    assert count == len(parts)
    assert chars == sum(len(p) + 1 for p in parts)


def test_split_spans_leading_slash_is_segment():
    assert split_spans("/foo//bar/", "/") == ["/", "foo", "bar"]


def test_split_spans_other_reject_chars():
    assert split_spans("a:b::c", ":") == ["a", "b", "c"]


def test_find_path_segment_positions():
    assert find_path_segment("/foo/bar", 0) == (0, 1)
    start, length = find_path_segment("/foo/bar", -1)
    assert "/foo/bar"[start:start + length] == "bar"


def test_find_path_segment_empty_path():
    assert find_path_segment("", 0) is None
    assert pathseg("", 0) == ""


def test_find_path_segment_out_of_range():
    with pytest.raises(IndexError):
        find_path_segment("foo/bar", 2)
    with pytest.raises(IndexError):
        find_path_segment("foo/bar", -3)


def test_pathseg_sysfs_links():
    assert pathseg(SATA_LINK, -1) == "sda"
    assert pathseg(SATA_LINK, -2) == "block"
    assert pathseg(NVME_LINK, -4) == "nvme"
    assert pathseg(NVME_LINK, -1) == "nvme0n1p1"
    assert pathseg(SOC_LINK, -3) == "block"
    assert pathseg(SOC_LINK, 0) == ".."


def test_pathseg_missing_segment_is_none():
    assert pathseg("foo/bar", 5) is None
    assert pathseg("foo", -2) is None