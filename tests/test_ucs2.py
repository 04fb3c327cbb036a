import pytest

from efiboot.ucs2 import (
    ucs2_len,
    ucs2_size,
    ucs2_to_utf8,
    utf8_len,
    utf8_size,
    utf8_to_ucs2,
)

SAMPLES = ["", "a", "hello", "héllo", "€uro", "Fedora Linux"]


@pytest.mark.parametrize("text", SAMPLES)
def test_ucs2_len_matches_character_count(text):
    data = text.encode("utf-16-le") + b"\0\0trailing"
    assert ucs2_len(data) == len(text)


@pytest.mark.parametrize("text", SAMPLES)
def test_ucs2_size_is_len_plus_terminator(text):
    data = text.encode("utf-16-le") + b"\0\0"
    assert ucs2_size(data) == 2 * ucs2_len(data) + 2


def test_ucs2_len_respects_limit():
    data = "abcdef".encode("utf-16-le") + b"\0\0"
    assert ucs2_len(data, 3) == 3
    assert ucs2_len(data, 0) == 0


def test_ucs2_size_capped_by_limit():
    data = "abcdef".encode("utf-16-le") + b"\0\0"
    assert ucs2_size(data, 5) == 5


def test_ucs2_len_stops_at_end_without_terminator():
    data = "abc".encode("utf-16-le")
    assert ucs2_len(data) == 3


@pytest.mark.parametrize("text", SAMPLES)
def test_utf8_len_counts_characters(text):
    assert utf8_len(text.encode("utf-8")) == len(text)
    assert utf8_size(text.encode("utf-8")) == len(text) + 1


def test_utf8_len_stops_at_nul_and_limit():
    assert utf8_len(b"abc\0def") == len("abc")
    assert utf8_len(b"abcdef", 2) == 2


def test_utf8_size_at_limit_is_not_extended():
    assert utf8_size(b"abcdef", 4) == 4


@pytest.mark.parametrize("text", SAMPLES)
def test_ucs2_to_utf8_matches_codec(text):
    data = text.encode("utf-16-le") + b"\0\0junk"
    assert ucs2_to_utf8(data) == text.encode("utf-8")


def test_ucs2_to_utf8_limit():
    data = "abcdef".encode("utf-16-le")
    assert ucs2_to_utf8(data, 2) == b"ab"


def test_ucs2_to_utf8_encodes_lone_surrogate_as_three_bytes():
    data = b"\x00\xd8"
    assert ucs2_to_utf8(data) == "\ud800".encode("utf-8", "surrogatepass")


@pytest.mark.parametrize("text", [s for s in SAMPLES if s])
def test_utf8_to_ucs2_round_trip(text):
    encoded = utf8_to_ucs2(text, terminate=False)
    assert encoded == text.encode("utf-16-le")
    assert ucs2_to_utf8(encoded) == text.encode("utf-8")


def test_utf8_to_ucs2_terminator():
    assert utf8_to_ucs2(b"ab", terminate=True) == "ab".encode("utf-16-le") + b"\0\0"


def test_utf8_to_ucs2_empty_input_is_empty():
    assert utf8_to_ucs2(b"", terminate=True) == b""
    assert utf8_to_ucs2("", terminate=False) == b""


def test_utf8_to_ucs2_stops_at_nul():
    assert utf8_to_ucs2(b"ab\0cd", terminate=False) == "ab".encode("utf-16-le")