"""Parsing of GUID name tables and generation of the C sources built from them."""

from __future__ import annotations

import os
import re
import sys
import uuid
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

_GUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
)
_FIELD_MAX = 255
_ENTRY_SIZE = 16 + 3 * 256
_SENTINEL_SYMBOL = "efi_guid_zzignore-this-guid"
_VISIBILITY = '__attribute__((__visibility__ ("default")))'

# (alias symbol, symbol it duplicates)
_ALIASES = (
    ("efi_guid_empty", "efi_guid_zero"),
    ("efi_guid_redhat_2", "efi_guid_redhat"),
)

_STRUCT_DEFINITION = (
    "struct efivar_guidname {\n"
    "\tefi_guid_t guid;\n"
    "\tchar symbol[256];\n"
    "\tchar name[256];\n"
    "\tchar description[256];\n"
    "} __attribute__((__aligned__(16)));\n\n"
)

_ENDIAN_MACROS = (
    "\n#if BYTE_ORDER == BIG_ENDIAN\n"
    "#define cpu_to_be32(n) (n)\n"
    "#define cpu_to_be16(n) (n)\n"
    "#define cpu_to_le32(n) (__builtin_bswap32(n))\n"
    "#define cpu_to_le16(n) (__builtin_bswap16(n))\n"
    "#else\n"
    "#define cpu_to_le32(n) (n)\n"
    "#define cpu_to_le16(n) (n)\n"
    "#define cpu_to_be32(n) (__builtin_bswap32(n))\n"
    "#define cpu_to_be16(n) (__builtin_bswap16(n))\n"
    "#endif\n"
)


class GuidTableError(ValueError):
    """Raised when a GUID table cannot be parsed or rendered."""


@dataclass(frozen=True)
class GuidName:
    """One well-known GUID with its short name and description."""

    guid: uuid.UUID
    name: str
    description: str = ""

    @property
    def symbol(self) -> str:
        """The C symbol under which the GUID is exported."""
        return f"efi_guid_{self.name}"


def _parse_guid(text: str) -> Optional[uuid.UUID]:
    if not _GUID_RE.match(text):
        return None
    return uuid.UUID(text)


def _guid_key(entry: GuidName) -> bytes:
    return entry.guid.bytes_le


def parse_guids(text: str) -> list[GuidName]:
    """Parse ``guid<TAB>name[<TAB>description]`` lines, sorted by GUID."""
    lines = text.split("\0", 1)[0].split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    entries = []
    for number, line in enumerate(lines):
        if "\t" not in line:
            raise GuidTableError(f"invalid guid string data on line {number}")
        guid_text, rest = line.split("\t", 1)
        name, _, description = rest.partition("\t")
        guid = _parse_guid(guid_text[:36])
        if guid is None:
            raise GuidTableError(f"unparsable guid on line {number}")
        entries.append(GuidName(guid=guid, name=name, description=description))
    if not entries:
        raise GuidTableError("guid table produced no strings")
    return sorted(entries, key=_guid_key)


def read_guids(path: Union[str, PathLike]) -> list[GuidName]:
    """Read and parse a GUID table file."""
    return parse_guids(Path(path).read_text(encoding="utf-8"))


def sorted_by_name(entries: Iterable[GuidName]) -> list[GuidName]:
    """Return the entries ordered by their short names."""
    return sorted(entries, key=lambda entry: entry.name[:_FIELD_MAX])


def _well_known_count(ordered: Sequence[GuidName]) -> int:
    for index, entry in enumerate(ordered):
        if entry.symbol == _SENTINEL_SYMBOL:
            return index
    return len(ordered)


def _guid_parts(guid: uuid.UUID) -> tuple[int, int, int, int, int, bytes]:
    raw = guid.bytes
    return guid.time_low, guid.time_mid, guid.time_hi_version, raw[8], raw[9], raw[10:16]


def _guid_initializer(symbol: str, guid: uuid.UUID) -> str:
    a, b, c, d0, d1, e = _guid_parts(guid)
    tail = ",".join(f"0x{byte:02x}" for byte in e)
    return (
        f"\t{symbol} = {{cpu_to_le32(0x{a:08x}),cpu_to_le16(0x{b:04x}),"
        f"cpu_to_le16(0x{c:04x}),cpu_to_be16(0x{d0:02x}{d1:02x}),"
        f"{{{tail}}}}};\n\n"
    )


def _aliases_of(symbol: str) -> list[str]:
    return [alias for alias, target in _ALIASES if target == symbol]


def _extern_guid(symbol: str) -> str:
    return f"extern const efi_guid_t {symbol} {_VISIBILITY};\n"


def _extern_table(kind: str, count: int) -> str:
    return (
        f"extern const struct efivar_guidname\n\t{_VISIBILITY}\n"
        f"\tefi_well_known_{kind}[{count}];\n"
        f"extern const struct efivar_guidname\n\t{_VISIBILITY}\n"
        f"\tefi_well_known_{kind}_end;\n"
        f"extern const uint64_t\n\t{_VISIBILITY}\n"
        f"\tefi_n_well_known_{kind};\n\n"
    )


def render_header(entries: Iterable[GuidName]) -> str:
    """Render the C header declaring every GUID symbol and the tables."""
    ordered = sorted(entries, key=_guid_key)
    count = _well_known_count(ordered)
    parts = [
        "#ifndef EFIVAR_GUIDS_H\n#define EFIVAR_GUIDS_H 1\n\n",
        '#ifdef __cplusplus\nextern "C" {\n#endif\n',
        "\n" + _STRUCT_DEFINITION,
    ]
    for entry in ordered[: count + 1]:
        parts.extend(_extern_guid(alias) for alias in _aliases_of(entry.symbol))
        if entry.symbol == _SENTINEL_SYMBOL:
            break
        parts.append(_extern_guid(entry.symbol))
    parts.append("\n")
    parts.append("#ifndef EFIVAR_BUILD_ENVIRONMENT\n\n")
    parts.append(_extern_table("guids", count))
    parts.append(_extern_table("names", count))
    parts.append("#endif /* EFIVAR_BUILD_ENVIRONMENT */\n")
    parts.append('\n#ifdef __cplusplus\n} /* extern "C" */\n#endif\n')
    parts.append("\n#endif /* EFIVAR_GUIDS_H */\n")
    return "".join(parts)


def _alt_hex(value: int) -> str:
    return hex(value) if value else "0"


def _table(listname: str, entries: Sequence[GuidName]) -> str:
    rows = [
        f"const struct efivar_guidname\n\t{_VISIBILITY}\n"
        f"\t{listname}_[{len(entries)}]= {{\n"
    ]
    for entry in entries:
        a, b, c, d0, d1, e = _guid_parts(entry.guid)
        tail = ",".join(_alt_hex(byte) for byte in e)
        rows.append(
            f"\t\t{{.guid={{.a=cpu_to_le32({_alt_hex(a)}),\n"
            f"\t\t        .b=cpu_to_le16({_alt_hex(b)}),\n"
            f"\t\t        .c=cpu_to_le16({_alt_hex(c)}),\n"
            f"\t\t        .d=cpu_to_be16(0x{d0:02x}{d1:02x}),\n"
            f"\t\t        .e={{{tail}}}}},\n"
            f'\t\t .symbol="{entry.symbol[:_FIELD_MAX]}",\n'
            f'\t\t .name="{entry.name[:_FIELD_MAX]}",\n'
            f'\t\t .description="{entry.description[:_FIELD_MAX]}",\n'
            "\t\t},\n"
        )
    rows.append("};\n")
    return "".join(rows)


def render_symbols(entries: Iterable[GuidName]) -> str:
    """Render the C source defining every GUID and both lookup tables."""
    ordered = sorted(entries, key=_guid_key)
    count = _well_known_count(ordered)
    parts = [
        "#ifndef EFIVAR_BUILD_ENVIRONMENT\n",
        "#define EFIVAR_BUILD_ENVIRONMENT\n",
        "#endif /* EFIVAR_BUILD_ENVIRONMENT */\n\n",
        '#include "fix_coverity.h"\n',
        "#include <efivar/efivar.h>\n",
        "#include <endian.h>\n",
        _ENDIAN_MACROS,
    ]
    for entry in ordered[: count + 1]:
        for alias in _aliases_of(entry.symbol):
            parts.append(f"\nconst efi_guid_t\n\t{_VISIBILITY}\n")
            parts.append(_guid_initializer(alias, entry.guid))
        if entry.symbol == _SENTINEL_SYMBOL:
            break
        parts.append(f"const efi_guid_t\n{_VISIBILITY}\n")
        parts.append(_guid_initializer(entry.symbol, entry.guid))
    parts.append(
        f"const uint64_t\n\t{_VISIBILITY}\n\tefi_n_well_known_guids = {count};\n"
    )
    parts.append(
        f"const uint64_t\n\t{_VISIBILITY}\n\tefi_n_well_known_names = {count};\n\n"
    )
    parts.append(_STRUCT_DEFINITION)
    parts.append(_table("efi_well_known_guids", ordered))
    parts.append(_table("efi_well_known_names", sorted_by_name(ordered)))
    return "".join(parts)


def render_linker_script(entries: Sequence[GuidName], insert_after_data: bool = False) -> str:
    """Render the linker script that places the table start and end symbols."""
    if not entries:
        raise GuidTableError("guid table is empty")
    end = (len(entries) - 1) * _ENTRY_SIZE
    suffix = " INSERT AFTER .data" if insert_after_data else ""
    return (
        "SECTIONS\n"
        "{\n"
        "  .data :\n"
        "  {\n"
        "    efi_well_known_guids = efi_well_known_guids_;\n"
        f"    efi_well_known_guids_end = efi_well_known_guids_ + {end};\n"
        "    efi_well_known_names = efi_well_known_names_;\n"
        f"    efi_well_known_names_end = efi_well_known_names_ + {end};\n"
        "  }\n"
        f"}}{suffix};\n"
    )


def _fail(message: str) -> int:
    print(f"makeguids: {message}", file=sys.stderr)
    return 1


def _write(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(content)
    try:
        os.chmod(path, 0o644)
    except OSError as exc:
        print(f"makeguids: chmod({path}, 0644): {exc.strerror}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Generate the symbol source, header and linker script from a GUID table."""
    args = list(sys.argv[1:] if argv is None else argv)
    insert_after_data = False
    if len(args) < 4:
        return _fail("Not enough arguments.")
    if len(args) > 4:
        if args[0] != "-T":
            return _fail("Too many arguments.")
        insert_after_data = True
        args = args[1:]
    source, symout, header, ldsout = args[:4]

    try:
        entries = read_guids(source)
    except (OSError, UnicodeDecodeError, GuidTableError) as exc:
        return _fail(f'could not read "{source}": {exc}')

    outputs = (
        (symout, render_symbols(entries)),
        (header, render_header(entries)),
        (ldsout, render_linker_script(entries, insert_after_data)),
    )
    for path, content in outputs:
        try:
            _write(path, content)
        except OSError as exc:
            return _fail(f'could not open "{path}": {exc.strerror}')
    return 0