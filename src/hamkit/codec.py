"""Rendering of raw key and record buffers for display."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum

from hamkit.store import Entry

NULL_PLACEHOLDER = "(null)"


class ValueFormat(Enum):
    """Display formats for keys and records."""

    BINARY = "binary"
    STRING = "string"
    ENCODED_STRING = "encoded-string"
    NUMERIC = "numeric"


# Mapping from command-line names to formats
FORMAT_NAMES: dict[str, ValueFormat] = {fmt.value: fmt for fmt in ValueFormat}

# Buffer sizes that render as native-order unsigned integers
NUMERIC_SIZES = (1, 2, 4, 8)


@dataclass(frozen=True)
class FieldFormat:
    """How to render one side (key or record) of an entry.

    A `max_len` of zero or less means no limit.
    """

    format: ValueFormat = ValueFormat.BINARY
    max_len: int = 0


def parse_format(name: str) -> ValueFormat:
    """Return the format with the given command-line name."""
    try:
        return FORMAT_NAMES[name]
    except KeyError:
        choices = ", ".join(repr(n) for n in FORMAT_NAMES)
        raise ValueError(f"Unknown format {name!r} (expected one of {choices})") from None


def _clip(data: bytes, max_len: int) -> bytes:
    if 0 < max_len < len(data):
        return data[:max_len]
    return data


def render_binary(data: bytes, max_len: int = 0) -> str:
    """Render bytes as lowercase hex pairs, each followed by a space."""
    return "".join(f"{b:02x} " for b in _clip(data, max_len))


def render_string(data: bytes, max_len: int = 0) -> str:
    """Render bytes as a zero-terminated string.

    The buffer is clipped to `max_len` and cut at its first NUL byte, so a
    buffer stored with its terminator prints up to that terminator.
    """
    text = _clip(data, max_len)
    nul = text.find(b"\x00")
    if nul >= 0:
        text = text[:nul]
    return text.decode("utf-8", errors="replace")


def semi_url_encode(data: bytes) -> str:
    """Map every byte into printable ASCII.

    Printable characters other than `%` are kept; everything else becomes
    `%XX`. Embedded and trailing NULs stay visible, which keeps the output
    distinguishable from a plain C string.
    """
    out = []
    for b in data:
        if 0x20 <= b < 0x7F and b != 0x25:
            out.append(chr(b))
        else:
            out.append(f"%{b:02X}")
    return "".join(out)


def render_encoded_string(data: bytes, max_len: int = 0) -> str:
    """Render bytes semi-URL-encoded, clipped to `max_len`."""
    return semi_url_encode(_clip(data, max_len))


def render_numeric(data: bytes) -> str:
    """Render a 1, 2, 4 or 8 byte buffer as an unsigned integer."""
    if len(data) not in NUMERIC_SIZES:
        return f"(illegal numeric size: {len(data)})"
    return str(int.from_bytes(data, sys.byteorder, signed=False))


def render(data: bytes | None, fmt: ValueFormat, max_len: int = 0) -> str:
    """Render a key or record buffer in the given format."""
    if not data:
        return NULL_PLACEHOLDER
    if fmt is ValueFormat.BINARY:
        return render_binary(data, max_len)
    elif fmt is ValueFormat.STRING:
        return render_string(data, max_len)
    elif fmt is ValueFormat.ENCODED_STRING:
        return render_encoded_string(data, max_len)
    elif fmt is ValueFormat.NUMERIC:
        return render_numeric(data)
    raise ValueError(f"Unknown format: {fmt!r}")


def _render_field(data: bytes, field: FieldFormat) -> str:
    text = render(data, field.format, field.max_len)
    if field.format is ValueFormat.BINARY and data:
        # Drop the separator after the last byte
        text = text[:-1]
    return text


def format_entry(entry: Entry, key_format: FieldFormat, record_format: FieldFormat) -> str:
    """Format one dump line: `key: <key> => <record>`."""
    key = _render_field(entry.key, key_format)
    record = _render_field(entry.record, record_format)
    return f"key: {key} => {record}"
