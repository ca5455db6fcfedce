"""Tests for rendering keys and records."""

import struct

import pytest

from hamkit.codec import (
    FieldFormat,
    ValueFormat,
    format_entry,
    parse_format,
    render,
    semi_url_encode,
)
from hamkit.store import Entry


class TestNullBuffers:
    """Empty and missing buffers render as a placeholder in every format."""

    @pytest.mark.parametrize("fmt", list(ValueFormat))
    def test_empty(self, fmt):
        assert render(b"", fmt) == "(null)"

    @pytest.mark.parametrize("fmt", list(ValueFormat))
    def test_none(self, fmt):
        assert render(None, fmt, 4) == "(null)"


class TestBinary:
    """Tests for hex rendering."""

    def test_unlimited(self):
        """Each byte is two lowercase hex digits plus a space."""
        assert render(bytes([0x00, 0xFF, 0x10]), ValueFormat.BINARY) == "00 ff 10 "

    def test_negative_limit_is_unlimited(self):
        assert render(b"abc", ValueFormat.BINARY, -1) == "61 62 63 "

    def test_limit(self):
        """Only the first max_len bytes are shown."""
        assert render(b"abcdef", ValueFormat.BINARY, 2) == "61 62 "

    def test_limit_larger_than_buffer(self):
        assert render(b"ab", ValueFormat.BINARY, 16) == "61 62 "


class TestString:
    """Tests for zero-terminated string rendering."""

    def test_plain(self):
        assert render(b"hello", ValueFormat.STRING) == "hello"

    def test_clipped(self):
        assert render(b"hello world", ValueFormat.STRING, 5) == "hello"

    def test_zero_terminated(self):
        """A stored terminator is not printed."""
        assert render(b"hello\x00", ValueFormat.STRING) == "hello"

    def test_embedded_nul_ends_string(self):
        assert render(b"ab\x00cd", ValueFormat.STRING) == "ab"

    def test_clipping_does_not_touch_input(self):
        """Display truncation works on a copy."""
        data = bytearray(b"0123456789")

        render(data, ValueFormat.STRING, 3)

        assert data == bytearray(b"0123456789")

    def test_invalid_utf8_replaced(self):
        assert render(b"a\xffb", ValueFormat.STRING) == "a�b"


class TestEncodedString:
    """Tests for semi-URL-encoded rendering."""

    def test_printable_text_unchanged(self):
        """Printable ASCII other than % encodes to itself."""
        text = "Hello, World! ~{}[]"
        assert render(text.encode(), ValueFormat.ENCODED_STRING) == text

    def test_percent_escaped(self):
        assert render(b"100%", ValueFormat.ENCODED_STRING) == "100%25"

    def test_nul_and_high_bytes(self):
        """Non-printable bytes use uppercase hex escapes."""
        assert semi_url_encode(b"a\x00\x7f\xff\n") == "a%00%7F%FF%0A"

    def test_terminator_visible(self):
        """A stored terminator distinguishes the output from a plain string."""
        assert render(b"key\x00", ValueFormat.ENCODED_STRING) == "key%00"
        assert render(b"key", ValueFormat.ENCODED_STRING) == "key"

    def test_clipped(self):
        assert render(b"abcdef", ValueFormat.ENCODED_STRING, 3) == "abc"

    def test_worst_case_length(self):
        data = bytes(range(0, 32))
        assert len(semi_url_encode(data)) <= 3 * len(data) + 1


class TestNumeric:
    """Tests for fixed-width integer rendering."""

    def test_one_byte(self):
        assert render(b"\xfe", ValueFormat.NUMERIC) == "254"

    def test_two_bytes(self):
        assert render(struct.pack("=H", 513), ValueFormat.NUMERIC) == "513"

    def test_four_bytes(self):
        """Native-order 32-bit one."""
        assert render(struct.pack("=I", 1), ValueFormat.NUMERIC) == "1"

    def test_eight_bytes_unsigned(self):
        assert render(b"\xff" * 8, ValueFormat.NUMERIC) == str(2**64 - 1)

    def test_illegal_size(self):
        """Other sizes are reported inline instead of raising."""
        assert render(b"\x01\x00\x00", ValueFormat.NUMERIC) == "(illegal numeric size: 3)"

    def test_limit_ignored(self):
        assert render(struct.pack("=I", 7), ValueFormat.NUMERIC, 1) == "7"


class TestParseFormat:
    """Tests for command-line format names."""

    def test_names(self):
        assert parse_format("string") is ValueFormat.STRING
        assert parse_format("encoded-string") is ValueFormat.ENCODED_STRING
        assert parse_format("binary") is ValueFormat.BINARY
        assert parse_format("numeric") is ValueFormat.NUMERIC

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown format"):
            parse_format("hex")


class TestFormatEntry:
    """Tests for whole dump lines."""

    def test_binary_line(self):
        line = format_entry(Entry(b"bb", b"22"), FieldFormat(), FieldFormat())
        assert line == "key: 62 62 => 32 32"

    def test_mixed_formats(self):
        line = format_entry(
            Entry(b"name\x00", struct.pack("=I", 42)),
            FieldFormat(ValueFormat.STRING),
            FieldFormat(ValueFormat.NUMERIC),
        )
        assert line == "key: name => 42"

    def test_empty_record(self):
        line = format_entry(Entry(b"k", b""), FieldFormat(), FieldFormat())
        assert line == "key: 6b => (null)"
