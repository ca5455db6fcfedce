"""Print a JSON document as an indented listing of parser events.

Usage:
    ham_json settings.json      # reads the file
    ham_json < settings.json    # reads stdin
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, TextIO


class JsonEvent(Enum):
    """Events produced by a depth-first walk of a JSON value."""

    ARRAY_BEGIN = "array_begin"
    ARRAY_END = "array_end"
    OBJECT_BEGIN = "object_begin"
    OBJECT_END = "object_end"
    KEY = "key"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    NULL = "null"
    TRUE = "true"
    FALSE = "false"


@dataclass
class PrinterContext:
    """Printer state threaded through every event callback.

    `depth` is the current nesting level; `in_key` is set between a KEY
    event and the value that belongs to it, so that value is printed on the
    key's line instead of on a new indented one.
    """

    depth: int = 0
    in_key: bool = False
    indent: str = "  "
    out: TextIO = field(default_factory=lambda: sys.stdout)


def walk_json(value: Any, callback: Callable[[JsonEvent, Any], None]) -> None:
    """Emit the events describing `value`, depth first."""
    if isinstance(value, dict):
        callback(JsonEvent.OBJECT_BEGIN, None)
        for key, item in value.items():
            callback(JsonEvent.KEY, key)
            walk_json(item, callback)
        callback(JsonEvent.OBJECT_END, None)
    elif isinstance(value, list):
        callback(JsonEvent.ARRAY_BEGIN, None)
        for item in value:
            walk_json(item, callback)
        callback(JsonEvent.ARRAY_END, None)
    elif value is None:
        callback(JsonEvent.NULL, None)
    elif value is True:
        callback(JsonEvent.TRUE, None)
    elif value is False:
        callback(JsonEvent.FALSE, None)
    elif isinstance(value, int):
        callback(JsonEvent.INTEGER, value)
    elif isinstance(value, float):
        callback(JsonEvent.FLOAT, value)
    elif isinstance(value, str):
        callback(JsonEvent.STRING, value)
    else:
        raise TypeError(f"Not a JSON value: {value!r}")


_SCALAR_TEXT: dict[JsonEvent, Callable[[Any], str]] = {
    JsonEvent.INTEGER: lambda v: f"integer: {v}",
    JsonEvent.FLOAT: lambda v: f"float: {v:f}",
    JsonEvent.STRING: lambda v: f"string: '{v}'",
    JsonEvent.NULL: lambda v: "null",
    JsonEvent.TRUE: lambda v: "true",
    JsonEvent.FALSE: lambda v: "false",
}


def print_event(ctx: PrinterContext, event: JsonEvent, value: Any) -> None:
    """Print one event, updating the context."""
    out = ctx.out

    def write_indent() -> None:
        out.write(ctx.indent * ctx.depth)

    if event is JsonEvent.KEY:
        ctx.in_key = True
        write_indent()
        out.write(f"key = '{value}', value = ")
    elif event in (JsonEvent.ARRAY_BEGIN, JsonEvent.OBJECT_BEGIN):
        if not ctx.in_key:
            write_indent()
        ctx.in_key = False
        out.write("[\n" if event is JsonEvent.ARRAY_BEGIN else "{\n")
        ctx.depth += 1
    elif event in (JsonEvent.ARRAY_END, JsonEvent.OBJECT_END):
        ctx.depth = max(0, ctx.depth - 1)
        write_indent()
        out.write("]\n" if event is JsonEvent.ARRAY_END else "}\n")
    else:
        if not ctx.in_key:
            write_indent()
        ctx.in_key = False
        out.write(_SCALAR_TEXT[event](value) + "\n")


def print_json(value: Any, out: TextIO | None = None) -> None:
    """Print a parsed JSON value as an event listing."""
    ctx = PrinterContext(out=out or sys.stdout)
    walk_json(value, partial(print_event, ctx))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Print a JSON document as an indented event listing"
    )
    parser.add_argument(
        "file",
        type=Path,
        nargs="?",
        help="JSON file to read (default: standard input)",
    )
    args = parser.parse_args(argv)

    try:
        if args.file is None:
            document = json.load(sys.stdin)
        else:
            with open(args.file, "rb") as f:
                document = json.load(f)
    except OSError as e:
        print(f"Error: Cannot read {args.file}: {e.strerror}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"Error: Cannot decode {args.file or 'standard input'}: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: JSON syntax error: {e}", file=sys.stderr)
        return 1

    print_json(document)
    return 0


if __name__ == "__main__":
    sys.exit(main())
