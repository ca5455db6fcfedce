"""Tool for dumping table contents to the console."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from enum import Enum
from typing import TextIO

from hamkit.codec import FieldFormat, ValueFormat, parse_format
from hamkit.parsing import ResponseFileError, expand_response_files
from hamkit.store import (
    Environment,
    EnvironmentNotFoundError,
    StoreError,
    TableNotFoundError,
    validate_table_id,
)
from hamkit.traversal import DumpOptions, dump_table

logger = logging.getLogger(__name__)

# Exit statuses
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_IMPLEMENTED = 3

# Default key/record display length when only previewing a table
PREVIEW_SIZE = 16


class Mode(Enum):
    """What ham_dump does with the source environment."""

    DUMP = "dump"
    EXPORT = "export"
    IMPORT = "import"
    CLONE = "clone"
    CLONE_SETTINGS = "clone-settings"


# Modes that show keys and records in full by default
UNLIMITED_MODES = {Mode.EXPORT, Mode.IMPORT, Mode.CLONE, Mode.CLONE_SETTINGS}

# Modes that write to a second file
TARGET_MODES = {Mode.CLONE, Mode.CLONE_SETTINGS}


def parse_number(text: str) -> int:
    """Parse an integer with an optional 0x/0o/0b prefix."""
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"numerical value expected, got {text!r}") from None


def parse_table_id(text: str) -> int:
    """Parse and range-check a table identifier."""
    try:
        return validate_table_id(parse_number(text))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _parse_value_format(text: str) -> ValueFormat:
    try:
        return parse_format(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; debug output only when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )


def preprocess_argv(prog: str, argv: list[str] | None) -> list[str]:
    """Expand response files in the arguments (without the program name)."""
    if argv is None:
        argv = sys.argv[1:]
    return expand_response_files([prog, *argv])[1:]


def build_parser() -> argparse.ArgumentParser:
    """Build the ham_dump argument parser."""
    parser = argparse.ArgumentParser(
        prog="ham_dump",
        description="Dump the tables of an environment to the console",
        epilog="Arguments of the form @FILE are replaced by the arguments "
        "stored in FILE.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "source",
        help="Path to the environment file",
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Path to the target file (clone modes only)",
    )
    parser.add_argument(
        "-db", "--dbname",
        type=parse_table_id,
        default=None,
        help="Only dump/clone this database",
    )
    parser.add_argument(
        "-key", "--key-format",
        type=_parse_value_format,
        default=ValueFormat.BINARY,
        metavar="FMT",
        help="Format of the key: 'string', 'encoded-string', 'binary' (default), 'numeric'",
    )
    parser.add_argument(
        "-maxkey", "--max-key-size",
        type=parse_number,
        default=None,
        metavar="N",
        help="Limit dumped key length to N bytes (0: no limit)",
    )
    parser.add_argument(
        "-rec", "--record-format",
        type=_parse_value_format,
        default=ValueFormat.BINARY,
        metavar="FMT",
        help="Format of the record: 'string', 'encoded-string', 'binary' (default), 'numeric'",
    )
    parser.add_argument(
        "-maxrec", "--max-rec-size",
        type=parse_number,
        default=None,
        metavar="N",
        help="Limit dumped record length to N bytes (0: no limit)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-ex", "--export",
        dest="mode", action="store_const", const=Mode.EXPORT,
        help="Dump every key and record in full",
    )
    mode.add_argument(
        "-im", "--import",
        dest="mode", action="store_const", const=Mode.IMPORT,
        help="Import a database (not implemented)",
    )
    mode.add_argument(
        "-cl", "--clone",
        dest="mode", action="store_const", const=Mode.CLONE,
        help="Clone the database into the target file (not implemented)",
    )
    mode.add_argument(
        "-clcfg", "--clone-settings",
        dest="mode", action="store_const", const=Mode.CLONE_SETTINGS,
        help="Clone using a JSON settings file (not implemented)",
    )
    parser.set_defaults(mode=Mode.DUMP)
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log store activity to stderr",
    )
    return parser


def resolve_options(args: argparse.Namespace) -> DumpOptions:
    """Fill in the mode-dependent size defaults."""
    default_size = 0 if args.mode in UNLIMITED_MODES else PREVIEW_SIZE
    key_size = default_size if args.max_key_size is None else args.max_key_size
    rec_size = default_size if args.max_rec_size is None else args.max_rec_size
    return DumpOptions(
        key=FieldFormat(args.key_format, key_size),
        record=FieldFormat(args.record_format, rec_size),
    )


def dump_environment(
    env: Environment,
    options: DumpOptions,
    table_id: int | None = None,
    out: TextIO | None = None,
) -> None:
    """Dump one table, or every table of the environment in order."""
    table_ids = [table_id] if table_id is not None else env.table_names()
    for tid in table_ids:
        with env.open_table(tid) as table:
            dump_table(table, options, out)


def run_dump(args: argparse.Namespace, options: DumpOptions) -> None:
    with Environment.open(args.source, read_only=True) as env:
        dump_environment(env, options, args.dbname)


def run_import(args: argparse.Namespace, options: DumpOptions) -> None:
    raise NotImplementedError("`--import' is not implemented")


def run_clone(args: argparse.Namespace, options: DumpOptions) -> None:
    raise NotImplementedError(f"`--{args.mode.value}' is not implemented")


HANDLERS: dict[Mode, Callable[[argparse.Namespace, DumpOptions], None]] = {
    Mode.DUMP: run_dump,
    Mode.EXPORT: run_dump,
    Mode.IMPORT: run_import,
    Mode.CLONE: run_clone,
    Mode.CLONE_SETTINGS: run_clone,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        argv = preprocess_argv("ham_dump", argv)
    except ResponseFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Error preparing arguments.", file=sys.stderr)
        return EXIT_USAGE

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.source:
        parser.error("invalid filename: cannot be empty")
    if args.target is not None and args.mode not in TARGET_MODES:
        parser.error("multiple files specified; please specify only one filename")
    if args.target is None and args.mode in TARGET_MODES:
        parser.error(
            "target filename is missing: we do not know where you want to clone to"
        )

    options = resolve_options(args)
    logger.debug("Mode %s, options %s", args.mode.value, options)

    try:
        HANDLERS[args.mode](args, options)
    except NotImplementedError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_NOT_IMPLEMENTED
    except EnvironmentNotFoundError:
        print(f"Error: File `{args.source}' not found or unable to open it", file=sys.stderr)
        return EXIT_FAILURE
    except TableNotFoundError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
