"""Tool for printing information about an environment and its tables."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

from hamkit.dump import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_USAGE,
    configure_logging,
    parse_table_id,
    preprocess_argv,
)
from hamkit.parsing import ResponseFileError
from hamkit.stats import format_summary
from hamkit.store import (
    Environment,
    EnvironmentInfo,
    EnvironmentNotFoundError,
    StoreError,
    Table,
    TableNotFoundError,
    flags_to_str,
)
from hamkit.traversal import collect_stats

logger = logging.getLogger(__name__)


def print_environment(info: EnvironmentInfo, out: TextIO | None = None) -> None:
    """Print the environment block."""
    out = out or sys.stdout
    print("environment", file=out)
    print(f"    pagesize:                      {info.page_size}", file=out)
    print(f"    version:                       {info.version_str}", file=out)
    print(f"    max databases:                 {info.max_tables}", file=out)
    print(f"    number of databases defined:   {info.table_count}", file=out)


def describe_table(table: Table, full: bool, out: TextIO | None = None) -> dict[str, Any]:
    """Print the block for one table and return the same data as a dict.

    With `full`, the table is traversed and its size statistics included.
    """
    out = out or sys.stdout
    info = table.info()
    print(file=out)
    print(f"    database {info.table_id} (0x{info.table_id:x})", file=out)
    print(f"        max key size:           {info.key_size}", file=out)
    print(f"        max keys per page:      {info.keys_per_page}", file=out)
    print(f"        flags:                  0x{info.flags:04x} ({flags_to_str(info.flags)})", file=out)

    result: dict[str, Any] = {
        "name": info.table_id,
        "key_size": info.key_size,
        "keys_per_page": info.keys_per_page,
        "flags": info.flags,
        "flags_str": flags_to_str(info.flags),
    }
    if full:
        summary = collect_stats(table, info.key_size).finalize()
        for line in format_summary(summary):
            print(line, file=out)
        result["statistics"] = summary.to_dict()
    return result


def describe_environment(
    env: Environment,
    table_id: int | None = None,
    full: bool = False,
    out: TextIO | None = None,
) -> dict[str, Any]:
    """Print the environment block and one block per table."""
    env_info = env.info()
    print_environment(env_info, out)

    tables = []
    table_ids = [table_id] if table_id is not None else env.table_names()
    for tid in table_ids:
        with env.open_table(tid) as table:
            tables.append(describe_table(table, full, out))

    return {
        "environment": {
            "pagesize": env_info.page_size,
            "version": env_info.version_str,
            "max_databases": env_info.max_tables,
            "database_count": env_info.table_count,
        },
        "databases": tables,
    }


def write_json(data: dict[str, Any], path: Path) -> None:
    """Write the collected information as a JSON document."""
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the ham_info argument parser."""
    parser = argparse.ArgumentParser(
        prog="ham_info",
        description="Print information about an environment: its tables, "
        "their identifiers, configured key size and flags",
        allow_abbrev=False,
    )
    parser.add_argument(
        "filename",
        help="Path to the environment file",
    )
    parser.add_argument(
        "-db", "--dbname",
        type=parse_table_id,
        default=None,
        help="Only print info about this database",
    )
    parser.add_argument(
        "-f", "--full",
        action="store_true",
        help="Print full information, including size statistics",
    )
    parser.add_argument(
        "-out", "--output-json",
        type=Path,
        default=None,
        metavar="FILE",
        help="Also write the information to FILE in JSON format",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log store activity to stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        argv = preprocess_argv("ham_info", argv)
    except ResponseFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        with Environment.open(args.filename, read_only=True) as env:
            data = describe_environment(env, args.dbname, args.full)
    except EnvironmentNotFoundError:
        print(f"Error: File `{args.filename}' not found or unable to open it", file=sys.stderr)
        return EXIT_FAILURE
    except TableNotFoundError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.output_json is not None:
        try:
            write_json(data, args.output_json)
        except OSError as e:
            print(f"Error: Cannot write {args.output_json}: {e.strerror}", file=sys.stderr)
            return EXIT_FAILURE
        logger.debug("Wrote %s", args.output_json)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
