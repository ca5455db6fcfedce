"""Expansion of `@file` response file arguments."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from hamkit.parsing.response_lexer import ResponseFileLexer

logger = logging.getLogger(__name__)

RESPONSE_FILE_PREFIX = "@"


class ResponseFileError(Exception):
    """A response file could not be read or tokenized."""


def read_response_file(path: Path) -> list[str]:
    """Return the argument tokens stored in one response file.

    The file is decoded the way the command line is, so undecodable bytes
    in filenames survive the round trip.
    """
    try:
        content = os.fsdecode(path.read_bytes())
    except OSError as e:
        raise ResponseFileError(f"Cannot open responsefile {path}: {e.strerror}") from e

    lexer = ResponseFileLexer()
    lexer.build()
    try:
        return lexer.arguments(content)
    except SyntaxError as e:
        raise ResponseFileError(f"{path}: {e}") from e


def _expand(args: Sequence[str], active: tuple[Path, ...]) -> list[str]:
    result: list[str] = []
    for arg in args:
        if not arg.startswith(RESPONSE_FILE_PREFIX):
            result.append(arg)
            continue
        path = Path(arg[len(RESPONSE_FILE_PREFIX):])
        key = path.resolve()
        if key in active:
            raise ResponseFileError(f"Response file {path} includes itself")
        logger.debug("Expanding response file %s", path)
        result.extend(_expand(read_response_file(path), active + (key,)))
    return result


def expand_response_files(argv: Sequence[str]) -> list[str]:
    """Replace every `@file` argument with the tokens read from that file.

    `argv[0]` is the program name and is kept as-is. Response files may
    reference further response files; they are expanded in place, in the
    order they are read. Arguments without the prefix pass through
    unchanged, so expanding an already expanded list is a no-op.
    """
    if not argv:
        return []
    return [argv[0]] + _expand(argv[1:], ())
