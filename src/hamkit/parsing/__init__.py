"""Parsing of command-line response files."""

from hamkit.parsing.response_files import (
    ResponseFileError,
    expand_response_files,
    read_response_file,
)
from hamkit.parsing.response_lexer import ResponseFileLexer

__all__ = [
    "ResponseFileError",
    "ResponseFileLexer",
    "expand_response_files",
    "read_response_file",
]
