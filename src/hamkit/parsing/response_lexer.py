"""Lexer for command-line response files."""

import ply.lex as lex


class ResponseFileLexer:
    """Lexer splitting response file content into argument tokens.

    A token is either a quoted string (single or double quotes, closed on the
    same line, no escapes) or a run of non-whitespace characters.
    """

    tokens = [
        "DQUOTED",
        "SQUOTED",
        "WORD",
    ]

    # Whitespace other than newlines, which are counted separately
    t_ignore = " \t\r\f\v"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_DQUOTED(self, t: lex.LexToken) -> lex.LexToken:
        r'"[^"\n]*"'
        t.value = t.value[1:-1]
        return t

    def t_SQUOTED(self, t: lex.LexToken) -> lex.LexToken:
        r"'[^'\n]*'"
        t.value = t.value[1:-1]
        return t

    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        r"""[^\s'"]\S*"""
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        # Only an opening quote without its closing partner gets here
        raise SyntaxError(f"Unterminated string in response file at line {t.lineno}")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.lineno = 1
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens

    def arguments(self, data: str) -> list[str]:
        """Tokenize the input and return the argument strings."""
        return [tok.value for tok in self.tokenize(data)]
