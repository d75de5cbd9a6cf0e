"""Lexer/tokenizer for the condition DSL.

Converts expression strings into a flat list of tokens for the parser.

Token kinds:
- Literals: NUMBER, STRING, BOOLEAN
- Identifiers: IDENTIFIER (dotted variable paths, `some`/`all`, `as`, `null`)
- Operators: OPERATOR (== != < <= > >= && ||), NOT (!)
- Punctuation: PAREN, COMMA

Token offsets are half-open character offsets into the source string.
"""

import re
from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Kinds of tokens in the condition language."""

    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    OPERATOR = "operator"
    NOT = "not"
    PAREN = "paren"
    COMMA = "comma"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    Attributes:
        type: The token kind
        value: Raw token text (unescaped content for strings)
        start: Offset of the first character
        end: Offset one past the last character
    """

    type: TokenType
    value: str
    start: int
    end: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.start}:{self.end})"


class LexerError(Exception):
    """Error during lexical analysis."""

    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(message)


# Token patterns (order matters - longer matches first)
TOKEN_PATTERNS = [
    # Whitespace (skip)
    (r"\s+", None),

    # Punctuation
    (r"[()]", TokenType.PAREN),
    (r",", TokenType.COMMA),

    # Multi-character operators (before single character)
    (r"&&|\|\||==|!=|>=|<=", TokenType.OPERATOR),

    # Single character operators
    (r"[<>]", TokenType.OPERATOR),
    (r"!", TokenType.NOT),

    # Strings (double or single quoted); a backslash may escape a newline
    (r'(?s)"(?:[^"\\]|\\.)*"', TokenType.STRING),
    (r"(?s)'(?:[^'\\]|\\.)*'", TokenType.STRING),

    # Numbers (integer, decimal, or leading-dot decimal), ASCII digits only
    (r"[0-9]+(?:\.[0-9]+)?|\.[0-9]+", TokenType.NUMBER),

    # Identifiers; dots are part of the name so paths lex as one token
    (r"[A-Za-z_][A-Za-z0-9_.]*", TokenType.IDENTIFIER),
]

BOOLEAN_KEYWORDS = frozenset({"true", "false"})

_ESCAPES = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "'": "'",
    '"': '"',
    "\\": "\\",
}

_ESCAPE_PATTERN = re.compile(r"\\(['\"\\bfnrt])")


class Lexer:
    """Tokenizer for the condition DSL.

    Usage:
        lexer = Lexer('facets.score >= 0.7 && flag == true')
        for token in lexer:
            print(token)
    """

    def __init__(self, source: str):
        self.source = source
        self.position = 0
        self._compiled_patterns = [
            (re.compile(pattern), token_type)
            for pattern, token_type in TOKEN_PATTERNS
        ]

    def __iter__(self):
        """Iterate over all tokens in the source."""
        while True:
            token = self.next_token()
            if token is None:
                break
            yield token

    def next_token(self) -> Token | None:
        """Get the next token from the source, or None at end of input."""
        while self.position < len(self.source):
            for pattern, token_type in self._compiled_patterns:
                match = pattern.match(self.source, self.position)
                if not match:
                    continue

                start = self.position
                value = match.group()
                self.position = match.end()

                # Skip whitespace
                if token_type is None:
                    break

                if token_type == TokenType.STRING:
                    return Token(token_type, self._unescape_string(value[1:-1]), start, self.position)

                if token_type == TokenType.IDENTIFIER and value in BOOLEAN_KEYWORDS:
                    return Token(TokenType.BOOLEAN, value, start, self.position)

                return Token(token_type, value, start, self.position)
            else:
                char = self.source[self.position]
                if char in "\"'":
                    raise LexerError("Unterminated string literal.", self.position)
                raise LexerError(f"Unexpected character `{char}`.", self.position)

        return None

    def _unescape_string(self, s: str) -> str:
        """Process escape sequences in a string; unknown escapes are kept verbatim."""
        return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES[m.group(1)], s)

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source and return list of tokens."""
        return list(self)


def tokenize(source: str) -> list[Token]:
    """Convenience function to tokenize an expression string."""
    return Lexer(source).tokenize()
