"""Nginx directive scanner.

Turns configuration text into a tree of Directive objects:

    server {                     Directive("server", block=[
        listen 80;                   Directive("listen", ["80"]),
        location / { ... }           Directive("location", ["/"], block=[...]),
    }                            ])

The scanner is lenient on purpose so that callers can decide what a
usable file looks like:
- a stray ``}`` is ignored
- blocks still open at end of input are closed
- a trailing directive without ``;`` is dropped
It never raises on any input string.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

_PUNCTUATION = {";": "SEMI", "{": "OPEN", "}": "CLOSE"}
_QUOTES = ("'", '"')


class TokenKind(Enum):
    WORD = "word"
    SEMI = "semi"
    OPEN = "open"
    CLOSE = "close"


@dataclass(frozen=True)
class Token:
    """A lexical token with its source line."""

    kind: TokenKind
    value: str  # quotes removed, escapes resolved
    raw: str  # exactly as written
    line: int


@dataclass
class Directive:
    """A parsed nginx directive, optionally owning a block of children."""

    name: str
    args: list[str] = field(default_factory=list)
    raw_args: list[str] = field(default_factory=list)
    block: list["Directive"] | None = None
    line_number: int = 0

    @property
    def value(self) -> str:
        """Arguments as written, joined by single spaces."""
        return " ".join(self.raw_args)

    @property
    def is_block(self) -> bool:
        return self.block is not None

    def find(self, name: str) -> "Directive | None":
        """First direct child with the given name."""
        return next(iter(self.find_all(name)), None)

    def find_all(self, name: str) -> list["Directive"]:
        """All direct children with the given name, in file order."""
        return [child for child in self.block or [] if child.name == name]

    def walk(self) -> Iterator["Directive"]:
        """Depth-first iteration over all descendants."""
        for child in self.block or []:
            yield child
            yield from child.walk()


def tokenize(text: str) -> Iterator[Token]:
    """Split nginx configuration text into tokens.

    Comments (``#`` to end of line) are skipped outside of quotes. Inside
    words and quoted strings a backslash escapes the next character, so
    ``\\;`` does not terminate a directive.
    """
    i = 0
    line = 1
    length = len(text)

    while i < length:
        char = text[i]

        if char == "\n":
            line += 1
            i += 1
            continue
        if char.isspace():
            i += 1
            continue

        if char == "#":
            while i < length and text[i] != "\n":
                i += 1
            continue

        if char in _PUNCTUATION:
            yield Token(TokenKind[_PUNCTUATION[char]], char, char, line)
            i += 1
            continue

        start = i
        start_line = line
        value: list[str] = []

        if char in _QUOTES:
            quote = char
            i += 1
            while i < length and text[i] != quote:
                if text[i] == "\\" and i + 1 < length:
                    i += 1
                if text[i] == "\n":
                    line += 1
                value.append(text[i])
                i += 1
            i += 1  # closing quote (or past end for an unterminated string)
            yield Token(TokenKind.WORD, "".join(value), text[start:i], start_line)
            continue

        while i < length:
            char = text[i]
            if char.isspace() or char in _PUNCTUATION:
                break
            if char == "\\" and i + 1 < length:
                value.append(text[i + 1])
                i += 2
                continue
            if char == "$" and i + 1 < length and text[i + 1] == "{":
                # ${variable} keeps its braces
                end = text.find("}", i)
                if end != -1:
                    value.append(text[i:end + 1])
                    i = end + 1
                    continue
            value.append(char)
            i += 1

        yield Token(TokenKind.WORD, "".join(value), text[start:i], start_line)


def scan(text: str) -> list[Directive]:
    """Build the directive tree for a configuration text.

    Returns:
        Top-level directives in file order.
    """
    top: list[Directive] = []
    stack: list[list[Directive]] = [top]
    pending: list[Token] = []

    for token in tokenize(text):
        if token.kind is TokenKind.WORD:
            pending.append(token)
            continue

        if token.kind is TokenKind.SEMI:
            if pending:
                stack[-1].append(_make_directive(pending))
            pending = []
        elif token.kind is TokenKind.OPEN:
            directive = _make_directive(pending) if pending else Directive(name="", line_number=token.line)
            directive.block = []
            stack[-1].append(directive)
            stack.append(directive.block)
            pending = []
        elif token.kind is TokenKind.CLOSE:
            # Unterminated directive right before "}" is dropped
            pending = []
            if len(stack) > 1:
                stack.pop()

    return top


def _make_directive(tokens: list[Token]) -> Directive:
    name, *args = tokens
    return Directive(
        name=name.value.lower(),
        args=[t.value for t in args],
        raw_args=[t.raw for t in args],
        line_number=name.line,
    )
