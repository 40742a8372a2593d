"""
Reader for RTFS source text.

Turns s-expression text into generic data (see rtfs_data), the untyped form
the AST parser consumes.

Example:
    Input:  '(log-step :id s1 (tool:fetch "A"))'
    Output: SList([Sym('log-step'), Keyword('id'), Sym('s1'),
                   SList([Sym('tool:fetch'), 'A'])])

Supported syntax: nil, true, false, integers, floats, double-quoted strings,
:keywords, symbols, (lists), [vectors] and {maps}. Commas count as
whitespace and ';' starts a comment that runs to the end of the line.
"""

from __future__ import annotations

from typing import Any, Optional

from pyparsing import (
    Forward,
    Literal,
    ParseBaseException,
    ParseFatalException,
    QuotedString,
    Regex,
    Suppress,
    ZeroOrMore,
)

from rtfs_data import Keyword, SList, Sym, Vector

# Characters that end an atom
_DELIMS = r"\s,()\[\]{}\"';"

_ATOM_VALUES = {"nil": None, "true": True, "false": False}


class ReaderError(ValueError):
    """Raised when text cannot be read into generic data."""

    def __init__(self, message: str, text: str, line: Optional[int] = None, col: Optional[int] = None):
        self.message = message
        self.text = text
        self.line = line
        self.col = col
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line is None or self.col is None:
            return self.message
        lines = self.text.splitlines()
        source_line = lines[self.line - 1] if 0 < self.line <= len(lines) else ""
        pointer = " " * (self.col - 1) + "^"
        return f"Syntax error at line {self.line}, column {self.col}: {self.message}\n\n{source_line}\n{pointer}"


class DataReader:
    """Reader for RTFS s-expressions using pyparsing - maps text to generic data."""

    def __init__(self) -> None:
        self._setup_grammar()

    def _setup_grammar(self) -> None:
        """Set up the pyparsing grammar for reading s-expressions."""
        # 1. Atoms
        NUMBER = Regex(
            r"[+-]?(?:\d+\.\d*(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+|\d+)(?![^" + _DELIMS + r"])"
        ).set_parse_action(self._make_number)
        STRING = QuotedString('"', esc_char="\\", multiline=True)
        KEYWORD = Regex(r":[^" + _DELIMS + r"]+").set_parse_action(lambda t: [Keyword(t[0][1:])])
        SYMBOL = Regex(
            r"[^" + _DELIMS + r":#\d^`~@\\][^" + _DELIMS + r"]*"
        ).set_parse_action(self._make_symbol)

        # 2. Recursive form (collections nest) - must be Forward
        FORM = Forward()

        # 3. Collections
        LIST = (Suppress("(") + ZeroOrMore(FORM) + Suppress(")")).set_parse_action(
            lambda t: [SList(t)]
        )
        VECTOR = (Suppress("[") + ZeroOrMore(FORM) + Suppress("]")).set_parse_action(
            lambda t: [Vector(t)]
        )
        MAP = (Suppress("{") + ZeroOrMore(FORM) + Suppress("}")).set_parse_action(self._make_map)

        # 4. NUMBER must come before SYMBOL so "-1" is not read as a symbol
        FORM <<= LIST | VECTOR | MAP | STRING | NUMBER | KEYWORD | SYMBOL

        # 5. Commas and line comments are skipped like whitespace
        FORM.ignore(Suppress(Regex(r";[^\n]*")))
        FORM.ignore(Suppress(Literal(",")))

        self.grammar = FORM

    @staticmethod
    def _make_number(tokens):
        text = tokens[0]
        if any(ch in text for ch in ".eE"):
            return [float(text)]
        return [int(text)]

    @staticmethod
    def _make_symbol(tokens):
        text = tokens[0]
        if text in _ATOM_VALUES:
            return [_ATOM_VALUES[text]]
        return [Sym(text)]

    @staticmethod
    def _make_map(s, loc, tokens):
        items = list(tokens)
        if len(items) % 2:
            raise ParseFatalException(s, loc, "map literal must contain an even number of forms")
        result = {}
        for key, value in zip(items[::2], items[1::2]):
            try:
                if key in result:
                    existing = next(k for k in result if k == key)
                    if type(existing) is not type(key):
                        # Python dict keys treat true/1 and 1/1.0 as the same key
                        raise ParseFatalException(
                            s, loc, f"map keys {existing!r} and {key!r} collide as Python dict keys"
                        )
                    raise ParseFatalException(s, loc, f"duplicate map key: {key!r}")
                result[key] = value
            except TypeError:
                raise ParseFatalException(s, loc, f"map key is not hashable: {key!r}")
        return [result]

    def read(self, text: str) -> Any:
        """
        Read exactly one form from text.

        Args:
            text: RTFS source text

        Returns:
            Generic value for the form

        Raises:
            ReaderError: If the text is empty, malformed, nested too deeply,
                or holds more than one form
        """
        if not text or not text.strip():
            raise ReaderError("no form found in input", text or "")
        try:
            result = self.grammar.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise ReaderError(e.msg, text, e.lineno, e.col) from e
        except RecursionError as e:
            raise ReaderError("input is nested too deeply to read", text) from e
        return result[0]


_READER: Optional[DataReader] = None


def read_data(text: str) -> Any:
    """
    Read RTFS source text into generic data.

    Args:
        text: Text holding a single s-expression

    Returns:
        Generic value (atom, SList, Vector or dict)
    """
    global _READER
    if _READER is None:
        _READER = DataReader()
    return _READER.read(text)
