"""
Generic data model for RTFS source.

These are the plain Python values the reader produces from s-expression text,
before any AST is built:

    nil / true / false      -> None / True / False
    42, 1.5, "text"         -> int, float, str
    my-var, tool:fetch      -> Sym("my-var"), Sym("tool:fetch")
    :id                     -> Keyword("id")
    (f 1 2)                 -> SList((Sym("f"), 1, 2))
    [a 1]                   -> Vector((Sym("a"), 1))
    {:a 1}                  -> {Keyword("a"): 1}

Lists and vectors are both tuples underneath but never compare equal to each
other, since downstream code relies on the code/data distinction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Sym:
    """A symbol atom (variable, function or tool name)."""
    name: str

    def __repr__(self) -> str:
        return f"Sym({self.name!r})"


@dataclass(frozen=True)
class Keyword:
    """A keyword atom, stored without the leading colon."""
    name: str

    def __repr__(self) -> str:
        return f"Keyword({self.name!r})"


class _Sequence(tuple):
    """Tuple that only compares equal to sequences of the same kind."""

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and tuple.__eq__(self, other)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    __hash__ = tuple.__hash__

    def __repr__(self) -> str:
        items = ", ".join(repr(item) for item in self)
        return f"{type(self).__name__}([{items}])"


class SList(_Sequence):
    """A parenthesised list: code (calls and special forms)."""


class Vector(_Sequence):
    """A bracketed vector: literal data or a binding group."""


# Convenience constructors, mostly for building data by hand
def sym(name: str) -> Sym:
    return Sym(name)


def kw(name: str) -> Keyword:
    return Keyword(name.lstrip(":"))


def slist(*items: Any) -> SList:
    return SList(items)


def vector(*items: Any) -> Vector:
    return Vector(items)


def is_literal_atom(value: Any) -> bool:
    """True for self-evaluating atoms: numbers, strings, booleans, nil, keywords."""
    return value is None or isinstance(value, (bool, int, float, str, Keyword))


_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}


def _write_string(value: str) -> str:
    return '"' + "".join(_STRING_ESCAPES.get(ch, ch) for ch in value) + '"'


def write_data(value: Any) -> str:
    """
    Print generic data as s-expression text.

    The output reads back (via rtfs_reader.read_data) to an equal value.

    Args:
        value: Generic value (atom, SList, Vector or dict)

    Returns:
        s-expression text

    Raises:
        TypeError: If value is not generic data
    """
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return _write_string(value)
    if isinstance(value, Sym):
        return value.name
    if isinstance(value, Keyword):
        return f":{value.name}"
    if isinstance(value, SList):
        return "(" + " ".join(write_data(item) for item in value) + ")"
    if isinstance(value, Vector):
        return "[" + " ".join(write_data(item) for item in value) + "]"
    if isinstance(value, dict):
        pairs = (f"{write_data(k)} {write_data(v)}" for k, v in value.items())
        return "{" + " ".join(pairs) + "}"
    raise TypeError(f"Cannot write {type(value).__name__} as RTFS data: {value!r}")
