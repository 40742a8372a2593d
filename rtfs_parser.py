"""
Parser for RTFS - turns generic s-expression data into AST nodes.

Example: (let [a 1] (tool:log a))
    -> Let(bindings=(LetBinding(Symbol('a'), Literal(1)),),
           body=(Call((Symbol('tool:log'), Symbol('a'))),))

Special forms are recognised by an exact match on the first element of a list
(def, let, if, fn, do, parallel, join, log-step). The match ignores scope: a
local binding named `if` still makes (if ...) the special form. Any other list
is a call.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from rtfs_ast import (
    Expr,
    LetBinding,
    ParallelBinding,
    Symbol,
    Task,
    make_call,
    make_def,
    make_do,
    make_fn,
    make_if,
    make_join,
    make_let,
    make_let_binding,
    make_literal,
    make_log_step,
    make_parallel,
    make_parallel_binding,
    make_symbol,
    make_task,
)
from rtfs_data import Keyword, SList, Sym, Vector, is_literal_atom, write_data
from rtfs_reader import ReaderError, read_data

logger = logging.getLogger(__name__)


class ParseErrorKind(str, Enum):
    """Kinds of parse failure."""
    EMPTY_LIST = "empty-list"
    UNPARSEABLE = "unparseable"
    MALFORMED_FORM = "malformed-form"
    READER_FAILURE = "reader-failure"


class RTFSParseError(ValueError):
    """
    Raised when input cannot be turned into an AST.

    Attributes:
        kind: ParseErrorKind of the failure
        message: Human readable description, e.g. "def requires a symbol and one value expression"
        fragment: The offending piece of generic data (None for reader failures)
        form: Name of the special form being parsed, if any
        input_text: Source text, set by parse_rtfs_string
    """

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        fragment: Any = None,
        form: Optional[str] = None,
        input_text: Optional[str] = None,
    ):
        self.kind = kind
        self.message = message
        self.fragment = fragment
        self.form = form
        self.input_text = input_text
        super().__init__(f"{kind.value}: {message}")

    def with_input(self, text: str) -> "RTFSParseError":
        """Return a copy of this error carrying the source text."""
        return RTFSParseError(self.kind, self.message, self.fragment, self.form, text)

    def describe(self) -> str:
        """Message plus the offending fragment, for display."""
        if self.fragment is None:
            return self.message
        try:
            fragment = write_data(self.fragment)
        except TypeError:
            fragment = repr(self.fragment)
        return f"{self.message}\n  in: {fragment}"


def _malformed(form: str, message: str, data: Any) -> RTFSParseError:
    return RTFSParseError(ParseErrorKind.MALFORMED_FORM, message, data, form=form)


KW_ID = Keyword("id")
KW_PLAN = Keyword("plan")
KW_SOURCE = Keyword("source")
KW_NATURAL_LANGUAGE = Keyword("natural-language")
KW_INTENT = Keyword("intent")
KW_EXECUTION_LOG = Keyword("execution-log")


# ---------------------------------------------------------------------------
# Helpers for binding and parameter vectors
# ---------------------------------------------------------------------------

def parse_symbol(data: Any, form: str) -> Symbol:
    """Parse a symbol that the given special form requires."""
    if isinstance(data, Sym):
        return make_symbol(data)
    raise _malformed(form, f"{form} expected a symbol", data)


def parse_let_bindings(bindings_vec: Any) -> List[LetBinding]:
    if not (isinstance(bindings_vec, Vector) and len(bindings_vec) % 2 == 0):
        raise _malformed(
            "let", "let bindings must be a vector with an even number of elements", bindings_vec
        )
    pairs = zip(bindings_vec[::2], bindings_vec[1::2])
    return [make_let_binding(parse_symbol(sym, "let"), parse_expr(expr)) for sym, expr in pairs]


def parse_parallel_bindings(bindings_vec: Any) -> List[ParallelBinding]:
    if not (
        isinstance(bindings_vec, Vector)
        and all(isinstance(b, Vector) and len(b) == 2 for b in bindings_vec)
    ):
        raise _malformed(
            "parallel", "parallel bindings must be a vector of [id expr] vectors", bindings_vec
        )
    return [
        make_parallel_binding(parse_symbol(id_sym, "parallel"), parse_expr(expr))
        for id_sym, expr in bindings_vec
    ]


def parse_fn_params(params_vec: Any) -> List[Symbol]:
    if not isinstance(params_vec, Vector):
        raise _malformed("fn", "fn params must be a vector of symbols", params_vec)
    return [parse_symbol(param, "fn") for param in params_vec]


# ---------------------------------------------------------------------------
# Special forms
# ---------------------------------------------------------------------------

def _parse_def(data: SList, args: Sequence[Any]) -> Expr:
    if len(args) != 2:
        raise _malformed("def", "def requires a symbol and one value expression", data)
    return make_def(parse_symbol(args[0], "def"), parse_expr(args[1]))


def _parse_let(data: SList, args: Sequence[Any]) -> Expr:
    if len(args) < 1:
        raise _malformed("let", "let requires bindings and at least one body expression", data)
    bindings = parse_let_bindings(args[0])
    return make_let(bindings, [parse_expr(expr) for expr in args[1:]])


def _parse_if(data: SList, args: Sequence[Any]) -> Expr:
    if len(args) != 3:
        raise _malformed("if", "if requires condition, then-branch, and else-branch", data)
    return make_if(parse_expr(args[0]), parse_expr(args[1]), parse_expr(args[2]))


def _parse_fn(data: SList, args: Sequence[Any]) -> Expr:
    if len(args) < 1:
        raise _malformed("fn", "fn requires params vector and at least one body expression", data)
    params = parse_fn_params(args[0])
    return make_fn(params, [parse_expr(expr) for expr in args[1:]])


def _parse_do(data: SList, args: Sequence[Any]) -> Expr:
    return make_do([parse_expr(expr) for expr in args])


def _parse_parallel(data: SList, args: Sequence[Any]) -> Expr:
    if len(args) != 1:
        raise _malformed("parallel", "parallel requires a single vector of bindings", data)
    return make_parallel(parse_parallel_bindings(args[0]))


def _parse_join(data: SList, args: Sequence[Any]) -> Expr:
    return make_join([parse_symbol(arg, "join") for arg in args])


def _parse_log_step(data: SList, args: Sequence[Any]) -> Expr:
    if len(args) != 3 or args[0] != KW_ID:
        raise _malformed("log-step", "log-step requires :id <symbol> <expr>", data)
    return make_log_step(parse_symbol(args[1], "log-step"), parse_expr(args[2]))


SPECIAL_FORMS: Dict[Sym, Callable[[SList, Sequence[Any]], Expr]] = {
    Sym("def"): _parse_def,
    Sym("let"): _parse_let,
    Sym("if"): _parse_if,
    Sym("fn"): _parse_fn,
    Sym("do"): _parse_do,
    Sym("parallel"): _parse_parallel,
    Sym("join"): _parse_join,
    Sym("log-step"): _parse_log_step,
}


def _parse_list(data: SList) -> Expr:
    if len(data) == 0:
        raise RTFSParseError(ParseErrorKind.EMPTY_LIST, "Cannot parse empty list", data)
    op, args = data[0], data[1:]
    rule = SPECIAL_FORMS.get(op) if isinstance(op, Sym) else None
    if rule is not None:
        logger.debug("Parsing special form %s with %d args", op.name, len(args))
        return rule(data, args)
    # Function/tool call: parse the whole list including the operator
    return make_call([parse_expr(element) for element in data])


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def is_task_map(data: Mapping[Any, Any]) -> bool:
    """A map is read as a task when it has both :id and :plan keys."""
    return KW_ID in data and KW_PLAN in data


def parse_task(data: Mapping[Any, Any]) -> Task:
    return make_task(
        id=data.get(KW_ID),
        source=data.get(KW_SOURCE),
        natural_language=data.get(KW_NATURAL_LANGUAGE),
        intent=data.get(KW_INTENT),
        plan=parse_expr(data[KW_PLAN]),
        execution_log=data.get(KW_EXECUTION_LOG),
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def parse_expr(data: Any) -> Expr:
    """
    Parse one generic value into an AST node.

    Args:
        data: Generic value from the reader (see rtfs_data)

    Returns:
        The AST node for data

    Raises:
        RTFSParseError: If data or any part of it is malformed
    """
    if is_literal_atom(data):
        return make_literal(data)

    if isinstance(data, Sym):
        return make_symbol(data)

    if isinstance(data, SList):
        return _parse_list(data)

    # Vectors outside binding positions stay literal data
    if isinstance(data, Vector):
        return make_literal(data)

    if isinstance(data, dict):
        if is_task_map(data):
            return parse_task(data)
        return make_literal(data)

    raise RTFSParseError(ParseErrorKind.UNPARSEABLE, "Cannot parse input into RTFS AST", data)


def parse_rtfs_string(text: str) -> Expr:
    """
    Read RTFS source text and parse it into an AST node.

    Reader failures are re-raised as RTFSParseError with kind
    READER_FAILURE; every error raised here carries the input text.

    Args:
        text: RTFS source holding one form

    Returns:
        The AST node for the form
    """
    try:
        data = read_data(text)
    except ReaderError as e:
        logger.warning("Error reading RTFS string: %s", e.message)
        raise RTFSParseError(
            ParseErrorKind.READER_FAILURE,
            f"Failed to read RTFS string: {e}",
            input_text=text,
        ) from e

    try:
        return parse_expr(data)
    except RTFSParseError as e:
        logger.warning("Error parsing RTFS string: %s", e.message)
        raise e.with_input(text) from e
