"""
AST (Abstract Syntax Tree) node definitions for RTFS.

RTFS (Reasoning Task Flow Specification) is centered around the task
artifact: a unit of work whose :plan is an expression tree built from the
nodes below. AST nodes are frozen dataclasses; sequences of children are
stored as tuples so a tree is immutable once built.

The make_* helpers take already parsed children. They do no validation,
that is the parser's job, they only fix the shape of what they store.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from rtfs_data import Keyword, Sym


@dataclass(frozen=True)
class ASTNode:
    """Base class for AST nodes."""
    pass


# ---------------------------------------------------------------------------
# Core expression nodes (used within :plan)
# ---------------------------------------------------------------------------

def _typed(value: Any) -> Any:
    """Pair every value with its type so True, 1 and 1.0 stay distinct."""
    if isinstance(value, tuple):
        return (type(value), tuple(_typed(item) for item in value))
    if isinstance(value, dict):
        return (dict, {key: _typed(item) for key, item in value.items()})
    return (type(value), value)


@dataclass(frozen=True, eq=False)
class Literal(ASTNode):
    """Self-evaluating value: number, string, boolean, nil, keyword, vector or map."""
    value: Any

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return _typed(self.value) == _typed(other.value)

    def __hash__(self) -> int:
        return hash((type(self.value), self.value))


@dataclass(frozen=True)
class Symbol(ASTNode):
    """Variable, function or tool name."""
    name: str


@dataclass(frozen=True)
class Call(ASTNode):
    """Function or tool call, e.g. (tool:read-file "path"). elements[0] is the callee."""
    elements: Tuple["Expr", ...]


@dataclass(frozen=True)
class Do(ASTNode):
    """Sequential execution: (do expr1 expr2 ...)"""
    body: Tuple["Expr", ...]


@dataclass(frozen=True)
class Def(ASTNode):
    """Definition: (def symbol value)"""
    symbol: Symbol
    value: "Expr"


@dataclass(frozen=True)
class LetBinding(ASTNode):
    symbol: Symbol
    expr: "Expr"


@dataclass(frozen=True)
class Let(ASTNode):
    """Local bindings: (let [a 1 b 2] body...)"""
    bindings: Tuple[LetBinding, ...]
    body: Tuple["Expr", ...]


@dataclass(frozen=True)
class If(ASTNode):
    """Conditional: (if condition then else). There is no two-armed form."""
    condition: "Expr"
    then_branch: "Expr"
    else_branch: "Expr"


@dataclass(frozen=True)
class Fn(ASTNode):
    """Anonymous function: (fn [params] body...)"""
    params: Tuple[Symbol, ...]
    body: Tuple["Expr", ...]


@dataclass(frozen=True)
class ParallelBinding(ASTNode):
    id: Symbol
    expr: "Expr"


@dataclass(frozen=True)
class Parallel(ASTNode):
    """Parallel execution: (parallel [[id1 expr1] [id2 expr2] ...])"""
    bindings: Tuple[ParallelBinding, ...]


@dataclass(frozen=True)
class Join(ASTNode):
    """Wait on parallel steps: (join id1 id2 ...)"""
    ids: Tuple[Symbol, ...]


@dataclass(frozen=True)
class LogStep(ASTNode):
    """Logged step: (log-step :id <id> <expr>)"""
    id: Symbol
    expr: "Expr"


# ---------------------------------------------------------------------------
# Opaque payloads and execution log
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Opaque:
    """Generic data carried through the AST without being parsed."""
    data: Any


@dataclass(frozen=True)
class LogEntry(ASTNode):
    """
    A single entry of a task's execution log.

    Entries are sparse: any field may be missing, and a missing field is None.
    """
    stage: Any = None
    agent: Any = None
    timestamp: Any = None
    status: Any = None
    derived_from: Any = None
    plan: Any = None
    result: Any = None
    error: Any = None
    executing_step: Any = None
    executed_step: Any = None


# ---------------------------------------------------------------------------
# Task node (the central artifact)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Task(ASTNode):
    """
    A complete unit of work.

    Attributes:
        id: Task identifier (kept as read, usually a string)
        source: Origin of the task, e.g. :human-instruction
        natural_language: The original request, if any
        intent: Structured semantic goal, not parsed
        plan: Parsed expression tree to execute
        execution_log: Log entries as data, not parsed
    """
    id: Any
    source: Any
    natural_language: Any
    intent: Opaque
    plan: "Expr"
    execution_log: Opaque


Expr = Union[Literal, Symbol, Call, Do, Def, Let, If, Fn, Parallel, Join, LogStep, Task]

# Every variant parse_expr can return; consumers dispatch over this set
NODE_TYPES = (Literal, Symbol, Call, Do, Def, Let, If, Fn, Parallel, Join, LogStep, Task)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def make_literal(value: Any) -> Literal:
    return Literal(value)


def make_symbol(name: Union[str, Sym, Keyword]) -> Symbol:
    """Build a Symbol from a plain name, a symbol atom or a keyword atom."""
    if isinstance(name, (Sym, Keyword)):
        return Symbol(name.name)
    return Symbol(name)


def make_call(elements: Iterable[Expr]) -> Call:
    return Call(tuple(elements))


def make_do(body: Iterable[Expr]) -> Do:
    return Do(tuple(body))


def make_def(symbol: Symbol, value: Expr) -> Def:
    return Def(symbol, value)


def make_let_binding(symbol: Symbol, expr: Expr) -> LetBinding:
    return LetBinding(symbol, expr)


def make_let(bindings: Iterable[LetBinding], body: Iterable[Expr]) -> Let:
    return Let(tuple(bindings), tuple(body))


def make_if(condition: Expr, then_branch: Expr, else_branch: Expr) -> If:
    return If(condition, then_branch, else_branch)


def make_fn(params: Iterable[Symbol], body: Iterable[Expr]) -> Fn:
    return Fn(tuple(params), tuple(body))


def make_parallel_binding(id: Symbol, expr: Expr) -> ParallelBinding:
    return ParallelBinding(id, expr)


def make_parallel(bindings: Iterable[ParallelBinding]) -> Parallel:
    return Parallel(tuple(bindings))


def make_join(ids: Iterable[Symbol]) -> Join:
    return Join(tuple(ids))


def make_log_step(id: Symbol, expr: Expr) -> LogStep:
    return LogStep(id, expr)


def make_log_entry(**entry_fields: Any) -> LogEntry:
    """Build a LogEntry from keyword arguments; unknown field names raise TypeError."""
    return LogEntry(**entry_fields)


LOG_ENTRY_FIELDS = tuple(f.name for f in fields(LogEntry))


def log_entry_from_data(data: Mapping[Any, Any]) -> LogEntry:
    """
    Build a LogEntry from a generic map such as {:stage :exec :derived-from x}.

    Keys may be keywords or strings; hyphens map to underscores. Keys that are
    not LogEntry fields are dropped.
    """
    entry_fields = {}
    for key, value in data.items():
        name = key.name if isinstance(key, Keyword) else str(key)
        name = name.replace("-", "_")
        if name in LOG_ENTRY_FIELDS:
            entry_fields[name] = value
    return make_log_entry(**entry_fields)


_UNSET: Any = object()


def make_task(
    id: Any = None,
    source: Any = None,
    natural_language: Any = None,
    intent: Any = _UNSET,
    plan: Optional[Expr] = None,
    execution_log: Any = _UNSET,
) -> Task:
    """
    Build a Task node.

    intent and execution_log are wrapped in Opaque unless they already are.
    When omitted, intent defaults to {}, execution_log to () and plan to an
    empty Do.
    """
    if intent is _UNSET:
        intent = {}
    if execution_log is _UNSET:
        execution_log = ()
    if plan is None:
        plan = make_do(())
    if not isinstance(intent, Opaque):
        intent = Opaque(intent)
    if not isinstance(execution_log, Opaque):
        execution_log = Opaque(execution_log)
    return Task(id, source, natural_language, intent, plan, execution_log)
