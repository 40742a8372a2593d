"""
RTFS Mapper - Converts RTFS source into AST and back

This module provides a clean interface around the RTFS parser:

Responsibilities:
- Parse RTFS text to AST (rtfs_reader + rtfs_parser)
- Convert AST back to generic data and canonical RTFS text
- Convert AST to a JSON-friendly dict and to a tree view
- Export source, AST and canonical text to a JSON file

This module does NOT type check or execute plans.

Usage:
    mapper = RTFSMapper()
    # Convert RTFS text to AST
    ast = mapper.text_to_ast('(def x 10)')
    # Convert AST to a JSON-friendly dict
    ast_dict = mapper.ast_to_dict(ast)
    # Or export everything to JSON
    mapper.export_to_json('(def x 10)', 'rtfs_parsed.json')
"""

from __future__ import annotations

import argparse
import hashlib
import json
import logging
import os
import sys
from datetime import datetime
from html import escape as html_escape
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rtfs_ast import (
    ASTNode,
    Call,
    Def,
    Do,
    Expr,
    Fn,
    If,
    Join,
    Let,
    LetBinding,
    Literal,
    LogStep,
    NODE_TYPES,
    Parallel,
    ParallelBinding,
    Symbol,
    Task,
)
from rtfs_data import Keyword, SList, Sym, Vector, write_data
from rtfs_parser import KW_EXECUTION_LOG, KW_ID, KW_INTENT, KW_NATURAL_LANGUAGE, KW_PLAN, KW_SOURCE
from rtfs_parser import RTFSParseError, parse_rtfs_string

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# AST -> generic data
# ---------------------------------------------------------------------------

def _sym(node: Symbol) -> Sym:
    return Sym(node.name)


def _form(name: str, *items: Any) -> SList:
    return SList((Sym(name),) + items)


def ast_to_data(node: ASTNode) -> Any:
    """
    Reconstitute the generic data a node was parsed from.

    For any node returned by parse_expr, parse_expr(ast_to_data(node)) == node.

    Raises:
        TypeError: If node is not an expression node
    """
    if not isinstance(node, NODE_TYPES):
        raise TypeError(f"Unknown AST node type: {type(node).__name__}")
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Symbol):
        return _sym(node)
    if isinstance(node, Call):
        return SList(ast_to_data(e) for e in node.elements)
    if isinstance(node, Do):
        return _form("do", *(ast_to_data(e) for e in node.body))
    if isinstance(node, Def):
        return _form("def", _sym(node.symbol), ast_to_data(node.value))
    if isinstance(node, Let):
        bindings: List[Any] = []
        for binding in node.bindings:
            bindings += [_sym(binding.symbol), ast_to_data(binding.expr)]
        return _form("let", Vector(bindings), *(ast_to_data(e) for e in node.body))
    if isinstance(node, If):
        return _form(
            "if",
            ast_to_data(node.condition),
            ast_to_data(node.then_branch),
            ast_to_data(node.else_branch),
        )
    if isinstance(node, Fn):
        params = Vector(_sym(p) for p in node.params)
        return _form("fn", params, *(ast_to_data(e) for e in node.body))
    if isinstance(node, Parallel):
        bindings = [Vector((_sym(b.id), ast_to_data(b.expr))) for b in node.bindings]
        return _form("parallel", Vector(bindings))
    if isinstance(node, Join):
        return _form("join", *(_sym(i) for i in node.ids))
    if isinstance(node, LogStep):
        return _form("log-step", KW_ID, _sym(node.id), ast_to_data(node.expr))
    if isinstance(node, Task):
        task: Dict[Any, Any] = {KW_ID: node.id}
        if node.source is not None:
            task[KW_SOURCE] = node.source
        if node.natural_language is not None:
            task[KW_NATURAL_LANGUAGE] = node.natural_language
        if node.intent.data is not None:
            task[KW_INTENT] = node.intent.data
        task[KW_PLAN] = ast_to_data(node.plan)
        if node.execution_log.data is not None:
            task[KW_EXECUTION_LOG] = node.execution_log.data
        return task
    raise TypeError(f"Unknown AST node type: {type(node).__name__}")


def ast_to_text(node: ASTNode) -> str:
    """Canonical RTFS text for a node."""
    return write_data(ast_to_data(node))


# ---------------------------------------------------------------------------
# AST -> JSON-friendly dict
# ---------------------------------------------------------------------------

def data_to_json(value: Any) -> Any:
    """
    Convert generic data to JSON-compatible values.

    Keywords become ":name" strings, symbols their bare name, lists and
    vectors become lists and non-string map keys are written as RTFS text.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Keyword):
        return f":{value.name}"
    if isinstance(value, Sym):
        return value.name
    if isinstance(value, (SList, Vector)):
        return [data_to_json(item) for item in value]
    if isinstance(value, dict):
        return {
            (k if isinstance(k, str) else write_data(k)): data_to_json(v)
            for k, v in value.items()
        }
    return repr(value)


def ast_to_dict(node: ASTNode) -> Dict[str, Any]:
    """Convert an AST node into a nested dict with a "type" key per node."""
    if isinstance(node, Literal):
        return {"type": "literal", "value": data_to_json(node.value)}
    if isinstance(node, Symbol):
        return {"type": "symbol", "name": node.name}
    if isinstance(node, Call):
        return {"type": "call", "elements": [ast_to_dict(e) for e in node.elements]}
    if isinstance(node, Do):
        return {"type": "do", "body": [ast_to_dict(e) for e in node.body]}
    if isinstance(node, Def):
        return {"type": "def", "symbol": ast_to_dict(node.symbol), "value": ast_to_dict(node.value)}
    if isinstance(node, Let):
        return {
            "type": "let",
            "bindings": [
                {"symbol": ast_to_dict(b.symbol), "expr": ast_to_dict(b.expr)} for b in node.bindings
            ],
            "body": [ast_to_dict(e) for e in node.body],
        }
    if isinstance(node, If):
        return {
            "type": "if",
            "condition": ast_to_dict(node.condition),
            "then": ast_to_dict(node.then_branch),
            "else": ast_to_dict(node.else_branch),
        }
    if isinstance(node, Fn):
        return {
            "type": "fn",
            "params": [ast_to_dict(p) for p in node.params],
            "body": [ast_to_dict(e) for e in node.body],
        }
    if isinstance(node, Parallel):
        return {
            "type": "parallel",
            "bindings": [{"id": ast_to_dict(b.id), "expr": ast_to_dict(b.expr)} for b in node.bindings],
        }
    if isinstance(node, Join):
        return {"type": "join", "ids": [ast_to_dict(i) for i in node.ids]}
    if isinstance(node, LogStep):
        return {"type": "log-step", "id": ast_to_dict(node.id), "expr": ast_to_dict(node.expr)}
    if isinstance(node, Task):
        return {
            "type": "task",
            "id": data_to_json(node.id),
            "source": data_to_json(node.source),
            "natural_language": data_to_json(node.natural_language),
            "intent": data_to_json(node.intent.data),
            "plan": ast_to_dict(node.plan),
            "execution_log": data_to_json(node.execution_log.data),
        }
    raise TypeError(f"Unknown AST node type: {type(node).__name__}")


# ---------------------------------------------------------------------------
# Tree view
# ---------------------------------------------------------------------------

def _short(value: Any, limit: int = 40) -> str:
    try:
        text = write_data(value)
    except TypeError:
        text = repr(value)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def _describe(node: ASTNode) -> Tuple[str, str, List[ASTNode]]:
    """(node type, detail, children) for one node of the tree view."""
    if isinstance(node, Literal):
        return "literal", _short(node.value), []
    if isinstance(node, Symbol):
        return "symbol", node.name, []
    if isinstance(node, Call):
        callee = node.elements[0]
        detail = callee.name if isinstance(callee, Symbol) else ""
        return "call", detail, list(node.elements[1:]) if detail else list(node.elements)
    if isinstance(node, Do):
        return "do", "", list(node.body)
    if isinstance(node, Def):
        return "def", node.symbol.name, [node.value]
    if isinstance(node, LetBinding):
        return "binding", node.symbol.name, [node.expr]
    if isinstance(node, Let):
        return "let", f"{len(node.bindings)} bindings", list(node.bindings) + list(node.body)
    if isinstance(node, If):
        return "if", "", [node.condition, node.then_branch, node.else_branch]
    if isinstance(node, Fn):
        return "fn", "[" + " ".join(p.name for p in node.params) + "]", list(node.body)
    if isinstance(node, ParallelBinding):
        return "binding", node.id.name, [node.expr]
    if isinstance(node, Parallel):
        return "parallel", "", list(node.bindings)
    if isinstance(node, Join):
        return "join", " ".join(i.name for i in node.ids), []
    if isinstance(node, LogStep):
        return "log-step", node.id.name, [node.expr]
    if isinstance(node, Task):
        return "task", _short(node.id), [node.plan]
    raise TypeError(f"Unknown AST node type: {type(node).__name__}")


def _tree_rows(node: ASTNode, prefix: str = "", is_last: bool = True, root: bool = True):
    node_type, detail, children = _describe(node)
    connector = "" if root else ("└── " if is_last else "├── ")
    yield prefix + connector, node_type, detail
    child_prefix = "" if root else prefix + ("    " if is_last else "│   ")
    for i, child in enumerate(children):
        yield from _tree_rows(child, child_prefix, i == len(children) - 1, root=False)


def ast_to_tree_lines(node: ASTNode) -> List[str]:
    """Render an AST as text lines with box-drawing connectors."""
    return [f"{lead}{node_type} {detail}".rstrip() for lead, node_type, detail in _tree_rows(node)]


def build_ast_tree_html(node: ASTNode) -> str:
    """Build HTML representation of the AST tree."""
    html = ""
    for lead, node_type, detail in _tree_rows(node):
        html += '<div style="font-family: monospace; white-space: pre; line-height: 1.6;">'
        html += html_escape(lead)
        html += f'<span style="color: #0066cc; font-weight: bold;">{html_escape(node_type)}</span>'
        if detail:
            html += f' <span style="color: #cc6600;">{html_escape(detail)}</span>'
        html += "</div>"
    return html


# ---------------------------------------------------------------------------
# Mapper
# ---------------------------------------------------------------------------

class RTFSMapper:
    """
    Maps RTFS source text to AST, dicts and canonical text.

    This class does NOT execute plans; it only parses and converts them.
    """

    def text_to_ast(self, rtfs_source: str) -> Expr:
        """
        Parse RTFS source text into an AST.

        Raises:
            RTFSParseError: If the text cannot be read or parsed
        """
        return parse_rtfs_string(rtfs_source)

    def ast_to_dict(self, ast: ASTNode) -> Dict[str, Any]:
        return ast_to_dict(ast)

    def ast_to_text(self, ast: ASTNode) -> str:
        return ast_to_text(ast)

    def export_to_json(
        self,
        rtfs_source: str,
        output_file: str = "rtfs_parsed.json",
        ast: Optional[Expr] = None,
    ) -> Dict[str, Any]:
        """
        Parse RTFS source and export source, AST and canonical text to a JSON file.

        Args:
            rtfs_source: RTFS text holding one form
            output_file: Path to output JSON file
            ast: Already parsed AST for rtfs_source, parsed here when omitted

        Returns:
            Dictionary containing source, AST, canonical text and metadata
        """
        if ast is None:
            ast = self.text_to_ast(rtfs_source)

        output_data = {
            "rtfs_source": rtfs_source,
            "timestamp": datetime.now().isoformat(),
            "ast": self.ast_to_dict(ast),
            "canonical_text": self.ast_to_text(ast),
        }

        output_dir = os.path.dirname(output_file)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(output_file, "w") as f:
            json.dump(output_data, f, indent=2)
        logger.info("Wrote AST for %d characters of source to %s", len(rtfs_source), output_file)

        output_data["output_file"] = output_file
        return output_data


def map_rtfs_to_dict(rtfs_source: str) -> Dict[str, Any]:
    """Convenience function: RTFS text straight to a JSON-friendly AST dict."""
    mapper = RTFSMapper()
    return mapper.ast_to_dict(mapper.text_to_ast(rtfs_source))


# ---------------------------------------------------------------------------
# Command-line interface
# ---------------------------------------------------------------------------

def _default_output_file(rtfs_source: str) -> str:
    source_hash = hashlib.md5(rtfs_source.encode()).hexdigest()[:8]
    return f"rtfs_parsed_{source_hash}.json"


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rtfs-parse",
        description="RTFS Mapper - Parse RTFS expressions and tasks into an AST",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
All settings can be read from a config file, or specified via command-line.

Examples:
  # Using config file
  rtfs-parse --config config/rtfs_config.json

  # Using command-line arguments
  rtfs-parse '(log-step :id s1 (tool:fetch "A"))' -o parsed.json --print-ast
        """,
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to JSON config file (if provided, all other arguments are ignored)",
    )
    parser.add_argument(
        "rtfs_source",
        nargs="?",
        type=str,
        default=None,
        help="RTFS expression (e.g., '(def x 10)') - required if --config and --file not used",
    )
    parser.add_argument("-f", "--file", type=str, default=None, help="Read the RTFS source from a file")
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output JSON file path (default: auto-generated from source hash)",
    )
    parser.add_argument("--print-ast", action="store_true", help="Print the AST tree and canonical text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _load_config(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError("Config file must contain a JSON object")
    return config


def _read_source_file(path: str) -> str:
    with open(path, "r") as f:
        return f.read()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI; returns the process exit status."""
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    # Load from config file if provided
    if args.config:
        if not os.path.exists(args.config):
            print(f"❌ Error: Config file not found: {args.config}")
            return 1
        try:
            config = _load_config(args.config)
        except ValueError as e:
            print(f"❌ Error: Invalid config file {args.config}: {e}")
            return 1

        rtfs_source = config.get("rtfs_source")
        input_file = config.get("input_file")
        if not rtfs_source and input_file:
            if not os.path.exists(input_file):
                print(f"❌ Error: Input file not found: {input_file}")
                return 1
            rtfs_source = _read_source_file(input_file)
        if not rtfs_source:
            print("❌ Error: Config file must contain 'rtfs_source' or 'input_file'")
            return 1

        output_config = config.get("output", {})
        if not isinstance(output_config, dict):
            print("❌ Error: Config key 'output' must be a JSON object")
            return 1
        output_file = output_config.get("ast_json_file")
        print_ast = config.get("print_ast", False)
        verbose = config.get("verbose", False)
        print(f"✓ Loaded config from: {args.config}")
    else:
        if args.file:
            if not os.path.exists(args.file):
                print(f"❌ Error: Input file not found: {args.file}")
                return 1
            rtfs_source = _read_source_file(args.file)
        elif args.rtfs_source:
            rtfs_source = args.rtfs_source
        else:
            parser.error("Either --config, --file or rtfs_source must be provided")
        output_file = args.output
        print_ast = args.print_ast
        verbose = args.verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if output_file is None:
        output_file = _default_output_file(rtfs_source)

    mapper = RTFSMapper()

    print("Parsing RTFS source...")
    print(f"  Input: {rtfs_source.strip()}")

    try:
        ast = mapper.text_to_ast(rtfs_source)
    except RTFSParseError as e:
        print(f"❌ {e.kind.value}: {e.describe()}")
        return 1

    result = mapper.export_to_json(rtfs_source, output_file=output_file, ast=ast)

    print(f"✓ Parsed {result['ast']['type']} node")
    print(f"✓ AST saved to: {result['output_file']}")

    if print_ast:
        print("\n" + "=" * 70)
        print("AST:")
        print("=" * 70)
        print("\n".join(ast_to_tree_lines(ast)))
        print("=" * 70)
        print("Canonical text:")
        print(result["canonical_text"])

    return 0


if __name__ == "__main__":
    sys.exit(main())
