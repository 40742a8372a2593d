"""Tests for AST conversion, JSON export and the command-line interface."""

import json

import pytest

import rtfs_mapper
from rtfs_ast import NODE_TYPES, make_log_entry
from rtfs_mapper import (
    RTFSMapper,
    ast_to_data,
    ast_to_dict,
    ast_to_text,
    ast_to_tree_lines,
    build_ast_tree_html,
    main,
    map_rtfs_to_dict,
)
from rtfs_parser import parse_expr, parse_rtfs_string
from rtfs_reader import read_data
from test_rtfs_parser import TASK_TEXT

SOURCES = [
    "42",
    "nil",
    ":kw",
    "x",
    "[1 (f 2) {:a b}]",
    "{:a 1}",
    "(def x 10)",
    "(if (> a 1) \"big\" \"small\")",
    "(let [a 1 b \"two\"] (do (print a) b))",
    "(let [])",
    "(fn [y] (+ y 1))",
    "(fn [])",
    "(do)",
    "(parallel [[job1 (tool:fetch \"A\")] [job2 (tool:fetch \"B\")]])",
    "(join job1 job2)",
    "(log-step :id step1 (call-tool param))",
    "(some-func arg1 :named-arg val)",
    "((fn [x] x) 1)",
    '{:id "t" :plan (do)}',
    TASK_TEXT,
]


@pytest.mark.parametrize("text", SOURCES)
def test_reparsing_reconstituted_data_is_idempotent(text):
    node = parse_rtfs_string(text)
    assert parse_expr(ast_to_data(node)) == node


@pytest.mark.parametrize(
    "text",
    [
        "(def x 10)",
        "(let [a 1 b 2] a)",
        "(parallel [[a (f 1)] [b (f 2)]])",
        "(log-step :id s1 (f 1))",
        "(join a b)",
    ],
)
def test_canonical_text_matches_simple_source(text):
    assert ast_to_text(parse_rtfs_string(text)) == text


def test_task_data_keeps_task_keys():
    data = ast_to_data(parse_rtfs_string('{:id "t" :plan (f 1)}'))
    assert data == read_data('{:id "t" :plan (f 1)}')


def test_ast_to_data_rejects_non_nodes():
    with pytest.raises(TypeError):
        ast_to_data(make_log_entry(stage=1))


def test_ast_to_dict_for_def():
    assert ast_to_dict(parse_rtfs_string("(def x :ok)")) == {
        "type": "def",
        "symbol": {"type": "symbol", "name": "x"},
        "value": {"type": "literal", "value": ":ok"},
    }


def test_ast_to_dict_for_task_is_json_serialisable():
    ast_dict = map_rtfs_to_dict(TASK_TEXT)
    assert ast_dict["type"] == "task"
    assert ast_dict["id"] == "task-001"
    assert ast_dict["source"] == ":human-instruction"
    assert ast_dict["intent"] == {":action": ":complex-data-pipeline"}
    assert ast_dict["plan"]["type"] == "do"
    assert [n["type"] for n in ast_dict["plan"]["body"]] == ["def", "log-step", "let"]
    json.dumps(ast_dict)


def test_tree_lines():
    lines = ast_to_tree_lines(parse_rtfs_string("(def x (f 1 y))"))
    assert lines == [
        "def x",
        "└── call f",
        "    ├── literal 1",
        "    └── symbol y",
    ]


def test_tree_lines_for_let_bindings():
    lines = ast_to_tree_lines(parse_rtfs_string("(let [a 1] a)"))
    assert lines == [
        "let 1 bindings",
        "├── binding a",
        "│   └── literal 1",
        "└── symbol a",
    ]


def test_tree_html_escapes_content():
    html = build_ast_tree_html(parse_rtfs_string("(< a b)"))
    assert "&lt;" in html
    assert "<span" in html


def test_export_to_json(tmp_path):
    output_file = tmp_path / "out" / "parsed.json"
    result = RTFSMapper().export_to_json("(join a b)", output_file=str(output_file))

    assert result["output_file"] == str(output_file)
    saved = json.loads(output_file.read_text())
    assert saved["rtfs_source"] == "(join a b)"
    assert saved["canonical_text"] == "(join a b)"
    assert saved["ast"]["type"] == "join"
    assert "timestamp" in saved


def test_cli_parses_and_prints_ast(tmp_path, capsys):
    output_file = tmp_path / "parsed.json"
    status = main(["(def x (f 1))", "-o", str(output_file), "--print-ast"])

    out = capsys.readouterr().out
    assert status == 0
    assert "✓ Parsed def node" in out
    assert "└── call f" in out
    assert output_file.exists()


def test_cli_reports_parse_error_and_stops(tmp_path, capsys):
    output_file = tmp_path / "parsed.json"
    status = main(["(def x)", "-o", str(output_file), "--print-ast"])

    out = capsys.readouterr().out
    assert status == 1
    assert "❌ malformed-form: def requires a symbol and one value expression" in out
    assert "AST:" not in out
    assert not output_file.exists()


def test_cli_reports_reader_failure(tmp_path, capsys):
    status = main(["(def x", "-o", str(tmp_path / "parsed.json")])
    assert status == 1
    assert "❌ reader-failure" in capsys.readouterr().out


def test_cli_reads_source_file(tmp_path, capsys):
    source_file = tmp_path / "task.rtfs"
    source_file.write_text(TASK_TEXT)
    output_file = tmp_path / "task.json"

    assert main(["-f", str(source_file), "-o", str(output_file)]) == 0
    assert json.loads(output_file.read_text())["ast"]["type"] == "task"


def test_cli_config_file(tmp_path, capsys):
    output_file = tmp_path / "from_config.json"
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps({"rtfs_source": "(join a b)", "output": {"ast_json_file": str(output_file)}})
    )

    assert main(["--config", str(config_file)]) == 0
    assert "✓ Loaded config from" in capsys.readouterr().out
    assert output_file.exists()


def test_cli_missing_config(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.json")]) == 1
    assert "Config file not found" in capsys.readouterr().out


def test_cli_config_without_source(tmp_path, capsys):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"print_ast": True}))
    assert main(["--config", str(config_file)]) == 1
    assert "must contain 'rtfs_source' or 'input_file'" in capsys.readouterr().out


def test_cli_requires_source():
    with pytest.raises(SystemExit):
        main([])


def test_every_node_variant_is_converted():
    sources = [
        "1", "x", "(f 1)", "(do)", "(def x 1)", "(let [a 1] a)", "(if a b c)",
        "(fn [x] x)", "(parallel [[a 1]])", "(join a)", "(log-step :id s (f))",
        '{:id "t" :plan (f)}',
    ]
    nodes = [parse_rtfs_string(text) for text in sources]
    assert {type(node) for node in nodes} == set(NODE_TYPES)
    for node in nodes:
        assert parse_expr(ast_to_data(node)) == node
        assert ast_to_dict(node)["type"]
        assert ast_to_tree_lines(node)


def test_cli_parses_source_once(tmp_path, monkeypatch):
    calls = []

    def counting_parse(text):
        calls.append(text)
        return parse_rtfs_string(text)

    monkeypatch.setattr(rtfs_mapper, "parse_rtfs_string", counting_parse)
    assert main(["(join a b)", "-o", str(tmp_path / "parsed.json"), "--print-ast"]) == 0
    assert calls == ["(join a b)"]


def test_cli_config_output_must_be_object(tmp_path, capsys):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"rtfs_source": "(join a b)", "output": "parsed.json"}))
    assert main(["--config", str(config_file)]) == 1
    assert "'output' must be a JSON object" in capsys.readouterr().out
