"""Tests for the RTFS reader and the generic data printer."""

import pytest

from rtfs_data import Keyword, SList, Sym, Vector, kw, slist, sym, vector, write_data
from rtfs_reader import ReaderError, read_data


@pytest.mark.parametrize(
    "text, expected",
    [
        ("42", 42),
        ("-3", -3),
        ("+7", 7),
        ("1.5", 1.5),
        ("1e3", 1000.0),
        ('"hello"', "hello"),
        (":keyword", Keyword("keyword")),
        (":human-instruction", Keyword("human-instruction")),
        ("my-var", Sym("my-var")),
        ("tool:fetch", Sym("tool:fetch")),
        ("+", Sym("+")),
        ("-", Sym("-")),
        ("nilly", Sym("nilly")),
    ],
)
def test_read_atoms(text, expected):
    assert read_data(text) == expected


def test_read_nil_and_booleans():
    assert read_data("nil") is None
    assert read_data("true") is True
    assert read_data("false") is False


def test_read_float_keeps_type():
    assert isinstance(read_data("2.0"), float)
    assert isinstance(read_data("2"), int)


def test_read_string_escapes():
    assert read_data(r'"say \"hi\""') == 'say "hi"'


def test_read_list():
    data = read_data('(f 1 "two" :three)')
    assert isinstance(data, SList)
    assert data == slist(sym("f"), 1, "two", kw("three"))


def test_read_empty_list():
    assert read_data("()") == SList(())


def test_read_vector_is_not_a_list():
    data = read_data("[1 2 3]")
    assert isinstance(data, Vector)
    assert data == vector(1, 2, 3)
    assert data != slist(1, 2, 3)


def test_read_map_with_commas():
    assert read_data("{:a 1, :b [2 3]}") == {Keyword("a"): 1, Keyword("b"): vector(2, 3)}


def test_read_nested():
    data = read_data("(parallel [[job1 (tool:fetch \"A\")] [job2 (tool:fetch \"B\")]])")
    bindings = data[1]
    assert data[0] == sym("parallel")
    assert len(bindings) == 2
    assert bindings[0] == vector(sym("job1"), slist(sym("tool:fetch"), "A"))


def test_read_skips_comments():
    text = """
    ; leading comment
    (do ; trailing comment
      1)
    """
    assert read_data(text) == slist(sym("do"), 1)


@pytest.mark.parametrize("text", ["(", "(def x", "[1 2", "{:a}", "1 2", "", "   ", "'a", "#{1 2}"])
def test_read_errors(text):
    with pytest.raises(ReaderError):
        read_data(text)


def test_reader_error_points_at_location():
    with pytest.raises(ReaderError) as exc_info:
        read_data("(def x")
    error = exc_info.value
    assert error.line == 1
    assert "^" in str(error)


def test_duplicate_map_key_is_an_error():
    with pytest.raises(ReaderError):
        read_data("{:a 1 :a 2}")


def test_write_atoms():
    assert write_data(None) == "nil"
    assert write_data(True) == "true"
    assert write_data(10) == "10"
    assert write_data("a\"b") == '"a\\"b"'
    assert write_data(Keyword("id")) == ":id"
    assert write_data(Sym("x")) == "x"


def test_write_collections():
    assert write_data(slist(sym("f"), vector(1, 2), {kw("a"): None})) == "(f [1 2] {:a nil})"


def test_write_rejects_non_data():
    with pytest.raises(TypeError):
        write_data(object())


def test_written_task_reads_back_equal():
    text = """{:id "task-001"
              :intent {:action :fetch}
              :plan (do (def x 1.5) (log-step :id s1 (tool:fetch "line\\nbreak")))
              :execution-log [{:stage 1 :status :received}]}"""
    data = read_data(text)
    assert read_data(write_data(data)) == data


def test_map_keys_equal_in_python_are_reported():
    with pytest.raises(ReaderError) as exc_info:
        read_data("{1 :a true :b}")
    assert "collide" in str(exc_info.value)


def test_deep_nesting_raises_reader_error():
    depth = 300
    with pytest.raises(ReaderError) as exc_info:
        read_data("[" * depth + "]" * depth)
    assert "nested too deeply" in str(exc_info.value)
