"""Tests for the type-shape classifier."""

from __future__ import annotations

from typing import Any

import pytest

from polyface.domain.shapes import (
    Boolean,
    BytesLike,
    Custom,
    Integer,
    ListOf,
    Number,
    OptionalOf,
    OptionOf,
    Plain,
    ResultOf,
    StreamOf,
    String,
    Unit,
    classify_return,
    classify_type,
    describe_return,
    describe_shape,
    python_type,
    return_kind,
    split_generic,
    split_top_level,
)

TYPE_SHAPES = (String, Integer, Number, Boolean, ListOf, OptionalOf, BytesLike, Custom)


class TestClassifyPrimitives:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("str", String()),
            ("String", String()),
            ("&str", String()),
            ("bool", Boolean()),
            ("int", Integer()),
            ("i8", Integer(8)),
            ("int32", Integer(32)),
            ("i64", Integer(64)),
            ("u32", Integer(32, signed=False)),
            ("usize", Integer(64, signed=False)),
            ("float", Number()),
            ("f32", Number(32)),
            ("float64", Number(64)),
            ("bytes", BytesLike()),
            ("bytearray", BytesLike()),
        ],
    )
    def test_primitive_tokens(self, text: str, expected: Any) -> None:
        assert classify_type(text) == expected

    def test_quotes_and_qualifiers_are_stripped(self) -> None:
        assert classify_type("'str'") == String()
        assert classify_type("app.models.User") == Custom("User")

    def test_missing_annotation_is_any(self) -> None:
        assert classify_type(None) == Custom("Any")
        assert classify_type("") == Custom("Any")


class TestClassifyContainers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("list[int]", ListOf(Integer())),
            ("Sequence[str]", ListOf(String())),
            ("Vec<u8>", ListOf(Integer(8, signed=False))),
            ("tuple[str, ...]", ListOf(String())),
            ("Optional[str]", OptionalOf(String())),
            ("Option<String>", OptionalOf(String())),
            ("str | None", OptionalOf(String())),
            ("None | int", OptionalOf(Integer())),
            ("Union[int, None]", OptionalOf(Integer())),
            ("list[str] | None", OptionalOf(ListOf(String()))),
        ],
    )
    def test_containers(self, text: str, expected: Any) -> None:
        assert classify_type(text) == expected

    def test_bare_list_item_is_any(self) -> None:
        assert classify_type("list") == ListOf(Custom("Any"))

    def test_custom_generic_arguments_are_not_resolved(self) -> None:
        assert classify_type("dict[str, int]") == Custom("dict")
        assert classify_type("Page[User]") == Custom("Page")
        assert classify_type("list[Page[User]]") == ListOf(Custom("Page"))

    def test_union_without_none_is_opaque(self) -> None:
        assert classify_type("int | str") == Custom("Union")

    def test_optional_union_wraps_the_rest(self) -> None:
        assert classify_type("int | str | None") == OptionalOf(Custom("Union"))

    @pytest.mark.parametrize("text", ["[[[", "list[", "]]", "Result<", "a | | b", "<>"])
    def test_never_raises(self, text: str) -> None:
        assert isinstance(classify_type(text), TYPE_SHAPES)


class TestClassifyReturn:
    def test_unit(self) -> None:
        assert classify_return(None) == Unit()
        assert classify_return("") == Unit()
        assert classify_return("None") == Unit()

    def test_result(self) -> None:
        assert classify_return("Result[User, UserNotFound]") == ResultOf(
            Custom("User"), Custom("UserNotFound")
        )

    def test_result_without_error_type(self) -> None:
        assert classify_return("Result[int]") == ResultOf(Integer(), Custom("Exception"))

    def test_option(self) -> None:
        assert classify_return("User | None") == OptionOf(Custom("User"))
        assert classify_return("Optional[int]") == OptionOf(Integer())

    def test_stream(self) -> None:
        assert classify_return("Iterator[int]") == StreamOf(Integer())
        assert classify_return("AsyncIterator[str]") == StreamOf(String())
        assert classify_return("Stream[User]") == StreamOf(Custom("User"))

    def test_plain(self) -> None:
        assert classify_return("list[User]") == Plain(ListOf(Custom("User")))
        assert classify_return("int") == Plain(Integer())


class TestSplitting:
    def test_split_top_level_respects_brackets(self) -> None:
        assert split_top_level("a, b[c, d], e", ",") == ["a", "b[c, d]", "e"]

    def test_split_generic(self) -> None:
        assert split_generic("list[int]") == ("list", ["int"])
        assert split_generic("Result<A, B>") == ("Result", ["A", "B"])
        assert split_generic("User") == ("User", [])


class TestDisplay:
    def test_describe_shape(self) -> None:
        assert describe_shape(OptionalOf(ListOf(Integer(32)))) == "list[int32] | None"
        assert describe_shape(Integer(8, signed=False)) == "uint8"
        assert describe_shape(Custom("User")) == "User"

    def test_describe_return(self) -> None:
        assert describe_return(Unit()) == "None"
        assert describe_return(StreamOf(String())) == "Stream[str]"
        assert describe_return(ResultOf(String(), Custom("E"))) == "Result[str, E]"

    def test_return_kind(self) -> None:
        assert return_kind(Unit()) == "unit"
        assert return_kind(OptionOf(String())) == "option"
        assert return_kind(Plain(String())) == "plain"


class TestPythonType:
    def test_scalars(self) -> None:
        assert python_type(String()) is str
        assert python_type(Integer(16)) is int
        assert python_type(BytesLike()) is bytes

    def test_containers(self) -> None:
        assert python_type(ListOf(Integer())) == list[int]
        assert python_type(OptionalOf(String())) == str | None

    def test_custom_is_any(self) -> None:
        assert python_type(Custom("User")) is Any
