"""Tests for value conversion between documents and storage."""

from __future__ import annotations

import math

import pytest

from docstore.engine.codec import decode, decode_row, encode, to_sql_literal
from docstore.exceptions import ConversionError
from docstore.models.schema import GeneralType


class TestRoundTrip:
    @pytest.mark.parametrize(
        "general_type, value",
        [
            (GeneralType.TEXT, 'say "hi"'),
            (GeneralType.INTEGER, 42),
            (GeneralType.REAL, 2.5),
            (GeneralType.NUMERIC, 7),
            (GeneralType.OBJECT, {"a": {"b": [1, "two", None]}, "quote": '"q"'}),
            (GeneralType.ARRAY, [1, "x", {"y": True}]),
            (GeneralType.NDARRAY, {"__ndarray__": {"file": "f.npy", "dtype": "int64", "shape": [2]}}),
        ],
    )
    def test_decode_inverts_encode(self, general_type, value) -> None:
        assert decode(general_type, encode(general_type, value)) == value

    @pytest.mark.parametrize("general_type", list(GeneralType))
    def test_none_is_null_for_every_type(self, general_type) -> None:
        assert encode(general_type, None) is None
        assert decode(general_type, None) is None


class TestEncode:
    def test_compound_is_json_text(self) -> None:
        assert encode(GeneralType.ARRAY, [1, 2]) == "[1, 2]"
        assert encode(GeneralType.OBJECT, {"a": "é"}) == '{"a": "é"}'

    def test_scalars_pass_through(self) -> None:
        assert encode(GeneralType.TEXT, 'a"b') == 'a"b'
        assert encode(GeneralType.NUMERIC, True) is True

    def test_accepts_type_names(self) -> None:
        assert encode("ARRAY", [1]) == "[1]"

    def test_unknown_type_encodes_to_none(self) -> None:
        assert encode(None, "value") is None
        assert encode("GEOMETRY", "value") is None

    def test_unserializable_raises(self) -> None:
        with pytest.raises(ConversionError) as info:
            encode(GeneralType.OBJECT, {"s": {1, 2}}, column="meta")
        assert info.value.column == "meta"

    def test_nan_raises(self) -> None:
        with pytest.raises(ConversionError):
            encode(GeneralType.ARRAY, [math.nan])


class TestDecode:
    def test_unknown_type_decodes_to_none(self) -> None:
        assert decode("GEOMETRY", "x") is None

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(ConversionError, match="column 'tags'"):
            decode(GeneralType.ARRAY, "[1, 2", column="tags")

    def test_non_text_compound_raises(self) -> None:
        with pytest.raises(ConversionError):
            decode(GeneralType.OBJECT, 5)

    def test_decode_row(self) -> None:
        schema = {"id": GeneralType.TEXT, "tags": GeneralType.ARRAY}
        assert decode_row(schema, {"id": "a", "tags": '["x"]'}) == {"id": "a", "tags": ["x"]}


class TestSqlLiteral:
    def test_text_quotes_are_doubled(self) -> None:
        assert to_sql_literal(GeneralType.TEXT, 'a"b') == '"a""b"'

    def test_compound(self) -> None:
        assert to_sql_literal(GeneralType.ARRAY, ["x"]) == '"[""x""]"'

    def test_numbers_and_null(self) -> None:
        assert to_sql_literal(GeneralType.INTEGER, 5) == "5"
        assert to_sql_literal(GeneralType.TEXT, None) == "NULL"
