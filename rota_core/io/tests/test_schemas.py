"""Tests for io.schemas helpers."""

import pytest

from rota_core.io.schemas import (
    AVAILABILITY_COLS,
    HISTORY_COLS,
    VOLUNTEERS_COLS,
    pipe_split,
    require_columns,
    to_bool,
    to_int,
    to_int_set,
)


class TestPipeHelpers:
    def test_pipe_split_basic(self):
        assert pipe_split("0|2|5") == ["0", "2", "5"]

    def test_pipe_split_empty(self):
        assert pipe_split("") == []
        assert pipe_split(None) == []

    def test_pipe_split_strips(self):
        assert pipe_split(" 1 | |3 ") == ["1", "3"]


class TestTypeCoercion:
    def test_to_int(self):
        assert to_int("5") == 5
        assert to_int("5.7") == 5
        assert to_int("") == 0
        assert to_int(None, default=7) == 7
        assert to_int("many", default=1) == 1

    def test_to_int_set(self):
        assert to_int_set("0|2") == frozenset({0, 2})
        assert to_int_set("1|x|1.0") == frozenset({1})
        assert to_int_set("") == frozenset()

    def test_to_bool(self):
        assert to_bool("TRUE") is True
        assert to_bool("true") is True
        assert to_bool("1") is True
        assert to_bool("yes") is True
        assert to_bool("FALSE") is False
        assert to_bool("") is False
        assert to_bool(None) is False


class TestRequireColumns:
    def test_all_present(self):
        require_columns(AVAILABILITY_COLS, AVAILABILITY_COLS, "availability.csv")

    def test_optional_columns_skipped(self):
        header = [c for c in VOLUNTEERS_COLS if c not in ("status", "group_key")]
        require_columns(header, VOLUNTEERS_COLS, "volunteers.csv")

    def test_missing_named_in_order(self):
        with pytest.raises(ValueError, match=r"volunteers.csv is missing column\(s\): gender, role"):
            require_columns(["volunteer_id", "first_name", "last_name"], VOLUNTEERS_COLS, "volunteers.csv")

    def test_no_header(self):
        with pytest.raises(ValueError, match="date, volunteer_id, role"):
            require_columns(None, HISTORY_COLS, "history.csv")
