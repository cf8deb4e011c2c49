"""Tests for ingestkit_sheets.coercion."""

from __future__ import annotations

import datetime
import logging
from types import SimpleNamespace

import openpyxl
import pytest
from openpyxl.worksheet.formula import ArrayFormula

from ingestkit_sheets.coercion import cell_to_string, classify_cell
from ingestkit_sheets.models import CellKind

from conftest import StubEvaluator


def _cell(value, data_type: str = "n", coordinate: str = "A1"):
    """Create a minimal stand-in for an openpyxl cell."""
    return SimpleNamespace(value=value, data_type=data_type, coordinate=coordinate)


class TestClassifyCell:
    """classify_cell maps cells onto the closed CellKind set."""

    @pytest.mark.parametrize(
        "cell, expected",
        [
            (None, CellKind.BLANK),
            (_cell(None), CellKind.BLANK),
            (_cell("text", "s"), CellKind.STRING),
            (_cell(True, "b"), CellKind.BOOLEAN),
            (_cell("#DIV/0!", "e"), CellKind.ERROR),
            (_cell("=A2", "f"), CellKind.FORMULA),
            (_cell(30), CellKind.NUMERIC),
            (_cell(1.5), CellKind.NUMERIC),
            (_cell(datetime.datetime(2024, 1, 5), "d"), CellKind.NUMERIC),
        ],
        ids=["missing", "none", "string", "bool", "error", "formula", "int", "float", "date"],
    )
    def test_kinds(self, cell, expected):
        assert classify_cell(cell) is expected

    def test_array_formula_is_formula(self):
        cell = _cell(ArrayFormula("A1:A2", "=B1:B2*2"), "f")
        assert classify_cell(cell) is CellKind.FORMULA

    def test_unknown_value_type(self):
        assert classify_cell(_cell(object())) is None

    def test_real_openpyxl_cells(self):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws["A1"] = "name"
        ws["A2"] = 4
        ws["A3"] = "=A2*2"
        ws["A4"] = "#N/A"
        ws["A5"] = False
        assert classify_cell(ws["A1"]) is CellKind.STRING
        assert classify_cell(ws["A2"]) is CellKind.NUMERIC
        assert classify_cell(ws["A3"]) is CellKind.FORMULA
        assert classify_cell(ws["A4"]) is CellKind.ERROR
        assert classify_cell(ws["A5"]) is CellKind.BOOLEAN
        assert classify_cell(ws["B9"]) is CellKind.BLANK


class TestScalarCells:
    """Non-formula cells render without touching the evaluator."""

    def test_blank(self, stub_evaluator):
        assert cell_to_string(_cell(None), stub_evaluator) == ""
        assert cell_to_string(None, stub_evaluator) == ""

    def test_string_is_literal(self, stub_evaluator):
        assert cell_to_string(_cell("  padded ", "s"), stub_evaluator) == "  padded "

    def test_booleans_are_lowercase(self, stub_evaluator):
        assert cell_to_string(_cell(True, "b"), stub_evaluator) == "true"
        assert cell_to_string(_cell(False, "b"), stub_evaluator) == "false"

    def test_error_prefix(self, stub_evaluator):
        assert cell_to_string(_cell("#DIV/0!", "e"), stub_evaluator) == "ERROR: #DIV/0!"

    def test_integer(self, stub_evaluator):
        assert cell_to_string(_cell(30), stub_evaluator) == "30"

    def test_float_keeps_default_repr(self, stub_evaluator):
        assert cell_to_string(_cell(30.0), stub_evaluator) == "30.0"
        assert cell_to_string(_cell(0.1), stub_evaluator) == "0.1"
        assert cell_to_string(_cell(1e20), stub_evaluator) == "1e+20"

    def test_datetime_default_form(self, stub_evaluator):
        cell = _cell(datetime.datetime(2024, 1, 5, 13, 30), "d")
        assert cell_to_string(cell, stub_evaluator) == "2024-01-05 13:30:00"

    def test_date_format_applied(self, stub_evaluator):
        cell = _cell(datetime.datetime(2024, 1, 5, 13, 30), "d")
        assert cell_to_string(cell, stub_evaluator, date_format="%d/%m/%Y") == "05/01/2024"

    def test_timedelta_uses_str(self, stub_evaluator):
        cell = _cell(datetime.timedelta(hours=1, minutes=5), "d")
        assert cell_to_string(cell, stub_evaluator, date_format="%Y") == "1:05:00"

    def test_unknown_kind_falls_back_to_str(self, stub_evaluator):
        cell = _cell(object())
        assert cell_to_string(cell, stub_evaluator) == str(cell)

    def test_scalars_never_evaluate(self, stub_evaluator):
        for cell in (_cell("x", "s"), _cell(1), _cell(True, "b"), _cell(None)):
            cell_to_string(cell, stub_evaluator)
        assert stub_evaluator.calls == []


class TestFormulaCells:
    """Formula cells resolve through the evaluator and recurse on the result."""

    def test_no_result_is_empty(self):
        evaluator = StubEvaluator()
        assert cell_to_string(_cell("=B1", "f"), evaluator) == ""
        assert evaluator.calls == ["A1"]

    def test_reference_to_blank_is_empty(self):
        evaluator = StubEvaluator({"A1": _cell(None)})
        assert cell_to_string(_cell("=B1", "f"), evaluator) == ""

    def test_boolean_result(self):
        evaluator = StubEvaluator({"A1": _cell(True, "b"), "A2": _cell(False, "b")})
        assert cell_to_string(_cell("=1=1", "f", "A1"), evaluator) == "true"
        assert cell_to_string(_cell("=1=2", "f", "A2"), evaluator) == "false"

    def test_numeric_string_and_error_results(self):
        evaluator = StubEvaluator(
            {
                "A1": _cell(12.5),
                "A2": _cell("done", "s"),
                "A3": _cell("#REF!", "e"),
            }
        )
        assert cell_to_string(_cell("=B1", "f", "A1"), evaluator) == "12.5"
        assert cell_to_string(_cell("=B2", "f", "A2"), evaluator) == "done"
        assert cell_to_string(_cell("=B3", "f", "A3"), evaluator) == "ERROR: #REF!"

    def test_nested_formula_result(self):
        evaluator = StubEvaluator(
            {"A1": _cell("=C1", "f", "B1"), "B1": _cell("inner", "s", "C1")}
        )
        assert cell_to_string(_cell("=B1", "f", "A1"), evaluator) == "inner"
        assert evaluator.calls == ["A1", "B1"]

    def test_self_referencing_result_stops_at_depth(self, caplog):
        looping = _cell("=A1", "f", "A1")
        evaluator = StubEvaluator({"A1": looping})
        with caplog.at_level(logging.WARNING, logger="ingestkit_sheets"):
            assert cell_to_string(looping, evaluator, max_depth=3) == ""
        assert len(evaluator.calls) == 4
        assert "W_FORMULA_DEPTH_EXCEEDED" in caplog.text

    def test_evaluator_errors_propagate(self):
        class _Broken:
            def evaluate(self, cell):
                raise RuntimeError("decoder exploded")

        with pytest.raises(RuntimeError, match="decoder exploded"):
            cell_to_string(_cell("=B1", "f"), _Broken())
