"""
Tests for Arrow conversion helpers.
"""
import decimal

import pytest
import pyarrow as pa
from pivot_explorer.util.arrow_utils import ensure_arrow_table, result_rows, rows_to_table


def test_ensure_arrow_table():
    table = pa.table({"a": [1, 2]})
    assert ensure_arrow_table(table) is table
    assert ensure_arrow_table([{"a": 1}]).num_rows == 1
    assert ensure_arrow_table({"a": [1, 2, 3]}).num_rows == 3
    assert ensure_arrow_table([]).num_rows == 0

    with pytest.raises(ValueError):
        ensure_arrow_table("not a table")


def test_result_rows_from_table_converts_decimals():
    table = pa.table({
        "Exec_name": ["run-a"],
        "Metric_value/sum": pa.array([decimal.Decimal("1.50")], type=pa.decimal128(5, 2)),
    })
    columns, rows = result_rows(table)

    assert columns == ["Exec_name", "Metric_value/sum"]
    assert rows == [{"Exec_name": "run-a", "Metric_value/sum": 1.5}]
    assert isinstance(rows[0]["Metric_value/sum"], float)


def test_result_rows_collects_keys_in_first_seen_order():
    columns, rows = result_rows([{"b": 1}, {"a": 2, "b": 3}, {"c": 4}])

    assert columns == ["b", "a", "c"]
    assert rows[2] == {"c": 4}


def test_result_rows_rejects_non_dict_rows():
    with pytest.raises(ValueError):
        result_rows([["run-a", 1.0]])


def test_rows_to_table_fills_missing_cells():
    table = rows_to_table(["x", "y"], [{"x": 1, "y": 2.0}, {"x": 3}])

    assert table.column_names == ["x", "y"]
    assert table.to_pydict() == {"x": [1, 3], "y": [2.0, None]}


def test_rows_to_table_stores_mixed_columns_as_strings():
    table = rows_to_table(["Exec_name", "m/avg"], [
        {"Exec_name": "run-a", "m/avg": 0.5},
        {"Exec_name": "run-b", "m/avg": "n/a"},
        {"Exec_name": "run-c"},
    ])

    assert table.schema.field("m/avg").type == pa.string()
    assert table.column("m/avg").to_pylist() == ["0.5", "n/a", None]
