"""
Utilities for moving query results between Arrow tables and row dicts.
"""
import decimal
from typing import List, Dict, Any, Tuple

import pyarrow as pa


def ensure_arrow_table(data: Any) -> pa.Table:
    """
    Ensure the input data is a PyArrow Table.

    Args:
        data: Input data (pa.Table, list of row dicts, dict of columns)

    Returns:
        pa.Table
    """
    if isinstance(data, pa.Table):
        return data

    if isinstance(data, list):
        if not data:
            return pa.Table.from_pydict({})
        return pa.Table.from_pylist(data)

    if isinstance(data, dict):
        return pa.Table.from_pydict(data)

    raise ValueError(f"Could not convert {type(data)} to PyArrow Table")


def _plain(value: Any) -> Any:
    # Decimal columns come back as decimal.Decimal; ratios need floats
    if isinstance(value, decimal.Decimal):
        return float(value)
    return value


def result_rows(data: Any) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    Column names (backend order) and row dicts for a query response.

    Row dicts may disagree on their keys; names are collected in first-seen
    order across all rows.
    """
    if isinstance(data, pa.Table):
        rows = [{k: _plain(v) for k, v in row.items()} for row in data.to_pylist()]
        return list(data.column_names), rows

    if isinstance(data, dict):
        table = ensure_arrow_table(data)
        return result_rows(table)

    if isinstance(data, list):
        columns: Dict[str, None] = {}
        rows = []
        for row in data:
            if not isinstance(row, dict):
                raise ValueError(f"Expected row dicts, got {type(row).__name__}")
            for key in row:
                columns.setdefault(key, None)
            rows.append({k: _plain(v) for k, v in row.items()})
        return list(columns), rows

    raise ValueError(f"Unsupported result type: {type(data).__name__}")


def rows_to_table(columns: List[str], rows: List[Dict[str, Any]]) -> pa.Table:
    """
    Build an Arrow table with ``columns`` in the given order.

    A column mixing types (ratios next to text cells left by relative
    normalization) is stored as strings.
    """
    arrays = {}
    for c in columns:
        values = [row.get(c) for row in rows]
        try:
            arrays[c] = pa.array(values)
        except (pa.ArrowInvalid, pa.ArrowTypeError):
            arrays[c] = pa.array([None if v is None else str(v) for v in values], type=pa.string())
    return pa.Table.from_pydict(arrays)
