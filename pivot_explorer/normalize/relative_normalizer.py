"""
RelativeNormalizer - expresses value columns as ratios to a baseline column.

Each row is normalized on its own; there is no lookup across rows.
"""
import logging
import math
import numbers
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

from ..types.column_structure import ParsedValueColumn

logger = logging.getLogger(__name__)


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(value)


@dataclass
class NormalizedRows:
    rows: List[Dict[str, Any]]
    baseline: Optional[str]


class RelativeNormalizer:

    def choose_baseline(
        self,
        rows: List[Dict[str, Any]],
        value_columns: List[ParsedValueColumn],
        baseline: Optional[str] = None,
    ) -> Optional[str]:
        """
        The explicit baseline if it names a value column, else the first value
        column holding a number in the first row.
        """
        if baseline:
            if baseline in [c.column_name for c in value_columns]:
                return baseline
            logger.warning("Baseline %r is not a value column, choosing one automatically", baseline)
        if not rows:
            return None
        first = rows[0]
        for col in value_columns:
            if is_number(first.get(col.column_name)):
                return col.column_name
        return None

    def normalize(
        self,
        rows: List[Dict[str, Any]],
        value_columns: List[ParsedValueColumn],
        baseline: Optional[str] = None,
    ) -> NormalizedRows:
        baseline = self.choose_baseline(rows, value_columns, baseline)
        if baseline is None:
            logger.debug("No numeric baseline column, rows left as they are")
            return NormalizedRows([dict(r) for r in rows], None)

        names = [c.column_name for c in value_columns]
        return NormalizedRows([self.normalize_row(row, names, baseline) for row in rows], baseline)

    @staticmethod
    def normalize_row(row: Dict[str, Any], value_columns: List[str], baseline: str) -> Dict[str, Any]:
        result = dict(row)
        reference = row.get(baseline)
        # Nothing to divide by: leave the row alone, including the baseline cell
        if not is_number(reference) or reference == 0:
            return result

        for column in value_columns:
            if column != baseline and is_number(row.get(column)):
                result[column] = row[column] / reference
        result[baseline] = 1.0
        return result
