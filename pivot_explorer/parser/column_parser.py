"""
ColumnStructureParser - turns the backend's structured column names into a
multi-level table header.

A value column is named ``<field>=<value>/.../<value field>/<aggregator>``,
e.g. ``Exec__id=42/Metric_name=gpu.memory/Metric_value/avg``. Field
identifiers come back sanitized (``Metric:name`` -> ``Metric_name``) and are
restored here. A name without the separator is a row column.
"""
import logging
import re
from typing import List, Dict, Optional, Callable, Iterable

from ..types.column_structure import (
    ColumnAssignment,
    ParsedValueColumn,
    HeaderGroup,
    ColumnStructure,
)
from ..types.pivot_field import PivotConfiguration, Role

logger = logging.getLogger(__name__)

SEPARATOR = "/"
PLACEHOLDER_LABEL = "N/A"
FALLBACK_AGGREGATOR = "value"

_SANITIZED_RE = re.compile(r"_+")


def desanitize_field(name: str) -> str:
    """``Exec__id`` -> ``Exec:id``, ``Metric_name`` -> ``Metric:name``.

    Only the first underscore run is the table separator; the rest of the
    path keeps its underscores.
    """
    return _SANITIZED_RE.sub(":", name, count=1)


def sanitize_field(name: str) -> str:
    return name.replace(":", "_")


def parse_column_name(
    name: str,
    separator: str = SEPARATOR,
    fallback_aggregator: str = FALLBACK_AGGREGATOR,
) -> ParsedValueColumn:
    parts = [p for p in name.split(separator) if p]
    if len(parts) < 2:
        return ParsedValueColumn(
            column_name=name,
            assignments=[],
            value_field=desanitize_field(parts[0] if parts else name),
            aggregator=fallback_aggregator,
        )

    assignments = []
    for part in parts[:-2]:
        raw_field, _, value = part.partition("=")
        assignments.append(ColumnAssignment(
            field=desanitize_field(raw_field),
            value=value,
            original_field=raw_field,
        ))

    return ParsedValueColumn(
        column_name=name,
        assignments=assignments,
        value_field=desanitize_field(parts[-2]),
        aggregator=parts[-1],
    )


def group_consecutive(
    columns: Iterable[ParsedValueColumn],
    label_of: Callable[[ParsedValueColumn], str],
    level: str,
) -> List[HeaderGroup]:
    """Run-length encode labels over the current column order."""
    groups: List[HeaderGroup] = []
    for col in columns:
        label = label_of(col)
        if groups and groups[-1].label == label:
            last = groups[-1]
            groups[-1] = HeaderGroup(last.label, last.span + 1, level)
        else:
            groups.append(HeaderGroup(label, 1, level))
    return groups


class ColumnStructureParser:
    """Classifies result columns and builds the grouped header levels."""

    def __init__(
        self,
        separator: str = SEPARATOR,
        placeholder_label: str = PLACEHOLDER_LABEL,
        fallback_aggregator: str = FALLBACK_AGGREGATOR,
    ):
        self.separator = separator
        self.placeholder_label = placeholder_label
        self.fallback_aggregator = fallback_aggregator

    def parse(self, config: PivotConfiguration, column_names: List[str]) -> ColumnStructure:
        structure = ColumnStructure()
        if not column_names:
            return structure

        row_fields = [f.field for f in config.by_role(Role.ROW)]
        candidates = [c for c in column_names if self.separator not in c]
        structure.value_columns = [c for c in column_names if self.separator in c]

        self._classify_row_columns(row_fields, candidates, structure)

        structure.parsed_value_columns = [
            parse_column_name(c, self.separator, self.fallback_aggregator)
            for c in structure.value_columns
        ]
        structure.header_levels = self.build_header_levels(structure.parsed_value_columns)
        return structure

    def build_header_levels(self, parsed: List[ParsedValueColumn]) -> List[List[HeaderGroup]]:
        if not parsed:
            return []

        levels = [group_consecutive(parsed, lambda c: c.value_field, "field")]

        depth = max(len(c.assignments) for c in parsed)
        for position in range(depth):
            levels.append(group_consecutive(
                parsed,
                lambda c, i=position: c.assignments[i].label if i < len(c.assignments) else self.placeholder_label,
                f"column-{position}",
            ))

        levels.append(group_consecutive(parsed, lambda c: c.aggregator.upper(), "aggregator"))
        return levels

    def _classify_row_columns(self, row_fields: List[str], candidates: List[str], structure: ColumnStructure):
        """
        Place candidates in declared row-field order, then append whatever no
        row field claimed in backend order.

        Matching is best effort: exact, de-sanitized equality, then sanitized
        containment in either direction. Containment can pair a column with
        the wrong field when one sanitized name contains another, so columns
        matching several row fields are reported as ambiguous.
        """
        matches: Dict[str, List[str]] = {
            column: [f for f in row_fields if self._contains_match(column, f)]
            for column in candidates
        }
        structure.ambiguous_columns = [c for c, fields in matches.items() if len(fields) > 1]

        claimed: List[str] = []
        for row_field in row_fields:
            column = self._claim(row_field, candidates, claimed)
            if column is not None:
                claimed.append(column)

        unmatched = [c for c in candidates if c not in claimed]
        for column in unmatched:
            logger.debug("Column %r matches no row field, keeping it as a row column", column)

        structure.row_columns = claimed + unmatched
        structure.unmatched_row_columns = unmatched

    def _claim(self, row_field: str, candidates: List[str], claimed: List[str]) -> Optional[str]:
        free = [c for c in candidates if c not in claimed]
        for column in free:
            if self._exact_match(column, row_field):
                return column
        for column in free:
            if self._contains_match(column, row_field):
                return column
        return None

    @staticmethod
    def _exact_match(column: str, row_field: str) -> bool:
        return column == row_field or column == sanitize_field(row_field) or desanitize_field(column) == row_field

    @classmethod
    def _contains_match(cls, column: str, row_field: str) -> bool:
        sanitized = sanitize_field(row_field)
        return cls._exact_match(column, row_field) or sanitized in column or column in sanitized
