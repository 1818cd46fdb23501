"""
Derived result-shaping types. Rebuilt on every fetch, never persisted.
"""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional


@dataclass(frozen=True)
class ColumnAssignment:
    field: str
    value: str
    original_field: str

    @property
    def label(self) -> str:
        return f"{self.field}={self.value}"


@dataclass(frozen=True)
class ParsedValueColumn:
    column_name: str
    assignments: List[ColumnAssignment]
    value_field: str
    aggregator: str


@dataclass(frozen=True)
class HeaderGroup:
    label: str
    span: int
    level: str


@dataclass
class ColumnStructure:
    row_columns: List[str] = field(default_factory=list)
    value_columns: List[str] = field(default_factory=list)
    header_levels: List[List[HeaderGroup]] = field(default_factory=list)
    parsed_value_columns: List[ParsedValueColumn] = field(default_factory=list)
    # Parse ambiguity surfaced to the caller instead of raised
    unmatched_row_columns: List[str] = field(default_factory=list)
    ambiguous_columns: List[str] = field(default_factory=list)

    @property
    def ordered_columns(self) -> List[str]:
        return self.row_columns + [p.column_name for p in self.parsed_value_columns]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_columns": self.row_columns,
            "value_columns": self.value_columns,
            "header_levels": [[g.__dict__ for g in level] for level in self.header_levels],
            "parsed_value_columns": [
                {
                    "column_name": p.column_name,
                    "assignments": [a.__dict__ for a in p.assignments],
                    "value_field": p.value_field,
                    "aggregator": p.aggregator,
                }
                for p in self.parsed_value_columns
            ],
            "unmatched_row_columns": self.unmatched_row_columns,
            "ambiguous_columns": self.ambiguous_columns,
        }


@dataclass
class ShapedResult:
    """Rows and header structure handed to presentation"""
    columns: List[str]
    rows: List[Dict[str, Any]]
    structure: ColumnStructure
    baseline: Optional[str] = None
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": self.columns,
            "rows": self.rows,
            "structure": self.structure.to_dict(),
            "baseline": self.baseline,
            "generation": self.generation,
        }
