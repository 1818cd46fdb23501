"""
Types for pivot fields and the pivot configuration.

Each role carries its own payload, so a row field can never hold a stale
operator and a filter can never hold aggregators.
"""
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import List, Dict, Any, Optional, Union


DEFAULT_AGGREGATOR = "avg"

AGGREGATORS = ("avg", "sum", "count", "min", "max", "std", "var", "median")

FILTER_OPERATORS = (
    "==", "!=", ">", ">=", "<", "<=",
    "in", "not in", "like", "not like", "is", "is not",
)


class Role(str, Enum):
    """Zone a pivot field is assigned to"""
    ROW = "row"
    COLUMN = "column"
    VALUE = "value"
    FILTER = "filter"


class ViewMode(str, Enum):
    INTERACTIVE = "interactive"
    TABULAR = "tabular"


@dataclass(frozen=True)
class RowField:
    field: str

    @property
    def role(self) -> Role:
        return Role.ROW

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "type": self.role.value}


@dataclass(frozen=True)
class ColumnField:
    field: str

    @property
    def role(self) -> Role:
        return Role.COLUMN

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "type": self.role.value}


@dataclass(frozen=True)
class ValueField:
    field: str
    aggregators: tuple = (DEFAULT_AGGREGATOR,)

    def __post_init__(self):
        # Accept lists from callers; keep the stored value hashable
        object.__setattr__(self, "aggregators", tuple(self.aggregators))

    @property
    def role(self) -> Role:
        return Role.VALUE

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "type": self.role.value, "aggregators": list(self.aggregators)}


@dataclass(frozen=True)
class FilterField:
    field: str
    operator: str = "=="
    value: str = ""

    @property
    def role(self) -> Role:
        return Role.FILTER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "type": self.role.value,
            "operator": self.operator,
            "value": self.value,
        }


@dataclass(frozen=True)
class StagedFilter:
    """
    A field waiting for an operator and value before it becomes a filter.

    Held outside of any PivotConfiguration. ``origin`` and ``origin_index``
    describe where the field came from so that cancelling the staging can put
    it back; both are None for fields dropped straight from the catalog.
    """
    field: str
    origin: Optional["PivotField"] = None
    origin_index: Optional[int] = None

    def commit(self, operator: str, value: str) -> FilterField:
        return FilterField(field=self.field, operator=operator, value=value)


PivotField = Union[RowField, ColumnField, ValueField, FilterField]


def make_field(
    name: str,
    role: Union[Role, str],
    aggregators: Optional[List[str]] = None,
    operator: Optional[str] = None,
    value: Optional[str] = None,
) -> PivotField:
    """
    Build the variant for ``role`` with role-appropriate defaults.

    Raises ValueError for an unknown role or filter operator.
    """
    role = Role(role)
    if role == Role.FILTER and operator is not None and operator not in FILTER_OPERATORS:
        raise ValueError(f"Unknown filter operator: {operator!r}")
    if role == Role.ROW:
        return RowField(name)
    if role == Role.COLUMN:
        return ColumnField(name)
    if role == Role.VALUE:
        return ValueField(name, tuple(aggregators) if aggregators else (DEFAULT_AGGREGATOR,))
    return FilterField(name, operator or "==", value if value is not None else "")


def field_from_dict(d: Dict[str, Any]) -> PivotField:
    return make_field(
        d["field"],
        d.get("type", d.get("role")),
        aggregators=d.get("aggregators"),
        operator=d.get("operator"),
        value=d.get("value"),
    )


def default_fields() -> List[PivotField]:
    return [
        RowField("Exec:name"),
        RowField("Pack:name"),
        ColumnField("Metric:name"),
        ValueField("Metric:value", (DEFAULT_AGGREGATOR,)),
    ]


@dataclass
class PivotConfiguration:
    """Ordered pivot fields plus the relative and view-mode flags"""
    fields: List[PivotField] = dataclass_field(default_factory=list)
    is_relative: bool = False
    view_mode: ViewMode = ViewMode.INTERACTIVE

    @staticmethod
    def default() -> "PivotConfiguration":
        return PivotConfiguration(fields=default_fields())

    def by_role(self, role: Union[Role, str]) -> List[PivotField]:
        role = Role(role)
        return [f for f in self.fields if f.role == role]

    def role_positions(self, role: Union[Role, str]) -> List[int]:
        """Absolute indices of the fields holding ``role``, in order."""
        role = Role(role)
        return [i for i, f in enumerate(self.fields) if f.role == role]

    def copy(self) -> "PivotConfiguration":
        return PivotConfiguration(list(self.fields), self.is_relative, self.view_mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": [f.to_dict() for f in self.fields],
            "is_relative": self.is_relative,
            "view_mode": self.view_mode.value,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PivotConfiguration":
        return PivotConfiguration(
            fields=[field_from_dict(f) for f in d.get("fields", [])],
            is_relative=bool(d.get("is_relative", False)),
            view_mode=ViewMode(d.get("view_mode", ViewMode.INTERACTIVE.value)),
        )


def ensure_field_format(name: str) -> str:
    """Give bare catalog names the default ``Exec:`` table prefix."""
    if ":" in name:
        return name
    parts = name.split(" as ")
    formatted = f"Exec:{parts[0]}"
    return f"{formatted} as {parts[1]}" if len(parts) > 1 else formatted


def format_field_name(name: str) -> str:
    """Display form of a field identifier: alias if present, else ``Table.path``."""
    parts = name.split(" as ")
    if len(parts) > 1:
        return parts[1]
    table, _, path = parts[0].partition(":")
    return f"{table}.{path}" if path else table
