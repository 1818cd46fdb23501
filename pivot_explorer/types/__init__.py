from .pivot_field import (
    Role,
    ViewMode,
    RowField,
    ColumnField,
    ValueField,
    FilterField,
    StagedFilter,
    PivotField,
    PivotConfiguration,
    make_field,
    DEFAULT_AGGREGATOR,
    FILTER_OPERATORS,
)
from .column_structure import (
    ColumnAssignment,
    ParsedValueColumn,
    HeaderGroup,
    ColumnStructure,
    ShapedResult,
)
