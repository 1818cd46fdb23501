"""
pivot_explorer package - pivot configuration and result shaping for
benchmark-run exploration.

Expose the session controller and the engine components.
"""
from .controller import PivotSession, QueryTicket
from .field_model import FieldModel
from .codec.query_codec import QueryCodec, DecodeResult
from .reorder.reorder_engine import ReorderEngine
from .parser.column_parser import ColumnStructureParser
from .normalize.relative_normalizer import RelativeNormalizer
from .types.pivot_field import PivotConfiguration, Role, ViewMode

__all__ = [
    "PivotSession",
    "QueryTicket",
    "FieldModel",
    "QueryCodec",
    "DecodeResult",
    "ReorderEngine",
    "ColumnStructureParser",
    "RelativeNormalizer",
    "PivotConfiguration",
    "Role",
    "ViewMode",
]
