from .reorder_engine import ReorderEngine
