from .column_parser import ColumnStructureParser, parse_column_name
