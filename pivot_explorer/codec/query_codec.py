"""
QueryCodec - flat, URL-safe parameters for a PivotConfiguration.

Row and column fields travel as comma lists. Value and filter fields carry
structure (several aggregators per field, operator/value pairs) and travel as
base64-encoded JSON arrays.
"""
import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple
from urllib.parse import urlencode, parse_qsl

from ..errors import DecodeError
from ..types.pivot_field import (
    PivotConfiguration,
    PivotField,
    Role,
    ViewMode,
    RowField,
    ColumnField,
    ValueField,
    FilterField,
    DEFAULT_AGGREGATOR,
    FILTER_OPERATORS,
)

logger = logging.getLogger(__name__)

ROWS_PARAM = "rows"
COLS_PARAM = "cols"
VALUES_PARAM = "values"
FILTERS_PARAM = "filters"
RELATIVE_PARAM = "relative"
VIEW_PARAM = "view"

_TRUE_VALUES = {"true", "1", "yes"}
_FIELD_NAME_RE = re.compile(r"^[\w.:\- ]+$")


@dataclass
class DecodeResult:
    configuration: PivotConfiguration
    errors: List[DecodeError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def b64encode_json(payload: Any) -> str:
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")


def b64decode_text(text: str) -> str:
    """
    Decode base64 in either the standard or URL-safe alphabet, padded or not.

    Raises binascii.Error or UnicodeDecodeError.
    """
    compact = text.strip().replace(" ", "+")
    padded = compact + "=" * (-len(compact) % 4)
    if "-" in padded or "_" in padded:
        raw = base64.urlsafe_b64decode(padded)
    else:
        raw = base64.b64decode(padded, validate=True)
    return raw.decode("utf-8")


def b64decode_json(text: str) -> Any:
    return json.loads(b64decode_text(text))


def salvage_json_array(text: str) -> List[Any]:
    """Return the complete leading items of a truncated or damaged JSON array."""
    decoder = json.JSONDecoder()
    items: List[Any] = []
    position = text.find("[")
    if position < 0:
        return items
    position += 1
    while position < len(text):
        while position < len(text) and text[position] in " \t\r\n,":
            position += 1
        if position >= len(text) or text[position] == "]":
            break
        try:
            item, position = decoder.raw_decode(text, position)
        except json.JSONDecodeError:
            break
        items.append(item)
    return items


def split_list(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


class QueryCodec:
    """Bidirectional mapping between PivotConfiguration and request parameters"""

    def __init__(self, default_aggregator: str = DEFAULT_AGGREGATOR):
        self.default_aggregator = default_aggregator

    def encode(self, config: PivotConfiguration) -> Dict[str, str]:
        params: Dict[str, str] = {
            ROWS_PARAM: ",".join(f.field for f in config.by_role(Role.ROW)),
            COLS_PARAM: ",".join(f.field for f in config.by_role(Role.COLUMN)),
            VALUES_PARAM: b64encode_json([
                {"field": f.field, "aggregators": list(f.aggregators)}
                for f in config.by_role(Role.VALUE)
            ]),
        }

        filters = [
            {"field": f.field, "operator": f.operator, "value": f.value}
            for f in config.by_role(Role.FILTER)
        ]
        if filters:
            params[FILTERS_PARAM] = b64encode_json(filters)

        if config.is_relative:
            params[RELATIVE_PARAM] = "true"

        params[VIEW_PARAM] = config.view_mode.value
        return params

    def decode(self, params: Dict[str, Any]) -> DecodeResult:
        errors: List[DecodeError] = []
        fields: List[PivotField] = []

        fields.extend(RowField(name) for name in split_list(params.get(ROWS_PARAM)))
        fields.extend(ColumnField(name) for name in split_list(params.get(COLS_PARAM)))

        values, value_errors = self._decode_values(params.get(VALUES_PARAM))
        fields.extend(values)
        errors.extend(value_errors)

        filters, filter_errors = self._decode_filters(params.get(FILTERS_PARAM))
        fields.extend(filters)
        errors.extend(filter_errors)

        is_relative = str(params.get(RELATIVE_PARAM, "")).strip().lower() in _TRUE_VALUES

        view_mode = ViewMode.INTERACTIVE
        raw_view = params.get(VIEW_PARAM)
        if raw_view:
            try:
                view_mode = ViewMode(str(raw_view).lower())
            except ValueError:
                errors.append(DecodeError(VIEW_PARAM, f"unknown view mode {raw_view!r}"))

        for error in errors:
            logger.warning("%s", error)

        return DecodeResult(PivotConfiguration(fields, is_relative, view_mode), errors)

    def request_payload(self, config: PivotConfiguration) -> Dict[str, Any]:
        """
        Collaborator-facing form of a configuration.

        Value fields repeated under the same name have their aggregators
        merged into one entry of the mapping.
        """
        values: Dict[str, List[str]] = {}
        for f in config.by_role(Role.VALUE):
            values.setdefault(f.field, []).extend(f.aggregators or (self.default_aggregator,))
        return {
            "rows": [f.field for f in config.by_role(Role.ROW)],
            "cols": [f.field for f in config.by_role(Role.COLUMN)],
            "values": values,
            "filters": [
                {"field": f.field, "operator": f.operator, "value": f.value}
                for f in config.by_role(Role.FILTER)
            ],
        }

    def to_query_string(self, config: PivotConfiguration) -> str:
        return urlencode(self.encode(config))

    def from_query_string(self, query_string: str) -> DecodeResult:
        return self.decode(dict(parse_qsl(query_string.lstrip("?"), keep_blank_values=True)))

    def build_link(self, path: str, config: PivotConfiguration) -> str:
        return f"{path}?{self.to_query_string(config)}"

    def _decode_values(self, text: Optional[str]) -> Tuple[List[ValueField], List[DecodeError]]:
        if not text or not str(text).strip():
            return [], []
        text = str(text)
        errors: List[DecodeError] = []
        failure = "not a JSON payload"

        try:
            decoded = b64decode_text(text)
        except (binascii.Error, UnicodeDecodeError) as e:
            decoded = None
            failure = str(e)

        if decoded is None or not decoded.lstrip().startswith(("[", "{")):
            # Not base64 JSON: the legacy bare comma list of field names
            if self._looks_like_field_list(text):
                return [ValueField(name, (self.default_aggregator,)) for name in split_list(text)], []
            return [], [DecodeError(VALUES_PARAM, failure)]

        try:
            payload = json.loads(decoded)
        except json.JSONDecodeError as e:
            errors.append(DecodeError(VALUES_PARAM, str(e)))
            payload = salvage_json_array(decoded)

        if isinstance(payload, dict):
            # Object form: {"Metric:value": ["avg", "max"]}
            payload = [{"field": k, "aggregators": v} for k, v in payload.items()]
        if not isinstance(payload, list):
            return [], [DecodeError(VALUES_PARAM, f"expected a list, got {type(payload).__name__}")]

        values: List[ValueField] = []
        for position, item in enumerate(payload):
            if isinstance(item, str):
                values.append(ValueField(item, (self.default_aggregator,)))
                continue
            if not isinstance(item, dict) or not isinstance(item.get("field"), str):
                errors.append(DecodeError(VALUES_PARAM, f"entry {position} has no field name"))
                continue
            aggregators = item.get("aggregators")
            if aggregators is None or aggregators == []:
                aggregators = [self.default_aggregator]
            elif isinstance(aggregators, str):
                aggregators = [aggregators]
            if not isinstance(aggregators, list) or not all(isinstance(a, str) for a in aggregators):
                errors.append(DecodeError(VALUES_PARAM, f"entry {position} has malformed aggregators"))
                continue
            values.append(ValueField(item["field"], tuple(aggregators)))
        return values, errors

    def _decode_filters(self, text: Optional[str]) -> Tuple[List[FilterField], List[DecodeError]]:
        if not text or not str(text).strip():
            return [], []

        try:
            payload = b64decode_json(str(text))
        except (ValueError, UnicodeDecodeError) as e:
            return [], [DecodeError(FILTERS_PARAM, str(e))]

        if not isinstance(payload, list):
            return [], [DecodeError(FILTERS_PARAM, f"expected a list, got {type(payload).__name__}")]

        filters: List[FilterField] = []
        errors: List[DecodeError] = []
        for position, item in enumerate(payload):
            if not isinstance(item, dict) or not isinstance(item.get("field"), str):
                errors.append(DecodeError(FILTERS_PARAM, f"entry {position} has no field name"))
                continue
            operator = item.get("operator")
            if operator not in FILTER_OPERATORS:
                errors.append(DecodeError(FILTERS_PARAM, f"entry {position} has unknown operator {operator!r}"))
                continue
            value = item.get("value")
            filters.append(FilterField(item["field"], operator, "" if value is None else str(value)))
        return filters, errors

    @staticmethod
    def _looks_like_field_list(text: str) -> bool:
        parts = split_list(text)
        return bool(parts) and all(_FIELD_NAME_RE.match(p) for p in parts)
