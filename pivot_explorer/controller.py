"""
PivotSession - one user's query session.

Coordinates: FieldModel -> QueryCodec -> transport -> ColumnStructureParser
-> RelativeNormalizer.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Optional, Any, Dict, List, Callable, Tuple

import pyarrow as pa

from .codec.query_codec import QueryCodec, DecodeResult
from .config import ExplorerConfig, get_config
from .errors import SavedQueryNotFound
from .field_model import FieldModel
from .normalize.relative_normalizer import RelativeNormalizer
from .parser.column_parser import ColumnStructureParser
from .reorder.reorder_engine import ReorderEngine
from .storage.saved_queries import SavedQuery, SavedQueryStore, MemorySavedQueryStore
from .types.column_structure import ColumnStructure, ShapedResult
from .types.pivot_field import PivotConfiguration
from .util.arrow_utils import result_rows, rows_to_table

logger = logging.getLogger(__name__)

# Takes the request payload, returns rows (list of dicts or a pyarrow Table),
# either directly or as an awaitable.
Transport = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class QueryTicket:
    """Identifies one issued request and the configuration it was built from"""
    generation: int
    configuration: PivotConfiguration
    parameters: Dict[str, str]
    payload: Dict[str, Any]


class PivotSession:
    """
    Owns the configuration of one query session and the table shaped from
    the latest response.

    Every issued request gets a new generation. A response is applied only if
    its ticket is still the latest one; answers to superseded configurations
    are dropped on arrival.
    """

    def __init__(
        self,
        configuration: Optional[PivotConfiguration] = None,
        config: Optional[ExplorerConfig] = None,
        transport: Optional[Transport] = None,
        store: Optional[SavedQueryStore] = None,
    ):
        self.config = config or get_config()
        self.model = FieldModel(configuration)
        self.reorder = ReorderEngine(self.model, default_aggregator=self.config.default_aggregator)
        self.codec = QueryCodec(default_aggregator=self.config.default_aggregator)
        self.parser = ColumnStructureParser(
            separator=self.config.column_separator,
            placeholder_label=self.config.placeholder_label,
            fallback_aggregator=self.config.fallback_aggregator_label,
        )
        self.normalizer = RelativeNormalizer()
        self.transport = transport
        self.store = store if store is not None else MemorySavedQueryStore()

        self.parameters: Dict[str, str] = self.codec.encode(self.configuration)
        self.needs_refresh = self.config.auto_refresh
        self.baseline: Optional[str] = None
        self.result: Optional[ShapedResult] = None
        self.error: Optional[str] = None
        self._raw: Optional[Tuple[QueryTicket, List[str], List[Dict[str, Any]], ColumnStructure]] = None

        self._generation = 0
        self._request_count = 0
        self._applied_count = 0
        self._discarded_count = 0

        self.model.subscribe(self._on_change)

    @property
    def configuration(self) -> PivotConfiguration:
        return self.model.configuration

    @property
    def generation(self) -> int:
        return self._generation

    def _on_change(self, configuration: PivotConfiguration):
        self.parameters = self.codec.encode(configuration)
        if self.config.auto_refresh:
            self.needs_refresh = True

    def issue(self) -> QueryTicket:
        """Start a new request; any ticket issued before this one becomes stale."""
        self._generation += 1
        self._request_count += 1
        self.needs_refresh = False
        snapshot = self.configuration.copy()
        return QueryTicket(
            generation=self._generation,
            configuration=snapshot,
            parameters=self.codec.encode(snapshot),
            payload=self.codec.request_payload(snapshot),
        )

    def is_current(self, ticket: QueryTicket) -> bool:
        return ticket.generation == self._generation

    def apply_response(self, ticket: QueryTicket, data: Any) -> Optional[ShapedResult]:
        """Shape and keep ``data`` if ``ticket`` is still current, else drop it."""
        if not self.is_current(ticket):
            self._discarded_count += 1
            logger.info(
                "Discarding response for request %d, request %d is current",
                ticket.generation, self._generation,
            )
            return None

        columns, rows = result_rows(data)
        structure = self.parser.parse(ticket.configuration, columns)
        if structure.ambiguous_columns:
            logger.info("Row columns with ambiguous field matches: %s", structure.ambiguous_columns)

        self._raw = (ticket, columns, rows, structure)
        self.error = None
        self._applied_count += 1
        self.result = self._shape()
        return self.result

    def fail_response(self, ticket: QueryTicket, error: Exception) -> bool:
        """Record a transport failure for ``ticket``; failures of stale requests are ignored."""
        if not self.is_current(ticket):
            self._discarded_count += 1
            return False
        self.error = str(error)
        logger.error("Pivot query %d failed: %s", ticket.generation, error)
        return True

    async def refresh(self, transport: Optional[Transport] = None) -> Optional[ShapedResult]:
        """Issue the current configuration and apply the response if it is still current."""
        transport = transport or self.transport
        if transport is None:
            raise ValueError("No transport configured for this session")

        ticket = self.issue()
        try:
            if inspect.iscoroutinefunction(transport):
                data = await transport(ticket.payload)
            else:
                # Blocking transports run in the default executor
                loop = asyncio.get_running_loop()
                data = await loop.run_in_executor(None, transport, ticket.payload)
                if inspect.isawaitable(data):
                    data = await data
        except Exception as e:
            self.fail_response(ticket, e)
            return None

        try:
            return self.apply_response(ticket, data)
        except ValueError as e:
            # Response the session cannot read as rows
            self.fail_response(ticket, e)
            return None

    async def refresh_if_needed(self, transport: Optional[Transport] = None) -> Optional[ShapedResult]:
        if not self.needs_refresh:
            return self.result
        return await self.refresh(transport)

    def set_baseline(self, column: Optional[str]) -> Optional[ShapedResult]:
        """Choose the baseline column and reshape the held response without refetching."""
        self.baseline = column
        if self._raw is not None:
            self.result = self._shape()
        return self.result

    def _shape(self) -> ShapedResult:
        ticket, columns, rows, structure = self._raw
        baseline = None
        if ticket.configuration.is_relative:
            normalized = self.normalizer.normalize(rows, structure.parsed_value_columns, self.baseline)
            rows, baseline = normalized.rows, normalized.baseline
        else:
            rows = [dict(r) for r in rows]
        return ShapedResult(
            columns=structure.ordered_columns,
            rows=rows,
            structure=structure,
            baseline=baseline,
            generation=ticket.generation,
        )

    def result_table(self) -> Optional[pa.Table]:
        """The shaped rows as an Arrow table, columns in display order."""
        if self.result is None:
            return None
        return rows_to_table(self.result.columns, self.result.rows)

    def load_parameters(self, parameters: Dict[str, Any]) -> DecodeResult:
        """Replace the configuration with decoded ``parameters``, keeping whatever decoded."""
        decoded = self.codec.decode(parameters)
        self.model.replace(decoded.configuration)
        return decoded

    def share_link(self, path: Optional[str] = None) -> str:
        return self.codec.build_link(path or self.config.link_path, self.configuration)

    def save_query(self, name: str) -> SavedQuery:
        query = SavedQuery(name=name, url=self.config.link_path, parameters=dict(self.parameters))
        self.store.save(query)
        logger.info("Saved query %r", name)
        return query

    def load_query(self, name: str) -> DecodeResult:
        query = self.store.get(name)
        if query is None:
            raise SavedQueryNotFound(name)
        return self.load_parameters(query.parameters)

    def stats(self) -> Dict[str, int]:
        return {
            "requests": self._request_count,
            "applied": self._applied_count,
            "discarded": self._discarded_count,
            "generation": self._generation,
        }
