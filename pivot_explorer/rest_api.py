"""
rest_api.py - REST API for the pivot explorer

Encodes/decodes pivot configurations, shapes backend results and manages
saved queries. The aggregation backend itself is not called from here.
"""
import logging
from typing import Dict, Any, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from pivot_explorer.codec.query_codec import QueryCodec
from pivot_explorer.config import ExplorerConfig, get_config
from pivot_explorer.controller import PivotSession
from pivot_explorer.storage.saved_queries import SavedQuery, SavedQueryStore, create_store
from pivot_explorer.types.pivot_field import PivotConfiguration, FILTER_OPERATORS, AGGREGATORS

logger = logging.getLogger(__name__)


# Pydantic models for API requests/responses
class PivotFieldModel(BaseModel):
    """Pydantic model for one pivot field"""
    field: str
    type: str
    aggregators: Optional[List[str]] = None
    operator: Optional[str] = None
    value: Optional[str] = None


class ConfigurationModel(BaseModel):
    """Pydantic model for a pivot configuration"""
    fields: List[PivotFieldModel] = []
    is_relative: bool = False
    view_mode: str = "interactive"


class ShapeRequest(BaseModel):
    """Pydantic model for shaping a backend result"""
    parameters: Dict[str, str]
    data: List[Dict[str, Any]]
    baseline: Optional[str] = None


class SaveQueryRequest(BaseModel):
    """Pydantic model for saving a query"""
    name: str
    parameters: Dict[str, str]
    url: Optional[str] = None


class APIResponse(BaseModel):
    """Base API response model"""
    status: str
    data: Optional[Any] = None
    errors: List[str] = []


def _to_configuration(model: ConfigurationModel) -> PivotConfiguration:
    return PivotConfiguration.from_dict({
        "fields": [
            {
                "field": f.field,
                "type": f.type,
                "aggregators": f.aggregators,
                "operator": f.operator,
                "value": f.value,
            }
            for f in model.fields
        ],
        "is_relative": model.is_relative,
        "view_mode": model.view_mode,
    })


class PivotExplorerAPI:
    """REST API over the codec, the result shaping and the saved-query store"""

    def __init__(self, config: Optional[ExplorerConfig] = None, store: Optional[SavedQueryStore] = None):
        self.config = config or get_config()
        self.store = store if store is not None else create_store(self.config)
        self.codec = QueryCodec(default_aggregator=self.config.default_aggregator)
        self.app = FastAPI(title="Pivot Explorer API")
        self._setup_routes()

    def _setup_routes(self):
        """Setup all API routes"""

        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy", "service": "pivot-explorer", "version": "1.0"}

        @self.app.get("/pivot/options")
        async def options():
            return {"aggregators": list(AGGREGATORS), "operators": list(FILTER_OPERATORS)}

        @self.app.post("/pivot/encode")
        async def encode(request: ConfigurationModel):
            try:
                configuration = _to_configuration(request)
            except (KeyError, ValueError) as e:
                raise HTTPException(status_code=422, detail=str(e))
            return APIResponse(status="success", data={
                "parameters": self.codec.encode(configuration),
                "payload": self.codec.request_payload(configuration),
                "link": self.codec.build_link(self.config.link_path, configuration),
            })

        @self.app.get("/pivot/decode")
        async def decode(
            rows: Optional[str] = None,
            cols: Optional[str] = None,
            values: Optional[str] = None,
            filters: Optional[str] = None,
            relative: Optional[str] = None,
            view: Optional[str] = None,
        ):
            params = {
                k: v for k, v in {
                    "rows": rows, "cols": cols, "values": values,
                    "filters": filters, "relative": relative, "view": view,
                }.items() if v is not None
            }
            decoded = self.codec.decode(params)
            return APIResponse(
                status="success" if decoded.ok else "partial",
                data=decoded.configuration.to_dict(),
                errors=[str(e) for e in decoded.errors],
            )

        @self.app.post("/pivot/shape")
        async def shape(request: ShapeRequest):
            session = PivotSession(config=self.config, store=self.store)
            decoded = session.load_parameters(request.parameters)
            session.baseline = request.baseline
            ticket = session.issue()
            try:
                result = session.apply_response(ticket, request.data)
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
            return APIResponse(
                status="success" if decoded.ok else "partial",
                data=result.to_dict(),
                errors=[str(e) for e in decoded.errors],
            )

        @self.app.get("/queries")
        async def list_queries():
            return APIResponse(status="success", data=[q.to_dict() for q in self.store.list()])

        @self.app.post("/queries")
        async def save_query(request: SaveQueryRequest):
            query = SavedQuery(name=request.name, url=request.url or self.config.link_path, parameters=request.parameters)
            self.store.save(query)
            return APIResponse(status="success", data=query.to_dict())

        @self.app.get("/queries/{name}")
        async def get_query(name: str):
            query = self._require(name)
            decoded = self.codec.decode(query.parameters)
            return APIResponse(
                status="success" if decoded.ok else "partial",
                data={"query": query.to_dict(), "configuration": decoded.configuration.to_dict()},
                errors=[str(e) for e in decoded.errors],
            )

        @self.app.get("/queries/{name}/link")
        async def query_link(name: str):
            query = self._require(name)
            decoded = self.codec.decode(query.parameters)
            return {"link": self.codec.build_link(query.url, decoded.configuration)}

        @self.app.delete("/queries/{name}")
        async def delete_query(name: str):
            if not self.store.delete(name):
                raise HTTPException(status_code=404, detail=f"Saved query not found: {name}")
            return APIResponse(status="success")

    def _require(self, name: str) -> SavedQuery:
        query = self.store.get(name)
        if query is None:
            raise HTTPException(status_code=404, detail=f"Saved query not found: {name}")
        return query

    def get_app(self) -> FastAPI:
        return self.app


def create_api(config: Optional[ExplorerConfig] = None, store: Optional[SavedQueryStore] = None) -> PivotExplorerAPI:
    return PivotExplorerAPI(config=config, store=store)
