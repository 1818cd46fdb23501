"""
Saved pivot queries: a name, the page path and the encoded parameters.

Stores keep the parameters verbatim; decoding them back into a configuration
is the codec's job.
"""
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

import redis

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SavedQuery:
    name: str
    url: str
    parameters: Dict[str, str]
    created_time: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "query": {"url": self.url, "parameters": self.parameters},
            "created_time": self.created_time,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SavedQuery":
        query = d.get("query", {})
        return SavedQuery(
            name=d["name"],
            url=query.get("url", ""),
            parameters=dict(query.get("parameters", {})),
            created_time=d.get("created_time") or _now(),
        )


class SavedQueryStore(ABC):
    @abstractmethod
    def save(self, query: SavedQuery):
        pass

    @abstractmethod
    def get(self, name: str) -> Optional[SavedQuery]:
        pass

    @abstractmethod
    def list(self) -> List[SavedQuery]:
        pass

    @abstractmethod
    def delete(self, name: str) -> bool:
        pass

    @staticmethod
    def _newest_first(queries: List[SavedQuery]) -> List[SavedQuery]:
        return sorted(queries, key=lambda q: q.created_time, reverse=True)


class MemorySavedQueryStore(SavedQueryStore):
    """In-process store; entries optionally expire after ``ttl`` seconds."""

    def __init__(self, ttl: Optional[int] = None):
        self._store: Dict[str, tuple] = {}
        self.default_ttl = ttl

    def save(self, query: SavedQuery):
        expiry = time.time() + self.default_ttl if self.default_ttl else None
        self._store[query.name] = (query, expiry)

    def get(self, name: str) -> Optional[SavedQuery]:
        if name not in self._store:
            return None
        query, expiry = self._store[name]
        if expiry is not None and time.time() > expiry:
            del self._store[name]
            return None
        return query

    def list(self) -> List[SavedQuery]:
        queries = [q for q in (self.get(name) for name in list(self._store)) if q is not None]
        return self._newest_first(queries)

    def delete(self, name: str) -> bool:
        return self._store.pop(name, None) is not None


class RedisSavedQueryStore(SavedQueryStore):
    """Saved queries as JSON strings under ``<prefix><name>`` keys."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        host: str = 'localhost',
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        prefix: str = "saved_query:",
        ttl: Optional[int] = None,
    ):
        if client is None:
            try:
                client = redis.StrictRedis(host=host, port=port, db=db, password=password, decode_responses=False)
                client.ping()
            except redis.exceptions.ConnectionError as e:
                raise ConnectionError(f"Could not connect to Redis at {host}:{port}. Please ensure Redis is running.") from e
        self.client = client
        self.prefix = prefix
        self.default_ttl = ttl

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def save(self, query: SavedQuery):
        self.client.set(self._key(query.name), json.dumps(query.to_dict()).encode('utf-8'), ex=self.default_ttl)

    def get(self, name: str) -> Optional[SavedQuery]:
        raw = self.client.get(self._key(name))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        try:
            return SavedQuery.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError) as e:
            logger.warning("Skipping unreadable saved query %r: %s", name, e)
            return None

    def list(self) -> List[SavedQuery]:
        queries = []
        for key in self.client.scan_iter(f"{self.prefix}*"):
            if isinstance(key, bytes):
                key = key.decode('utf-8')
            query = self.get(key[len(self.prefix):])
            if query is not None:
                queries.append(query)
        return self._newest_first(queries)

    def delete(self, name: str) -> bool:
        return bool(self.client.delete(self._key(name)))


def create_store(config) -> SavedQueryStore:
    """Build the store selected by an ExplorerConfig."""
    if config.store_type == "redis":
        return RedisSavedQueryStore(prefix=config.saved_query_prefix, ttl=config.saved_query_ttl, **config.redis_config)
    return MemorySavedQueryStore(ttl=config.saved_query_ttl)
