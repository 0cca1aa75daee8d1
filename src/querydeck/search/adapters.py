"""Search index adapters: resolve free text to item IDs within one tenant."""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.migrate import ITEM_SEARCH_TABLE
from ..database.schema import Item
from ..query.errors import SearchUnavailable
from ..utils.logging import get_logger

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(search_text: str) -> List[str]:
    """Split free text into word tokens; punctuation and FTS operators are dropped."""
    return _TOKEN_RE.findall(search_text or "")


class SearchIndex(ABC):
    """Abstract base class for search index collaborators."""

    @abstractmethod
    def search(self, tenant_id: str, search_text: str) -> List[str]:
        """
        Find items matching free text.

        Args:
            tenant_id: Tenant whose items may match
            search_text: Raw user text

        Returns:
            Matching item IDs (possibly ranked, possibly empty)

        Raises:
            SearchUnavailable: If the index cannot be queried
        """
        pass


class SqliteFtsSearchIndex(SearchIndex):
    """Search backed by the FTS5 table living next to the items in SQLite."""

    def __init__(self, session: Session, max_hits: Optional[int] = None):
        self.session = session
        self.max_hits = max_hits

    @staticmethod
    def build_match_expression(search_text: str) -> Optional[str]:
        """
        Turn user text into an FTS5 MATCH expression of quoted prefix terms.

        Every token is quoted, so characters with FTS meaning never reach
        the query parser. Returns None when the text has no tokens.

        Example:
            >>> SqliteFtsSearchIndex.build_match_expression('inv "2024')
            '"inv"* "2024"*'
        """
        tokens = tokenize(search_text)
        if not tokens:
            return None
        return " ".join(f'"{token}"*' for token in tokens)

    def search(self, tenant_id: str, search_text: str) -> List[str]:
        expression = self.build_match_expression(search_text)
        if expression is None:
            return []
        sql = (
            f"SELECT item_id FROM {ITEM_SEARCH_TABLE} "
            f"WHERE {ITEM_SEARCH_TABLE} MATCH :expression AND tenant_id = :tenant_id "
            "ORDER BY rank"
        )
        params: Dict[str, Any] = {"expression": expression, "tenant_id": tenant_id}
        if self.max_hits:
            sql += " LIMIT :max_hits"
            params["max_hits"] = self.max_hits
        try:
            rows = self.session.execute(text(sql), params).fetchall()
        except SQLAlchemyError as e:
            raise SearchUnavailable(f"SQLite search failed: {e}") from e
        hits = [row[0] for row in rows]
        logger.debug(f"SQLite search tenant={tenant_id} expression={expression!r} hits={len(hits)}")
        return hits


def index_item(session: Session, item: Item) -> None:
    """Insert or replace an item's row in the FTS table (caller commits)."""
    session.execute(
        text(f"DELETE FROM {ITEM_SEARCH_TABLE} WHERE item_id = :item_id"),
        {"item_id": item.item_id},
    )
    session.execute(
        text(f"INSERT INTO {ITEM_SEARCH_TABLE} (item_id, tenant_id, name) VALUES (:item_id, :tenant_id, :name)"),
        {"item_id": item.item_id, "tenant_id": item.tenant_id, "name": item.name},
    )


def rebuild_item_search(session: Session, items: List[Item]) -> int:
    """Replace the whole FTS table with the given items (caller commits)."""
    session.execute(text(f"DELETE FROM {ITEM_SEARCH_TABLE}"))
    for item in items:
        index_item(session, item)
    logger.info(f"Rebuilt item search index with {len(items)} items")
    return len(items)


class HttpSearchIndex(SearchIndex):
    """Meilisearch-style HTTP search service client.

    Documents are expected to carry ``id`` and ``tenant_id`` attributes, with
    ``tenant_id`` declared filterable on the index.
    """

    def __init__(
        self,
        url: str,
        index: str = "items",
        api_key: Optional[str] = None,
        timeout_seconds: float = 5,
        max_hits: int = 1000,
        user_agent: str = "querydeck/0.3",
    ):
        self.url = url.rstrip("/")
        self.index = index
        self.api_key = api_key
        self.timeout = timeout_seconds
        self.max_hits = max_hits
        self.user_agent = user_agent

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def tenant_filter(tenant_id: str) -> str:
        escaped = tenant_id.replace("\\", "\\\\").replace('"', '\\"')
        return f'tenant_id = "{escaped}"'

    def search(self, tenant_id: str, search_text: str) -> List[str]:
        if not tokenize(search_text):
            return []
        payload = {
            "q": search_text,
            "filter": self.tenant_filter(tenant_id),
            "attributesToRetrieve": ["id"],
            "limit": self.max_hits,
        }
        endpoint = f"{self.url}/indexes/{self.index}/search"
        try:
            response = requests.post(
                endpoint,
                json=payload,
                headers=self._get_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise SearchUnavailable(f"Search service request failed: {e}") from e
        except ValueError as e:
            raise SearchUnavailable(f"Search service returned invalid JSON: {e}") from e

        hits = body.get("hits") if isinstance(body, dict) else None
        if not isinstance(hits, list):
            raise SearchUnavailable("Search service response has no 'hits' list")
        item_ids = [str(hit["id"]) for hit in hits if isinstance(hit, dict) and hit.get("id") is not None]
        logger.debug(f"HTTP search tenant={tenant_id} hits={len(item_ids)}")
        return item_ids


def create_search_index(search_config: Dict[str, Any], session: Session) -> SearchIndex:
    """
    Factory function to create the configured search index.

    Args:
        search_config: The "search" section of the loaded config
        session: Session used by the SQLite backend

    Returns:
        SearchIndex instance

    Raises:
        ValueError: If backend is unknown
    """
    backend = search_config.get("backend", "sqlite")
    if backend == "sqlite":
        return SqliteFtsSearchIndex(session, max_hits=search_config.get("max_hits"))
    if backend == "http":
        http = search_config.get("http") or {}
        return HttpSearchIndex(
            url=http["url"],
            index=http.get("index", "items"),
            api_key=http.get("api_key"),
            timeout_seconds=http.get("timeout_seconds", 5),
            max_hits=http.get("max_hits", 1000),
        )
    raise ValueError(f"Unknown search backend: {backend}")
