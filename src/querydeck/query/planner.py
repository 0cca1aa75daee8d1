"""Item query planner: search prefilter, allow-listed sort, stable offset pages."""

from typing import Optional

from sqlalchemy.orm import Session

from ..database.item_repo import count_items, fetch_items
from ..search.adapters import SearchIndex, create_search_index
from ..utils.logging import get_logger
from .errors import InvalidPageRequest, InvalidSortField, SearchUnavailable
from .models import ItemFilters, ItemRecord, PageRequest, PageResult, SortSpec
from .sorting import SortRegistry, SortTarget, default_item_sort_registry
from .spec import (
    ItemQuerySpec,
    restrict_to_ids,
    scoped_to_tenant,
    with_filters,
    with_page,
    with_sort,
    with_tiebreak,
)

logger = get_logger(__name__)


class ItemQueryPlanner:
    """Plans and runs tenant-scoped item listings.

    Holds only immutable configuration, so one planner can serve concurrent
    callers as long as each call brings its own session.
    """

    def __init__(
        self,
        search_index: Optional[SearchIndex] = None,
        registry: Optional[SortRegistry] = None,
        *,
        default_page_size: int = 20,
        max_page_size: Optional[int] = None,
        elide_redundant_tiebreak: bool = True,
    ):
        self.search_index = search_index
        self.registry = registry or default_item_sort_registry()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.elide_redundant_tiebreak = elide_redundant_tiebreak

    def validate_page_request(self, page_request: PageRequest) -> None:
        if page_request.page < 1:
            raise InvalidPageRequest(f"page must be >= 1, got {page_request.page}")
        if page_request.page_size <= 0:
            raise InvalidPageRequest(f"page_size must be > 0, got {page_request.page_size}")
        if self.max_page_size is not None and page_request.page_size > self.max_page_size:
            raise InvalidPageRequest(
                f"page_size must be <= {self.max_page_size}, got {page_request.page_size}"
            )

    def resolve_sort(self, sort: Optional[SortSpec]) -> Optional[SortTarget]:
        if sort is None:
            return None
        try:
            return self.registry.resolve(sort.field)
        except InvalidSortField:
            logger.warning(f"Rejected sort field '{sort.field}'")
            raise

    def build_spec(
        self,
        tenant_id: str,
        page_request: PageRequest,
        filters: Optional[ItemFilters] = None,
        sort: Optional[SortSpec] = None,
        sort_target: Optional[SortTarget] = None,
        item_ids: Optional[list] = None,
    ) -> ItemQuerySpec:
        """
        Assemble the query spec without touching storage.

        Args:
            tenant_id: Mandatory tenant scope
            page_request: Validated page request
            filters: Optional template/client restrictions
            sort: Requested sort (direction is taken from here)
            sort_target: Resolved target for sort.field
            item_ids: Search hits, or None when no search ran

        Returns:
            ItemQuerySpec
        """
        spec = scoped_to_tenant(tenant_id)
        if item_ids is not None:
            spec = restrict_to_ids(spec, item_ids)
        spec = with_filters(spec, filters)
        if sort is not None and sort_target is not None:
            spec = with_sort(spec, sort_target, sort.direction)
        spec = with_tiebreak(spec, elide_redundant=self.elide_redundant_tiebreak)
        return with_page(spec, page_request)

    def plan(
        self,
        session: Session,
        tenant_id: str,
        search_text: Optional[str] = None,
        filters: Optional[ItemFilters] = None,
        sort: Optional[SortSpec] = None,
        page_request: Optional[PageRequest] = None,
    ) -> PageResult:
        """
        List one page of a tenant's items.

        Page and sort are validated before any I/O. A search with no hits
        returns an empty page without querying storage. The total counts the
        filtered set, independent of sort joins and paging.

        Args:
            session: SQLAlchemy session
            tenant_id: Tenant scope (required)
            search_text: Free text; blank means no search
            filters: Optional template/client restrictions
            sort: Optional sort; a tie-break is always applied
            page_request: Page to return (defaults to page 1, default size)

        Returns:
            PageResult

        Raises:
            InvalidPageRequest: page < 1, page_size <= 0 or above the maximum
            InvalidSortField: sort.field not in the allow-list
            SearchUnavailable: search requested but the index failed or is not configured
            StorageError: a storage query failed
        """
        if page_request is None:
            page_request = PageRequest(page=1, page_size=self.default_page_size)
        self.validate_page_request(page_request)
        sort_target = self.resolve_sort(sort)
        if not tenant_id or not tenant_id.strip():
            raise ValueError("tenant_id is required")

        item_ids = None
        if search_text and search_text.strip():
            if self.search_index is None:
                raise SearchUnavailable("Search requested but no search index is configured")
            item_ids = self.search_index.search(tenant_id, search_text)
            if not item_ids:
                logger.info(f"Search returned no matches for tenant {tenant_id}; skipping storage")
                return PageResult(items=[], total=0, page=page_request.page, page_size=page_request.page_size)

        spec = self.build_spec(
            tenant_id,
            page_request,
            filters=filters,
            sort=sort,
            sort_target=sort_target,
            item_ids=item_ids,
        )

        total = count_items(session, spec)
        rows = fetch_items(session, spec) if spec.offset < total else []

        logger.debug(
            f"Planned listing tenant={tenant_id} total={total} page={page_request.page} "
            f"size={page_request.page_size} returned={len(rows)}"
        )
        return PageResult(
            items=[ItemRecord.model_validate(row) for row in rows],
            total=total,
            page=page_request.page,
            page_size=page_request.page_size,
        )


def build_planner(config: dict, session: Session) -> ItemQueryPlanner:
    """Wire a planner from a loaded config (see querydeck.config.loader)."""
    pagination = config.get("pagination") or {}
    sorting = config.get("sorting") or {}
    return ItemQueryPlanner(
        search_index=create_search_index(config.get("search") or {}, session),
        default_page_size=pagination.get("default_page_size", 20),
        max_page_size=pagination.get("max_page_size"),
        elide_redundant_tiebreak=sorting.get("elide_redundant_tiebreak", True),
    )
