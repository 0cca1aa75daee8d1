"""Immutable item query specification and the pure functions that build it.

A spec is assembled step by step (tenant scope, search restriction, filters,
sort, tie-break, page window) and only compiled into SQL once, by the
repository. Every builder returns a new spec; none mutates its input.
"""

from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .models import ItemFilters, PageRequest, SortDirection
from .sorting import SortTarget


class OrderKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    column: str
    relation: Optional[str] = None
    direction: SortDirection = SortDirection.ASC
    unique: bool = False


class ItemQuerySpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    tenant_id: str
    item_ids: Optional[Tuple[str, ...]] = None  # None: no search restriction
    template_ids: Tuple[str, ...] = ()
    client_ids: Tuple[str, ...] = ()
    order: Tuple[OrderKey, ...] = ()
    offset: int = 0
    limit: Optional[int] = None

    @property
    def join_relations(self) -> Tuple[str, ...]:
        """Relations that must be joined to evaluate the ordering, in first-use order."""
        seen = []
        for key in self.order:
            if key.relation and key.relation not in seen:
                seen.append(key.relation)
        return tuple(seen)


# Appended after any user sort. item_id is last so ordering is total even
# when two items share a creation timestamp.
TIEBREAK_KEYS: Tuple[OrderKey, ...] = (
    OrderKey(path="created_at_utc", column="created_at_utc", direction=SortDirection.DESC),
    OrderKey(path="item_id", column="item_id", direction=SortDirection.ASC, unique=True),
)


def scoped_to_tenant(tenant_id: str) -> ItemQuerySpec:
    """Start a spec. The tenant predicate is mandatory, so there is no spec without one."""
    if not tenant_id or not tenant_id.strip():
        raise ValueError("tenant_id is required")
    return ItemQuerySpec(tenant_id=tenant_id)


def restrict_to_ids(spec: ItemQuerySpec, item_ids: Iterable[str]) -> ItemQuerySpec:
    """Limit the spec to search hits (order of hits is not preserved in SQL)."""
    return spec.model_copy(update={"item_ids": tuple(dict.fromkeys(item_ids))})


def with_filters(spec: ItemQuerySpec, filters: Optional[ItemFilters]) -> ItemQuerySpec:
    """Add template/client in-set restrictions. Missing or empty lists add nothing."""
    if filters is None:
        return spec
    update = {}
    if filters.template_ids:
        update["template_ids"] = tuple(dict.fromkeys(filters.template_ids))
    if filters.client_ids:
        update["client_ids"] = tuple(dict.fromkeys(filters.client_ids))
    return spec.model_copy(update=update) if update else spec


def with_sort(spec: ItemQuerySpec, target: SortTarget, direction: SortDirection) -> ItemQuerySpec:
    key = OrderKey(
        path=target.path,
        column=target.column,
        relation=target.relation,
        direction=direction,
        unique=target.unique,
    )
    return spec.model_copy(update={"order": spec.order + (key,)})


def with_tiebreak(spec: ItemQuerySpec, elide_redundant: bool = True) -> ItemQuerySpec:
    """
    Append the deterministic tie-break keys.

    With elide_redundant, keys already covered by the current ordering are
    skipped: nothing is added after a unique key, and a tie-break column that
    is already sorted on directly is not repeated.

    Args:
        spec: Spec to extend
        elide_redundant: Skip tie-break keys that cannot change the order

    Returns:
        New ItemQuerySpec
    """
    keys = list(spec.order)
    if elide_redundant and any(key.unique for key in keys):
        return spec
    for tiebreak in TIEBREAK_KEYS:
        if elide_redundant and any(
            key.relation is None and key.column == tiebreak.column for key in keys
        ):
            continue
        keys.append(tiebreak)
    return spec.model_copy(update={"order": tuple(keys)})


def with_page(spec: ItemQuerySpec, page_request: PageRequest) -> ItemQuerySpec:
    return spec.model_copy(update={"offset": page_request.offset, "limit": page_request.page_size})
