"""Transport-facing DTOs for the item listing API.

Requests accept camelCase keys (tenantId, pageSize, ...) as sent by
GraphQL/REST layers, and snake_case for Python callers. Responses are
dumped with camelCase keys.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..query.models import ItemFilters, ItemRecord, PageResult, SortSpec


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FiltersIn(_CamelModel):
    template_ids: Optional[List[str]] = None
    client_ids: Optional[List[str]] = None

    def to_filters(self) -> ItemFilters:
        return ItemFilters(template_ids=self.template_ids, client_ids=self.client_ids)


class ListItemsRequest(_CamelModel):
    tenant_id: str
    search_text: Optional[str] = None
    filters: FiltersIn = Field(default_factory=FiltersIn)
    sort: Optional[SortSpec] = None
    page: int = 1
    page_size: Optional[int] = None  # None: planner default


class ItemOut(_CamelModel):
    item_id: str
    tenant_id: str
    name: str
    client_id: Optional[str] = None
    template_id: Optional[str] = None
    created_at_utc: str

    @classmethod
    def from_record(cls, record: ItemRecord) -> "ItemOut":
        return cls(**record.model_dump())


class ListItemsResponse(_CamelModel):
    items: List[ItemOut]
    total: int
    page: int
    page_size: int

    @classmethod
    def from_page(cls, page: PageResult) -> "ListItemsResponse":
        return cls(
            items=[ItemOut.from_record(record) for record in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )
