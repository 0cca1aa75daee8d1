"""Pydantic models for listing requests and results."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    """Requested ordering: dotted field path plus direction."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Direct field (e.g. 'name') or '<relation>.<field>' (e.g. 'client.name')")
    direction: SortDirection = SortDirection.ASC

    @field_validator("direction", mode="before")
    @classmethod
    def _lowercase_direction(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def parse(cls, value: str) -> "SortSpec":
        """
        Parse the CLI form 'field[:direction]'.

        Example:
            >>> SortSpec.parse("client.name:desc")
            SortSpec(field='client.name', direction=<SortDirection.DESC: 'desc'>)
        """
        field, _, direction = value.partition(":")
        return cls(field=field.strip(), direction=(direction.strip().lower() or "asc"))


class PageRequest(BaseModel):
    """1-based page number and page size. Range checks happen in the planner."""
    model_config = ConfigDict(frozen=True)

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class ItemFilters(BaseModel):
    """Optional, additive (AND) restrictions. None or empty means no restriction."""
    model_config = ConfigDict(frozen=True)

    template_ids: Optional[List[str]] = None
    client_ids: Optional[List[str]] = None


class ItemRecord(BaseModel):
    """Read model for a single item."""
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    tenant_id: str
    name: str
    client_id: Optional[str] = None
    template_id: Optional[str] = None
    created_at_utc: str


class PageResult(BaseModel):
    """One page of items plus the size of the whole filtered set."""
    items: List[ItemRecord] = Field(default_factory=list)
    total: int = 0
    page: int
    page_size: int
