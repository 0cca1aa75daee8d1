"""Sort allow-list: dotted sort paths mapped to validated column descriptors."""

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from sqlalchemy import inspect

from ..database.schema import Item
from ..utils.logging import get_logger
from .errors import InvalidSortField

logger = get_logger(__name__)

TENANT_COLUMN = "tenant_id"


@dataclass(frozen=True)
class SortTarget:
    """Where a sort path points: a column on the model, or on a joined relation."""
    path: str
    column: str
    relation: Optional[str] = None
    unique: bool = False  # True when the column alone totally orders rows

    @property
    def is_relational(self) -> bool:
        return self.relation is not None


def _validate_target(mapper, target: SortTarget) -> None:
    """
    Check a target against the SQLAlchemy mapper of the queried model.

    Raises:
        ValueError: If the column or relation does not exist, or the relation
            could yield more than one row per model row
    """
    if target.relation is None:
        if "." in target.path:
            raise ValueError(f"Direct sort path '{target.path}' must not contain '.'")
        if target.column not in mapper.columns:
            raise ValueError(f"Sort path '{target.path}': {mapper.class_.__name__} has no column '{target.column}'")
        return

    relationship = mapper.relationships.get(target.relation)
    if relationship is None:
        raise ValueError(f"Sort path '{target.path}': {mapper.class_.__name__} has no relation '{target.relation}'")
    if relationship.uselist:
        # Joining a collection multiplies rows, which corrupts both count and pages
        raise ValueError(
            f"Sort path '{target.path}': relation '{target.relation}' is many-valued "
            f"({relationship.direction.name}) and cannot be used as a sort target"
        )
    related = relationship.mapper
    if target.column not in related.columns:
        raise ValueError(f"Sort path '{target.path}': {related.class_.__name__} has no column '{target.column}'")
    if TENANT_COLUMN not in related.columns:
        raise ValueError(
            f"Sort path '{target.path}': {related.class_.__name__} has no '{TENANT_COLUMN}' column "
            "to scope the join"
        )


class SortRegistry:
    """Read-only allow-list of sort paths for one model."""

    def __init__(self, model, targets: Mapping[str, SortTarget]):
        self.model = model
        self._targets = MappingProxyType(dict(targets))

    @classmethod
    def from_entries(cls, model, entries: Iterable[SortTarget]) -> "SortRegistry":
        """
        Build a registry, validating every entry against the model's mapper.

        Args:
            model: Declarative model class being listed
            entries: Sort targets to allow

        Returns:
            SortRegistry

        Raises:
            ValueError: On duplicate paths or entries that fail validation
        """
        mapper = inspect(model)
        targets = {}
        for entry in entries:
            if entry.path in targets:
                raise ValueError(f"Duplicate sort path: {entry.path}")
            _validate_target(mapper, entry)
            targets[entry.path] = entry
        logger.debug(f"Registered {len(targets)} sort paths for {model.__name__}: {sorted(targets)}")
        return cls(model, targets)

    @property
    def paths(self) -> List[str]:
        return sorted(self._targets)

    def resolve(self, path: str) -> SortTarget:
        """Return the target for a path, or raise InvalidSortField."""
        target = self._targets.get(path)
        if target is None:
            raise InvalidSortField(path, self._targets.keys())
        return target

    def __contains__(self, path: str) -> bool:
        return path in self._targets


DEFAULT_ITEM_SORT_TARGETS = (
    SortTarget(path="item_id", column="item_id", unique=True),
    SortTarget(path="name", column="name"),
    SortTarget(path="created_at_utc", column="created_at_utc"),
    SortTarget(path="client.name", column="name", relation="client"),
    SortTarget(path="template.name", column="name", relation="template"),
)


@lru_cache(maxsize=1)
def default_item_sort_registry() -> SortRegistry:
    return SortRegistry.from_entries(Item, DEFAULT_ITEM_SORT_TARGETS)
