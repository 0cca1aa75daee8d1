"""Repository functions for items: spec compilation for listings, plus writers used by seeding."""

from typing import List, Optional

from sqlalchemy import func, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..query.errors import StorageError
from ..query.models import SortDirection
from ..query.spec import ItemQuerySpec, OrderKey
from ..utils.id_generator import new_attachment_id, new_item_id
from ..utils.logging import get_logger
from ..utils.time import normalize_utc_z, utc_now_z
from .schema import Attachment, Client, Item, Template

logger = get_logger(__name__)


def _filter_criteria(spec: ItemQuerySpec) -> list:
    """Predicates shared by the count and the page query."""
    criteria = [Item.tenant_id == spec.tenant_id]
    if spec.item_ids is not None:
        criteria.append(Item.item_id.in_(spec.item_ids))
    if spec.template_ids:
        criteria.append(Item.template_id.in_(spec.template_ids))
    if spec.client_ids:
        criteria.append(Item.client_id.in_(spec.client_ids))
    return criteria


def _related_model(relation: str):
    return inspect(Item).relationships[relation].mapper.class_


def _order_clause(key: OrderKey):
    model = _related_model(key.relation) if key.relation else Item
    column = getattr(model, key.column)
    clause = column.desc() if key.direction == SortDirection.DESC else column.asc()
    if key.relation:
        # Items without the relation have a NULL sort value; keep them at the end either way
        clause = clause.nulls_last()
    return clause


def _page_query(session: Session, spec: ItemQuerySpec) -> Query:
    q = session.query(Item).filter(*_filter_criteria(spec))

    # LEFT OUTER so items lacking the relation are not dropped; the extra
    # tenant match keeps the join inside the item's tenant.
    for relation in spec.join_relations:
        related = _related_model(relation)
        q = q.outerjoin(getattr(Item, relation).and_(related.tenant_id == Item.tenant_id))

    if spec.order:
        q = q.order_by(*[_order_clause(key) for key in spec.order])
    if spec.offset:
        q = q.offset(spec.offset)
    if spec.limit is not None:
        q = q.limit(spec.limit)
    return q


def count_items(session: Session, spec: ItemQuerySpec) -> int:
    """
    Count items matching the spec's filters.

    Ordering, joins and the page window are ignored, so a join added for
    sorting can never change the total.

    Args:
        session: SQLAlchemy session
        spec: Query specification

    Returns:
        Number of matching items

    Raises:
        StorageError: If the query fails
    """
    try:
        total = session.query(func.count(Item.item_id)).filter(*_filter_criteria(spec)).scalar()
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to count items for tenant {spec.tenant_id}: {e}") from e
    return int(total or 0)


def fetch_items(session: Session, spec: ItemQuerySpec) -> List[Item]:
    """
    Fetch one page of items in the spec's order.

    Args:
        session: SQLAlchemy session
        spec: Query specification

    Returns:
        List of Item rows (at most spec.limit)

    Raises:
        StorageError: If the query fails
    """
    q = _page_query(session, spec)
    logger.debug(
        f"Fetching items tenant={spec.tenant_id} joins={list(spec.join_relations)} "
        f"order={[f'{k.path}:{k.direction.value}' for k in spec.order]} "
        f"offset={spec.offset} limit={spec.limit}"
    )
    try:
        return q.all()
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to fetch items for tenant {spec.tenant_id}: {e}") from e


def find_item_by_id(session: Session, tenant_id: str, item_id: str) -> Optional[Item]:
    """Find an item by ID within a tenant."""
    return (
        session.query(Item)
        .filter(Item.tenant_id == tenant_id, Item.item_id == item_id)
        .first()
    )


def list_all_items(session: Session, tenant_id: Optional[str] = None) -> List[Item]:
    """All items, optionally for one tenant, in primary-key order (used for reindexing)."""
    q = session.query(Item)
    if tenant_id:
        q = q.filter(Item.tenant_id == tenant_id)
    return q.order_by(Item.item_id.asc()).all()


def _check_owner(session: Session, model, key: Optional[str], tenant_id: str) -> None:
    """An upsert may update a row of its own tenant, never take over another tenant's row."""
    if key is None:
        return
    existing = session.get(model, key)
    if existing is not None and existing.tenant_id != tenant_id:
        raise ValueError(f"{model.__name__} {key} already exists in another tenant")


def save_client(session: Session, *, client_id: str, tenant_id: str, name: str) -> Client:
    """Insert or update a client row."""
    _check_owner(session, Client, client_id, tenant_id)
    row = session.merge(Client(client_id=client_id, tenant_id=tenant_id, name=name))
    session.flush()
    logger.debug(f"Saved client {client_id} ({tenant_id})")
    return row


def save_template(session: Session, *, template_id: str, tenant_id: str, name: str) -> Template:
    """Insert or update a template row."""
    _check_owner(session, Template, template_id, tenant_id)
    row = session.merge(Template(template_id=template_id, tenant_id=tenant_id, name=name))
    session.flush()
    logger.debug(f"Saved template {template_id} ({tenant_id})")
    return row


def _check_same_tenant(session: Session, model, key: Optional[str], tenant_id: str) -> None:
    if key is None:
        return
    related = session.get(model, key)
    if related is None:
        raise ValueError(f"{model.__name__} {key} does not exist")
    if related.tenant_id != tenant_id:
        raise ValueError(f"{model.__name__} {key} belongs to another tenant")


def save_item(
    session: Session,
    *,
    tenant_id: str,
    name: str,
    item_id: Optional[str] = None,
    client_id: Optional[str] = None,
    template_id: Optional[str] = None,
    created_at_utc: Optional[str] = None,
) -> Item:
    """
    Insert or update an item row.

    Args:
        session: SQLAlchemy session
        tenant_id: Owning tenant
        name: Item name
        item_id: Item ID (generated when omitted)
        client_id: Client ID, must belong to the same tenant
        template_id: Template ID, must belong to the same tenant
        created_at_utc: ISO 8601 timestamp with offset (defaults to now)

    Returns:
        Item row

    Raises:
        ValueError: If item_id is owned by another tenant, or a referenced
            client/template is missing or belongs to another tenant
    """
    _check_owner(session, Item, item_id, tenant_id)
    _check_same_tenant(session, Client, client_id, tenant_id)
    _check_same_tenant(session, Template, template_id, tenant_id)

    row = session.merge(
        Item(
            item_id=item_id or new_item_id(),
            tenant_id=tenant_id,
            name=name,
            client_id=client_id,
            template_id=template_id,
            created_at_utc=normalize_utc_z(created_at_utc) if created_at_utc else utc_now_z(),
        )
    )
    session.flush()
    logger.debug(f"Saved item {row.item_id} ({tenant_id})")
    return row


def save_attachment(
    session: Session,
    *,
    item_id: str,
    filename: str,
    attachment_id: Optional[str] = None,
) -> Attachment:
    """Insert or update an attachment; the tenant is copied from the item."""
    item = session.get(Item, item_id)
    if item is None:
        raise ValueError(f"Item {item_id} does not exist")
    _check_owner(session, Attachment, attachment_id, item.tenant_id)
    row = session.merge(
        Attachment(
            attachment_id=attachment_id or new_attachment_id(),
            item_id=item_id,
            tenant_id=item.tenant_id,
            filename=filename,
        )
    )
    session.flush()
    logger.debug(f"Saved attachment {row.attachment_id} for item {item_id} ({item.tenant_id})")
    return row
