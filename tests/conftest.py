"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from querydeck.database.migrate import ensure_item_search_table
from querydeck.database.schema import Base
from querydeck.ingestion.seed_loader import load_seed_data
from querydeck.search.adapters import SearchIndex
from querydeck.utils.time import to_utc_z

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def ts(hours: float) -> str:
    """Stored timestamp `hours` after BASE_TIME."""
    return to_utc_z(BASE_TIME + timedelta(hours=hours))


@pytest.fixture(name="ts")
def ts_fixture():
    return ts


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables and the FTS table."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    ensure_item_search_table(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session(engine):
    """Create a temporary in-memory database session for testing."""
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def statements(engine):
    """SQL statements sent to the database while the test runs (clear it before the call under test)."""
    captured = []

    def _capture(conn, cursor, statement, parameters, context, executemany):
        captured.append(statement)

    event.listen(engine, "before_cursor_execute", _capture)
    try:
        yield captured
    finally:
        event.remove(engine, "before_cursor_execute", _capture)


class StaticSearchIndex(SearchIndex):
    """Search index returning fixed hits per tenant, recording every call."""

    def __init__(self, hits=None, error=None):
        self.hits = hits or {}
        self.error = error
        self.calls = []

    def search(self, tenant_id, search_text):
        self.calls.append((tenant_id, search_text))
        if self.error is not None:
            raise self.error
        return list(self.hits.get(tenant_id, []))


@pytest.fixture
def make_search_index():
    """Factory for StaticSearchIndex: make_search_index({"tenant": ["id", ...]}, error=None)."""
    return StaticSearchIndex


@pytest.fixture
def example_data(session):
    """
    Tenant abc-123 with three items whose clients are Beta, Alpha, Alpha.

    item-2 is created before item-3, so the creation-time tie-break puts
    item-3 first among the Alpha items. Tenant xyz-789 holds a decoy item.
    """
    document = {
        "clients": [
            {"client_id": "c-beta", "tenant_id": "abc-123", "name": "Beta"},
            {"client_id": "c-alpha", "tenant_id": "abc-123", "name": "Alpha"},
            {"client_id": "c-other", "tenant_id": "xyz-789", "name": "Aardvark"},
        ],
        "items": [
            {"item_id": "item-1", "tenant_id": "abc-123", "name": "Spring invoice",
             "client_id": "c-beta", "created_at_utc": ts(1)},
            {"item_id": "item-2", "tenant_id": "abc-123", "name": "Summer invoice",
             "client_id": "c-alpha", "created_at_utc": ts(2)},
            {"item_id": "item-3", "tenant_id": "abc-123", "name": "Autumn quote",
             "client_id": "c-alpha", "created_at_utc": ts(3)},
            {"item_id": "item-x", "tenant_id": "xyz-789", "name": "Winter invoice",
             "client_id": "c-other", "created_at_utc": ts(4)},
        ],
    }
    load_seed_data(document, session)
    return document


CLIENT_CYCLE = ["c-acme", "c-beta", "c-acme-2", None, "c-zulu"]
TEMPLATE_CYCLE = ["t-invoice", "t-quote", None]


@pytest.fixture
def listing_data(session):
    """
    Twenty items in tenant t1 with duplicate client names, missing clients,
    shared creation timestamps and several attachments per item, plus a
    second tenant t2 that must never leak into t1 results.
    """
    document = {
        "clients": [
            {"client_id": "c-acme", "tenant_id": "t1", "name": "Acme"},
            {"client_id": "c-beta", "tenant_id": "t1", "name": "Beta"},
            {"client_id": "c-acme-2", "tenant_id": "t1", "name": "Acme"},
            {"client_id": "c-zulu", "tenant_id": "t1", "name": "Zulu"},
            {"client_id": "c-t2", "tenant_id": "t2", "name": "Aaron"},
        ],
        "templates": [
            {"template_id": "t-invoice", "tenant_id": "t1", "name": "Invoice"},
            {"template_id": "t-quote", "tenant_id": "t1", "name": "Quote"},
            {"template_id": "t-t2", "tenant_id": "t2", "name": "Anything"},
        ],
        "items": [],
        "attachments": [],
    }
    for k in range(20):
        item_id = f"i{k:02d}"
        document["items"].append({
            "item_id": item_id,
            "tenant_id": "t1",
            "name": f"Item {k:02d} {'invoice' if k % 2 else 'quote'}",
            "client_id": CLIENT_CYCLE[k % len(CLIENT_CYCLE)],
            "template_id": TEMPLATE_CYCLE[k % len(TEMPLATE_CYCLE)],
            "created_at_utc": ts(k % 7),  # repeats on purpose
        })
        for n in range(k % 4):
            document["attachments"].append({"item_id": item_id, "filename": f"{item_id}-{n}.pdf"})
    for k in range(5):
        document["items"].append({
            "item_id": f"other-{k}",
            "tenant_id": "t2",
            "name": f"Item {k} invoice",
            "client_id": "c-t2",
            "template_id": "t-t2",
            "created_at_utc": ts(100 + k),
        })
    load_seed_data(document, session)
    return document
