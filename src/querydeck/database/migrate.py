"""Minimal SQLite migration helpers for the full-text search table."""

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

ITEM_SEARCH_TABLE = "item_search"


def _table_exists(conn: Connection, table: str) -> bool:
    """Check if a table (including virtual tables) exists."""
    row = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"),
        {"name": table},
    ).fetchone()
    return row is not None


def ensure_item_search_table(engine: Engine) -> None:
    """
    Create the FTS5 table backing item search if it is missing.

    item_id and tenant_id are stored UNINDEXED: they are returned and
    filtered on, never matched as text.

    Args:
        engine: SQLAlchemy engine bound to a SQLite database
    """
    with engine.begin() as conn:
        if _table_exists(conn, ITEM_SEARCH_TABLE):
            return
        conn.execute(
            text(
                f"CREATE VIRTUAL TABLE {ITEM_SEARCH_TABLE} USING fts5("
                "item_id UNINDEXED, tenant_id UNINDEXED, name)"
            )
        )
