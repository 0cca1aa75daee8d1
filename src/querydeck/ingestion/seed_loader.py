import json
from pathlib import Path
from typing import Any, Dict

import yaml
from sqlalchemy.orm import Session

from ..database.item_repo import save_attachment, save_client, save_item, save_template
from ..search.adapters import index_item
from ..utils.logging import get_logger

logger = get_logger(__name__)

SEED_SECTIONS = ("clients", "templates", "items", "attachments")


def _read_seed_document(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            document = json.load(f)
        else:
            document = yaml.safe_load(f)
    if not isinstance(document, dict):
        raise ValueError(f"Seed file must contain a mapping: {path}")
    for section in SEED_SECTIONS:
        entries = document.get(section) or []
        if not isinstance(entries, list):
            raise ValueError(f"Seed section '{section}' must be a list")
    return document


def _required(entry: Dict[str, Any], field: str, section: str) -> Any:
    value = entry.get(field)
    if value in (None, ""):
        raise ValueError(f"Seed entry in '{section}' missing required field: {field}")
    return value


def load_seed_data(document: Dict[str, Any], session: Session, index: bool = True) -> Dict[str, int]:
    """
    Load clients, templates, items and attachments into the database.
    
    Related rows are written before the rows that reference them. Items are
    added to the SQLite search index when index is True. Commits on success.
    
    Expected shape (YAML or JSON):
        clients:   [{client_id, tenant_id, name}]
        templates: [{template_id, tenant_id, name}]
        items:     [{item_id?, tenant_id, name, client_id?, template_id?, created_at_utc?}]
        attachments: [{attachment_id?, item_id, filename}]
    
    Returns:
        Count of rows loaded per section
    """
    counts = {section: 0 for section in SEED_SECTIONS}

    for entry in document.get("clients") or []:
        save_client(
            session,
            client_id=_required(entry, "client_id", "clients"),
            tenant_id=_required(entry, "tenant_id", "clients"),
            name=_required(entry, "name", "clients"),
        )
        counts["clients"] += 1

    for entry in document.get("templates") or []:
        save_template(
            session,
            template_id=_required(entry, "template_id", "templates"),
            tenant_id=_required(entry, "tenant_id", "templates"),
            name=_required(entry, "name", "templates"),
        )
        counts["templates"] += 1

    for entry in document.get("items") or []:
        item = save_item(
            session,
            item_id=entry.get("item_id"),
            tenant_id=_required(entry, "tenant_id", "items"),
            name=_required(entry, "name", "items"),
            client_id=entry.get("client_id"),
            template_id=entry.get("template_id"),
            created_at_utc=entry.get("created_at_utc"),
        )
        if index:
            index_item(session, item)
        counts["items"] += 1

    for entry in document.get("attachments") or []:
        save_attachment(
            session,
            attachment_id=entry.get("attachment_id"),
            item_id=_required(entry, "item_id", "attachments"),
            filename=_required(entry, "filename", "attachments"),
        )
        counts["attachments"] += 1

    session.commit()
    logger.info(
        "Loaded seed data: "
        + ", ".join(f"{counts[section]} {section}" for section in SEED_SECTIONS)
    )
    return counts


def load_seed_file(path: Path, session: Session, index: bool = True) -> Dict[str, int]:
    """
    Load a YAML or JSON seed file.
    
    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the document is malformed or references are invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")
    try:
        return load_seed_data(_read_seed_document(path), session, index=index)
    except Exception:
        session.rollback()
        raise
