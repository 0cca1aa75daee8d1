import uuid
from datetime import UTC, datetime


def new_item_id() -> str:
    return f"ITEM-{datetime.now(UTC).strftime('%Y%m%d')}-{uuid.uuid4().hex[:8]}"


def new_attachment_id() -> str:
    return f"ATT-{datetime.now(UTC).strftime('%Y%m%d')}-{uuid.uuid4().hex[:8]}"
