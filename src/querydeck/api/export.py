"""Export API: structured item listing export for external consumption."""

import csv
import json
from io import StringIO
from pathlib import Path
from typing import Any, Dict, Union

from sqlalchemy.orm import Session

from ..query.planner import ItemQueryPlanner
from ..utils.time import utc_now_z
from .items_api import run_list_items
from .models import ListItemsRequest, ListItemsResponse

CSV_COLUMNS = [
    "item_id",
    "tenant_id",
    "name",
    "client_id",
    "template_id",
    "created_at_utc",
]


def export_items(
    session: Session,
    request: Union[ListItemsRequest, Dict[str, Any]],
    planner: ItemQueryPlanner,
    format: str = "json",
    out: Path | None = None,
) -> str:
    """
    Export one page of items.
    
    Args:
        session: SQLAlchemy session
        request: Listing request (same shape as list_items)
        planner: Configured ItemQueryPlanner
        format: Export format ("json" or "csv")
        out: Output file path (if None, returns as string)
        
    Returns:
        Exported data as string (if out is None) or a confirmation message
    """
    if format not in ("json", "csv"):
        raise ValueError(f"Unsupported format: {format}")

    page = run_list_items(session, request, planner)
    
    if format == "json":
        export_data = {
            "export_schema_version": "1",
            "exported_at_utc": utc_now_z(),
            "data": ListItemsResponse.from_page(page).model_dump(by_alias=True),
        }
        output = json.dumps(export_data, indent=2, sort_keys=True)
        if out:
            out.write_text(output, encoding="utf-8")
            return f"Exported to {out}"
        return output

    # CSV: stable column order, page rows only (total is not representable)
    output_buffer = StringIO()
    writer = csv.writer(output_buffer)
    writer.writerow(CSV_COLUMNS)
    for record in page.items:
        row = record.model_dump()
        writer.writerow([row.get(col) or "" for col in CSV_COLUMNS])
    
    output = output_buffer.getvalue()
    if out:
        out.write_text(output, encoding="utf-8", newline="")
        return f"Exported to {out}"
    return output
