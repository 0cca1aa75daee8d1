"""Items API: canonical listing surface for transports and export."""

from typing import Any, Dict, Union

from sqlalchemy.orm import Session

from ..query.models import PageRequest, PageResult
from ..query.planner import ItemQueryPlanner
from .models import ListItemsRequest, ListItemsResponse


def run_list_items(
    session: Session,
    request: Union[ListItemsRequest, Dict[str, Any]],
    planner: ItemQueryPlanner,
) -> PageResult:
    """
    Run a listing request and return the planner's PageResult.
    
    Args:
        session: SQLAlchemy session
        request: ListItemsRequest or its dict form (camelCase or snake_case keys)
        planner: Configured ItemQueryPlanner
        
    Returns:
        PageResult
        
    Raises:
        pydantic.ValidationError: If the request shape is malformed
        QueryError subclasses: As raised by ItemQueryPlanner.plan
    """
    if not isinstance(request, ListItemsRequest):
        request = ListItemsRequest.model_validate(request)
    
    page_request = PageRequest(
        page=request.page,
        page_size=request.page_size if request.page_size is not None else planner.default_page_size,
    )
    return planner.plan(
        session,
        request.tenant_id,
        search_text=request.search_text,
        filters=request.filters.to_filters(),
        sort=request.sort,
        page_request=page_request,
    )


def list_items(
    session: Session,
    request: Union[ListItemsRequest, Dict[str, Any]],
    planner: ItemQueryPlanner,
) -> Dict[str, Any]:
    """
    List items in the transport shape.
    
    Returns:
        {"items": [...], "total": int, "page": int, "pageSize": int} with camelCase item keys
    """
    page = run_list_items(session, request, planner)
    return ListItemsResponse.from_page(page).model_dump(by_alias=True)
