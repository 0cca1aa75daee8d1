"""API layer: the inbound listing surface used by transports and export.

This module provides the stable read model API. Key rules:

1. No SQLAlchemy queries - Session is passed through to the planner only
2. Accept the transport's request shape (camelCase or snake_case)
3. Return plain dicts or Pydantic models
4. Tenant, sort and paging rules live in querydeck.query, never here
"""
