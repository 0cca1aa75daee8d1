"""Query planning: sort allow-list, immutable query specs and the item planner.

Nothing in this package imports SQLAlchemy query constructs except the
mapper inspection done when the sort allow-list is validated. Compiling a
spec into SQL is the job of ``querydeck.database.item_repo``.
"""
