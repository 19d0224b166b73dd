"""API layer: canonical read surface for order projections.

Key rules:

1. No SQLAlchemy imports - Session only as a type hint
2. Every call opens its own StoreScope and closes it before returning
3. Return pydantic projections or export strings only
"""
