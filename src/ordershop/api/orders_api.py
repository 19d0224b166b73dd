"""Orders API: canonical query surface for order projections."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..config.loader import FetchSettings
from ..domain import OrderSearch, OrderStatus
from ..fetch.edges import open_scope
from ..fetch.order_models import OrderProjection, SimpleOrderProjection
from ..fetch.strategies import (
    FetchStrategy,
    fetch_order_detail,
    fetch_orders,
    fetch_simple_orders,
)
from ..utils.time import utc_now_z

DEFAULT_STRATEGY = FetchStrategy.DTO_IN_QUERY


def build_search(member_name: Optional[str] = None, status: Optional[str] = None) -> Optional[OrderSearch]:
    """
    Build an OrderSearch from loose inputs.

    Raises:
        ValueError: If status is not a known order status
    """
    if not member_name and status is None:
        return None
    order_status = None
    if status is not None:
        try:
            order_status = OrderStatus(status.upper())
        except ValueError:
            choices = ", ".join(s.value for s in OrderStatus)
            raise ValueError(f"Unknown order status '{status}' (choose from: {choices})") from None
    return OrderSearch(member_name=member_name or None, order_status=order_status)


def list_orders(
    session: Session,
    strategy: str = DEFAULT_STRATEGY.value,
    member_name: Optional[str] = None,
    status: Optional[str] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
    batch_size: Optional[int] = None,
) -> List[OrderProjection]:
    """
    List orders with their items using one fetch strategy.

    Args:
        session: SQLAlchemy session (open for the whole call)
        strategy: Strategy name (entity_graph, to_one_join, collection_join,
            batched, dto_in_query, flat)
        member_name: Member name substring filter
        status: Order status filter (ORDERED, CANCELED)
        offset: Page offset; rejected by collection_join and flat
        limit: Page size; rejected by collection_join and flat
        settings: Fetch settings (defaults if None)
        batch_size: Batch size override for the batched strategy

    Returns:
        Order projections sorted by order id
    """
    search = build_search(member_name, status)
    with open_scope(session) as scope:
        return fetch_orders(scope, strategy, search, offset, limit, settings, batch_size)


def list_simple_orders(
    session: Session,
    strategy: str = DEFAULT_STRATEGY.value,
    member_name: Optional[str] = None,
    status: Optional[str] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[SimpleOrderProjection]:
    """List orders with member name and delivery address only."""
    search = build_search(member_name, status)
    with open_scope(session) as scope:
        return fetch_simple_orders(scope, strategy, search, offset, limit, settings)


def get_order_detail(session: Session, order_id: int) -> Optional[OrderProjection]:
    """Get one order with its items, or None if not found."""
    with open_scope(session) as scope:
        return fetch_order_detail(scope, order_id)


def to_wire(projections: List[Any]) -> List[Dict[str, Any]]:
    """Serialize projections with camelCase wire names."""
    return [projection.model_dump(mode="json", by_alias=True) for projection in projections]


def export_orders_json(
    session: Session,
    strategy: str = DEFAULT_STRATEGY.value,
    member_name: Optional[str] = None,
    status: Optional[str] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
    batch_size: Optional[int] = None,
    out: Path | None = None,
) -> str:
    """
    Export orders as JSON.

    Returns:
        Exported JSON (if out is None), otherwise a confirmation after
        writing the file
    """
    orders = list_orders(
        session,
        strategy=strategy,
        member_name=member_name,
        status=status,
        offset=offset,
        limit=limit,
        settings=settings,
        batch_size=batch_size,
    )
    export_data = {
        "export_schema_version": "1",
        "exported_at_utc": utc_now_z(),
        "strategy": FetchStrategy(strategy).value,
        "count": len(orders),
        "data": to_wire(orders),
    }
    output = json.dumps(export_data, indent=2, ensure_ascii=False)
    if out:
        out.write_text(output, encoding="utf-8")
        return f"Exported to {out}"
    return output
