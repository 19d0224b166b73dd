"""Projection builder: order graphs and DTO rows to the wire shape.

Edges resolve in a fixed order (member, delivery, order items, then the
item of each line) so to-one loads always precede to-many loads.
"""

from typing import Iterable, List, Optional

from ..errors import UnresolvedLazyAccess
from .edges import StoreScope, resolve
from .order_models import (
    AddressView,
    OrderHeader,
    OrderItemNode,
    OrderItemProjection,
    OrderItemRow,
    OrderNode,
    OrderProjection,
    SimpleOrderProjection,
)


def _require(value, name: str):
    # A loaded-but-missing association is as bad as an unloaded one
    if value is None:
        raise UnresolvedLazyAccess(name, "association resolved to nothing")
    return value


def _project_item(node: OrderItemNode, scope: Optional[StoreScope]) -> OrderItemProjection:
    item = _require(resolve(node.item, scope, "item"), "item")
    return OrderItemProjection(item_name=item.name, order_price=node.order_price, count=node.count)


def _to_one_fields(node: OrderNode, scope: Optional[StoreScope]) -> dict:
    member = _require(resolve(node.member, scope, "member"), "member")
    delivery = _require(resolve(node.delivery, scope, "delivery"), "delivery")
    return {
        "order_id": node.order_id,
        "member_name": member.name,
        "order_date": node.order_date,
        "status": node.status,
        "address": AddressView.from_address(delivery.address),
    }


def project_order(node: OrderNode, scope: Optional[StoreScope] = None) -> OrderProjection:
    """
    Build the full projection of one order graph.

    Args:
        node: Order graph whose edges may still be pending
        scope: Open store scope used to resolve pending edges

    Returns:
        OrderProjection with every line item

    Raises:
        UnresolvedLazyAccess: a pending edge with no open scope, or a
            required association that resolved to nothing
    """
    fields = _to_one_fields(node, scope)
    order_items = resolve(node.order_items, scope, "order_items")
    if order_items is None:
        raise UnresolvedLazyAccess("order_items", "association resolved to nothing")
    return OrderProjection(
        **fields,
        order_items=[_project_item(item_node, scope) for item_node in order_items],
    )


def project_simple_order(node: OrderNode, scope: Optional[StoreScope] = None) -> SimpleOrderProjection:
    """Build the to-one-only projection; the item collection is never touched."""
    return SimpleOrderProjection(**_to_one_fields(node, scope))


def project_orders(nodes: Iterable[OrderNode], scope: Optional[StoreScope] = None) -> List[OrderProjection]:
    return [project_order(node, scope) for node in nodes]


def _header_fields(header: OrderHeader) -> dict:
    return {
        "order_id": header.order_id,
        "member_name": header.member_name,
        "order_date": header.order_date,
        "status": header.status,
        "address": AddressView.from_address(header.address),
    }


def project_header(header: OrderHeader, item_rows: Iterable[OrderItemRow]) -> OrderProjection:
    """Build a projection from DTO rows; nothing here can be pending."""
    return OrderProjection(
        **_header_fields(header),
        order_items=[
            OrderItemProjection(item_name=row.item_name, order_price=row.order_price, count=row.count)
            for row in item_rows
        ],
    )


def project_simple_header(header: OrderHeader) -> SimpleOrderProjection:
    return SimpleOrderProjection(**_header_fields(header))
