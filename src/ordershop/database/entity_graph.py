"""Bridge from ORM entities to explicit-edge order graphs.

An association already populated on the entity becomes ``Resolved``; one
still unloaded becomes ``Pending`` with a loader that performs SQLAlchemy's
lazy load. A lazy load on a detached entity fails as UnresolvedLazyAccess.
"""

from typing import Any, Callable, List, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import DetachedInstanceError

from ..errors import StoreAccessFailure, UnresolvedLazyAccess
from ..fetch.edges import Edge, Pending, Resolved, StoreScope
from ..fetch.order_models import OrderItemNode, OrderNode
from .schema import Order, OrderItem


def _identity(value: Any) -> Any:
    return value


def _lazy_edge(entity: Any, attr: str, label: str, convert: Callable[[Any], Any] = _identity) -> Edge:
    if attr not in inspect(entity).unloaded:
        return Resolved(convert(getattr(entity, attr)))

    def load(scope: StoreScope) -> Any:
        if inspect(entity).session is not scope.session:
            raise UnresolvedLazyAccess(label, "entity is not attached to the open scope's session")
        try:
            value = getattr(entity, attr)
        except DetachedInstanceError as exc:
            raise UnresolvedLazyAccess(label, "entity is detached from its session") from exc
        except SQLAlchemyError as exc:
            raise StoreAccessFailure(f"Lazy load of '{label}' failed: {exc}") from exc
        return convert(value)

    return Pending(load, label)


def order_item_to_node(order_item: OrderItem) -> OrderItemNode:
    return OrderItemNode(
        order_item_id=order_item.order_item_id,
        order_price=order_item.order_price,
        count=order_item.count,
        item=_lazy_edge(order_item, "item", f"order_item[{order_item.order_item_id}].item"),
    )


def order_items_to_nodes(order_items: List[OrderItem]) -> List[OrderItemNode]:
    return [order_item_to_node(order_item) for order_item in order_items]


def order_to_node(order: Order, order_items: Optional[Edge] = None) -> OrderNode:
    """
    Describe an Order entity as an OrderNode.

    Args:
        order: Order entity, attached to an open session or fully loaded
        order_items: Optional edge replacing the entity's own collection edge
            (used by batched loading)

    Returns:
        OrderNode whose edges reflect what the entity has loaded
    """
    if order_items is None:
        order_items = _lazy_edge(
            order,
            "order_items",
            f"order[{order.order_id}].order_items",
            convert=order_items_to_nodes,
        )
    return OrderNode(
        order_id=order.order_id,
        order_date=order.order_date,
        status=order.status,
        member=_lazy_edge(order, "member", f"order[{order.order_id}].member"),
        delivery=_lazy_edge(order, "delivery", f"order[{order.order_id}].delivery"),
        order_items=order_items,
    )
