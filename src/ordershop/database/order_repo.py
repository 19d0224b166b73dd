"""Repository functions for order reads.

Each function issues exactly one statement (or none for an empty id list),
so a strategy's round-trip count is the number of repo calls it makes plus
whatever lazy loads it triggers.
"""

import functools
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..domain import Address, OrderSearch
from ..errors import StoreAccessFailure
from ..fetch.order_models import FlatRow, OrderHeader, OrderItemRow
from ..utils.logging import get_logger
from .schema import Delivery, Item, Member, Order, OrderItem

logger = get_logger(__name__)


def _store_read(func):
    """Translate SQLAlchemy failures into StoreAccessFailure."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreAccessFailure(f"{func.__name__} failed: {exc}") from exc

    return wrapper


def _apply_search(q: Query, search: Optional[OrderSearch], member_joined: bool = False) -> Query:
    if search is None:
        return q
    if search.order_status is not None:
        q = q.filter(Order.status == search.order_status)
    if search.member_name:
        pattern = f"%{search.member_name}%"
        if member_joined:
            q = q.filter(Member.name.like(pattern))
        else:
            # EXISTS so entity queries stay free of an extra member join
            q = q.filter(Order.member.has(Member.name.like(pattern)))
    return q


def _apply_page(q: Query, offset: Optional[int], limit: Optional[int]) -> Query:
    if offset is not None:
        q = q.offset(offset)
    if limit is not None:
        q = q.limit(limit)
    return q


def _group_by_root(root_ids: Iterable[int], children: Iterable) -> Dict[int, list]:
    grouped: Dict[int, list] = OrderedDict((root_id, []) for root_id in root_ids)
    for child in children:
        grouped.setdefault(child.order_id, []).append(child)
    return grouped


@_store_read
def fetch_roots(
    session: Session,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Order]:
    """
    Query orders without loading any association.

    Args:
        session: SQLAlchemy session
        search: Optional member name / status filter
        offset: Number of orders to skip (None = no offset)
        limit: Maximum number of orders (None = all)

    Returns:
        Order rows sorted by order_id ascending; member, delivery and
        order_items are left unloaded
    """
    q = _apply_search(session.query(Order), search).order_by(Order.order_id)
    orders = _apply_page(q, offset, limit).all()
    logger.debug(f"fetch_roots: {len(orders)} orders")
    return orders


def _to_one_query(session: Session, search: Optional[OrderSearch]) -> Query:
    q = session.query(Order).options(
        joinedload(Order.member, innerjoin=True),
        joinedload(Order.delivery, innerjoin=True),
    )
    return _apply_search(q, search).order_by(Order.order_id)


@_store_read
def fetch_roots_with_to_one(session: Session, search: Optional[OrderSearch] = None) -> List[Order]:
    """Query orders with member and delivery joined in the same statement."""
    orders = _to_one_query(session, search).all()
    logger.debug(f"fetch_roots_with_to_one: {len(orders)} orders")
    return orders


@_store_read
def fetch_roots_paged(
    session: Session,
    search: Optional[OrderSearch],
    offset: int,
    limit: int,
) -> List[Order]:
    """
    Query one page of orders with member and delivery joined.

    To-one joins never multiply rows, so OFFSET/LIMIT apply to orders.
    """
    orders = _apply_page(_to_one_query(session, search), offset, limit).all()
    logger.debug(f"fetch_roots_paged: {len(orders)} orders (offset={offset}, limit={limit})")
    return orders


@_store_read
def fetch_roots_with_to_one_and_collection(
    session: Session,
    search: Optional[OrderSearch] = None,
) -> List[Order]:
    """
    Query orders with member, delivery, order items and their items joined.

    The SQL result carries one row per order item. Callers must still
    deduplicate by order_id; the list may repeat an order.
    """
    q = session.query(Order).options(
        joinedload(Order.member, innerjoin=True),
        joinedload(Order.delivery, innerjoin=True),
        joinedload(Order.order_items).joinedload(OrderItem.item),
    )
    orders = _apply_search(q, search).order_by(Order.order_id).all()
    logger.debug(f"fetch_roots_with_to_one_and_collection: {len(orders)} orders")
    return orders


@_store_read
def fetch_children_by_root_ids(session: Session, root_ids: List[int]) -> Dict[int, List[OrderItem]]:
    """
    Load order items (with their item) for many orders in one IN query.

    Args:
        session: SQLAlchemy session
        root_ids: Order IDs; the caller keeps the list within the IN ceiling

    Returns:
        Mapping order_id -> order items in line order, with an entry (possibly
        empty) for every requested ID, in request order
    """
    if not root_ids:
        return {}
    children = (
        session.query(OrderItem)
        .options(joinedload(OrderItem.item, innerjoin=True))
        .filter(OrderItem.order_id.in_(root_ids))
        .order_by(OrderItem.order_id, OrderItem.order_item_id)
        .all()
    )
    logger.debug(f"fetch_children_by_root_ids: {len(children)} items for {len(root_ids)} orders")
    return _group_by_root(root_ids, children)


def _header_query(session: Session) -> Query:
    return (
        session.query(
            Order.order_id,
            Member.name.label("member_name"),
            Order.order_date,
            Order.status,
            Delivery.city,
            Delivery.street,
            Delivery.zipcode,
        )
        .select_from(Order)
        .join(Order.member)
        .join(Order.delivery)
    )


def _to_header(row) -> OrderHeader:
    return OrderHeader(
        order_id=row.order_id,
        member_name=row.member_name,
        order_date=row.order_date,
        status=row.status,
        address=Address(row.city, row.street, row.zipcode),
    )


@_store_read
def fetch_order_headers(
    session: Session,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[OrderHeader]:
    """Select the to-one fields of orders straight into OrderHeader rows."""
    q = _apply_search(_header_query(session), search, member_joined=True).order_by(Order.order_id)
    headers = [_to_header(row) for row in _apply_page(q, offset, limit).all()]
    logger.debug(f"fetch_order_headers: {len(headers)} orders")
    return headers


@_store_read
def find_order_header(session: Session, order_id: int) -> Optional[OrderHeader]:
    """Find one order's to-one fields, or None if the order does not exist."""
    row = _header_query(session).filter(Order.order_id == order_id).first()
    if row is None:
        return None
    return _to_header(row)


@_store_read
def fetch_order_item_rows(session: Session, root_ids: List[int]) -> Dict[int, List[OrderItemRow]]:
    """
    Select line items for many orders in one IN query as OrderItemRow.

    Returns:
        Mapping order_id -> rows in line order, with an entry for every
        requested ID, in request order
    """
    if not root_ids:
        return {}
    rows = (
        session.query(
            OrderItem.order_id,
            Item.name.label("item_name"),
            OrderItem.order_price,
            OrderItem.count,
        )
        .select_from(OrderItem)
        .join(OrderItem.item)
        .filter(OrderItem.order_id.in_(root_ids))
        .order_by(OrderItem.order_id, OrderItem.order_item_id)
        .all()
    )
    item_rows = [
        OrderItemRow(
            order_id=row.order_id,
            item_name=row.item_name,
            order_price=row.order_price,
            count=row.count,
        )
        for row in rows
    ]
    logger.debug(f"fetch_order_item_rows: {len(item_rows)} items for {len(root_ids)} orders")
    return _group_by_root(root_ids, item_rows)


@_store_read
def fetch_flat_join(session: Session, search: Optional[OrderSearch] = None) -> List[FlatRow]:
    """
    Select orders joined all the way down to items as flat rows.

    One row per order item; member, delivery and order fields repeat on
    every row of the same order. Rows are ordered by order_id, then line.
    """
    q = (
        session.query(
            Order.order_id,
            Member.name.label("member_name"),
            Order.order_date,
            Order.status,
            Delivery.city,
            Delivery.street,
            Delivery.zipcode,
            Item.name.label("item_name"),
            OrderItem.order_price,
            OrderItem.count,
        )
        .select_from(Order)
        .join(Order.member)
        .join(Order.delivery)
        .join(Order.order_items)
        .join(OrderItem.item)
    )
    q = _apply_search(q, search, member_joined=True).order_by(Order.order_id, OrderItem.order_item_id)
    flats = [
        FlatRow(
            order_id=row.order_id,
            member_name=row.member_name,
            order_date=row.order_date,
            status=row.status,
            address=Address(row.city, row.street, row.zipcode),
            item_name=row.item_name,
            order_price=row.order_price,
            count=row.count,
        )
        for row in q.all()
    ]
    logger.debug(f"fetch_flat_join: {len(flats)} rows")
    return flats


@_store_read
def find_orders_by_member(session: Session, member_id: int) -> List[Order]:
    """Orders placed by a member (the member holds no collection of its own)."""
    return (
        session.query(Order)
        .filter(Order.member_id == member_id)
        .order_by(Order.order_id)
        .all()
    )
