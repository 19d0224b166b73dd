"""Load the demo data set: two members, four books, two orders of two lines."""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ordershop.config.loader import get_sqlite_path, load_config_or_defaults
from ordershop.database.schema import Book, Delivery, Item, Member, Order, OrderItem
from ordershop.database.sqlite_client import session_context
from ordershop.domain import Address, DeliveryStatus, OrderStatus
from ordershop.utils.logging import get_logger

logger = get_logger(__name__)


def add_member(session: Session, name: str, address: Address) -> Member:
    member = Member(name=name, address=address)
    session.add(member)
    return member


def add_book(session: Session, name: str, price: int, stock_quantity: int, author: str = "", isbn: str = "") -> Book:
    book = Book(name=name, price=price, stock_quantity=stock_quantity, author=author, isbn=isbn)
    session.add(book)
    return book


def place_order(
    session: Session,
    member: Member,
    lines: Sequence[Tuple[Item, int]],
    order_date: Optional[datetime] = None,
    address: Optional[Address] = None,
) -> Order:
    """
    Create an order with one line per (item, count), shipping to the
    member's address unless another is given.

    Raises:
        ValueError: If lines is empty, a count is not positive, or an
            item lacks stock
    """
    if not lines:
        raise ValueError("An order needs at least one line")

    order_items: List[OrderItem] = []
    for item, count in lines:
        if count < 1:
            raise ValueError(f"Line count must be positive, got {count} for {item.name}")
        if item.stock_quantity < count:
            raise ValueError(f"Not enough stock for {item.name}: {item.stock_quantity} < {count}")
        item.stock_quantity -= count
        order_items.append(OrderItem(item=item, order_price=item.price * count, count=count))

    order = Order(
        member=member,
        delivery=Delivery(address=address or member.address, status=DeliveryStatus.READY),
        order_date=order_date or datetime.now(),
        status=OrderStatus.ORDERED,
        order_items=order_items,
    )
    session.add(order)
    return order


def seed_demo_data(session: Session) -> Dict[str, int]:
    """
    Insert the demo members, books and orders, then commit.

    Returns:
        Counts of inserted members, items, orders and order items
    """
    user_a = add_member(session, "userA", Address("Seoul", "1", "1111"))
    jpa1 = add_book(session, "JPA1 BOOK", 10000, 100)
    jpa2 = add_book(session, "JPA2 BOOK", 20000, 100)
    place_order(session, user_a, [(jpa1, 1), (jpa2, 2)])

    user_b = add_member(session, "userB", Address("Busan", "2", "2222"))
    spring1 = add_book(session, "SPRING1 BOOK", 20000, 200)
    spring2 = add_book(session, "SPRING2 BOOK", 40000, 300)
    place_order(session, user_b, [(spring1, 3), (spring2, 4)])

    session.commit()
    counts = {"members": 2, "items": 4, "orders": 2, "order_items": 4}
    logger.info(f"Demo data seeded: {counts}")
    return counts


def main(config_path: Optional[Path] = None) -> None:
    """Create the schema (if needed) and seed the demo data."""
    config = load_config_or_defaults(config_path)
    sqlite_path = get_sqlite_path(config)

    with session_context(sqlite_path) as session:
        if session.query(Order).first() is not None:
            logger.warning(f"Database {sqlite_path} already holds orders, skipping seed")
            print(f"Database {sqlite_path} already seeded")
            return
        counts = seed_demo_data(session)

    print(
        f"Seeded {counts['members']} members, {counts['items']} items, "
        f"{counts['orders']} orders ({counts['order_items']} lines) into {sqlite_path}"
    )


if __name__ == "__main__":
    main()
