from sqlalchemy import (
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.orm import composite, declarative_base, relationship

from ..domain import Address, DeliveryStatus, OrderStatus

Base = declarative_base()


class Member(Base):
    """Shop member. Orders are looked up by member_id, never stored here."""
    __tablename__ = "member"

    member_id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    city = Column(String)
    street = Column(String)
    zipcode = Column(String)

    address = composite(Address, city, street, zipcode)


class Delivery(Base):
    __tablename__ = "delivery"

    delivery_id = Column(Integer, primary_key=True)
    city = Column(String)
    street = Column(String)
    zipcode = Column(String)
    status = Column(SQLEnum(DeliveryStatus), nullable=False, default=DeliveryStatus.READY)

    address = composite(Address, city, street, zipcode)


class Item(Base):
    """Catalog item; subtypes share the table and are told apart by dtype."""
    __tablename__ = "item"

    item_id = Column(Integer, primary_key=True)
    dtype = Column(String(31), nullable=False)
    name = Column(String, nullable=False)
    price = Column(Integer, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)

    __mapper_args__ = {
        "polymorphic_on": dtype,
        "polymorphic_identity": "I",
    }


class Book(Item):
    author = Column(String)
    isbn = Column(String)

    __mapper_args__ = {"polymorphic_identity": "B"}


class Album(Item):
    artist = Column(String)
    etc = Column(String)

    __mapper_args__ = {"polymorphic_identity": "A"}


class Movie(Item):
    director = Column(String)
    actor = Column(String)

    __mapper_args__ = {"polymorphic_identity": "M"}


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("member.member_id"), nullable=False, index=True)
    delivery_id = Column(Integer, ForeignKey("delivery.delivery_id"), nullable=False, unique=True)
    order_date = Column(DateTime, nullable=False)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.ORDERED)

    # All edges lazy; each fetch strategy decides how they get loaded.
    member = relationship(Member, lazy="select")
    delivery = relationship(Delivery, lazy="select", single_parent=True, cascade="all, delete-orphan")
    order_items = relationship(
        "OrderItem",
        lazy="select",
        order_by="OrderItem.order_item_id",
        cascade="all, delete-orphan",
        back_populates="order",
    )


class OrderItem(Base):
    __tablename__ = "order_item"

    order_item_id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.order_id"), nullable=False)
    item_id = Column(Integer, ForeignKey("item.item_id"), nullable=False)
    order_price = Column(Integer, nullable=False)  # line price = item price * count
    count = Column(Integer, nullable=False)

    order = relationship(Order, lazy="select", back_populates="order_items")
    item = relationship(Item, lazy="select")

    __table_args__ = (
        Index("idx_order_item_order_line", "order_id", "order_item_id"),
    )


def create_all(engine_url: str) -> None:
    engine = create_engine(engine_url)
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()
