"""Order read models.

Graph nodes carry explicit edges for strategies that walk entities; row
types carry DTO-query results; the pydantic projections are the wire shape
every strategy returns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain import Address, OrderStatus
from .edges import Edge


@dataclass
class OrderItemNode:
    order_item_id: int
    order_price: int
    count: int
    item: Edge  # resolves to an object with a ``name``


@dataclass
class OrderNode:
    order_id: int
    order_date: datetime
    status: OrderStatus
    member: Edge  # resolves to an object with a ``name``
    delivery: Edge  # resolves to an object with an ``address``
    order_items: Edge  # resolves to List[OrderItemNode]


@dataclass(frozen=True)
class OrderHeader:
    """To-one fields of an order, selected directly as columns."""
    order_id: int
    member_name: str
    order_date: datetime
    status: OrderStatus
    address: Address


@dataclass(frozen=True)
class OrderItemRow:
    order_id: int
    item_name: str
    order_price: int
    count: int


@dataclass(frozen=True)
class FlatRow:
    """One (order, order item) pair of the wide join; to-one fields repeat."""
    order_id: int
    member_name: str
    order_date: datetime
    status: OrderStatus
    address: Address
    item_name: str
    order_price: int
    count: int

    def root_key(self) -> tuple:
        return (self.order_id, self.member_name, self.order_date, self.status, self.address)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AddressView(_WireModel):
    city: Optional[str] = None
    street: Optional[str] = None
    zipcode: Optional[str] = None

    @classmethod
    def from_address(cls, address: Address) -> "AddressView":
        return cls(city=address.city, street=address.street, zipcode=address.zipcode)


class OrderItemProjection(_WireModel):
    item_name: str
    order_price: int
    count: int


class SimpleOrderProjection(_WireModel):
    """Order with its to-one fields only."""
    order_id: int
    member_name: str
    order_date: datetime
    status: OrderStatus
    address: AddressView


class OrderProjection(SimpleOrderProjection):
    """Order with its to-one fields and line items in line order."""
    order_items: List[OrderItemProjection] = Field(default_factory=list)
