"""Value objects and enumerations shared by the store and the projections."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    """Order status enumeration"""
    ORDERED = "ORDERED"
    CANCELED = "CANCELED"


class DeliveryStatus(str, Enum):
    """Delivery status enumeration"""
    READY = "READY"
    COMP = "COMP"


@dataclass(frozen=True)
class Address:
    """Immutable address, embedded by value wherever it appears."""
    city: Optional[str]
    street: Optional[str]
    zipcode: Optional[str]

    def __composite_values__(self):
        return self.city, self.street, self.zipcode


@dataclass(frozen=True)
class OrderSearch:
    """Optional root filter shared by every strategy's root query."""
    member_name: Optional[str] = None
    order_status: Optional[OrderStatus] = None

    @property
    def is_empty(self) -> bool:
        return not self.member_name and self.order_status is None
