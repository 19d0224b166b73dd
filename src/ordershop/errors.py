"""Error kinds raised by the fetch core.

All of them propagate to the caller; none is recovered inside the core.
"""


class OrderFetchError(Exception):
    """Base class for every failure surfaced by an order read."""


class UnresolvedLazyAccess(OrderFetchError):
    """A deferred to-one or to-many edge was needed after its store scope closed."""

    def __init__(self, edge: str, detail: str = "store scope is not open"):
        self.edge = edge
        super().__init__(f"Cannot resolve '{edge}': {detail}")


class InvalidPagingRequest(OrderFetchError, ValueError):
    """Paging arguments rejected before any store access."""


class StoreAccessFailure(OrderFetchError):
    """The backing store failed a read."""


class InconsistentFlatGroup(OrderFetchError):
    """Flat rows of one order disagree on a to-one field."""

    def __init__(self, order_id: int, first_key: tuple, conflicting_key: tuple):
        self.order_id = order_id
        self.first_key = first_key
        self.conflicting_key = conflicting_key
        super().__init__(
            f"Flat rows for order {order_id} disagree on to-one fields: "
            f"{first_key!r} vs {conflicting_key!r}"
        )


class UnsupportedStrategy(OrderFetchError, ValueError):
    """The requested strategy is not offered by this operation."""
