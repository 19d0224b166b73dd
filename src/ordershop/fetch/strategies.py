"""Fetch strategy selector.

Every strategy returns the same projections (orders by id, items in line
order); they differ only in how many statements they send and how much
duplicate data comes back:

    entity_graph     1 root query, then a lazy load per touched edge (N+1)
    to_one_join      member/delivery joined; items lazy per order
    collection_join  one query joining items; cannot paginate, deduplicates
    batched          member/delivery joined; items via IN batches,
                     1 + ceil(orders / batch_size) statements
    dto_in_query     header DTO query + one IN query for all items (1 + 1)
    flat             one wide join, regrouped in memory; cannot paginate

Paging arguments are validated before the first statement is issued.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from ..config.loader import FetchSettings
from ..database import order_repo
from ..database.entity_graph import order_items_to_nodes, order_to_node
from ..domain import OrderSearch
from ..errors import InvalidPagingRequest, UnsupportedStrategy
from ..utils.logging import get_logger
from .batch_loader import BatchedCollectionLoader
from .edges import StoreScope
from .order_models import OrderItemRow, OrderProjection, SimpleOrderProjection
from .projection import (
    project_header,
    project_orders,
    project_simple_header,
    project_simple_order,
)
from .regroup import regroup_flat_rows

logger = get_logger(__name__)


class FetchStrategy(str, Enum):
    ENTITY_GRAPH = "entity_graph"
    TO_ONE_JOIN = "to_one_join"
    COLLECTION_JOIN = "collection_join"
    BATCHED = "batched"
    DTO_IN_QUERY = "dto_in_query"
    FLAT = "flat"


PAGINATING_STRATEGIES = frozenset({
    FetchStrategy.ENTITY_GRAPH,
    FetchStrategy.TO_ONE_JOIN,
    FetchStrategy.BATCHED,
    FetchStrategy.DTO_IN_QUERY,
})

SIMPLE_STRATEGIES = frozenset({
    FetchStrategy.ENTITY_GRAPH,
    FetchStrategy.TO_ONE_JOIN,
    FetchStrategy.DTO_IN_QUERY,
})


@dataclass(frozen=True)
class PageRequest:
    offset: int
    limit: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_strategy(strategy: Union[FetchStrategy, str]) -> FetchStrategy:
    try:
        return FetchStrategy(strategy)
    except ValueError:
        choices = ", ".join(s.value for s in FetchStrategy)
        raise UnsupportedStrategy(f"Unknown fetch strategy '{strategy}' (choose from: {choices})") from None


def resolve_page(
    strategy: FetchStrategy,
    offset: Optional[int],
    limit: Optional[int],
    settings: FetchSettings,
) -> Optional[PageRequest]:
    """
    Validate paging arguments for a strategy.

    Returns:
        None when neither offset nor limit is given, else the effective page
        (missing offset = 0, missing limit = settings.default_limit)

    Raises:
        InvalidPagingRequest: paging on a strategy that joins the collection,
            a negative offset, a non-positive limit, or a limit above the
            IN-clause ceiling
    """
    if offset is None and limit is None:
        return None
    if strategy not in PAGINATING_STRATEGIES:
        raise InvalidPagingRequest(
            f"Strategy '{strategy.value}' cannot paginate: joining order_items "
            f"multiplies order rows"
        )

    offset = 0 if offset is None else offset
    limit = settings.default_limit if limit is None else limit
    if not _is_int(offset) or offset < 0:
        raise InvalidPagingRequest(f"offset must be a non-negative integer, got {offset!r}")
    if not _is_int(limit) or limit < 1:
        raise InvalidPagingRequest(f"limit must be a positive integer, got {limit!r}")
    if limit > settings.max_in_clause_params:
        raise InvalidPagingRequest(
            f"limit {limit} exceeds the IN-clause ceiling of {settings.max_in_clause_params}"
        )
    return PageRequest(offset=offset, limit=limit)


def _page_args(page: Optional[PageRequest]) -> Tuple[Optional[int], Optional[int]]:
    if page is None:
        return None, None
    return page.offset, page.limit


def _chunks(ids: Sequence[int], size: int) -> Iterator[List[int]]:
    for start in range(0, len(ids), size):
        yield list(ids[start:start + size])


def _to_one_roots(scope: StoreScope, search: Optional[OrderSearch], page: Optional[PageRequest]):
    if page is None:
        return order_repo.fetch_roots_with_to_one(scope.session, search)
    return order_repo.fetch_roots_paged(scope.session, search, page.offset, page.limit)


def fetch_orders_entity_graph(
    scope: StoreScope,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[OrderProjection]:
    """Plain root query; every association resolves lazily inside the scope."""
    settings = settings or FetchSettings()
    page = resolve_page(FetchStrategy.ENTITY_GRAPH, offset, limit, settings)
    orders = order_repo.fetch_roots(scope.session, search, *_page_args(page))
    return project_orders([order_to_node(order) for order in orders], scope)


def fetch_orders_to_one_join(
    scope: StoreScope,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[OrderProjection]:
    """Member and delivery joined into the root query; items load per order."""
    settings = settings or FetchSettings()
    page = resolve_page(FetchStrategy.TO_ONE_JOIN, offset, limit, settings)
    orders = _to_one_roots(scope, search, page)
    return project_orders([order_to_node(order) for order in orders], scope)


def fetch_orders_collection_join(
    scope: StoreScope,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[OrderProjection]:
    """Everything in one joined query; orders deduplicated by id, first seen wins."""
    settings = settings or FetchSettings()
    resolve_page(FetchStrategy.COLLECTION_JOIN, offset, limit, settings)
    orders = order_repo.fetch_roots_with_to_one_and_collection(scope.session, search)

    seen = set()
    distinct = []
    for order in orders:
        if order.order_id not in seen:
            seen.add(order.order_id)
            distinct.append(order)
    if len(distinct) != len(orders):
        logger.debug(f"collection_join: dropped {len(orders) - len(distinct)} duplicate order rows")
    return project_orders([order_to_node(order) for order in distinct], scope)


def fetch_orders_batched(
    scope: StoreScope,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
    batch_size: Optional[int] = None,
) -> List[OrderProjection]:
    """
    Member and delivery joined; items loaded in IN batches of batch_size.

    Args:
        scope: Open store scope
        search: Optional root filter
        offset: Page offset (optional)
        limit: Page size (optional)
        settings: Fetch settings; batch_size defaults from here
        batch_size: Per-call override of settings.batch_size

    Returns:
        Order projections; 1 + ceil(orders / batch_size) statements issued
    """
    settings = settings or FetchSettings()
    page = resolve_page(FetchStrategy.BATCHED, offset, limit, settings)
    batch_size = settings.batch_size if batch_size is None else batch_size
    if not _is_int(batch_size) or batch_size < 1 or batch_size > settings.max_in_clause_params:
        raise InvalidPagingRequest(
            f"batch_size must be between 1 and {settings.max_in_clause_params}, got {batch_size!r}"
        )

    orders = _to_one_roots(scope, search, page)
    loader = BatchedCollectionLoader(
        [order.order_id for order in orders],
        batch_size,
        order_repo.fetch_children_by_root_ids,
        convert=order_items_to_nodes,
    )
    nodes = [order_to_node(order, order_items=loader.edge_for(order.order_id)) for order in orders]
    projections = project_orders(nodes, scope)
    logger.debug(f"batched: {len(orders)} orders, {loader.batches_loaded} child batches")
    return projections


def fetch_orders_dto(
    scope: StoreScope,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[OrderProjection]:
    """
    Header DTO query, then all items for the returned ids in one IN query.

    Unpaged result sets larger than the IN ceiling are split into several
    item queries of at most max_in_clause_params ids each.
    """
    settings = settings or FetchSettings()
    page = resolve_page(FetchStrategy.DTO_IN_QUERY, offset, limit, settings)
    headers = order_repo.fetch_order_headers(scope.session, search, *_page_args(page))

    items_by_order: Dict[int, List[OrderItemRow]] = {}
    for chunk in _chunks([header.order_id for header in headers], settings.max_in_clause_params):
        items_by_order.update(order_repo.fetch_order_item_rows(scope.session, chunk))
    return [project_header(header, items_by_order.get(header.order_id, [])) for header in headers]


def fetch_orders_flat(
    scope: StoreScope,
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[OrderProjection]:
    """One wide join; the duplicated flat rows are regrouped in memory."""
    settings = settings or FetchSettings()
    resolve_page(FetchStrategy.FLAT, offset, limit, settings)
    rows = order_repo.fetch_flat_join(scope.session, search)
    return regroup_flat_rows(rows)


STRATEGY_OPERATIONS: Dict[FetchStrategy, Callable[..., List[OrderProjection]]] = {
    FetchStrategy.ENTITY_GRAPH: fetch_orders_entity_graph,
    FetchStrategy.TO_ONE_JOIN: fetch_orders_to_one_join,
    FetchStrategy.COLLECTION_JOIN: fetch_orders_collection_join,
    FetchStrategy.BATCHED: fetch_orders_batched,
    FetchStrategy.DTO_IN_QUERY: fetch_orders_dto,
    FetchStrategy.FLAT: fetch_orders_flat,
}


def fetch_orders(
    scope: StoreScope,
    strategy: Union[FetchStrategy, str],
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
    batch_size: Optional[int] = None,
) -> List[OrderProjection]:
    """Run one named strategy. batch_size is accepted for 'batched' only."""
    strategy = parse_strategy(strategy)
    logger.debug(f"Fetching orders: strategy={strategy.value} offset={offset} limit={limit}")
    if strategy is FetchStrategy.BATCHED:
        return fetch_orders_batched(scope, search, offset, limit, settings, batch_size=batch_size)
    if batch_size is not None:
        raise UnsupportedStrategy(f"batch_size only applies to '{FetchStrategy.BATCHED.value}'")
    return STRATEGY_OPERATIONS[strategy](scope, search, offset, limit, settings)


def fetch_simple_orders(
    scope: StoreScope,
    strategy: Union[FetchStrategy, str],
    search: Optional[OrderSearch] = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    settings: Optional[FetchSettings] = None,
) -> List[SimpleOrderProjection]:
    """
    Orders with member name and delivery address only (no items).

    Supports entity_graph (lazy to-one loads), to_one_join (one statement)
    and dto_in_query (one column query).
    """
    strategy = parse_strategy(strategy)
    if strategy not in SIMPLE_STRATEGIES:
        raise UnsupportedStrategy(f"Strategy '{strategy.value}' does not serve simple orders")
    settings = settings or FetchSettings()
    page = resolve_page(strategy, offset, limit, settings)

    if strategy is FetchStrategy.DTO_IN_QUERY:
        headers = order_repo.fetch_order_headers(scope.session, search, *_page_args(page))
        return [project_simple_header(header) for header in headers]
    if strategy is FetchStrategy.ENTITY_GRAPH:
        orders = order_repo.fetch_roots(scope.session, search, *_page_args(page))
    else:
        orders = _to_one_roots(scope, search, page)
    return [project_simple_order(order_to_node(order), scope) for order in orders]


def fetch_order_detail(scope: StoreScope, order_id: int) -> Optional[OrderProjection]:
    """One order through the DTO path: header query plus one item query."""
    header = order_repo.find_order_header(scope.session, order_id)
    if header is None:
        return None
    items = order_repo.fetch_order_item_rows(scope.session, [order_id])
    return project_header(header, items.get(order_id, []))
