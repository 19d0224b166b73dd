"""Tests for the fetch strategy selector."""

import math

import pytest

from ordershop.api.orders_api import to_wire
from ordershop.config.loader import FetchSettings
from ordershop.database.query_counter import QueryCounter
from ordershop.domain import OrderSearch, OrderStatus
from ordershop.errors import InvalidPagingRequest, UnsupportedStrategy
from ordershop.fetch.edges import open_scope
from ordershop.fetch.strategies import (
    FetchStrategy,
    PAGINATING_STRATEGIES,
    fetch_order_detail,
    fetch_orders,
    fetch_orders_batched,
    fetch_orders_collection_join,
    fetch_orders_dto,
    fetch_orders_flat,
    fetch_simple_orders,
    resolve_page,
)

ALL_STRATEGIES = list(FetchStrategy)
EXPECTED_LINE_COUNTS = [2, 1, 3, 2, 1]


def _fetch(session, strategy, **kwargs):
    with open_scope(session) as scope:
        return fetch_orders(scope, strategy, **kwargs)


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_every_strategy_returns_same_projections(seeded_session, strategy):
    """All strategies agree field for field with the DTO strategy."""
    reference = to_wire(_fetch(seeded_session, FetchStrategy.DTO_IN_QUERY))
    result = to_wire(_fetch(seeded_session, strategy))

    assert result == reference
    assert [len(order["orderItems"]) for order in result] == EXPECTED_LINE_COUNTS


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_strategies_agree_in_fresh_sessions(seeded_engine, strategy):
    """Same result when each strategy starts from an empty identity map."""
    from sqlalchemy.orm import sessionmaker

    SessionLocal = sessionmaker(bind=seeded_engine, autoflush=False)
    with SessionLocal() as reference_session:
        reference = to_wire(_fetch(reference_session, FetchStrategy.FLAT))
    with SessionLocal() as session:
        assert to_wire(_fetch(session, strategy)) == reference


def test_projection_content_for_known_order(seeded_session):
    orders = _fetch(seeded_session, FetchStrategy.BATCHED)
    third = orders[2]

    assert third.member_name == "park"
    assert third.status == OrderStatus.ORDERED
    assert third.address.city == "Daegu"  # delivery address, not the member's
    assert [(i.item_name, i.order_price, i.count) for i in third.order_items] == [
        ("BOOK-4", 12000, 3),
        ("BOOK-1", 1000, 1),
        ("BOOK-5", 10000, 2),
    ]


def test_orders_sorted_by_id(seeded_session):
    for strategy in ALL_STRATEGIES:
        ids = [o.order_id for o in _fetch(seeded_session, strategy)]
        assert ids == sorted(ids)


@pytest.mark.parametrize("batch_size", [1, 2, 3, 5, 100])
def test_batched_round_trips(seeded_session, batch_size):
    """1 root query + ceil(orders / batch_size) child queries, whatever the line count."""
    with QueryCounter(seeded_session.get_bind()) as counter:
        with open_scope(seeded_session) as scope:
            orders = fetch_orders_batched(scope, batch_size=batch_size)

    assert len(orders) == 5
    assert counter.count == 1 + math.ceil(5 / batch_size)


def test_batched_uses_configured_batch_size(seeded_session):
    settings = FetchSettings(batch_size=2)
    with QueryCounter(seeded_session.get_bind()) as counter:
        _fetch(seeded_session, FetchStrategy.BATCHED, settings=settings)
    assert counter.count == 1 + 3


def test_batched_paged_round_trips(seeded_session):
    with QueryCounter(seeded_session.get_bind()) as counter:
        orders = _fetch(seeded_session, FetchStrategy.BATCHED, offset=1, limit=3, batch_size=2)
    assert len(orders) == 3
    assert counter.count == 1 + 2


def test_dto_strategy_uses_two_round_trips(seeded_session):
    with QueryCounter(seeded_session.get_bind()) as counter:
        orders = _fetch(seeded_session, FetchStrategy.DTO_IN_QUERY)
    assert len(orders) == 5
    assert counter.count == 2


def test_dto_strategy_chunks_ids_above_in_ceiling(seeded_session):
    settings = FetchSettings(batch_size=2, max_in_clause_params=2, default_limit=2)
    with QueryCounter(seeded_session.get_bind()) as counter:
        with open_scope(seeded_session) as scope:
            orders = fetch_orders_dto(scope, settings=settings)
    assert [len(o.order_items) for o in orders] == EXPECTED_LINE_COUNTS
    assert counter.count == 1 + 3


@pytest.mark.parametrize("strategy", [FetchStrategy.COLLECTION_JOIN, FetchStrategy.FLAT])
def test_single_statement_strategies(seeded_session, strategy):
    with QueryCounter(seeded_session.get_bind()) as counter:
        orders = _fetch(seeded_session, strategy)
    assert len(orders) == 5
    assert counter.count == 1


def test_lazy_strategies_cost_more_than_batched(seeded_session, seeded_engine):
    from sqlalchemy.orm import sessionmaker

    SessionLocal = sessionmaker(bind=seeded_engine, autoflush=False)
    counts = {}
    for strategy in (FetchStrategy.ENTITY_GRAPH, FetchStrategy.TO_ONE_JOIN, FetchStrategy.BATCHED):
        with SessionLocal() as session:
            with QueryCounter(seeded_engine) as counter:
                _fetch(session, strategy)
            counts[strategy] = counter.count

    # to_one_join: 1 root query + one collection load per order (+ item loads)
    assert counts[FetchStrategy.TO_ONE_JOIN] >= 1 + 5
    assert counts[FetchStrategy.ENTITY_GRAPH] > counts[FetchStrategy.TO_ONE_JOIN]
    assert counts[FetchStrategy.BATCHED] < counts[FetchStrategy.TO_ONE_JOIN]


def test_collection_join_returns_distinct_orders(seeded_session):
    with open_scope(seeded_session) as scope:
        orders = fetch_orders_collection_join(scope)
    ids = [o.order_id for o in orders]
    assert len(ids) == len(set(ids)) == 5


@pytest.mark.parametrize("strategy", sorted(PAGINATING_STRATEGIES, key=lambda s: s.value))
def test_paging_windows(seeded_session, strategy):
    all_ids = [o.order_id for o in _fetch(seeded_session, strategy)]

    first = _fetch(seeded_session, strategy, offset=0, limit=2)
    second = _fetch(seeded_session, strategy, offset=2, limit=2)
    last = _fetch(seeded_session, strategy, offset=4, limit=2)

    assert [o.order_id for o in first] == all_ids[:2]
    assert [o.order_id for o in second] == all_ids[2:4]
    assert [o.order_id for o in last] == all_ids[4:]
    assert [len(o.order_items) for o in second] == EXPECTED_LINE_COUNTS[2:4]


def test_limit_alone_pages_from_zero(seeded_session):
    orders = _fetch(seeded_session, FetchStrategy.DTO_IN_QUERY, limit=3)
    assert len(orders) == 3


def test_offset_alone_uses_default_limit(seeded_session):
    settings = FetchSettings(default_limit=2)
    orders = _fetch(seeded_session, FetchStrategy.TO_ONE_JOIN, offset=1, settings=settings)
    assert len(orders) == 2


@pytest.mark.parametrize(
    "operation,kwargs",
    [
        (fetch_orders_collection_join, {"offset": 0, "limit": 2}),
        (fetch_orders_collection_join, {"limit": 2}),
        (fetch_orders_flat, {"offset": 0, "limit": 2}),
        (fetch_orders_flat, {"offset": 3}),
    ],
)
def test_paging_rejected_for_non_paginating_strategies(seeded_session, operation, kwargs):
    with QueryCounter(seeded_session.get_bind()) as counter:
        with open_scope(seeded_session) as scope:
            with pytest.raises(InvalidPagingRequest):
                operation(scope, **kwargs)
    assert counter.count == 0


@pytest.mark.parametrize(
    "offset,limit",
    [(0, 0), (0, -5), (-1, 10), (0, 1001), (0, "10"), (True, 10)],
)
def test_invalid_paging_values_rejected_before_store_access(seeded_session, offset, limit):
    with QueryCounter(seeded_session.get_bind()) as counter:
        with pytest.raises(InvalidPagingRequest):
            _fetch(seeded_session, FetchStrategy.DTO_IN_QUERY, offset=offset, limit=limit)
    assert counter.count == 0


def test_resolve_page_respects_configured_ceiling():
    settings = FetchSettings(max_in_clause_params=500)
    assert resolve_page(FetchStrategy.BATCHED, 0, 500, settings).limit == 500
    with pytest.raises(InvalidPagingRequest):
        resolve_page(FetchStrategy.BATCHED, 0, 501, settings)
    assert resolve_page(FetchStrategy.FLAT, None, None, settings) is None


@pytest.mark.parametrize("batch_size", [0, -1, 1001])
def test_batched_rejects_bad_batch_size(seeded_session, batch_size):
    with QueryCounter(seeded_session.get_bind()) as counter:
        with pytest.raises(InvalidPagingRequest):
            _fetch(seeded_session, FetchStrategy.BATCHED, batch_size=batch_size)
    assert counter.count == 0


def test_batch_size_only_for_batched(seeded_session):
    with pytest.raises(UnsupportedStrategy):
        _fetch(seeded_session, FetchStrategy.FLAT, batch_size=10)


def test_unknown_strategy_rejected(seeded_session):
    with pytest.raises(UnsupportedStrategy):
        _fetch(seeded_session, "v7")


def test_strategy_accepts_plain_names(seeded_session):
    assert len(_fetch(seeded_session, "flat")) == 5


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_search_filters_apply_to_every_strategy(seeded_session, strategy):
    search = OrderSearch(member_name="ki")
    orders = _fetch(seeded_session, strategy, search=search)
    assert [o.member_name for o in orders] == ["kim", "kim"]
    assert [len(o.order_items) for o in orders] == [2, 2]


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_status_filter(seeded_session, strategy):
    assert _fetch(seeded_session, strategy, search=OrderSearch(order_status=OrderStatus.CANCELED)) == []
    assert len(_fetch(seeded_session, strategy, search=OrderSearch(order_status=OrderStatus.ORDERED))) == 5


def test_simple_orders_to_one_join_is_one_statement(seeded_session):
    with QueryCounter(seeded_session.get_bind()) as counter:
        with open_scope(seeded_session) as scope:
            orders = fetch_simple_orders(scope, FetchStrategy.TO_ONE_JOIN)
    assert counter.count == 1
    assert [o.member_name for o in orders] == ["kim", "lee", "park", "kim", "lee"]


def test_simple_orders_agree_across_strategies(seeded_session):
    with open_scope(seeded_session) as scope:
        results = [
            to_wire(fetch_simple_orders(scope, strategy))
            for strategy in (FetchStrategy.ENTITY_GRAPH, FetchStrategy.TO_ONE_JOIN, FetchStrategy.DTO_IN_QUERY)
        ]
    assert results[0] == results[1] == results[2]
    assert "orderItems" not in results[0][0]


def test_simple_orders_rejects_collection_strategies(seeded_session):
    with open_scope(seeded_session) as scope:
        with pytest.raises(UnsupportedStrategy):
            fetch_simple_orders(scope, FetchStrategy.FLAT)


def test_order_detail(seeded_session):
    ids = [o.order_id for o in _fetch(seeded_session, FetchStrategy.DTO_IN_QUERY)]
    with QueryCounter(seeded_session.get_bind()) as counter:
        with open_scope(seeded_session) as scope:
            detail = fetch_order_detail(scope, ids[2])
    assert counter.count == 2
    assert detail.member_name == "park"
    assert len(detail.order_items) == 3


def test_order_detail_missing(seeded_session):
    with open_scope(seeded_session) as scope:
        assert fetch_order_detail(scope, 9999) is None


def test_empty_store(session):
    for strategy in ALL_STRATEGIES:
        assert _fetch(session, strategy) == []
