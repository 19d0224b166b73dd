"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ordershop.database.schema import Base
from ordershop.domain import Address
from ordershop.runners.seed_demo import add_book, add_member, place_order, seed_demo_data


def _memory_engine():
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    return engine


def _seed_five_orders(session) -> None:
    """Five orders over three members; line counts 2, 1, 3, 2, 1 (9 lines)."""
    kim = add_member(session, "kim", Address("Seoul", "Jongno 1", "03000"))
    lee = add_member(session, "lee", Address("Busan", "Haeundae 2", "48000"))
    park = add_member(session, "park", Address("Incheon", "Songdo 3", "21000"))

    books = [
        add_book(session, f"BOOK-{i}", 1000 * i, 100, author=f"author-{i}", isbn=f"isbn-{i}")
        for i in range(1, 6)
    ]

    place_order(session, kim, [(books[0], 1), (books[1], 2)], order_date=datetime(2024, 1, 1, 9, 0))
    place_order(session, lee, [(books[2], 1)], order_date=datetime(2024, 1, 2, 9, 0))
    place_order(
        session,
        park,
        [(books[3], 3), (books[0], 1), (books[4], 2)],
        order_date=datetime(2024, 1, 3, 9, 0),
        address=Address("Daegu", "Suseong 4", "42000"),
    )
    place_order(session, kim, [(books[1], 1), (books[2], 4)], order_date=datetime(2024, 1, 4, 9, 0))
    place_order(session, lee, [(books[4], 5)], order_date=datetime(2024, 1, 5, 9, 0))
    session.commit()


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    engine = _memory_engine()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session(engine):
    """Create a temporary in-memory database session for testing."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_engine(engine):
    """Engine holding the five-order data set, written by a separate session."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    writer = SessionLocal()
    try:
        _seed_five_orders(writer)
    finally:
        writer.close()
    return engine


@pytest.fixture
def seeded_session(seeded_engine):
    """Fresh session (empty identity map) over the five-order data set."""
    SessionLocal = sessionmaker(bind=seeded_engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def demo_session(engine):
    """Fresh session over the two-order demo data set."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    writer = SessionLocal()
    try:
        seed_demo_data(writer)
    finally:
        writer.close()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
