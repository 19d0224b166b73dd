"""Explicit edge states and the store scope that resolves them.

An association edge is either ``Resolved(value)`` or ``Pending(loader)``.
Pending edges are only resolved through an open ``StoreScope``; once the
scope closes, resolution fails with ``UnresolvedLazyAccess``.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generator, Optional, Union

from ..errors import StoreAccessFailure, UnresolvedLazyAccess

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


@dataclass(frozen=True)
class Resolved:
    value: Any


@dataclass(frozen=True)
class Pending:
    loader: Callable[["StoreScope"], Any]
    label: str = ""


Edge = Union[Resolved, Pending]


class StoreScope:
    """Handle on an open store session for the duration of one read."""

    def __init__(self, session: "Session"):
        self._session = session
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def session(self) -> "Session":
        if not self._open:
            raise StoreAccessFailure("Store scope is closed")
        return self._session

    def close(self) -> None:
        self._open = False


@contextmanager
def open_scope(session: "Session") -> Generator[StoreScope, None, None]:
    """Open a scope on a caller-owned session; the session itself stays open."""
    scope = StoreScope(session)
    try:
        yield scope
    finally:
        scope.close()


def resolve(edge: Edge, scope: Optional[StoreScope], name: str) -> Any:
    """Return the edge's value, loading it through ``scope`` if still pending."""
    if isinstance(edge, Resolved):
        return edge.value
    if isinstance(edge, Pending):
        if scope is None or not scope.is_open:
            raise UnresolvedLazyAccess(edge.label or name)
        return edge.loader(scope)
    raise TypeError(f"Unknown edge state for '{name}': {edge!r}")
