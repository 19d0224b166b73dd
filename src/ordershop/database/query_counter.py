"""Round-trip accounting for fetch strategies.

Counts every statement the engine sends to the database while the counter is
active, so strategy costs can be compared and asserted on.
"""

from typing import List, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..utils.logging import get_logger

logger = get_logger(__name__)


class QueryCounter:
    """
    Context manager that records statements executed on an engine.

    Usage:
        with QueryCounter(engine) as counter:
            fetch_orders(scope, FetchStrategy.BATCHED)
        counter.count  # round-trips issued
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.statements: List[str] = []
        self._active = False

    @property
    def count(self) -> int:
        return len(self.statements)

    def reset(self) -> None:
        self.statements.clear()

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)
        logger.debug(f"SQL #{len(self.statements)}: {' '.join(statement.split())}")

    def start(self) -> "QueryCounter":
        if not self._active:
            event.listen(self.engine, "before_cursor_execute", self._before_cursor_execute)
            self._active = True
        return self

    def stop(self) -> None:
        if self._active:
            event.remove(self.engine, "before_cursor_execute", self._before_cursor_execute)
            self._active = False

    def __enter__(self) -> "QueryCounter":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.stop()
        return None
