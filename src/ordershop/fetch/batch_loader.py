"""Batched association loading for deferred child collections.

Root ids are split, in root order, into fixed chunks of ``batch_size``.
The first time any root's collection is resolved, its whole chunk is
loaded with a single IN query, so N roots cost ceil(N / batch_size)
child queries instead of N.

Batch size only trades query count against IN-list width. Every matching
child row is loaded whatever its value, so it saves no memory and never
changes the result.
"""

from typing import Callable, Dict, List, Sequence, TypeVar

from ..utils.logging import get_logger
from .edges import Pending, StoreScope

logger = get_logger(__name__)

T = TypeVar("T")

# (session, root_ids) -> {root_id: children}
ChildFetcher = Callable[..., Dict[int, List[T]]]


class BatchedCollectionLoader:
    """Serves Pending collection edges for a known, ordered set of roots."""

    def __init__(
        self,
        root_ids: Sequence[int],
        batch_size: int,
        fetch_children: ChildFetcher,
        convert: Callable[[List], List[T]] = list,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        # dict.fromkeys keeps first-seen order and drops repeated roots
        self._root_ids: List[int] = list(dict.fromkeys(root_ids))
        self._positions = {root_id: i for i, root_id in enumerate(self._root_ids)}
        self.batch_size = batch_size
        self._fetch_children = fetch_children
        self._convert = convert
        self._loaded: Dict[int, List[T]] = {}
        self.batches_loaded = 0

    @property
    def expected_batches(self) -> int:
        return -(-len(self._root_ids) // self.batch_size)

    def edge_for(self, root_id: int, label: str = "") -> Pending:
        if root_id not in self._positions:
            raise KeyError(f"Root {root_id} is not managed by this loader")
        return Pending(lambda scope: self.load(scope, root_id), label or f"order[{root_id}].order_items")

    def load(self, scope: StoreScope, root_id: int) -> List[T]:
        if root_id not in self._loaded:
            self._load_chunk(scope, self._positions[root_id] // self.batch_size)
        return self._loaded[root_id]

    def _load_chunk(self, scope: StoreScope, chunk_index: int) -> None:
        start = chunk_index * self.batch_size
        chunk = self._root_ids[start:start + self.batch_size]
        children = self._fetch_children(scope.session, chunk)
        for root_id in chunk:
            self._loaded[root_id] = self._convert(children.get(root_id, []))
        self.batches_loaded += 1
        logger.debug(
            f"Loaded child batch {chunk_index + 1}/{self.expected_batches} "
            f"({len(chunk)} roots, batch_size={self.batch_size})"
        )
