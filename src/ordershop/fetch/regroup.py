"""Collection re-grouping: flat join rows back into orders with items.

Single pass, order preserving, no store access. Roots come out in
first-seen order and each root's items in input row order.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple

from ..errors import InconsistentFlatGroup
from .order_models import FlatRow, OrderHeader, OrderItemRow, OrderProjection
from .projection import project_header


def group_flat_rows(rows: Iterable[FlatRow]) -> List[Tuple[OrderHeader, List[OrderItemRow]]]:
    """
    Group flat rows by their composite root key.

    Args:
        rows: Flat rows, children of one root in line order

    Returns:
        (header, item rows) pairs, one per distinct root, in first-seen order

    Raises:
        InconsistentFlatGroup: two rows of the same order disagree on a
            to-one field (member name, order date, status or address)
    """
    groups: "OrderedDict[tuple, Tuple[OrderHeader, List[OrderItemRow]]]" = OrderedDict()
    key_by_order: Dict[int, tuple] = {}

    for row in rows:
        key = row.root_key()
        known_key = key_by_order.setdefault(row.order_id, key)
        if known_key != key:
            raise InconsistentFlatGroup(row.order_id, known_key, key)

        if key not in groups:
            header = OrderHeader(
                order_id=row.order_id,
                member_name=row.member_name,
                order_date=row.order_date,
                status=row.status,
                address=row.address,
            )
            groups[key] = (header, [])
        groups[key][1].append(
            OrderItemRow(
                order_id=row.order_id,
                item_name=row.item_name,
                order_price=row.order_price,
                count=row.count,
            )
        )

    return list(groups.values())


def regroup_flat_rows(rows: Iterable[FlatRow]) -> List[OrderProjection]:
    """Rebuild order projections from flat rows."""
    return [project_header(header, items) for header, items in group_flat_rows(rows)]
