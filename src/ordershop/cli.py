"""CLI entrypoint for ordershop."""

import argparse
import json
import sys
from pathlib import Path

from ordershop.api.orders_api import (
    export_orders_json,
    get_order_detail,
    list_simple_orders,
    to_wire,
)
from ordershop.config.loader import (
    get_fetch_settings,
    get_sqlite_path,
    load_config_or_defaults,
)
from ordershop.database.query_counter import QueryCounter
from ordershop.database.sqlite_client import session_context
from ordershop.errors import OrderFetchError
from ordershop.fetch.strategies import SIMPLE_STRATEGIES, FetchStrategy
from ordershop.runners.seed_demo import main as seed_demo_main
from ordershop.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def _load(args: argparse.Namespace):
    config = load_config_or_defaults(Path(args.config) if args.config else None)
    return config, get_fetch_settings(config)


def _report_queries(counter: QueryCounter) -> None:
    print(f"[ordershop] {counter.count} statements issued", file=sys.stderr)
    for i, statement in enumerate(counter.statements, 1):
        print(f"  #{i}: {' '.join(statement.split())}", file=sys.stderr)


def cmd_seed(args: argparse.Namespace) -> None:
    seed_demo_main(Path(args.config) if args.config else None)


def cmd_orders(args: argparse.Namespace) -> None:
    config, settings = _load(args)
    with session_context(get_sqlite_path(config)) as session:
        with QueryCounter(session.get_bind()) as counter:
            output = export_orders_json(
                session,
                strategy=args.strategy,
                member_name=args.member_name,
                status=args.status,
                offset=args.offset,
                limit=args.limit,
                settings=settings,
                batch_size=args.batch_size,
                out=Path(args.out) if args.out else None,
            )
    print(output)
    if args.show_queries:
        _report_queries(counter)


def cmd_simple_orders(args: argparse.Namespace) -> None:
    config, settings = _load(args)
    with session_context(get_sqlite_path(config)) as session:
        with QueryCounter(session.get_bind()) as counter:
            orders = list_simple_orders(
                session,
                strategy=args.strategy,
                member_name=args.member_name,
                status=args.status,
                offset=args.offset,
                limit=args.limit,
                settings=settings,
            )
    print(json.dumps(to_wire(orders), indent=2, ensure_ascii=False))
    if args.show_queries:
        _report_queries(counter)


def cmd_order(args: argparse.Namespace) -> None:
    config, _ = _load(args)
    with session_context(get_sqlite_path(config)) as session:
        order = get_order_detail(session, args.order_id)
    if order is None:
        logger.error(f"Order not found: {args.order_id}")
        sys.exit(1)
    print(json.dumps(order.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--member-name",
        type=str,
        default=None,
        help="Only orders whose member name contains this text",
    )
    parser.add_argument(
        "--status",
        type=str,
        default=None,
        help="Only orders with this status (ORDERED or CANCELED)",
    )
    parser.add_argument(
        "--offset",
        type=int,
        default=None,
        help="Page offset (not allowed for collection_join and flat)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Page size (not allowed for collection_join and flat)",
    )
    parser.add_argument(
        "--show-queries",
        action="store_true",
        help="Print the SQL statements issued to stderr",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Order read backend with selectable fetch strategies")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: ordershop.config.yaml if present)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # seed command
    seed_parser = subparsers.add_parser("seed", help="Create the schema and load demo data")
    seed_parser.set_defaults(func=cmd_seed)

    # orders command
    orders_parser = subparsers.add_parser("orders", help="List orders with their items")
    orders_parser.add_argument(
        "--strategy",
        type=str,
        choices=[s.value for s in FetchStrategy],
        default=FetchStrategy.DTO_IN_QUERY.value,
        help="Fetch strategy (default: dto_in_query)",
    )
    orders_parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Child batch size for the batched strategy (default: from config)",
    )
    orders_parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Write the JSON export to this file instead of stdout",
    )
    _add_filter_args(orders_parser)
    orders_parser.set_defaults(func=cmd_orders)

    # simple-orders command
    simple_parser = subparsers.add_parser("simple-orders", help="List orders without items")
    simple_parser.add_argument(
        "--strategy",
        type=str,
        choices=sorted(s.value for s in SIMPLE_STRATEGIES),
        default=FetchStrategy.DTO_IN_QUERY.value,
        help="Fetch strategy (default: dto_in_query)",
    )
    _add_filter_args(simple_parser)
    simple_parser.set_defaults(func=cmd_simple_orders)

    # order command
    order_parser = subparsers.add_parser("order", help="Show one order with its items")
    order_parser.add_argument("order_id", type=int, help="Order ID")
    order_parser.set_defaults(func=cmd_order)

    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    config = load_config_or_defaults(Path(args.config) if args.config else None)
    setup_logging(config.get("logging", {}).get("level", "INFO"))

    try:
        args.func(args)
    except (OrderFetchError, ValueError) as e:
        logger.error(f"Error running command '{args.command}': {e}")
        sys.exit(2)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
