from __future__ import annotations

import argparse
import json
from typing import Any

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.demo import seed_demo_catalog
from app.domain.errors import OrderingError
from app.domain.ordering import OrderingService
from app.persistence.pg import init_db, session_scope


def _print(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Order Management CLI")
    top = parser.add_subparsers(dest="command", required=True)

    serve = top.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--reload", action="store_true")

    top.add_parser("seed", help="Replace the catalog with the demo products")

    products = top.add_parser("products", help="Product operations")
    products_sub = products.add_subparsers(dest="products_command", required=True)
    products_sub.add_parser("list", help="List all products")

    orders = top.add_parser("orders", help="Order operations")
    orders_sub = orders.add_subparsers(dest="orders_command", required=True)
    status = orders_sub.add_parser("status", help="Show order status and delivery estimate")
    status.add_argument("order_id")
    history = orders_sub.add_parser("history", help="Show the status audit trail of an order")
    history.add_argument("order_id")
    cancel = orders_sub.add_parser("cancel", help="Cancel an order and release its stock")
    cancel.add_argument("order_id")

    return parser


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=bool(args.reload),
    )
    return 0


def _run_with_service(args: argparse.Namespace) -> int:
    init_db()
    try:
        with session_scope() as session:
            service = OrderingService.for_session(session)
            if args.command == "seed":
                _print({"created": seed_demo_catalog(service.products)})
            elif args.command == "products":
                _print(service.list_products())
            elif args.orders_command == "status":
                _print(service.get_order_status(args.order_id))
            elif args.orders_command == "history":
                _print(service.get_status_history(args.order_id))
            else:
                _print(service.cancel_order(args.order_id))
    except OrderingError as exc:
        _print(exc.to_payload())
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return _serve(args)
    if args.command in {"seed", "products", "orders"}:
        return _run_with_service(args)

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
