from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path

import uvicorn

from storefront.catalog.store import ProductCatalog
from storefront.core.config import get_settings
from storefront.core.logging import configure_logging
from storefront.core.security import create_access_token
from storefront.persistence.pg import init_db, session_scope

DEFAULT_CATALOG = [
    {"id": "laptop-dell-xps-13", "name": "Dell XPS 13", "price": 25000000, "stock": 10},
    {"id": "iphone-15-pro", "name": "iPhone 15 Pro", "price": 28000000, "stock": 5},
    {"id": "airpods-pro-2", "name": "AirPods Pro 2", "price": 6000000, "stock": 15},
    {"id": "logitech-mx-master-3s", "name": "Logitech MX Master 3S", "price": 600000, "stock": 8},
    {"id": "anker-usb-c-cable", "name": "Anker USB-C Cable", "price": 250000, "stock": 12},
]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront orders CLI")
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("init-db", help="Create database tables")

    serve = top.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--reload", action="store_true")

    seed = top.add_parser("seed-catalog", help="Insert demo products (skips ids that already exist)")
    seed.add_argument("--file", default=None, help="JSON list of {id, name, price, stock, status?}")

    token = top.add_parser("issue-token", help="Print a bearer token for a principal")
    token.add_argument("principal_id")
    token.add_argument("--role", choices=["customer", "admin", "super_admin"], default="customer")
    token.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds")

    return parser


def _load_catalog(path: str | None) -> list[dict]:
    if not path:
        return DEFAULT_CATALOG
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _seed_catalog(args: argparse.Namespace) -> int:
    init_db()
    products = _load_catalog(args.file)
    created = []
    with session_scope() as session:
        catalog = ProductCatalog(session)
        existing = catalog.find_many([str(p["id"]) for p in products])
        for product in products:
            if str(product["id"]) in existing:
                continue
            snapshot = catalog.add_product(
                name=product["name"],
                price=Decimal(str(product["price"])),
                stock=int(product["stock"]),
                status=product.get("status", "active"),
                product_id=str(product["id"]),
            )
            created.append(snapshot.id)
    print(json.dumps({"created": created, "skipped": len(products) - len(created)}, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _build_parser().parse_args(argv)

    if args.command == "init-db":
        init_db()
        print("ok")
        return 0
    if args.command == "serve":
        settings = get_settings()
        uvicorn.run(
            "storefront.main:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
            log_config=None,
        )
        return 0
    if args.command == "seed-catalog":
        return _seed_catalog(args)
    if args.command == "issue-token":
        print(create_access_token(args.principal_id, args.role, ttl_seconds=args.ttl))
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
