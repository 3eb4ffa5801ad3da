#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json

import requests


def main() -> None:
    parser = argparse.ArgumentParser(description="Place (and optionally cancel) a demo order")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--token", required=True, help="Bearer token, see `storefront issue-token`")
    parser.add_argument("--product-id", default="logitech-mx-master-3s")
    parser.add_argument("--quantity", type=int, default=2)
    parser.add_argument("--cancel", action="store_true", help="Cancel the order right after placing it")
    args = parser.parse_args()

    headers = {"Authorization": f"Bearer {args.token}"}
    body = {
        "items": [{"product_id": args.product_id, "quantity": args.quantity}],
        "payment_method": "cash",
        "shipping_address": {
            "first_name": "Lan",
            "last_name": "Nguyen",
            "street": "12 Nguyen Hue",
            "city": "Ho Chi Minh",
            "state": "HCM",
            "zip_code": "700000",
            "phone": "0901234567",
        },
    }
    resp = requests.post(f"{args.base_url}/api/orders", json=body, headers=headers, timeout=30)
    resp.raise_for_status()
    order = resp.json()["order"]
    print(json.dumps(order, indent=2, ensure_ascii=False))

    if args.cancel:
        resp = requests.put(
            f"{args.base_url}/api/orders/{order['id']}/cancel",
            json={"reason": "demo cancellation"},
            headers=headers,
            timeout=30,
        )
        resp.raise_for_status()
        print(json.dumps(resp.json(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
