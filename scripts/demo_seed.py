#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json

import requests


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the demo product catalog and place a sample order")
    parser.add_argument("--base-url", default="http://localhost:3000")
    parser.add_argument("--customer-id", type=int, default=None, help="also place a one-item order for this customer")
    args = parser.parse_args()

    resp = requests.post(f"{args.base_url}/v1/seed", timeout=60)
    resp.raise_for_status()
    data = resp.json()

    if args.customer_id is not None and data["created"]:
        first = data["created"][0]
        order = requests.post(
            f"{args.base_url}/v1/orders",
            json={
                "customer_id": args.customer_id,
                "items": [{"product_id": first["id"], "quantity": 1}],
                "shipping_address": "demo address",
            },
            timeout=60,
        )
        order.raise_for_status()
        data["order"] = order.json()

    print(json.dumps(data, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
