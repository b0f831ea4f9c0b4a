#!/usr/bin/env python3
"""Demo: send notifications on several channels through the delivery API.

Requires the API to be running:
    python -m notification_api

Usage:
    python scripts/demo.py [--api-url URL] [--phone PHONE] [--email EMAIL]
"""

import argparse
import sys

import httpx


def _print_result(label: str, resp: httpx.Response) -> None:
    body = resp.json()
    if body.get("success"):
        fallback = "  (fallback)" if body.get("fallbackUsed") else ""
        print(
            f"  {label:10s} -> {body['provider']}  messageId={body['messageId']}"
            f"  cost={body['cost']}{fallback}"
        )
    else:
        print(f"  {label:10s} -> ERROR {resp.status_code}: {body.get('error')}")
    for attempt in body.get("attempts", []):
        outcome = "ok" if attempt["success"] else attempt["error"]
        print(f"      #{attempt['attempt']} {attempt['provider']}: {outcome}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Send demo notifications")
    parser.add_argument(
        "--api-url",
        default="http://localhost:8000",
        help="Notification API base URL (default: http://localhost:8000)",
    )
    parser.add_argument("--phone", default="011 1234-5678", help="WhatsApp/SMS recipient")
    parser.add_argument("--email", default="ana@acme.io", help="Email recipient")
    args = parser.parse_args()

    with httpx.Client(base_url=args.api_url, timeout=60.0) as client:
        try:
            resp = client.get("/health")
        except httpx.ConnectError:
            print(f"Cannot connect to {args.api_url}")
            print("Make sure the API is running: python -m notification_api")
            sys.exit(1)

        if resp.status_code != 200:
            print(f"API unhealthy: {resp.text}")
            sys.exit(1)

        print(f"API healthy at {args.api_url}\n")

        print("WhatsApp providers:")
        for provider in client.get("/notifications/whatsapp").json()["providers"]:
            print(
                f"  {provider['name']:20s} {provider['status']:15s}"
                f" cost={provider['cost']}  {provider.get('limitations', '')}"
            )
        print()

        resp = client.post(
            "/notifications/whatsapp",
            json={"to": args.phone, "message": "Your order has shipped", "title": "Order"},
        )
        _print_result("whatsapp", resp)

        resp = client.post(
            "/notifications/send",
            json={
                "channel": "email",
                "to": args.email,
                "subject": "Welcome {{ name }}",
                "content": "Hi {{ name }}, thanks for signing up.",
                "variables": {"name": "Ana"},
            },
        )
        _print_result("email", resp)

        resp = client.get(
            "/notifications/estimate",
            params={"channel": "sms", "provider": "twilio", "recipients": 1000, "country": "AR"},
        )
        print(f"\nEstimated cost of 1000 SMS in AR: {resp.json()['cost']} USD")


if __name__ == "__main__":
    main()
