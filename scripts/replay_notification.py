"""Replay a provider notification for one payment id.

The notification route re-reads the payment state from the provider, so a
replay is safe: a session already settled is ignored.
"""

import argparse

import httpx


def main() -> None:
    """CLI entrypoint for manual notification replays."""

    parser = argparse.ArgumentParser(description="Trigger the gateway notification route for a payment id.")
    parser.add_argument("--gateway-url", default="http://localhost:8000")
    parser.add_argument("--service", default="gopay")
    parser.add_argument("--id", dest="payment_id", required=True, help="Provider transaction id")
    parser.add_argument("--timeout-seconds", type=float, default=10.0)
    args = parser.parse_args()

    resp = httpx.get(
        f"{args.gateway_url.rstrip('/')}/service/{args.service}/notification",
        params={"id": args.payment_id},
        timeout=args.timeout_seconds,
    )
    print(f"status={resp.status_code} body={resp.text}")
    raise SystemExit(0 if resp.status_code < 400 else 1)


if __name__ == "__main__":
    main()
