"""Sign a store payment request and POST it to a running gateway.

Useful for manual end-to-end checks against a sandbox provider.
"""

import argparse
import json
import os
from pathlib import Path

import httpx

from paygate.common.signature import SIGNATURE_HEADER, sign


def send(gateway_url: str, service: str, raw_body: bytes, secret: str, timeout: float) -> httpx.Response:
    """POST `raw_body` with its signature to `/service/<service>/init`."""

    headers = {SIGNATURE_HEADER: sign(raw_body, secret), "Content-Type": "application/json"}
    return httpx.post(
        f"{gateway_url.rstrip('/')}/service/{service}/init",
        content=raw_body,
        headers=headers,
        timeout=timeout,
    )


def main() -> None:
    """Parse CLI args, sign one JSON payload and print the gateway response."""

    parser = argparse.ArgumentParser(description="Send a signed store request to the gateway.")
    parser.add_argument("--gateway-url", default="http://localhost:8000")
    parser.add_argument("--service", default="gopay")
    parser.add_argument("--secret", default=os.getenv("GATEWAY_SECRET_KEY"))
    parser.add_argument("--json", dest="json_inline", default=None, help="Inline JSON payload")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to JSON file")
    parser.add_argument("--timeout-seconds", type=float, default=10.0)
    parser.add_argument("--print-only", action="store_true", help="Print the signature without sending")
    args = parser.parse_args()

    if bool(args.json_inline) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --json or --file")
    if not args.secret:
        raise SystemExit("Provide --secret or set GATEWAY_SECRET_KEY")

    text = args.json_inline if args.json_inline else Path(args.json_file).read_text()
    json.loads(text)
    raw_body = text.encode("utf-8")

    if args.print_only:
        print(f"{SIGNATURE_HEADER}: {sign(raw_body, args.secret)}")
        return

    resp = send(args.gateway_url, args.service, raw_body, args.secret, args.timeout_seconds)
    print(f"status={resp.status_code}")
    print(resp.text)
    raise SystemExit(0 if resp.status_code < 400 else 1)


if __name__ == "__main__":
    main()
