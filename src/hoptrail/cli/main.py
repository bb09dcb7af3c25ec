# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""hoptrail CLI."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from ..config import FetchSettings, load_fetch_settings
from ..errors import TransportFault
from ..fetch.consumers import read_bytes
from ..http import create_default_transport
from ..http.headers import parse_header_line, pretty_header_key
from ..http.url import is_absolute_http_uri
from ..log import setup_logging
from ..runtime import HopTrail

CLI_TEXT_TRUNCATION_BYTES = 4096

EXIT_OK = 0
EXIT_SOFT_FAILURE = 1
EXIT_TRANSPORT_FAULT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch a URL hop by hop and print its metadata trail")
    parser.add_argument("url", help="Absolute URL to fetch")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of a human-friendly summary")
    parser.add_argument("--hops", type=int, default=None, help="Maximum number of redirects to follow")
    parser.add_argument("--repeats", type=int, default=None, help="Maximum visits of one URI within a redirect chain")
    parser.add_argument("--retries", type=int, default=None, help="Maximum attempts on 4xx/5xx statuses")
    parser.add_argument("--timeout", type=float, default=None, help="Per-hop timeout in seconds")
    parser.add_argument("--method", "-X", default=None, help="HTTP method (default: GET)")
    parser.add_argument("--data", "-d", default=None, help="Request body")
    parser.add_argument("--content-type", default=None, help="Media type of the request body")
    parser.add_argument(
        "--header",
        "-H",
        action="append",
        default=[],
        help="Extra request header as 'Name: value' (repeatable)",
    )
    parser.add_argument("--max-pages", type=int, default=None, help="Stop pagination after this many pages")
    parser.add_argument("--no-paginate", action="store_true", help="Do not follow Link rel=next headers")
    parser.add_argument("--verify-ssl", action="store_true", help="Enable TLS certificate verification")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $HOPTRAIL_LOG_LEVEL or WARNING)")
    return parser


def _parse_request_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        key, header = parse_header_line(value)
        headers[pretty_header_key(key)] = header
    return headers


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max_bytes - len(suffix.encode("utf-8"))
    if keep <= 0:
        return suffix.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def _truncate_for_cli(value: Any, *, max_bytes: int) -> Any:
    if isinstance(value, str):
        return _truncate_text_bytes(value, max_bytes)
    if isinstance(value, dict):
        return {k: _truncate_for_cli(v, max_bytes=max_bytes) for k, v in value.items()}
    if isinstance(value, list):
        return [_truncate_for_cli(v, max_bytes=max_bytes) for v in value]
    return value


def _print_json(data: dict[str, Any] | Any) -> None:
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    json.dump(_truncate_for_cli(payload, max_bytes=CLI_TEXT_TRUNCATION_BYTES), sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


def _pretty_print(result: dict[str, Any] | Any) -> None:
    payload = result.to_dict() if hasattr(result, "to_dict") else result
    if not isinstance(payload, dict):
        print(payload)
        return
    status = "OK" if payload.get("ok") else f"ABORTED ({payload.get('abort')})"
    print(f"[hoptrail] Status: {status}")
    for index, hop in enumerate(payload.get("trail") or [], start=1):
        digest = hop.get("digest")
        suffix = f" {hop.get('hash_algorithm')}={digest[:16]}... ({hop.get('byte_count')} bytes)" if digest else ""
        print(
            f"{index:>3}. {hop.get('status_code')} {hop.get('reason') or ''} "
            f"{hop.get('method')} {hop.get('uri')} [{hop.get('walltime', 0.0):.3f}s HTTP/{hop.get('http_version')}]{suffix}"
        )
    pages = payload.get("pages") or []
    if pages:
        print(f"Pages: {len(pages)}")
    diagnostics = [d for d in payload.get("diagnostics") or [] if d.get("kind") != "ERROR_BODY"]
    if diagnostics:
        print("Diagnostics:")
        for item in diagnostics:
            print(f"- {item.get('kind')}: {item.get('message')}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not is_absolute_http_uri(args.url):
        parser.error(f"URL must be an absolute http(s) URL: {args.url}")
    setup_logging(args.log_level)

    settings: FetchSettings = load_fetch_settings()
    if args.verify_ssl:
        settings.verify_ssl = True

    try:
        request_headers = _parse_request_headers(args.header)
    except ValueError as exc:
        parser.error(str(exc))

    transport = create_default_transport(settings)
    with HopTrail(transport=transport, settings=settings) as client:
        try:
            result = client.fetch(
                args.url,
                read_bytes,
                paginate=not args.no_paginate,
                number_of_hops=args.hops,
                number_of_repeats=args.repeats,
                number_of_retries=args.retries,
                timeout=args.timeout,
                method=args.method,
                body=args.data,
                content_type=args.content_type,
                headers=request_headers or None,
                max_pages=args.max_pages,
            )
        except TransportFault as fault:
            if args.json:
                _print_json({"ok": False, "error": fault.to_dict(), "trail": [hop.to_dict() for hop in fault.trail]})
            else:
                print(f"[hoptrail] Transport failure: {fault.reason}: {fault}", file=sys.stderr)
            return EXIT_TRANSPORT_FAULT

    if args.json:
        _print_json(result)
    else:
        _pretty_print(result)

    return EXIT_OK if result.ok else EXIT_SOFT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
