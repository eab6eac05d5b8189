"""CLI entry point for receiptchef."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

from .config import load_config
from .errors import CacheReadError
from .parsing import parse_receipt


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="receiptchef",
        description="Turn OCR'd grocery receipts into classified pantry items",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="path to a TOML config file",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command")

    # parse
    parse_parser = sub.add_parser("parse", help="extract candidate items from OCR text")
    parse_parser.add_argument("file", type=str, help="OCR text file ('-' for stdin)")
    parse_parser.add_argument("--json", action="store_true", help="print JSON")

    # canonicalize
    canon_parser = sub.add_parser(
        "canonicalize", help="parse OCR text and classify the candidates"
    )
    canon_parser.add_argument("file", type=str, help="OCR text file ('-' for stdin)")
    canon_parser.add_argument("--device-id", required=True, help="device identifier")
    canon_parser.add_argument("--json", action="store_true", help="print JSON")

    # serve
    serve_parser = sub.add_parser("serve", help="run the HTTP API")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    # cache
    cache_parser = sub.add_parser("cache", help="inspect or clear the classification cache")
    cache_parser.add_argument("action", choices=["stats", "clear"])

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    match args.command:
        case "parse":
            _cmd_parse(args)
        case "canonicalize":
            asyncio.run(_cmd_canonicalize(config, args))
        case "serve":
            _cmd_serve(config, args)
        case "cache":
            _cmd_cache(config, args)


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _cmd_parse(args) -> None:
    result = parse_receipt(_read_text(args.file))

    if args.json:
        data = {
            "items": [asdict(i) for i in result.items],
            "report": asdict(result.report),
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not result.items:
        print("No items found.")
    else:
        print(f"Items ({len(result.items)}):")
        for n, item in enumerate(result.items, 1):
            print(f"  {n:>2}. {item.name:<32} <- {item.source_line}")
    print(f"\nScan quality: {result.report.quality}")
    if result.report.message:
        print(f"  {result.report.message}")


async def _cmd_canonicalize(config, args) -> None:
    from .canon.service import CanonicalizeService

    result = parse_receipt(_read_text(args.file))
    if not result.items:
        print("No items found.")
        return

    service = CanonicalizeService.from_config(config)
    payload = {
        "deviceId": args.device_id,
        "items": [{"id": i.id, "text": i.name} for i in result.items],
    }
    try:
        response, error = await service.handle(payload)
    except CacheReadError as e:
        print(f"Cache unavailable: {e}", file=sys.stderr)
        sys.exit(1)

    if error is not None:
        print(json.dumps(error.details, indent=2), file=sys.stderr)
        sys.exit(2)

    if args.json:
        print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
        return

    print(f"LLM used: {'yes' if response.llm_used else 'no'}", end="")
    if response.llm_remaining is not None:
        print(f" ({response.llm_remaining} batches left today)", end="")
    print()
    for m in response.merged:
        r = m.result
        if r is None:
            print(f"  {m.text:<32} (not classified yet, retry later)")
            continue
        name = r.canonical_name or m.text
        print(f"  {name:<32} {r.status:<8} {r.kind:<9} {r.confidence:.0%}  [{r.source}]")


def _cmd_serve(config, args) -> None:
    from .canon.service import CanonicalizeService
    from .server import create_app

    app = create_app(CanonicalizeService.from_config(config))
    app.run(
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        threaded=True,
    )


def _cmd_cache(config, args) -> None:
    from .db.canon_cache import SQLiteCanonCache

    cache = SQLiteCanonCache(config.database.path)
    try:
        if args.action == "stats":
            stats = cache.stats()
            print(f"Rows: {stats['rows']}")
            print(f"Hits: {stats['hits']}")
            for status, n in sorted(stats["by_status"].items()):
                print(f"  {status:<9} {n}")
        else:
            removed = cache.clear()
            print(f"Removed {removed} cached rows.")
    finally:
        cache.close()


if __name__ == "__main__":
    main()
