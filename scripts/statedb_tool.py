#!/usr/bin/env python3
"""Inspect or reset a pystatedb namespace.

Usage
-----
Point the tool at a state file (or a state server) and a namespace::

    python scripts/statedb_tool.py --path ~/.pystatedb/state.json --namespace my-app keys
    python scripts/statedb_tool.py --namespace my-app dump --prefix layout
    python scripts/statedb_tool.py --namespace my-app get statedb:version
    python scripts/statedb_tool.py --url http://localhost:8888 --namespace my-app clear

Without ``--path``/``--url`` the ``STATEDB_*`` environment variables are used.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from pystatedb import FileMedium, HttpMedium, KeyedStore, StateDbConfig, StateDbError  # noqa: E402


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect or reset a pystatedb namespace")
    parser.add_argument("--namespace", "-n", help="Namespace to operate on (default: STATEDB_NAMESPACE)")
    parser.add_argument("--path", help="State file (file backend)")
    parser.add_argument("--url", help="State server base URL (http backend)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("keys", help="List stored keys")
    dump = sub.add_parser("dump", help="Print stored entries as JSON")
    dump.add_argument("--prefix", default="", help="Only entries whose key starts with PREFIX")
    get = sub.add_parser("get", help="Print one value as JSON")
    get.add_argument("key")
    sub.add_parser("clear", help="Delete every key of the namespace")
    return parser


def _config_from_args(args: argparse.Namespace) -> StateDbConfig:
    overrides: dict[str, Any] = {}
    if args.namespace:
        overrides["namespace"] = args.namespace
    if args.url:
        overrides["backend"] = "http"
        overrides["base_url"] = args.url
    elif args.path:
        overrides["backend"] = "file"
        overrides["path"] = Path(args.path).expanduser()
    return StateDbConfig.from_env(**overrides)


async def _run(args: argparse.Namespace, store: KeyedStore) -> int:
    if args.command == "keys":
        for key in sorted(await store.to_json()):
            print(key)
    elif args.command == "dump":
        entries = await store.fetch_by_prefix(args.prefix)
        dumped = {entry.key: entry.value for entry in sorted(entries, key=lambda e: e.key)}
        print(json.dumps(dumped, indent=2, ensure_ascii=False))
    elif args.command == "get":
        value = await store.fetch(args.key)
        if value is None:
            print(f"{args.key}: not found", file=sys.stderr)
            return 1
        print(json.dumps(value, indent=2, ensure_ascii=False))
    elif args.command == "clear":
        await store.clear()
        print(f"Cleared namespace {store.namespace}")
    return 0


async def main() -> int:
    args = _build_parser().parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = _config_from_args(args)
    except StateDbError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    try:
        if config.backend == "http":
            async with aiohttp.ClientSession() as session:
                store = KeyedStore(HttpMedium(config.base_url, session), namespace=config.namespace)
                return await _run(args, store)
        store = KeyedStore(FileMedium(config.path), namespace=config.namespace)
        return await _run(args, store)
    except StateDbError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
