#!/usr/bin/env python3
"""
Command-line access to a kvstore.

    kv --url sqlite:///tmp/kv.db set color blue
    kv --url sqlite:///tmp/kv.db get color          # prints "blue"
    kv --url secret://default/app --normalize delete api/token

Without --url the store comes from $KVSTORE_URL or ~/.kvstore.json.

Exit codes: 0 ok, 1 key not found (get only), 2 store error.
"""

import argparse
import asyncio
import logging
import sys

from .connectors import connect
from .errors import KVStoreError
from .store import StoreKind


def build_parser():
    p = argparse.ArgumentParser(prog="kv", description="Get, set and delete kvstore entries.")
    p.add_argument("--url", help="store URL (memory://, sqlite:///path, configmap://ns/name, secret://ns/name)")
    p.add_argument("--normalize", action="store_true", help="normalize keys to [A-Za-z0-9._-]")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("get", help="print the value for KEY")
    g.add_argument("key")

    s = sub.add_parser("set", help="store VALUE under KEY")
    s.add_argument("key")
    s.add_argument("value")

    d = sub.add_parser("delete", help="remove KEY")
    d.add_argument("key")
    return p


async def _run(args):
    overrides = {"normalize_keys": True} if args.normalize else {}
    store = await connect(args.url, **overrides)
    try:
        if args.command == "get":
            value = await store.get(args.key)
            if value is None:
                return 1
            print(value)
        elif args.command == "set":
            await store.set(args.key, args.value)
        elif args.command == "delete":
            await store.delete(args.key)
        return 0
    finally:
        if store.kind is StoreKind.SQLITE:
            store.backend.close()


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except (KVStoreError, ValueError, FileNotFoundError) as exc:
        print(f"kv: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
