"""Example client: run every list action against a running worker.

Usage::

    uv run python scripts/query_helpdesk.py foo bar
    uv run python scripts/query_helpdesk.py foo --sort desc --timeout 30
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from helpdesk_ext.config import get_settings
from helpdesk_ext.handler import ACTIONS, SERVICE_PREFIX


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Query helpdesk list actions")
    parser.add_argument("tenants", nargs="+", help="Tenant names to query")
    parser.add_argument(
        "--action",
        action="append",
        choices=sorted(ACTIONS),
        help="Action to run (repeatable); defaults to all list actions",
    )
    parser.add_argument("--sort", choices=["asc", "desc"], default=None)
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for each result",
    )
    return parser.parse_args(argv)


async def request(
    redis: ArqRedis,
    tenant: str,
    action: str,
    params: dict[str, Any],
    timeout: float,
) -> bool:
    """Enqueue one action and print its result; return success."""
    service = f"{SERVICE_PREFIX}{tenant}"
    payload: dict[str, Any] = {"action": action}
    if params:
        payload["args"] = [params]

    job = await redis.enqueue_job("helpdesk_request", service, payload)
    if job is None:
        print(f"{service} {action}: not enqueued", file=sys.stderr)
        return False

    try:
        data = await job.result(timeout=timeout)
    except Exception as exc:
        print(f"{service} {action}: {exc}", file=sys.stderr)
        return False

    print(f"query response ({action} on {service}):")
    print(json.dumps(data, indent=2, ensure_ascii=False))
    print("---")
    return True


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    params: dict[str, Any] = {}
    if args.sort:
        params["sort"] = args.sort
    if args.limit:
        params["limit"] = args.limit

    actions = args.action or list(ACTIONS)
    redis = await create_pool(RedisSettings.from_dsn(get_settings().redis_url))
    try:
        results = await asyncio.gather(
            *(
                request(redis, tenant, action, params, args.timeout)
                for tenant in args.tenants
                for action in actions
            )
        )
    finally:
        await redis.aclose()

    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
