"""Runs async command bodies against a Registry built from the CLI options."""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click
from redis.asyncio import Redis

from nohm.exceptions import format_error_for_display
from nohm.models.config import NohmSettings
from nohm.registry import Registry

logger = logging.getLogger(__name__)


def build_registry(obj: dict[str, Any]) -> Registry:
    """
    Create a Registry for one command invocation.

    ``obj["client_factory"]`` (a zero-argument callable returning a
    redis.asyncio client) replaces the client built from ``--redis-url``.
    """
    settings = NohmSettings(redis_url=obj["redis_url"], prefix=obj["prefix"])
    factory = obj.get("client_factory")
    client = factory() if factory else Redis.from_url(settings.redis_url, decode_responses=True)
    return Registry(client, settings)


def run_command(ctx: click.Context, operation: str,
                body: Callable[[Registry], Awaitable[Any]]) -> Any:
    """
    Run ``body(registry)`` to completion and report failures.

    Errors are shown without a traceback and exit with status 1.
    """

    async def _main() -> Any:
        registry = build_registry(ctx.obj)
        try:
            return await body(registry)
        finally:
            await registry.client.aclose()

    try:
        return asyncio.run(_main())
    except click.ClickException:
        raise
    except Exception as e:
        logger.exception(f"Failed to {operation}")
        user_message, recovery_hint = format_error_for_display(e)
        click.echo(f"ERROR: {user_message}", err=True)
        if recovery_hint:
            click.echo(recovery_hint, err=True)
        click.echo(f"For details, check the log file: {ctx.obj.get('log_path')}", err=True)
        sys.exit(1)
