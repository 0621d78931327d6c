"""Purge command implementation."""

import logging

import click

from nohm.registry import Registry

from ..runner import run_command

logger = logging.getLogger(__name__)


@click.command(name="purge")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def purge(ctx: click.Context, yes: bool):
    """Delete every key under the prefix."""
    prefix = ctx.obj["prefix"]
    if not yes:
        click.confirm(f"Delete every key under '{prefix}:'?", abort=True)

    async def body(registry: Registry) -> int:
        return await registry.purge_db()

    deleted = run_command(ctx, f"purge '{prefix}'", body)
    logger.info(f"Purge removed {deleted} key(s)")
    click.echo(f"Deleted {deleted} key(s) under '{prefix}:'.")
