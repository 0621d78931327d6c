"""Read-only commands showing stored data."""

import click

from nohm.exceptions import NotFoundError
from nohm.registry import Registry
from nohm.storage.meta import META_VERSION_FIELD

from ..runner import run_command


@click.command(name="keys")
@click.option("--pattern", default="*", show_default=True, help="Pattern after '<prefix>:'")
@click.pass_context
def keys(ctx: click.Context, pattern: str):
    """List every key under the prefix."""

    async def body(registry: Registry) -> list[str]:
        match = f"{registry.keys.prefix}:{pattern}"
        return sorted([key async for key in registry.client.scan_iter(match=match)])

    found = run_command(ctx, "list keys", body)
    if not found:
        click.echo("No keys found.")
        return
    for key in found:
        click.echo(key)


@click.command(name="ids")
@click.argument("model")
@click.pass_context
def ids(ctx: click.Context, model: str):
    """List the ids stored for MODEL."""

    async def body(registry: Registry) -> list[str]:
        return sorted(await registry.client.smembers(registry.keys.idset(model)))

    found = run_command(ctx, f"list ids of {model}", body)
    if not found:
        click.echo(f"No {model} records found.")
        return
    for record_id in found:
        click.echo(record_id)


@click.command(name="show")
@click.argument("model")
@click.argument("record_id")
@click.pass_context
def show(ctx: click.Context, model: str, record_id: str):
    """Show the stored fields of MODEL record RECORD_ID."""

    async def body(registry: Registry) -> dict[str, str]:
        data = await registry.client.hgetall(registry.keys.hash(model, record_id))
        if not data:
            raise NotFoundError(model, record_id)
        return data

    data = run_command(ctx, f"show {model}:{record_id}", body)
    click.echo(f"{model}:{record_id}")
    for field in sorted(data):
        if field == META_VERSION_FIELD:
            continue
        click.echo(f"  {field}: {data[field]}")
