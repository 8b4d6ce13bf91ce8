"""CLI for contactbridge."""

import asyncio
import inspect
import logging
import sys

import click

from contactbridge import __version__
from contactbridge.bridge import ContactBridge
from contactbridge.config import Settings, get_settings, import_from_path
from contactbridge.exceptions import ConfigurationError
from contactbridge.mapping import FieldMapper
from contactbridge.platform_api.schema import build_property_definitions
from contactbridge.store.base import IdentityStore
from contactbridge.store.memory import InMemoryIdentityStore
from contactbridge.store.redis_store import RedisIdentityStore


def _load_mappings(settings: Settings) -> list:
    if not settings.mappings_path:
        raise ConfigurationError("MAPPINGS is not set (expected 'module:attribute')")
    return list(import_from_path(settings.mappings_path))


def _load_consumer(settings: Settings):
    if not settings.consumer_path:
        raise ConfigurationError("CONSUMER is not set (expected 'module:attribute')")
    consumer = import_from_path(settings.consumer_path)
    # Accept a class or a factory as well as a ready instance
    if inspect.isclass(consumer) or inspect.isfunction(consumer):
        consumer = consumer()
    return consumer


def _make_key_store(settings: Settings) -> IdentityStore:
    if settings.redis_url:
        return RedisIdentityStore.from_url(settings.redis_url, prefix=settings.identity_key_prefix)
    click.echo("Warning: REDIS_URL not set, identity mappings will not be persisted", err=True)
    return InMemoryIdentityStore()


def _build_bridge(settings: Settings) -> ContactBridge:
    return ContactBridge(
        consumer=_load_consumer(settings),
        mappings=_load_mappings(settings),
        key_store=_make_key_store(settings),
        settings=settings,
    )


def _get_settings(ctx: click.Context) -> Settings:
    settings: Settings | None = ctx.obj.get("settings")
    if settings is None:
        click.echo(f"Error loading settings: {ctx.obj.get('settings_error')}", err=True)
        ctx.exit(1)
    return settings


def _candidate_ids(value: str) -> list:
    """CLI ids are strings; integer external ids are tried as well."""
    candidates: list = [value]
    if value.lstrip("-").isdigit():
        candidates.append(int(value))
    return candidates


@click.group()
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context) -> None:
    """Synchronize contacts between the platform and an external service."""
    ctx.ensure_object(dict)

    # Load settings
    try:
        settings = get_settings()
        ctx.obj["settings"] = settings
        log_level = settings.log_level
    except Exception as e:
        ctx.obj["settings_error"] = str(e)
        log_level = "INFO"

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stdout,
    )


@main.command()
@click.pass_context
def properties(ctx: click.Context) -> None:
    """Show the platform properties derived from the mappings."""
    settings = _get_settings(ctx)
    try:
        mapper = FieldMapper(_load_mappings(settings))
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    definitions = build_property_definitions(mapper.mappings)
    click.echo(f"{len(definitions)} properties:")
    for definition in definitions:
        click.echo(f"  {definition.name}: {definition.type}")
    click.echo(f"External identity key: {mapper.get_ext_id_key()}")


@main.command()
@click.option("--token", required=True, help="Integration token of the installed scope")
@click.option("--import/--no-import", "run_import", default=False, help="Import contacts after install")
@click.pass_context
def install(ctx: click.Context, token: str, run_import: bool) -> None:
    """Check the token, then create the mapped properties on the platform."""
    settings = _get_settings(ctx)

    async def run() -> bool:
        bridge = _build_bridge(settings)
        try:
            if not await bridge.platform.validate_token(token):
                click.echo("Install failed: the platform rejected the integration token", err=True)
                return False
            result = await bridge.syncer.install(token, import_contacts=run_import)
        finally:
            await bridge.close()

        if result.success:
            click.echo("Install complete")
        else:
            click.echo(f"Install failed: {result.error}", err=True)
        return result.success

    try:
        ok = asyncio.run(run())
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    if not ok:
        ctx.exit(1)


@main.command("import")
@click.option("--token", required=True, help="Integration token of the installed scope")
@click.option("--page-size", type=click.IntRange(min=1), default=None, help="Contacts per page")
@click.pass_context
def import_(ctx: click.Context, token: str, page_size: int | None) -> None:
    """Import every external contact into the platform."""
    settings = _get_settings(ctx)

    async def run():
        bridge = _build_bridge(settings)
        try:
            return await bridge.import_contacts(token, page_size)
        finally:
            await bridge.close()

    try:
        result = asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nImport interrupted by user")
        ctx.exit(130)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo("\n" + "=" * 50)
    click.echo("IMPORT COMPLETE" if result.success else "IMPORT FINISHED WITH ERRORS")
    click.echo("=" * 50)
    click.echo(f"Errors: {len(result.error)}")
    if result.error:
        click.echo("\nError details:")
        for error in result.error[:5]:  # Show first 5
            click.echo(f"  - {error}")
        if len(result.error) > 5:
            click.echo(f"  ... and {len(result.error) - 5} more")
        ctx.exit(1)


@main.command()
@click.option("--token", required=True, help="Integration token of the installed scope")
@click.pass_context
def uninstall(ctx: click.Context, token: str) -> None:
    """Forget every identity mapping of a scope."""
    settings = _get_settings(ctx)

    async def run() -> None:
        key_store = _make_key_store(settings)
        try:
            await key_store.delete_all_ids(token)
        finally:
            await key_store.close()

    try:
        asyncio.run(run())
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo("Identity mappings deleted")


@main.command()
@click.option("--token", required=True, help="Integration token of the installed scope")
@click.option("--platform-id", default=None, help="Platform contact id to resolve")
@click.option("--external-id", default=None, help="External contact id to resolve")
@click.pass_context
def lookup(ctx: click.Context, token: str, platform_id: str | None, external_id: str | None) -> None:
    """Resolve a contact id through the identity store."""
    if (platform_id is None) == (external_id is None):
        click.echo("Error: pass exactly one of --platform-id or --external-id", err=True)
        ctx.exit(1)

    settings = _get_settings(ctx)

    async def run():
        key_store = _make_key_store(settings)
        try:
            if platform_id is not None:
                for candidate in _candidate_ids(platform_id):
                    found = await key_store.get_ext_id(token, candidate)
                    if found is not None:
                        return found
            else:
                for candidate in _candidate_ids(external_id):
                    found = await key_store.get_platform_id(token, candidate)
                    if found is not None:
                        return found
            return None
        finally:
            await key_store.close()

    try:
        found = asyncio.run(run())
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if found is None:
        click.echo("Not found")
        ctx.exit(1)
    click.echo(str(found))


if __name__ == "__main__":
    main()
