"""Command-line interface for ProfileGuard."""

import asyncio
import json
from pathlib import Path
from typing import Optional, Tuple

import click
import structlog

from profileguard.config import get_settings
from profileguard.database.connection import create_tables, get_db_manager
from profileguard.logging_config import configure_logging
from profileguard.service import get_validation_engine
from profileguard.sources import DatabaseSchemaSource, JsonFileSchemaSource
from profileguard.validation import SchemaLoadError, ValidationMode, build_schema

logger = structlog.get_logger(__name__)


@click.group()
def cli():
    """ProfileGuard CLI."""
    configure_logging()


@cli.command()
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in ValidationMode]),
    default=ValidationMode.FULL.value,
    show_default=True,
    help="Full validation for creation, partial for updates",
)
@click.option("--section", "-s", "sections", multiple=True, help="Limit to a schema section")
def validate(payload_file: Path, mode: str, sections: Tuple[str, ...]):
    """Validate a JSON payload file against the profile schema."""
    try:
        payload = json.loads(payload_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Payload is not valid JSON: {e}")

    async def _validate():
        try:
            return await get_validation_engine().validate(
                payload, ValidationMode(mode), list(sections) or None
            )
        finally:
            await get_db_manager().close()

    try:
        result = asyncio.run(_validate())
    except SchemaLoadError as e:
        raise click.ClickException(e.message)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--section")

    click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    if not result.valid:
        click.get_current_context().exit(1)


@cli.group()
def schema():
    """Schema inspection and management commands."""


@schema.command()
def show():
    """Print the loaded schema as JSON."""

    async def _show():
        try:
            return await get_validation_engine().get_schema()
        finally:
            await get_db_manager().close()

    try:
        loaded = asyncio.run(_show())
    except SchemaLoadError as e:
        raise click.ClickException(e.message)
    click.echo(json.dumps(loaded.to_dict(), indent=2, default=str))


@schema.command()
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with field definitions (defaults to the bundled schema)",
)
@click.option("--create/--no-create", default=True, help="Create missing tables first")
def seed(file_path: Optional[Path], create: bool):
    """Replace the schema table contents with definitions from a JSON file."""
    file_path = file_path or get_settings().schema.file_path

    async def _seed() -> int:
        rows = await JsonFileSchemaSource(file_path).load_field_definitions()
        # Refuse to store anything the engine would reject on load
        build_schema(rows)
        db_manager = get_db_manager()
        try:
            if create:
                await create_tables(db_manager)
            return await DatabaseSchemaSource(db_manager).seed(rows)
        finally:
            await db_manager.close()

    try:
        count = asyncio.run(_seed())
    except SchemaLoadError as e:
        raise click.ClickException(e.message)
    except Exception as e:
        logger.error("Schema seeding failed", error=str(e))
        raise click.ClickException(str(e))

    click.echo(f"Seeded {count} field definitions from {file_path}")


if __name__ == "__main__":
    cli()
