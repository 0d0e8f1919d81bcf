"""Command line interface for the photodb project."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from photodb.catalogue import PhotoDatabase, PhotoDatabaseDecoder
from photodb.config import ConfigError, ConfigManager, PhotoDBConfig
from photodb.decoding import DecodeError, RecordDecoder, RecordError

console = Console()
error_console = Console(stderr=True)

LOGGER = logging.getLogger(__name__)

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _configure_logging(level: str) -> None:
    root = logging.getLogger("photodb")
    root.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.addHandler(RichHandler(console=error_console, show_path=False))


def _load_config(overrides: dict[str, Any] | None = None) -> PhotoDBConfig:
    try:
        config = ConfigManager().load(cli_overrides=overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _configure_logging(config.logging.level)
    return config


def _resolve_json(ctx: click.Context, json_output: bool, config: PhotoDBConfig) -> bool:
    if ctx.get_parameter_source("json_output") == ParameterSource.COMMANDLINE:
        return json_output
    return config.cli.json_default


def _decode_file(path: str, config: PhotoDBConfig, *, json_output: bool) -> PhotoDatabase:
    """Read and decode ``path``, mapping failures onto CLI errors."""
    data = Path(path).read_bytes()
    LOGGER.debug("Read %d bytes from %s", len(data), path)
    try:
        return PhotoDatabaseDecoder(config.decoding).decode(data)
    except RecordError as exc:
        _handle_cli_error(
            f"Failed to decode {path}: {exc}",
            code="record_error",
            json_output=json_output,
            details={"offset": exc.offset, "tag": exc.tag},
            original=exc,
        )
    except DecodeError as exc:
        _handle_cli_error(
            f"Failed to decode {path}: {exc}",
            code="decode_error",
            json_output=json_output,
            original=exc,
        )


def _format_date(epoch: int, timestamp: datetime) -> str:
    # epoch 0 means the date was never recorded
    return timestamp.strftime(_DATE_FORMAT) if epoch > 0 else "-"


def _emit_field_errors(database: PhotoDatabase) -> None:
    if not database.errors:
        return
    console.print(f"[yellow]{len(database.errors)} field(s) could not be decoded:[/yellow]")
    for entry in database.errors:
        console.print(f"  - {entry}")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="photodb")
def cli() -> None:
    """Inspect the Photo Database catalogue of a portable media device."""


_path_argument = click.argument(
    "path", type=click.Path(exists=True, dir_okay=False, path_type=str)
)
_json_option = click.option(
    "--json", "json_output", is_flag=True, help="Emit JSON instead of a table."
)


@cli.command()
@_path_argument
@_json_option
@click.option(
    "--lenient",
    is_flag=True,
    help="Leave undecodable dates unset instead of aborting.",
)
@click.pass_context
def images(ctx: click.Context, path: str, json_output: bool, lenient: bool) -> None:
    """List the images catalogued in PATH.

    Args:
        ctx: Click context for parameter source inspection.
        path: Photo Database file to decode.
        json_output: When True, emit JSON instead of a table.
        lenient: When True, disable strict timestamp handling.
    """
    overrides = {"decoding.strict_timestamps": False} if lenient else None
    config = _load_config(overrides)
    json_enabled = _resolve_json(ctx, json_output, config)
    database = _decode_file(path, config, json_output=json_enabled)

    if json_enabled:
        console.print_json(
            data={
                "images": [image.model_dump(mode="json") for image in database.images],
                "errors": database.errors,
            }
        )
        return

    table = Table(title=f"Images in {Path(path).name}")
    table.add_column("ID", justify="right")
    table.add_column("Filename")
    table.add_column("Size", justify="right")
    table.add_column("Original")
    table.add_column("Digitized")
    table.add_column("Thumbs", justify="right")
    for image in database.images:
        table.add_row(
            str(image.image_id),
            image.filename or "-",
            image.file_size_human_readable,
            _format_date(image.original_date_epoch, image.original_date_ts),
            _format_date(image.digitized_date_epoch, image.digitized_date_ts),
            str(len(image.thumbnails)),
        )
    console.print(table)
    _emit_field_errors(database)
    console.print(f"[green]{len(database.images)} image(s) decoded.[/green]")


@cli.command()
@_path_argument
@_json_option
@click.pass_context
def albums(ctx: click.Context, path: str, json_output: bool) -> None:
    """List the photo albums in PATH with their member images.

    Args:
        ctx: Click context for parameter source inspection.
        path: Photo Database file to decode.
        json_output: When True, emit JSON instead of a table.
    """
    config = _load_config()
    json_enabled = _resolve_json(ctx, json_output, config)
    database = _decode_file(path, config, json_output=json_enabled)

    if json_enabled:
        console.print_json(
            data={"albums": [album.model_dump(mode="json") for album in database.albums]}
        )
        return

    table = Table(title=f"Albums in {Path(path).name}")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Images", justify="right")
    for album in database.albums:
        table.add_row(str(album.album_id), album.name or "-", str(len(album.image_ids)))
    console.print(table)


@cli.command()
@_path_argument
def records(path: str) -> None:
    """Print the raw record tree of PATH.

    Records are printed as they are decoded, so everything before a
    structural failure is still shown.

    Args:
        path: Photo Database file to walk.
    """
    _load_config()
    decoder = RecordDecoder(Path(path).read_bytes())
    count = 0
    try:
        for record in decoder.walk():
            console.print(
                "  " * record.depth + record.describe(),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            count += 1
    except RecordError as exc:
        raise click.ClickException(f"Stopped after {count} record(s): {exc}") from exc
    console.print(f"[green]{count} record(s) in {decoder.size} bytes.[/green]")


@cli.group()
def config() -> None:
    """Manage photodb configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        effective = manager.load(include_env=not no_env, ensure_file=True)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing or validation fails.
    """
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    manager = ConfigManager()
    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    console.print(f"[green]Updated {key} = {parsed_value!r}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
