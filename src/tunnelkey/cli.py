"""
Command Line Interface for TunnelKey.

Resolves access keys from the terminal and prints the session config.

Built with Typer for automatic tab completion.
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional, Union

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.config import Settings, get_settings
from .core.logging import setup_logging
from .environment import EnvironmentInfo, EnvironmentProvider
from .errors import (
    AccessKeyError,
    AccessKeyInvalid,
    SessionConfigError,
    SessionConfigFetchFailed,
)
from .models import ShadowsocksSessionConfig, XraySessionConfig
from .resolver import AccessKeyResolver, is_dynamic_access_key

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="tunnelkey",
    help="TunnelKey - Resolve Shadowsocks and VLESS access keys",
    add_completion=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    if value:
        console.print(f"tunnelkey version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[bool, typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit.")] = False,
):
    """
    TunnelKey - Resolve Shadowsocks and VLESS access keys

    Turns static and dynamic access keys into session configs
    ready for the tunnel layer.
    """
    pass


def _mask(secret: str) -> str:
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]


def _render_table(config: Union[ShadowsocksSessionConfig, XraySessionConfig]) -> Table:
    table = Table(title="Session Config", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    if isinstance(config, ShadowsocksSessionConfig):
        table.add_row("Protocol", "Shadowsocks")
        table.add_row("Host", config.host)
        table.add_row("Port", str(config.port))
        table.add_row("Method", config.method)
        table.add_row("Password", _mask(config.password))
        if config.prefix is not None:
            table.add_row("Prefix", repr(config.prefix))
    else:
        document = json.loads(config.xray_config)
        table.add_row("Protocol", "Xray")
        table.add_row("Host", config.host)
        table.add_row("Inbounds", str(len(document.get("inbounds", []))))
        table.add_row("Outbounds", str(len(document.get("outbounds", []))))
    return table


async def _resolve(access_key: str, settings: Settings):
    async def environment_from_settings() -> EnvironmentInfo:
        return EnvironmentInfo(app_version=settings.app_version or __version__)

    async with AccessKeyResolver(
        environment=EnvironmentProvider(environment_from_settings),
        settings=settings.fetch,
    ) as resolver:
        return await resolver.resolve(access_key)


def _load_settings(config: Optional[str]) -> Settings:
    if config:
        return Settings.load_from_yaml(Path(config))
    return get_settings()


@app.command()
def resolve(
    access_key: Annotated[str, typer.Argument(help="Static key (ss://, vless://) or dynamic key URL")],
    as_json: Annotated[bool, typer.Option("--json", help="Print the session config as JSON")] = False,
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Path to configuration file")] = None,
):
    """Resolve an access key into a session config."""
    settings = _load_settings(config)
    setup_logging(settings.log.level, settings.log.format, settings.log.file)

    try:
        session_config = asyncio.run(_resolve(access_key, settings))
    except SessionConfigError as e:
        err_console.print(f"[red]Key server error:[/red] {escape(e.message)}")
        raise typer.Exit(1)
    except SessionConfigFetchFailed as e:
        err_console.print(f"[red]Fetch failed:[/red] {escape(str(e))} ({escape(str(e.__cause__))})")
        raise typer.Exit(1)
    except AccessKeyInvalid as e:
        cause = f" ({e.__cause__})" if e.__cause__ else ""
        err_console.print(f"[red]Invalid access key:[/red] {escape(str(e) + cause)}")
        raise typer.Exit(1)
    except AccessKeyError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(session_config.model_dump_json(indent=2))
        return

    console.print(_render_table(session_config))
    if is_dynamic_access_key(access_key.strip()):
        console.print("[dim]Resolved from dynamic access key[/dim]")


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
