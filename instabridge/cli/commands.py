"""CLI commands for instabridge.

``serve`` runs the stdio worker that a parent process talks to over
line-delimited JSON-RPC; ``tools`` and ``version`` are for humans.
"""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from instabridge import __logo__, __version__
from instabridge.cli.shared.logging_utils import configure_stderr_logging, ensure_rotating_log_file

app = typer.Typer(
    name="instabridge",
    help=f"{__logo__} instabridge - Instagram post fetcher over stdio JSON-RPC",
    no_args_is_help=True,
)

# stdout belongs to the protocol; human-facing output goes to stderr.
console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} instabridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """instabridge - Instagram post fetcher over stdio JSON-RPC."""
    pass


@app.command()
def serve(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json (default: ~/.instabridge/config.json)"),
    log_level: str = typer.Option("INFO", "--log-level", "-l", help="Log level for stderr output"),
    log_file: bool = typer.Option(False, "--log-file/--no-log-file", help="Also write a rotating log under ~/.instabridge/logs"),
    interval: float = typer.Option(None, "--interval", help="Override the progress heartbeat interval in seconds"),
):
    """Run the stdio worker until stdin closes or a shutdown signal arrives."""
    from instabridge.config.loader import load_config, validate_environment
    from instabridge.utils.exceptions import ConfigError
    from instabridge.worker import WorkerHost

    configure_stderr_logging(log_level)
    if log_file:
        log_path = ensure_rotating_log_file("serve", level=log_level)
        console.print(f"[dim]Logs: {log_path}[/dim]")

    try:
        config = load_config(config_path)
        if interval is not None:
            if interval <= 0:
                raise ConfigError("--interval must be positive", key="progress.interval_seconds")
            config.progress.interval_seconds = interval
        validate_environment(config)
    except ConfigError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    logger.info("Starting {} v{} on stdio", config.name, config.version)
    try:
        asyncio.run(WorkerHost(config).run())
    except KeyboardInterrupt:
        logger.info("Interrupted")


@app.command()
def tools(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """List the tools the worker exposes."""
    from instabridge.config.loader import load_config
    from instabridge.tools.instagram_posts import tool_descriptor

    config = load_config(config_path)
    descriptor = tool_descriptor(config.instagram.max_posts_per_batch)

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments")
    schema = descriptor["inputSchema"]
    required = set(schema.get("required", []))
    args = ", ".join(f"{name}*" if name in required else name for name in schema["properties"])
    table.add_row(descriptor["name"], descriptor["description"], args)
    console.print(table)


@app.command()
def version():
    """Show the instabridge version."""
    console.print(f"{__logo__} instabridge v{__version__}")


if __name__ == "__main__":
    app()
