"""CLI for DockaCord.

Usage:
    dockacord run
    dockacord --config /etc/dockacord/config.json run --metrics-port 9100
    dockacord test --action die --name web-1
    dockacord classify stop
    dockacord init-config
"""

import time
from pathlib import Path

import click
import structlog

from dockacord.config import DEFAULT_CONFIG_PATH, Config, load_config
from dockacord.errors import ClientInitError, ConfigError
from dockacord.logging import configure_logging
from dockacord.notifier import (
    ContainerEvent,
    DiscordClient,
    RuleSet,
    Severity,
    run_notifier,
)

log = structlog.get_logger()


def get_config(ctx: click.Context) -> Config:
    """Load the config named on the command line or exit with an error."""
    try:
        config = load_config(ctx.obj["config_path"])
    except ConfigError as e:
        log.error("Failed to load config", error=str(e))
        raise SystemExit(1) from e

    webhook = ctx.obj["webhook"]
    return config.with_webhook(webhook) if webhook else config


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Config file path",
)
@click.option(
    "--webhook",
    envvar="DISCORD_WEBHOOK_URL",
    default=None,
    help="Discord webhook URL (overrides the config file)",
)
@click.option(
    "--log-level",
    envvar="DOCKACORD_LOG_LEVEL",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
@click.pass_context
def main(ctx: click.Context, config_path: Path, webhook: str | None, log_level: str) -> None:
    """Forward Docker container events to a Discord webhook."""
    configure_logging(level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["webhook"] = webhook


@main.command("run")
@click.option("--metrics-port", type=int, default=None, help="Serve Prometheus metrics on this port")
@click.pass_context
def run_cmd(ctx: click.Context, metrics_port: int | None) -> None:
    """Run the notifier until SIGINT or SIGTERM."""
    try:
        run_notifier(
            config_path=ctx.obj["config_path"],
            webhook_url=ctx.obj["webhook"],
            metrics_port=metrics_port,
        )
    except ConfigError as e:
        log.error("Failed to load config", error=str(e))
        raise SystemExit(1) from e
    except ClientInitError as e:
        log.error("Failed to start notifier", error=str(e))
        raise SystemExit(1) from e


@main.command("test")
@click.option("--action", default="start", show_default=True, help="Event action to simulate")
@click.option("--name", default="dockacord-test", show_default=True, help="Container name")
@click.option(
    "--severity",
    type=click.Choice([s.value for s in Severity if s is not Severity.NONE]),
    default=None,
    help="Force a severity instead of classifying the action",
)
@click.pass_context
def test_cmd(ctx: click.Context, action: str, name: str, severity: str | None) -> None:
    """Send a test notification to verify the webhook."""
    config = get_config(ctx)
    level = Severity(severity) if severity else RuleSet.from_config(config).classify(action)
    if level is Severity.NONE:
        level = Severity.INFO

    event = ContainerEvent(
        type="container",
        action=action,
        time=int(time.time()),
        attributes={"name": name},
    )
    client = DiscordClient(config.webhook)
    try:
        ok = client.notify(event, level)
    finally:
        client.close()

    if ok:
        click.echo("Test notification sent successfully!")
    else:
        click.echo("Failed to send test notification")
        raise SystemExit(1)


@main.command("classify")
@click.argument("action")
@click.pass_context
def classify_cmd(ctx: click.Context, action: str) -> None:
    """Show the severity an event action maps to."""
    config = get_config(ctx)
    click.echo(RuleSet.from_config(config).classify(action).value)


@main.command("init-config")
@click.pass_context
def init_config(ctx: click.Context) -> None:
    """Create the default config file if it does not exist."""
    path: Path = ctx.obj["config_path"]
    existed = path.exists()
    get_config(ctx)
    if existed:
        click.echo(f"Config already exists: {path}")
    else:
        click.echo(f"Created default config: {path}")


if __name__ == "__main__":
    main()
