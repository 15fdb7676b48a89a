"""CLI entry point for the webhook consumer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import click

from webhook_consumer.config import ConsumerConfig
from webhook_consumer.webhooks.signature import (
    DEFAULT_HEADER_PREFIX,
    generate_secret,
    sign_payload,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.group()
@click.version_option(package_name="webhook-consumer")
def cli() -> None:
    """Webhook consumer - verify and dispatch producer webhooks."""


@cli.command()
@click.option("--host", help="Host to bind (overrides WEBHOOK_CONSUMER_HOST)")
@click.option("--port", type=int, help="Port to bind (overrides WEBHOOK_CONSUMER_PORT)")
@click.option("--log-level", help="Logging level (overrides WEBHOOK_CONSUMER_LOG_LEVEL)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(
    host: str | None,
    port: int | None,
    log_level: str | None,
    reload: bool,
) -> None:
    """Run the webhook consumer server.

    Examples:
        $ webhook-consumer serve
        $ webhook-consumer serve --port 8080 --log-level debug
    """
    import uvicorn

    overrides: dict[str, str | int] = {}
    if host:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if log_level:
        overrides["log_level"] = log_level
    config = ConsumerConfig(**overrides)  # type: ignore[arg-type]

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    if reload:
        uvicorn.run(
            "webhook_consumer.factory:create_app",
            factory=True,
            host=config.host,
            port=config.port,
            reload=True,
        )
        return

    from webhook_consumer.factory import create_app

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


@cli.command("generate-secret")
@click.option("--bytes", "num_bytes", type=click.IntRange(16, 64), default=24, show_default=True)
def generate_secret_command(num_bytes: int) -> None:
    """Print a fresh whsec_ signing secret."""
    click.echo(generate_secret(num_bytes))


@cli.command()
@click.argument("body", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", envvar="WEBHOOK_CONSUMER_STATIC_SECRET", required=True, help="whsec_ secret")
@click.option("--message-id", default=None, help="Message id (default: msg_<timestamp>)")
@click.option("--timestamp", type=int, default=None, help="Unix timestamp (default: now)")
@click.option("--prefix", default=DEFAULT_HEADER_PREFIX, show_default=True, help="Header prefix")
def sign(
    body: Path,
    secret: str,
    message_id: str | None,
    timestamp: int | None,
    prefix: str,
) -> None:
    """Sign a body file and print the headers a producer would send.

    Examples:
        $ webhook-consumer sign payload.json --secret whsec_...
        $ webhook-consumer sign payload.json --message-id msg_1 --timestamp 1614265330
    """
    if timestamp is None:
        timestamp = int(time.time())
    if message_id is None:
        message_id = f"msg_{timestamp}"

    try:
        signature = sign_payload(body.read_bytes(), secret, message_id, timestamp)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--secret") from e

    prefix = prefix.lower()
    click.echo(f"{prefix}-id: {message_id}")
    click.echo(f"{prefix}-timestamp: {timestamp}")
    click.echo(f"{prefix}-signature: {signature}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
