"""CLI entry point for the Aspose MCP preview companion."""

from __future__ import annotations

import sys

if sys.version_info < (3, 12):  # noqa: UP036
    print("Error: aspose-mcp-preview requires Python 3.12 or higher.", file=sys.stderr)
    sys.exit(1)

import asyncio  # noqa: E402
import contextlib  # noqa: E402
import logging  # noqa: E402
import signal  # noqa: E402

import click  # noqa: E402
from pydantic import ValidationError  # noqa: E402

from aspose_preview.config import ENV_PREFIX, PreviewConfig  # noqa: E402
from aspose_preview.debug_log import setup_logging  # noqa: E402
from aspose_preview.host import PreviewHost  # noqa: E402
from aspose_preview.limits import MAX_PAYLOAD_BYTES  # noqa: E402
from aspose_preview.version import DISTRIBUTION_NAME, get_package_version  # noqa: E402

logger = logging.getLogger("aspose_preview.cli")


def _install_signal_handlers(host: PreviewHost) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is not implemented by the Windows event loops.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, host.request_stop)


async def _serve(config: PreviewConfig) -> None:
    host = PreviewHost(config)
    _install_signal_handlers(host)
    await host.run()


@click.command()
@click.option(
    "--port", "-p", type=int, default=3000, envvar=f"{ENV_PREFIX}PORT", help="HTTP server port"
)
@click.option(
    "--host", "-h", default="localhost", envvar=f"{ENV_PREFIX}HOST", help="Viewer bind host"
)
@click.option(
    "--transport",
    default="stdin",
    envvar=f"{ENV_PREFIX}TRANSPORT",
    help="Default snapshot transport: stdin, file or mmap",
)
@click.option(
    "--no-open",
    is_flag=True,
    envvar=f"{ENV_PREFIX}NO_OPEN",
    help="Do not open a browser after the handshake",
)
@click.option("--debug", is_flag=True, envvar=f"{ENV_PREFIX}DEBUG", help="Enable debug logging")
@click.option(
    "--max-payload-bytes",
    type=int,
    default=MAX_PAYLOAD_BYTES,
    envvar=f"{ENV_PREFIX}MAX_PAYLOAD_BYTES",
    show_default=True,
    help="Largest inline snapshot payload accepted",
)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.pass_context
def cli(
    ctx: click.Context,
    port: int,
    host: str,
    transport: str,
    no_open: bool,
    debug: bool,
    max_payload_bytes: int,
    version: bool,
) -> None:
    """Preview companion: receives document snapshots on stdin and serves them to a browser."""
    if version:
        click.echo(f"{DISTRIBUTION_NAME} {get_package_version()}")
        ctx.exit(0)

    try:
        config = PreviewConfig(
            port=port,
            host=host,
            transport=transport,
            no_open=no_open,
            debug=debug,
            max_payload_bytes=max_payload_bytes,
        )
    except ValidationError as exc:
        raise click.BadParameter(str(exc)) from exc

    setup_logging(config.debug)
    logger.info("Starting %s %s", DISTRIBUTION_NAME, get_package_version())
    logger.debug("Configuration: %s", config.model_dump())

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception:
        logger.exception("Shutdown failed")
        sys.exit(1)
    logger.info("Preview companion stopped")
    sys.exit(0)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
