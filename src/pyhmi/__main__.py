"""Command-line entry point: ``python -m pyhmi``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
from typing import Any

from aiohttp import web

from pyhmi.api import create_app
from pyhmi.config import HmiConfig
from pyhmi.exceptions import HmiError
from pyhmi.worker import HmiWorker

_logger = logging.getLogger("pyhmi")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pyhmi",
        description="Vehicle-side HMI worker. Unset options fall back to HMI_* environment variables.",
    )
    parser.add_argument("--mqtt-host", help="MQTT broker host.")
    parser.add_argument("--mqtt-port", type=int, help="MQTT broker port.")
    parser.add_argument("--api-host", help="Bind address of the HTTP/WebSocket API.")
    parser.add_argument("--api-port", type=int, help="Port of the HTTP/WebSocket API.")
    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Run the worker without the HTTP/WebSocket API.",
    )
    parser.add_argument(
        "--profile-switch-failure",
        choices=("fatal", "recoverable"),
        help="What to do when the vehicle profile switch fails.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args(argv)


def _config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field_name in ("mqtt_host", "mqtt_port", "api_host", "api_port", "profile_switch_failure"):
        value = getattr(args, field_name)
        if value is not None:
            overrides[field_name] = value
    return overrides


async def _run(config: HmiConfig, *, serve_api: bool) -> int:
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop_requested.set)

    worker = HmiWorker(config)
    runner: web.AppRunner | None = None
    try:
        await worker.start()
    except HmiError as exc:
        _logger.critical("Worker failed to start: %s", exc)
        await worker.stop()
        return 1

    try:
        if serve_api:
            runner = web.AppRunner(create_app(worker))
            await runner.setup()
            site = web.TCPSite(runner, config.api_host, config.api_port)
            await site.start()
            _logger.info("HMI API listening on http://%s:%d", config.api_host, config.api_port)

        fatal = asyncio.ensure_future(worker.wait_fatal())
        stopped = asyncio.ensure_future(stop_requested.wait())
        done, pending = await asyncio.wait({fatal, stopped}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if fatal in done:
            _logger.critical("Terminating after fatal error: %s", fatal.result())
            return 1
        _logger.info("Shutdown requested")
        return 0
    finally:
        if runner is not None:
            await runner.cleanup()
        await worker.stop()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = HmiConfig.from_env(**_config_overrides(args))
        return asyncio.run(_run(config, serve_api=not args.no_api))
    except HmiError as exc:
        _logger.critical("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
