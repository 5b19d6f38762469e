"""CLI entry point for the bootwatch prober.

Loads the configuration (defaults < YAML file < environment < CLI flags),
resolves the bootstrap targets, builds one probe host per transport, and
runs the [Prober][bootwatch.services.prober.Prober] either once
(``--once``) or continuously next to a Prometheus metrics server.

Exit codes: ``0`` clean shutdown, ``1`` startup or configuration failure,
``130`` interrupted.

Examples:
    ```bash
    python -m bootwatch --once --transports tcp
    bootwatch --config config/bootwatch.yaml --log-level DEBUG
    BOOTWATCH_PROBE_INTERVAL=1m bootwatch --metrics-port 9100
    ```
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bootwatch.core import (
    BootwatchError,
    ConfigurationError,
    build_host_pool,
    load_host_constructors,
    start_metrics_server,
)
from bootwatch.core.logger import Logger, StructuredFormatter
from bootwatch.core.yaml import load_yaml
from bootwatch.models import BootstrapTarget
from bootwatch.services.prober import Prober, ProberConfig, resolve_targets


DEFAULT_CONFIG = Path("config") / "bootwatch.yaml"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Environment variable -> dotted config key
ENV_OVERRIDES: dict[str, str] = {
    "BOOTWATCH_PEERS": "bootstrap.peers",
    "BOOTWATCH_PEERS_FILE": "bootstrap.peers_file",
    "BOOTWATCH_PROTOCOL": "bootstrap.protocol_id",
    "BOOTWATCH_TRANSPORTS": "transports",
    "BOOTWATCH_PROBE_INTERVAL": "interval",
    "BOOTWATCH_METRICS_HOST": "metrics.host",
    "BOOTWATCH_METRICS_PORT": "metrics.port",
}

# argparse destination -> dotted config key
CLI_OVERRIDES: dict[str, str] = {
    "peers": "bootstrap.peers",
    "peers_file": "bootstrap.peers_file",
    "protocol": "bootstrap.protocol_id",
    "transports": "transports",
    "probe_interval": "interval",
    "metrics_host": "metrics.host",
    "metrics_port": "metrics.port",
}

logger = Logger("cli")


async def run_service(service: Prober, *, once: bool) -> int:
    """Run the prober in one-shot or continuous mode.

    In one-shot mode, a single sweep runs immediately and no metrics server
    is started. In continuous mode, a Prometheus metrics server is started
    and the prober runs until a shutdown signal is received.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    # One-shot mode: single sweep, no metrics server
    if once:
        try:
            async with service:
                await service.run()
            logger.info("prober_completed", up=service.liveness.count_up(), pairs=len(service.liveness))
            return EXIT_OK
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error("prober_failed", error=str(e), error_type=type(e).__name__)
            return EXIT_FAILURE

    # Continuous mode: metrics server + indefinite operation
    metrics_config = service.config.metrics
    try:
        metrics_server = await start_metrics_server(metrics_config)
    except OSError as e:
        logger.error(
            "metrics_server_failed",
            host=metrics_config.host,
            port=metrics_config.port,
            error=str(e),
        )
        return EXIT_FAILURE

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    # Signal handling for graceful shutdown
    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            await service.run_forever()
        return EXIT_OK
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error("prober_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the prober."""
    parser = argparse.ArgumentParser(
        prog="bootwatch",
        description="Bootstrap peer liveness prober",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help=f"Config file path (default: {DEFAULT_CONFIG}, if present)",
    )

    parser.add_argument(
        "--peers",
        nargs="+",
        metavar="MULTIADDR",
        help="Bootstrap peer multiaddrs ending in /p2p/<peer-id>",
    )

    parser.add_argument(
        "--peers-file",
        metavar="PATH",
        help="File with one bootstrap peer multiaddr per line",
    )

    parser.add_argument(
        "--protocol",
        metavar="ID",
        help="DHT protocol identifier (default: /ipfs/kad/1.0.0)",
    )

    parser.add_argument(
        "--transports",
        nargs="+",
        metavar="NAME",
        help="Transports to probe over: tcp, quic, ws, wt (default: all)",
    )

    parser.add_argument(
        "--probe-interval",
        metavar="DURATION",
        help="Time between sweeps, e.g. 300, 30s, 5m (default: 5m)",
    )

    parser.add_argument(
        "--metrics-host",
        metavar="HOST",
        help="Metrics server bind address (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        metavar="PORT",
        help="Metrics server port (default: 3232)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit (default: run continuously)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that all
    log output -- from both ``Logger`` (with ``structured_kv`` extra) and
    plain ``logging.getLogger()`` calls in utils and services -- is unified
    as ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _set_path(data: dict[str, Any], dotted: str, value: Any) -> None:
    """Set ``value`` at a dotted key, creating intermediate sections."""
    *sections, key = dotted.split(".")
    node = data
    for section in sections:
        child = node.get(section)
        if not isinstance(child, dict):
            child = node[section] = {}
        node = child
    node[key] = value


def build_config_dict(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Merge the YAML file, environment variables, and CLI flags.

    Later sources override earlier ones key by key. An explicit
    ``--config`` must exist; the default path is optional.

    Raises:
        ConfigurationError: If the YAML file is invalid or an explicit
            ``--config`` does not exist.
    """
    environ = os.environ if environ is None else environ

    path = args.config or DEFAULT_CONFIG
    if path.exists():
        data = load_yaml(path)
    elif args.config is not None:
        raise ConfigurationError(f"Config file not found: {path}")
    else:
        data = {}

    for var, dotted in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            _set_path(data, dotted, value)

    for dest, dotted in CLI_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        if dotted in ("bootstrap.peers", "transports") and isinstance(value, list):
            value = ",".join(value)
        _set_path(data, dotted, value)

    return data


def load_config(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> ProberConfig:
    """Build the validated prober configuration.

    Raises:
        ConfigurationError: If any source is invalid.
    """
    data = build_config_dict(args, environ)
    try:
        return ProberConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def log_config(config: ProberConfig, targets: Sequence[BootstrapTarget]) -> None:
    """Log the effective configuration once at startup."""
    logger.info(
        "config_loaded",
        interval_s=config.interval,
        run_immediately=config.run_immediately,
        protocol=config.bootstrap.protocol_id,
        transports=",".join(config.transports),
        targets=",".join(target.peer_id for target in targets),
        connect_timeout_s=config.timeouts.connect,
        query_timeout_s=config.timeouts.query,
        forget_timeout_s=config.timeouts.forget,
        metrics=(
            f"{config.metrics.host}:{config.metrics.port}{config.metrics.path}"
            if config.metrics.enabled
            else "disabled"
        ),
    )


async def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point: parse args, build hosts, and run the prober."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args)
        targets = resolve_targets(config.bootstrap)
        log_config(config, targets)
        hosts = await build_host_pool(
            config.transports,
            config.bootstrap.protocol_id,
            load_host_constructors(),
        )
    except BootwatchError as e:
        logger.error("startup_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE

    try:
        async with hosts:
            service = Prober(hosts, config, targets=targets)
            return await run_service(service, once=args.once)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    cli()
