"""
Unit tests for the bootwatch.__main__ CLI module.

Tests:
- parse_args argument parsing
- Configuration precedence: defaults < YAML < environment < CLI
- main() exit codes for configuration and host construction failures
- One-shot and continuous run_service paths
- cli() interrupt handling
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bootwatch.__main__ import (
    DEFAULT_CONFIG,
    ENV_OVERRIDES,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    build_config_dict,
    cli,
    load_config,
    main,
    parse_args,
    run_service,
)
from bootwatch.core.exceptions import ConfigurationError
from bootwatch.core.hosts import HostPool
from bootwatch.models import TransportKind
from bootwatch.services.prober import Prober, ProberConfig


PEER = "/ip4/104.131.131.82/tcp/4001/p2p/QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ"


@pytest.fixture(autouse=True)
def no_root_handlers():
    """Keep main() from stacking handlers on the root logger."""
    with patch("bootwatch.__main__.setup_logging"):
        yield


@pytest.fixture
def in_tmp_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ============================================================================
# Argument Parsing
# ============================================================================


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.config is None
        assert args.peers is None
        assert args.transports is None
        assert args.log_level == "INFO"
        assert args.once is False

    def test_all_flags(self) -> None:
        args = parse_args(
            [
                "--config", "c.yaml",
                "--peers", PEER, PEER,
                "--peers-file", "peers.txt",
                "--protocol", "/x/kad/1",
                "--transports", "tcp", "quic",
                "--probe-interval", "1m",
                "--metrics-host", "0.0.0.0",
                "--metrics-port", "9100",
                "--log-level", "DEBUG",
                "--once",
            ]
        )  # fmt: skip
        assert args.config == Path("c.yaml")
        assert args.peers == [PEER, PEER]
        assert args.transports == ["tcp", "quic"]
        assert args.metrics_port == 9100
        assert args.once is True

    def test_invalid_log_level(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--log-level", "TRACE"])


# ============================================================================
# Configuration Precedence
# ============================================================================


class TestBuildConfigDict:
    def test_nothing_configured(self, in_tmp_cwd: Path) -> None:
        assert build_config_dict(parse_args([]), environ={}) == {}

    def test_default_path_used_when_present(self, in_tmp_cwd: Path) -> None:
        (in_tmp_cwd / DEFAULT_CONFIG).parent.mkdir()
        (in_tmp_cwd / DEFAULT_CONFIG).write_text("interval: 2m\n")
        assert build_config_dict(parse_args([]), environ={}) == {"interval": "2m"}

    def test_explicit_missing_config(self, in_tmp_cwd: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            build_config_dict(parse_args(["--config", "missing.yaml"]), environ={})

    def test_env_overrides_yaml(self, in_tmp_cwd: Path) -> None:
        path = in_tmp_cwd / "c.yaml"
        path.write_text("interval: 2m\nbootstrap:\n  protocol_id: /a/kad/1\nmetrics:\n  port: 4000\n")
        data = build_config_dict(
            parse_args(["--config", str(path)]),
            environ={"BOOTWATCH_PROBE_INTERVAL": "30s", "BOOTWATCH_METRICS_PORT": "5000"},
        )
        assert data["interval"] == "30s"
        assert data["bootstrap"] == {"protocol_id": "/a/kad/1"}
        assert data["metrics"] == {"port": "5000"}

    def test_cli_overrides_env(self, in_tmp_cwd: Path) -> None:
        data = build_config_dict(
            parse_args(["--transports", "tcp", "ws", "--protocol", "/c/kad/1"]),
            environ={"BOOTWATCH_TRANSPORTS": "quic", "BOOTWATCH_PROTOCOL": "/e/kad/1"},
        )
        assert data["transports"] == "tcp,ws"
        assert data["bootstrap"]["protocol_id"] == "/c/kad/1"

    def test_null_section_replaced(self, in_tmp_cwd: Path) -> None:
        path = in_tmp_cwd / "c.yaml"
        path.write_text("bootstrap:\n")
        data = build_config_dict(parse_args(["--config", str(path)]), environ={"BOOTWATCH_PEERS": PEER})
        assert data["bootstrap"] == {"peers": PEER}

    def test_empty_env_ignored(self, in_tmp_cwd: Path) -> None:
        assert build_config_dict(parse_args([]), environ={"BOOTWATCH_PEERS": ""}) == {}

    def test_every_env_var_maps_to_config(self) -> None:
        assert set(ENV_OVERRIDES) == {
            "BOOTWATCH_PEERS",
            "BOOTWATCH_PEERS_FILE",
            "BOOTWATCH_PROTOCOL",
            "BOOTWATCH_TRANSPORTS",
            "BOOTWATCH_PROBE_INTERVAL",
            "BOOTWATCH_METRICS_HOST",
            "BOOTWATCH_METRICS_PORT",
        }


class TestLoadConfig:
    def test_valid(self, in_tmp_cwd: Path) -> None:
        config = load_config(
            parse_args(["--peers", PEER, "--transports", "tcp", "--probe-interval", "1m"]),
            environ={"BOOTWATCH_METRICS_PORT": "9100"},
        )
        assert config.bootstrap.peers == [PEER]
        assert config.transports == [TransportKind.TCP]
        assert config.interval == 60.0
        assert config.metrics.port == 9100

    def test_invalid_becomes_configuration_error(self, in_tmp_cwd: Path) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(parse_args(["--transports", "udp"]), environ={})


# ============================================================================
# main()
# ============================================================================


class TestMain:
    async def test_bad_transport_exits_1(self, in_tmp_cwd: Path) -> None:
        assert await main(["--transports", "udp", "--once"]) == EXIT_FAILURE

    async def test_bad_peer_exits_1(self, in_tmp_cwd: Path) -> None:
        assert await main(["--peers", "/ip4/1.2.3.4/tcp/1", "--once"]) == EXIT_FAILURE

    async def test_undecodable_peers_file_exits_1(self, in_tmp_cwd: Path) -> None:
        (in_tmp_cwd / "peers.txt").write_bytes(b"\xff\xfe/ip4/1.2.3.4/tcp/1")
        assert await main(["--peers-file", "peers.txt", "--once"]) == EXIT_FAILURE

    async def test_no_host_implementation_exits_1(self, in_tmp_cwd: Path) -> None:
        with patch("bootwatch.__main__.load_host_constructors", return_value={}):
            assert await main(["--peers", PEER, "--transports", "tcp", "--once"]) == EXIT_FAILURE

    async def test_once_runs_single_sweep(self, in_tmp_cwd: Path, fake_host_class) -> None:
        hosts = []

        async def build(options):
            host = fake_host_class()
            hosts.append(host)
            return host

        with (
            patch("bootwatch.__main__.load_host_constructors", return_value={TransportKind.TCP: build}),
            patch("bootwatch.__main__.start_metrics_server") as mock_start,
        ):
            code = await main(["--peers", PEER, "--transports", "tcp", "--once"])

        assert code == EXIT_OK
        mock_start.assert_not_called()
        (host,) = hosts
        assert host.count("connect", "QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ") == 1
        assert host.closed


# ============================================================================
# run_service()
# ============================================================================


def _prober(fake_host_class, targets, **overrides) -> tuple[Prober, object]:
    host = fake_host_class()
    config = ProberConfig(transports=["tcp"], **overrides)
    return Prober(HostPool({TransportKind.TCP: host}), config, targets=targets), host


class TestRunService:
    async def test_once_failure_exits_1(self, fake_host_class, targets) -> None:
        prober, _ = _prober(fake_host_class, targets, metrics={"enabled": False})
        with patch.object(prober, "run", AsyncMock(side_effect=RuntimeError("boom"))):
            assert await run_service(prober, once=True) == EXIT_FAILURE

    async def test_continuous_until_shutdown(self, fake_host_class, targets) -> None:
        prober, host = _prober(
            fake_host_class, targets, interval=0.01, run_immediately=True, metrics={"enabled": False}
        )
        host.on_connect = lambda peer_id: prober.request_shutdown()
        server = MagicMock()
        server.stop = AsyncMock()

        with patch("bootwatch.__main__.start_metrics_server", AsyncMock(return_value=server)):
            code = await asyncio.wait_for(run_service(prober, once=False), timeout=5)

        assert code == EXIT_OK
        server.stop.assert_awaited_once()

    async def test_metrics_bind_failure_exits_1(self, fake_host_class, targets) -> None:
        prober, host = _prober(fake_host_class, targets, metrics={"enabled": False})
        with patch(
            "bootwatch.__main__.start_metrics_server",
            AsyncMock(side_effect=OSError("address in use")),
        ):
            assert await run_service(prober, once=False) == EXIT_FAILURE
        assert host.calls == []


class TestCli:
    def test_exit_code_from_main(self) -> None:
        with (
            patch("bootwatch.__main__.main", MagicMock()),
            patch("bootwatch.__main__.asyncio.run", return_value=EXIT_OK),
            pytest.raises(SystemExit) as exc_info,
        ):
            cli()
        assert exc_info.value.code == EXIT_OK

    def test_keyboard_interrupt_exits_130(self) -> None:
        with (
            patch("bootwatch.__main__.main", MagicMock()),
            patch("bootwatch.__main__.asyncio.run", side_effect=KeyboardInterrupt),
            pytest.raises(SystemExit) as exc_info,
        ):
            cli()
        assert exc_info.value.code == EXIT_INTERRUPTED
