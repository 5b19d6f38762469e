"""
Pytest configuration and shared fixtures for bootwatch tests.

Provides:
- FakeHost, an in-memory PeerHost with scriptable failures
- Sample bootstrap targets
- A fresh Prometheus registry and ProbeMetrics per test
- A prober factory wired to fake hosts with metrics disabled
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Sequence
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from bootwatch.core.hosts import HostPool
from bootwatch.core.metrics import ProbeMetrics
from bootwatch.models import BootstrapTarget, TransportKind
from bootwatch.services.prober import Prober, ProberConfig


PEER_A = "QmNnooDu7bfjPFoTZYxMNLWUQJyrVwtbZg5gBMjTezGAJN"
PEER_B = "QmQCU2EcMqAqQPR2i9bChDtGNJchTbq5TbXJJ16u19uLTa"
PEER_C = "QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Fake Host
# ============================================================================


class FakeHost:
    """In-memory PeerHost recording every call.

    Peer ids listed in ``fail_connect``, ``fail_query`` or ``fail_forget``
    make the matching call raise; ids in ``hang_connect`` make connect
    block until cancelled. ``closest`` maps a peer id to the query result
    (default: one peer).
    """

    def __init__(
        self,
        peer_id: str = "12D3KooWFakeProbeHost",
        *,
        fail_connect: Sequence[str] = (),
        fail_query: Sequence[str] = (),
        fail_forget: Sequence[str] = (),
        hang_connect: Sequence[str] = (),
        closest: dict[str, list[object]] | None = None,
    ) -> None:
        self._peer_id = peer_id
        self.fail_connect = set(fail_connect)
        self.fail_query = set(fail_query)
        self.fail_forget = set(fail_forget)
        self.hang_connect = set(hang_connect)
        self.closest = closest or {}
        self.calls: list[tuple[str, str]] = []
        self.on_connect: Callable[[str], None] | None = None
        self.closed = False

    @property
    def peer_id(self) -> str:
        return self._peer_id

    async def connect(self, target: BootstrapTarget) -> None:
        self.calls.append(("connect", target.peer_id))
        if self.on_connect is not None:
            self.on_connect(target.peer_id)
        if target.peer_id in self.hang_connect:
            await asyncio.sleep(3600)
        if target.peer_id in self.fail_connect:
            raise ConnectionRefusedError(f"dial {target.peer_id} refused")

    async def find_closest_peers(self, peer_id: str, key: str) -> list[object]:
        self.calls.append(("query", peer_id))
        if peer_id in self.fail_query:
            raise RuntimeError("stream reset")
        return list(self.closest.get(peer_id, ["QmCloser"]))

    async def forget(self, peer_id: str) -> None:
        self.calls.append(("forget", peer_id))
        if peer_id in self.fail_forget:
            raise RuntimeError("peerstore locked")

    async def close(self) -> None:
        self.closed = True

    def count(self, op: str, peer_id: str) -> int:
        return sum(1 for call in self.calls if call == (op, peer_id))


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def target_a() -> BootstrapTarget:
    return BootstrapTarget(peer_id=PEER_A, addrs=("/ip4/139.178.91.71/tcp/4001",))


@pytest.fixture
def target_b() -> BootstrapTarget:
    return BootstrapTarget(peer_id=PEER_B, addrs=("/ip4/145.40.118.135/tcp/4001",))


@pytest.fixture
def targets(target_a: BootstrapTarget, target_b: BootstrapTarget) -> list[BootstrapTarget]:
    return [target_a, target_b]


# ============================================================================
# Metrics Fixtures
# ============================================================================


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh, isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def probe_metrics(registry: CollectorRegistry) -> Iterator[ProbeMetrics]:
    metrics = ProbeMetrics(registry)
    yield metrics
    metrics.close()


# ============================================================================
# Prober Factory
# ============================================================================


@pytest.fixture
def make_prober(
    targets: list[BootstrapTarget],
    probe_metrics: ProbeMetrics,
) -> Callable[..., Prober]:
    """Build a Prober over fake hosts with service metrics disabled.

    Usage: ``make_prober({TransportKind.TCP: FakeHost()}, **config_overrides)``.
    """

    def _make(
        hosts: dict[TransportKind, FakeHost],
        *,
        prober_targets: Sequence[BootstrapTarget] | None = None,
        **overrides: Any,
    ) -> Prober:
        data: dict[str, Any] = {
            "transports": list(hosts),
            "metrics": {"enabled": False},
            **overrides,
        }
        config = ProberConfig.model_validate(data)
        return Prober(
            HostPool(hosts),
            config,
            targets=targets if prober_targets is None else prober_targets,
            metrics=probe_metrics,
        )

    return _make


@pytest.fixture
def fake_host_class() -> type[FakeHost]:
    return FakeHost
