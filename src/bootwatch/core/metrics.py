"""
Prometheus metrics collection and HTTP exposition.

Two metric shapes carry the probe results:

- ``bootwatch_probes_total`` -- counter pushed once per connect or query
  attempt by [ProbeMetrics.record()][bootwatch.core.metrics.ProbeMetrics.record],
  labelled ``target``, ``transport``, ``operation``, ``success``.
- ``bootwatch_bootstrapper_up`` -- gauge pulled at scrape time by
  [LivenessCollector][bootwatch.core.metrics.LivenessCollector], one sample
  per (transport, target) pair with value 1 (up) or 0 (down).

Service-level metrics shared by every
[BaseService][bootwatch.core.base_service.BaseService] are module-level
singletons registered on the default registry:

    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (current state).
    SERVICE_COUNTER:            Cumulative totals (monotonically increasing).
    CYCLE_DURATION_SECONDS:     Histogram for latency percentiles (p50/p95/p99).

[MetricsServer][bootwatch.core.metrics.MetricsServer] exposes a registry on
an aiohttp ``/metrics`` endpoint for scraping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector
from pydantic import BaseModel, Field


if TYPE_CHECKING:
    from collections.abc import Iterator

    from bootwatch.models import ProbeOutcome

    from .liveness import LivenessState


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    Set ``host`` to ``"0.0.0.0"`` in container environments to allow
    external scraping.
    """

    enabled: bool = Field(default=True, description="Enable metrics collection and endpoint")
    port: int = Field(default=3232, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Common Service Metrics (auto-tracked by BaseService.run_forever)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "cycle_duration_seconds",
    "Duration of service cycle in seconds",
    ["service"],
    buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
)

# Automatic names (BaseService.run_forever):
#   gauge:   consecutive_failures, last_cycle_timestamp
#   counter: cycles_success, cycles_failed, errors_{type}
# Prober names:
#   gauge:   targets_up, targets_down, pairs_skipped

SERVICE_GAUGE = Gauge(
    "service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# Probe Metrics
# ---------------------------------------------------------------------------

PROBES_METRIC = "bootwatch_probes"
LIVENESS_METRIC = "bootwatch_bootstrapper_up"


class LivenessCollector(Collector):
    """Pull-style gauge reporting every pair of a [LivenessState][bootwatch.core.liveness.LivenessState].

    ``collect()`` is invoked by the registry on each scrape and only calls
    the side-effect-free
    [snapshot()][bootwatch.core.liveness.LivenessState.snapshot].
    """

    def __init__(self, state: LivenessState) -> None:
        self._state = state

    def describe(self) -> Iterator[GaugeMetricFamily]:
        yield self._family()

    def collect(self) -> Iterator[GaugeMetricFamily]:
        family = self._family()
        for key, up in self._state.snapshot().items():
            family.add_metric([key.transport.value, key.target.peer_id], 1 if up else 0)
        yield family

    @staticmethod
    def _family() -> GaugeMetricFamily:
        return GaugeMetricFamily(
            LIVENESS_METRIC,
            "Whether the bootstrap target is reachable over the transport (1 up, 0 down)",
            labels=["transport", "target"],
        )


class ProbeMetrics:
    """Instrumentation facade for probe outcomes and liveness.

    Owns the probe counter on ``registry`` and, once
    [watch()][bootwatch.core.metrics.ProbeMetrics.watch] is called, a
    [LivenessCollector][bootwatch.core.metrics.LivenessCollector]. Call
    [close()][bootwatch.core.metrics.ProbeMetrics.close] to unregister both
    so another instance can be created on the same registry.

    Examples:
        ```python
        metrics = ProbeMetrics(registry)
        metrics.watch(state)
        metrics.record(outcome)
        metrics.close()
        ```
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self._registry = registry
        self._probes: Counter | None = Counter(
            PROBES_METRIC,
            "Probe attempts against bootstrap targets",
            ["target", "transport", "operation", "success"],
            registry=registry,
        )
        self._collector: LivenessCollector | None = None

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record(self, outcome: ProbeOutcome) -> None:
        """Increment the probe counter for one attempt. No-op after ``close()``."""
        if self._probes is None:
            return
        self._probes.labels(**outcome.labels()).inc()

    def watch(self, state: LivenessState) -> None:
        """Expose ``state`` as the liveness gauge, replacing any previous one."""
        if self._collector is not None:
            self._registry.unregister(self._collector)
        self._collector = LivenessCollector(state)
        self._registry.register(self._collector)

    def close(self) -> None:
        """Unregister the counter and the liveness collector. Idempotent."""
        if self._collector is not None:
            self._registry.unregister(self._collector)
            self._collector = None
        if self._probes is not None:
            self._registry.unregister(self._probes)
            self._probes = None


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible endpoint.

    Built on aiohttp so it shares the event loop with the prober. The
    endpoint path is configurable via ``MetricsConfig.path``.

    Example:
        server = MetricsServer(MetricsConfig(port=8001))
        await server.start()
        # ... service runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig, registry: CollectorRegistry = REGISTRY) -> None:
        self._config = config
        self._registry = registry
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for Prometheus scrape requests.

        No-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Stop the HTTP server and release the port. Idempotent."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Serve the latest metrics in Prometheus exposition format."""
        return web.Response(
            body=generate_latest(self._registry),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(
    config: MetricsConfig | None = None,
    registry: CollectorRegistry = REGISTRY,
) -> MetricsServer:
    """Create and start a metrics server.

    Returns:
        A running MetricsServer. Call ``stop()`` during shutdown to release
        the bound port.
    """
    server = MetricsServer(config or MetricsConfig(), registry=registry)
    await server.start()
    return server
