"""Prober service for bootwatch.

Periodically checks every configured bootstrap peer over every configured
transport. Each (transport, target) pair goes through the same steps:

1. **Forget** the target on the transport's host so the attempt starts from
   a clean slate. If this fails the pair is skipped for the sweep.
2. **Connect** using the target's known addresses. The result sets the
   pair's liveness and is recorded as a ``connect`` outcome.
3. **Query** the connected target for the peers closest to the host's own
   peer id. The result is recorded as a ``query`` outcome but never changes
   liveness.
4. **Forget** the target again, whatever happened before.

Sweeps are sequential: transports outer (sorted), targets inner (resolution
order). Shutdown is only checked between pairs: the pair in flight always
runs all four steps before the sweep returns.

See Also:
    [ProberConfig][bootwatch.services.prober.ProberConfig]: Configuration
        model for targets, transports, and timeouts.
    [BaseService][bootwatch.core.base_service.BaseService]: Abstract base
        class providing ``run_forever()`` and ``from_yaml()`` lifecycle.
    [LivenessState][bootwatch.core.liveness.LivenessState]: Pair liveness
        read by the Prometheus scrape path.

Examples:
    ```python
    from bootwatch.core import build_host_pool, load_host_constructors
    from bootwatch.services import Prober, ProberConfig

    config = ProberConfig(transports=["tcp"])
    hosts = await build_host_pool(
        config.transports, config.bootstrap.protocol_id, load_host_constructors()
    )

    async with hosts, Prober(hosts, config) as prober:
        await prober.run_forever()
    ```
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, NamedTuple, Self, TypeVar

from bootwatch.core.base_service import BaseService
from bootwatch.core.exceptions import (
    ConfigurationError,
    ConnectivityError,
    ForgetError,
    ProbeTimeoutError,
    QueryError,
)
from bootwatch.core.liveness import LivenessState
from bootwatch.core.metrics import ProbeMetrics
from bootwatch.models import ProbeOperation, ProbeOutcome, ServiceName

from .configs import ProberConfig
from .utils import merge_targets, resolve_targets


if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable
    from types import TracebackType

    from bootwatch.core.hosts import HostPool, PeerHost
    from bootwatch.core.logger import Logger
    from bootwatch.models import BootstrapTarget, TransportKind


_T = TypeVar("_T")

_FAILED = object()


class PairResult(NamedTuple):
    """What happened to one (transport, target) pair during a sweep."""

    skipped: bool = False
    connected: bool = False
    queried: bool = False


@dataclass(slots=True)
class SweepSummary:
    """Running totals for one sweep."""

    probed: int = 0
    skipped: int = 0
    connect_failed: int = 0
    query_failed: int = 0

    def add(self, result: PairResult) -> None:
        if result.skipped:
            self.skipped += 1
            return
        self.probed += 1
        if not result.connected:
            self.connect_failed += 1
        elif not result.queried:
            self.query_failed += 1


class Prober(BaseService[ProberConfig]):
    """Bootstrap peer liveness prober.

    Holds one host per transport (a [HostPool][bootwatch.core.hosts.HostPool]
    built at startup), the resolved targets, and the
    [LivenessState][bootwatch.core.liveness.LivenessState] for their
    cross-product. Every pair starts Down.

    Probe outcomes go to a
    [ProbeMetrics][bootwatch.core.metrics.ProbeMetrics]. One passed to the
    constructor is used as is and left open; otherwise, when metrics are
    enabled, the service creates one on the default registry on context
    entry and closes it on exit.

    See Also:
        [ProberConfig][bootwatch.services.prober.ProberConfig]: Configuration
            model for this service.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.PROBER
    CONFIG_CLASS: ClassVar[type[ProberConfig]] = ProberConfig

    def __init__(
        self,
        hosts: HostPool,
        config: ProberConfig | None = None,
        *,
        targets: Iterable[BootstrapTarget] | None = None,
        metrics: ProbeMetrics | None = None,
    ) -> None:
        """Initialize the prober.

        Args:
            hosts: One built host per configured transport.
            config: Service configuration (defaults when ``None``).
            targets: Pre-resolved targets, merged by peer id. Resolved from
                ``config.bootstrap`` when omitted.
            metrics: Metrics facade receiving every probe outcome.

        Raises:
            ConfigurationError: If the targets cannot be resolved, or the
                host pool does not cover exactly the configured transports.
        """
        super().__init__(config=config)

        if set(hosts.transports) != set(self._config.transports):
            raise ConfigurationError(
                f"Host pool transports {list(hosts.transports)} do not match "
                f"configured transports {list(self._config.transports)}"
            )

        self._hosts = hosts
        self._targets: tuple[BootstrapTarget, ...] = (
            merge_targets(targets) if targets is not None else resolve_targets(self._config.bootstrap)
        )
        self._liveness = LivenessState(hosts.transports, self._targets)

        self._metrics = metrics
        self._owns_metrics = False
        if metrics is not None:
            metrics.watch(self._liveness)

    @property
    def targets(self) -> tuple[BootstrapTarget, ...]:
        return self._targets

    @property
    def liveness(self) -> LivenessState:
        """Pair liveness; safe to snapshot from any thread."""
        return self._liveness

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        if self._metrics is None and self._config.metrics.enabled:
            self._metrics = ProbeMetrics()
            self._metrics.watch(self._liveness)
            self._owns_metrics = True
        return await super().__aenter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await super().__aexit__(exc_type, exc_val, exc_tb)
        if self._owns_metrics and self._metrics is not None:
            self._metrics.close()
            self._metrics = None
            self._owns_metrics = False

    # -------------------------------------------------------------------------
    # BaseService Implementation
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Execute one sweep over every (transport, target) pair.

        Returns early, without touching the remaining pairs, once shutdown
        has been requested.
        """
        total = len(self._hosts) * len(self._targets)
        self._logger.info(
            "sweep_started",
            transports=",".join(self._hosts.transports),
            targets=len(self._targets),
            pairs=total,
        )
        summary = SweepSummary()

        for transport, host in self._hosts.items():
            for target in self._targets:
                if not self.is_running:
                    self._logger.info(
                        "sweep_interrupted",
                        completed=summary.probed + summary.skipped,
                        remaining=total - summary.probed - summary.skipped,
                    )
                    return
                summary.add(await self.probe(transport, host, target))

        up = self._liveness.count_up()
        self.set_gauge("targets_up", up)
        self.set_gauge("targets_down", len(self._liveness) - up)
        self.set_gauge("pairs_skipped", summary.skipped)
        self._logger.info(
            "sweep_completed",
            up=up,
            down=len(self._liveness) - up,
            skipped=summary.skipped,
            connect_failed=summary.connect_failed,
            query_failed=summary.query_failed,
        )

    # -------------------------------------------------------------------------
    # Probing
    # -------------------------------------------------------------------------

    async def probe(self, transport: TransportKind, host: PeerHost, target: BootstrapTarget) -> PairResult:
        """Run forget, connect, query, forget for a single pair.

        Step failures are logged and counted, never raised. The pair runs to
        completion even if shutdown is requested meanwhile. Task
        cancellation propagates.
        """
        log = self._logger.bind(peer=target.peer_id, transport=transport.value)
        timeouts = self._config.timeouts

        if not await self._forget(host, target, log, phase="before"):
            log.warning("pair_skipped")
            return PairResult(skipped=True)

        log.debug("connecting", addrs=len(target.addrs))
        result = await self._step(
            log,
            "connect_failed",
            self._call(ProbeOperation.CONNECT, timeouts.connect, host.connect(target)),
            ConnectivityError,
        )
        connected = result is not _FAILED
        self._record(target, transport, ProbeOperation.CONNECT, success=connected)
        self._liveness.set(transport, target, up=connected)

        queried = False
        if connected:
            log.debug("querying_closest_peers", key=host.peer_id)
            peers = await self._step(
                log,
                "query_failed",
                self._call(
                    ProbeOperation.QUERY,
                    timeouts.query,
                    host.find_closest_peers(target.peer_id, host.peer_id),
                ),
                QueryError,
            )
            if peers is not _FAILED:
                queried = bool(peers)
                if queried:
                    log.debug("closest_peers_received", count=len(peers))
                else:
                    log.warning("closest_peers_empty")
            self._record(target, transport, ProbeOperation.QUERY, success=queried)

        await self._forget(host, target, log, phase="after")
        log.info("pair_probed", up=connected, query_ok=queried)
        return PairResult(connected=connected, queried=queried)

    async def _forget(self, host: PeerHost, target: BootstrapTarget, log: Logger, *, phase: str) -> bool:
        result = await self._step(
            log,
            "forget_failed",
            self._call("forget", self._config.timeouts.forget, host.forget(target.peer_id)),
            ForgetError,
            phase=phase,
        )
        return result is not _FAILED

    async def _step(
        self,
        log: Logger,
        event: str,
        call: Awaitable[_T],
        error_class: type[Exception],
        **fields: object,
    ) -> _T | object:
        """Await one host call, turning any failure into a logged warning.

        Returns the call's result, or the ``_FAILED`` sentinel.
        """
        try:
            return await call
        except ProbeTimeoutError as e:
            error: Exception = e
        except Exception as e:  # noqa: BLE001
            error = error_class(f"{type(e).__name__}: {e}")

        self.inc_counter(event)
        log.warning(event, error=str(error), error_type=type(error).__name__, **fields)
        return _FAILED

    @staticmethod
    async def _call(step: str, timeout: float | None, call: Awaitable[_T]) -> _T:  # noqa: ASYNC109
        """Await ``call`` within ``timeout`` seconds (``None`` means no limit)."""
        try:
            async with asyncio.timeout(timeout):
                return await call
        except TimeoutError as e:
            raise ProbeTimeoutError(f"{step} timed out after {timeout}s") from e

    def _record(
        self,
        target: BootstrapTarget,
        transport: TransportKind,
        operation: ProbeOperation,
        *,
        success: bool,
    ) -> None:
        outcome = ProbeOutcome(target=target, transport=transport, operation=operation, success=success)
        if self._metrics is not None:
            self._metrics.record(outcome)

