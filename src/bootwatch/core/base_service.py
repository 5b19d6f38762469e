"""
Abstract base class for long-running bootwatch services.

``BaseService[ConfigT]`` provides the standard lifecycle: structured logging
via [Logger][bootwatch.core.logger.Logger], cooperative shutdown via an
``asyncio.Event``, interval-based cycling with
[run_forever()][bootwatch.core.base_service.BaseService.run_forever], an
optional consecutive failure limit, and automatic Prometheus metrics via the
shared service metrics in [bootwatch.core.metrics][bootwatch.core.metrics].

The loop is a small state machine over
[SchedulerState][bootwatch.models.constants.SchedulerState]: it starts
``SLEEPING``, moves to ``SWEEPING`` for each cycle when the interval
elapses, and ends ``STOPPED`` once shutdown is requested.

See Also:
    [Prober][bootwatch.services.prober.Prober]: The probe scheduler built
        on this class.
    [BaseServiceConfig][bootwatch.core.base_service.BaseServiceConfig]: Base
        configuration model for all services.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Annotated, Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, BeforeValidator, Field

from bootwatch.models import SchedulerState, ServiceName
from bootwatch.utils.parsing import parse_duration

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .yaml import load_yaml


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Base configuration shared by all services that run in a loop.

    Subclass this to add service-specific fields. ``interval`` accepts a
    number of seconds or a duration string such as ``"5m"`` or ``"1h30m"``.

    See Also:
        [BaseService][bootwatch.core.base_service.BaseService]: The abstract
            service class that consumes this configuration.
        [MetricsConfig][bootwatch.core.metrics.MetricsConfig]: Embedded
            configuration for the Prometheus metrics endpoint.
    """

    interval: Annotated[float, BeforeValidator(parse_duration)] = Field(
        default=300.0,
        gt=0.0,
        description="Seconds between run cycles",
    )
    run_immediately: bool = Field(
        default=False,
        description="Run the first cycle at startup instead of after one interval",
    )
    max_consecutive_failures: int = Field(
        default=0,
        ge=0,
        description="Stop after this many consecutive cycle errors (0 = unlimited)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for all bootwatch services.

    Subclasses must set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][bootwatch.core.base_service.BaseService.run] with one bounded
    unit of work.

    Attributes:
        SERVICE_NAME: Unique service identifier used in logging and metrics.
        CONFIG_CLASS: Pydantic model class used by the factory methods.
        _config: Typed service configuration (defaults from ``CONFIG_CLASS``).
        _logger: [Logger][bootwatch.core.logger.Logger] named after the service.
        _shutdown_event: Clear while running; set once shutdown was requested.
        _state: Current [SchedulerState][bootwatch.models.constants.SchedulerState].

    Note:
        The lifecycle pattern is ``async with service:`` then
        [run_forever()][bootwatch.core.base_service.BaseService.run_forever]
        (or a single [run()][bootwatch.core.base_service.BaseService.run]
        with ``--once``).
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT | None = None) -> None:
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()
        self._state = SchedulerState.SLEEPING

    @property
    def config(self) -> ConfigT:
        """The typed service configuration (read-only)."""
        return self._config

    @property
    def state(self) -> SchedulerState:
        """Where the run loop currently is."""
        return self._state

    @abstractmethod
    async def run(self) -> None:
        """Execute one cycle of the service's main logic.

        Long-running cycles should check
        [is_running][bootwatch.core.base_service.BaseService.is_running]
        between units of work and return early once it turns False.
        """
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown of the service.

        Safe to call from signal handlers. The inter-cycle wait returns
        immediately and cycles stop at their next checkpoint.
        """
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Whether the service is still active (shutdown not yet requested)."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Wait for either a shutdown signal or a timeout to elapse.

        Returns ``True`` if shutdown was requested during the wait, or
        ``False`` if the timeout expired normally.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Run cycles on a fixed interval until shutdown.

        The loop sleeps for ``config.interval`` seconds before each cycle
        (unless ``config.run_immediately`` is set, in which case the first
        cycle starts at once). The wait is interruptible by
        [request_shutdown()][bootwatch.core.base_service.BaseService.request_shutdown].

        Exceptions escaping [run()][bootwatch.core.base_service.BaseService.run]
        are logged and counted; the loop gives up only when
        ``config.max_consecutive_failures`` is non-zero and reached.
        ``CancelledError``, ``KeyboardInterrupt``, and ``SystemExit`` always
        propagate immediately.

        Prometheus metrics tracked automatically: ``cycles_success``,
        ``cycles_failed``, ``errors_{ExceptionType}`` (``SERVICE_COUNTER``),
        ``consecutive_failures``, ``last_cycle_timestamp`` (``SERVICE_GAUGE``),
        and ``cycle_duration_seconds``.
        """
        interval = self._config.interval
        max_consecutive_failures = self._config.max_consecutive_failures

        if self._config.metrics.enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})

        self._logger.info(
            "run_forever_started",
            interval=interval,
            run_immediately=self._config.run_immediately,
            max_consecutive_failures=max_consecutive_failures,
        )

        consecutive_failures = 0
        skip_wait = self._config.run_immediately

        try:
            while self.is_running:
                if not skip_wait:
                    self._state = SchedulerState.SLEEPING
                    self._logger.info("sleeping", duration_s=interval)
                    if await self.wait(interval):
                        break
                skip_wait = False

                if await self._run_cycle():
                    consecutive_failures = 0
                    continue

                consecutive_failures += 1
                self.set_gauge("consecutive_failures", consecutive_failures)
                if 0 < max_consecutive_failures <= consecutive_failures:
                    self._logger.critical(
                        "max_consecutive_failures_reached",
                        failures=consecutive_failures,
                        limit=max_consecutive_failures,
                    )
                    break
        finally:
            self._state = SchedulerState.STOPPED

        self._logger.info("run_forever_stopped")

    async def _run_cycle(self) -> bool:
        """Run one cycle with metrics and error accounting. Returns success."""
        self._state = SchedulerState.SWEEPING
        cycle_start = time.monotonic()

        try:
            await self.run()
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:  # noqa: BLE001
            self.inc_counter("cycles_failed")
            self.inc_counter(f"errors_{type(e).__name__}")
            self._logger.error("run_cycle_error", error=str(e), error_type=type(e).__name__)
            return False

        duration = time.monotonic() - cycle_start
        self.inc_counter("cycles_success")
        if self._config.metrics.enabled:
            CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(duration)
        self.set_gauge("last_cycle_timestamp", time.time())
        self.set_gauge("consecutive_failures", 0)
        self._logger.info("cycle_completed", duration_s=round(duration, 3))
        return True

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        """Create a service instance from a YAML configuration file.

        Args:
            config_path: Path to the YAML file.
            **kwargs: Additional keyword arguments passed to the constructor.
        """
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Create a service instance from a configuration dictionary.

        Raises:
            pydantic.ValidationError: If ``data`` does not satisfy ``CONFIG_CLASS``.
        """
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        """Mark the service as running on context entry."""
        self._shutdown_event.clear()
        self._state = SchedulerState.SLEEPING
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Signal shutdown on context exit."""
        self._shutdown_event.set()
        self._state = SchedulerState.STOPPED
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge metric for this service. No-op if metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter metric for this service. No-op if metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
