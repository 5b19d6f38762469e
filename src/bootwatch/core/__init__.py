"""Core layer providing the foundation for the probe service.

Sits between ``bootwatch.services`` (above) and ``bootwatch.utils`` /
``bootwatch.models`` (below).

Attributes:
    BaseService: Abstract generic base class with lifecycle management
        ([run()][bootwatch.core.base_service.BaseService.run] /
        [run_forever()][bootwatch.core.base_service.BaseService.run_forever] /
        shutdown), factory methods, and Prometheus service metrics.
    HostPool: One outbound-only [PeerHost][bootwatch.core.hosts.PeerHost]
        per transport, built by
        [build_host_pool()][bootwatch.core.hosts.build_host_pool].
    LivenessState: Lock-protected up/down flag per (transport, target) pair.
    Logger: Structured logger supporting key=value and JSON output modes.
    ProbeMetrics: Probe counter and pull-style liveness gauge.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.

Examples:
    ```python
    from bootwatch.core import LivenessState, build_host_pool, load_host_constructors

    hosts = await build_host_pool(transports, protocol_id, load_host_constructors())
    state = LivenessState(hosts.transports, targets)
    ```
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .exceptions import (
    BootwatchError,
    ConfigurationError,
    ConnectivityError,
    ForgetError,
    HostConstructionError,
    ProbeError,
    ProbeTimeoutError,
    QueryError,
)
from .hosts import (
    HOSTS_ENTRY_POINT_GROUP,
    HostConstructor,
    HostOptions,
    HostPool,
    PeerHost,
    build_host_pool,
    load_host_constructors,
)
from .liveness import LivenessKey, LivenessState
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    LivenessCollector,
    MetricsConfig,
    MetricsServer,
    ProbeMetrics,
    start_metrics_server,
)
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "HOSTS_ENTRY_POINT_GROUP",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "BootwatchError",
    "ConfigT",
    "ConfigurationError",
    "ConnectivityError",
    "ForgetError",
    "HostConstructionError",
    "HostConstructor",
    "HostOptions",
    "HostPool",
    "LivenessCollector",
    "LivenessKey",
    "LivenessState",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "PeerHost",
    "ProbeError",
    "ProbeMetrics",
    "ProbeTimeoutError",
    "QueryError",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_host_constructors",
    "load_yaml",
    "start_metrics_server",
]
