"""Pure frozen dataclasses and enums with zero network I/O.

The models layer is the foundation of the dependency DAG. It depends on no
other bootwatch package; every model uses ``@dataclass(frozen=True,
slots=True)`` and validates in ``__post_init__`` so invalid instances never
escape the constructor.

Attributes:
    BootstrapTarget: Peer identity plus its known multiaddrs.
    ProbeOutcome: Single connect/query attempt result, forwarded to metrics.
    TransportKind: Closed set of transports a probe host can dial over.
    ProbeOperation: Connect or closest-peers query.
    SchedulerState: Sleeping/sweeping/stopped lifecycle of the probe loop.
"""

from .constants import (
    DEFAULT_BOOTSTRAP_PEERS,
    DEFAULT_PROTOCOL_ID,
    DEFAULT_TRANSPORTS,
    ProbeOperation,
    SchedulerState,
    ServiceName,
    TransportKind,
)
from .outcome import ProbeOutcome
from .target import BootstrapTarget


__all__ = [
    "DEFAULT_BOOTSTRAP_PEERS",
    "DEFAULT_PROTOCOL_ID",
    "DEFAULT_TRANSPORTS",
    "BootstrapTarget",
    "ProbeOperation",
    "ProbeOutcome",
    "SchedulerState",
    "ServiceName",
    "TransportKind",
]
