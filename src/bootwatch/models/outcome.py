"""Ephemeral result of a single probe operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import time

from .constants import ProbeOperation, TransportKind
from .target import BootstrapTarget


@dataclass(frozen=True, slots=True)
class ProbeOutcome:
    """One connect or query attempt against a bootstrap target.

    Emitted exactly once per attempted operation and forwarded to
    [ProbeMetrics.record()][bootwatch.core.metrics.ProbeMetrics.record].
    Never stored.

    Attributes:
        target: The probed bootstrap peer.
        transport: Transport of the host that made the attempt.
        operation: Whether this was a connect or a closest-peers query.
        success: True when the operation met its success condition.
        timestamp: Unix time the attempt finished.
    """

    target: BootstrapTarget
    transport: TransportKind
    operation: ProbeOperation
    success: bool
    timestamp: float = field(default_factory=time)

    def labels(self) -> dict[str, str]:
        """Prometheus label values for this outcome."""
        return {
            "target": self.target.peer_id,
            "transport": self.transport.value,
            "operation": self.operation.value,
            "success": "true" if self.success else "false",
        }
