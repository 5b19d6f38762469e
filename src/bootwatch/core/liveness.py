"""
Concurrency-safe liveness state for (transport, target) pairs.

The [Prober][bootwatch.services.prober.Prober] is the single writer; the
Prometheus scrape path is the reader and may run on another thread (the
aiohttp handler or a ``prometheus_client`` exposition thread). Every pair
is created Down at construction and no pair is ever added or removed.

A ``threading.Lock`` guards the mapping. It is held only for one dict
assignment or one dict copy, never across network I/O, so neither side
waits for more than a single pair update.
"""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, NamedTuple


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bootwatch.models import BootstrapTarget, TransportKind


class LivenessKey(NamedTuple):
    """Key of one liveness entry."""

    transport: TransportKind
    target: BootstrapTarget


class LivenessState:
    """Up/down flag for every configured (transport, target) pair.

    Exposes only [set()][bootwatch.core.liveness.LivenessState.set] for the
    writer and [snapshot()][bootwatch.core.liveness.LivenessState.snapshot]
    (plus small read helpers) for readers. The internal dict is never handed
    out.

    Examples:
        ```python
        state = LivenessState([TransportKind.TCP], [target])
        state.snapshot()   # {LivenessKey(tcp, target): False}
        state.set(TransportKind.TCP, target, up=True)
        state.get(TransportKind.TCP, target)  # True
        ```
    """

    def __init__(
        self,
        transports: Iterable[TransportKind],
        targets: Iterable[BootstrapTarget],
    ) -> None:
        targets = tuple(targets)
        self._lock = threading.Lock()
        self._status: dict[LivenessKey, bool] = {
            LivenessKey(transport, target): False
            for transport in transports
            for target in targets
        }

    def __len__(self) -> int:
        return len(self._status)

    def __contains__(self, key: object) -> bool:
        return key in self._status

    def keys(self) -> tuple[LivenessKey, ...]:
        """All tracked pairs, in construction order."""
        return tuple(self._status)

    def set(self, transport: TransportKind, target: BootstrapTarget, *, up: bool) -> None:
        """Record the liveness of one pair.

        Raises:
            KeyError: If the pair was not part of the configured cross-product.
        """
        key = LivenessKey(transport, target)
        if key not in self._status:
            raise KeyError(f"Unknown liveness pair: transport={transport} target={target}")
        with self._lock:
            self._status[key] = up

    def get(self, transport: TransportKind, target: BootstrapTarget) -> bool:
        """Current liveness of one pair.

        Raises:
            KeyError: If the pair is not tracked.
        """
        with self._lock:
            return self._status[LivenessKey(transport, target)]

    def snapshot(self) -> Mapping[LivenessKey, bool]:
        """Read-only copy of every pair's liveness, taken atomically."""
        with self._lock:
            copy = dict(self._status)
        return MappingProxyType(copy)

    def count_up(self) -> int:
        """Number of pairs currently Up."""
        return sum(self.snapshot().values())
