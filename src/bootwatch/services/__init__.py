"""Service layer: long-running processes built on
[BaseService][bootwatch.core.base_service.BaseService].

Attributes:
    Prober: Periodic forget/connect/query/forget sweep over every
        (transport, bootstrap target) pair.
"""

from .prober import BootstrapConfig, Prober, ProberConfig, TimeoutsConfig, resolve_targets


__all__ = [
    "BootstrapConfig",
    "Prober",
    "ProberConfig",
    "TimeoutsConfig",
    "resolve_targets",
]
