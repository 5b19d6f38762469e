r"""bootwatch -- liveness prober for libp2p DHT bootstrap peers.

Periodically connects to every configured bootstrap peer over every
configured transport, asks it for its closest peers, and exposes the
results as Prometheus metrics.

Imports flow strictly downward:

```text
    services      Prober service and its configuration
       |
     core         Base service, hosts, liveness, logging, metrics
       |
     utils        Parsing helpers
       |
    models        Pure frozen dataclasses and enums (zero I/O)
```

Note:
    For lightweight usage, import directly from subpackages::

        from bootwatch.models import BootstrapTarget
        from bootwatch.core import LivenessState

    Top-level imports (``from bootwatch import Prober``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("bootwatch")

__all__ = [
    "BaseService",
    "BootstrapConfig",
    "BootstrapTarget",
    "HostPool",
    "LivenessState",
    "Logger",
    "PeerHost",
    "ProbeMetrics",
    "ProbeOutcome",
    "Prober",
    "ProberConfig",
    "TransportKind",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("bootwatch.core", "BaseService"),
    "HostPool": ("bootwatch.core", "HostPool"),
    "LivenessState": ("bootwatch.core", "LivenessState"),
    "Logger": ("bootwatch.core", "Logger"),
    "PeerHost": ("bootwatch.core", "PeerHost"),
    "ProbeMetrics": ("bootwatch.core", "ProbeMetrics"),
    "BootstrapTarget": ("bootwatch.models", "BootstrapTarget"),
    "ProbeOutcome": ("bootwatch.models", "ProbeOutcome"),
    "TransportKind": ("bootwatch.models", "TransportKind"),
    "BootstrapConfig": ("bootwatch.services", "BootstrapConfig"),
    "Prober": ("bootwatch.services", "Prober"),
    "ProberConfig": ("bootwatch.services", "ProberConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'bootwatch' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
