"""bootwatch exception hierarchy.

Separates fatal startup errors from the recoverable per-pair failures a
sweep absorbs, so that callers can catch exactly the category they handle
and ``CancelledError`` always propagates untouched.

Exception hierarchy:

```text
BootwatchError (base -- never raised directly)
├── ConfigurationError       -- bad peer address, unknown transport, bad YAML
├── HostConstructionError    -- a transport host could not be built
└── ProbeError               -- recoverable failure of one probe step
    ├── ForgetError          -- address/connection eviction failed
    ├── ConnectivityError    -- outbound connection failed
    ├── QueryError           -- closest-peers query failed
    └── ProbeTimeoutError    -- a step exceeded its configured timeout
```

Only [ConfigurationError][bootwatch.core.exceptions.ConfigurationError] and
[HostConstructionError][bootwatch.core.exceptions.HostConstructionError]
stop the process. [ProbeError][bootwatch.core.exceptions.ProbeError]
subclasses are logged and counted by the
[Prober][bootwatch.services.prober.Prober] and never leave a sweep.

See Also:
    [resolve_targets()][bootwatch.services.prober.utils.resolve_targets]:
        Raises ``ConfigurationError`` for malformed peer lists.
    [build_host_pool()][bootwatch.core.hosts.build_host_pool]: Raises
        ``HostConstructionError``.
"""

from __future__ import annotations


class BootwatchError(Exception):
    """Base exception for all bootwatch errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Startup (fatal)
# ---------------------------------------------------------------------------


class ConfigurationError(BootwatchError):
    """Invalid or missing configuration (YAML, env vars, CLI flags, peer list)."""


class HostConstructionError(BootwatchError):
    """A probe host for a configured transport could not be built.

    Raised when no constructor is registered for a transport or when the
    constructor itself fails. A partially built pool is never returned.
    """


# ---------------------------------------------------------------------------
# Probing (recoverable)
# ---------------------------------------------------------------------------


class ProbeError(BootwatchError):
    """Base for failures of a single probe step against one target."""


class ForgetError(ProbeError):
    """Evicting a peer's cached addresses or closing its connections failed."""


class ConnectivityError(ProbeError):
    """Outbound connection to a bootstrap peer failed."""


class QueryError(ProbeError):
    """Closest-peers query to a connected bootstrap peer failed."""


class ProbeTimeoutError(ProbeError):
    """A probe step did not complete within its configured timeout."""
