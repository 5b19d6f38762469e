"""Shared constants for the models layer.

Defines the enumerations and well-known defaults used across the models,
core, and services layers. Placing them here avoids circular dependencies
between packages.

See Also:
    [BootstrapTarget][bootwatch.models.target.BootstrapTarget]: Parsed from
        the ``DEFAULT_BOOTSTRAP_PEERS`` multiaddrs when no peers are configured.
    [HostPool][bootwatch.core.hosts.HostPool]: Keyed by
        [TransportKind][bootwatch.models.constants.TransportKind].
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class TransportKind(StrEnum):
    """Network substrate a probe host dials bootstrap peers over.

    Each configured transport gets exactly one
    [PeerHost][bootwatch.core.hosts.PeerHost] in the
    [HostPool][bootwatch.core.hosts.HostPool]. Values double as Prometheus
    label values and as entry-point names for host constructors.

    Attributes:
        QUIC: QUIC over UDP.
        TCP: Plain TCP streams.
        WEBSOCKET: WebSocket (browser-compatible streams).
        WEBTRANSPORT: WebTransport over HTTP/3.

    Examples:
        ```python
        TransportKind.parse("TCP")           # TransportKind.TCP
        TransportKind.parse("websocket")     # TransportKind.WEBSOCKET
        TransportKind.parse("carrier-pigeon")  # ValueError
        ```
    """

    QUIC = "quic"
    TCP = "tcp"
    WEBSOCKET = "ws"
    WEBTRANSPORT = "wt"

    @classmethod
    def parse(cls, name: str) -> TransportKind:
        """Resolve a configured transport name, case-insensitively.

        Raises:
            ValueError: If the name matches no transport or alias.
        """
        key = name.strip().lower()
        key = _TRANSPORT_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            known = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown transport {name!r}. Known transports: {known}") from None


_TRANSPORT_ALIASES: Final[dict[str, str]] = {
    "websocket": "ws",
    "webtransport": "wt",
    "quic-v1": "quic",
}


class ProbeOperation(StrEnum):
    """Kind of network operation a [ProbeOutcome][bootwatch.models.outcome.ProbeOutcome] reports.

    Attributes:
        CONNECT: Outbound connection attempt to the bootstrap peer.
        QUERY: Closest-peers query sent over an established connection.
    """

    CONNECT = "connect"
    QUERY = "query"


class SchedulerState(StrEnum):
    """Lifecycle state of a [BaseService][bootwatch.core.base_service.BaseService] loop.

    Attributes:
        SLEEPING: Waiting for the next interval tick or a shutdown request.
        SWEEPING: Running a cycle (for the prober, iterating host/target pairs).
        STOPPED: Shutdown observed; terminal.
    """

    SLEEPING = "sleeping"
    SWEEPING = "sweeping"
    STOPPED = "stopped"


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics labels."""

    PROBER = "prober"


DEFAULT_PROTOCOL_ID: Final[str] = "/ipfs/kad/1.0.0"
"""Protocol identifier of the public IPFS Amino DHT."""

DEFAULT_TRANSPORTS: Final[tuple[TransportKind, ...]] = tuple(sorted(TransportKind))

DEFAULT_BOOTSTRAP_PEERS: Final[tuple[str, ...]] = (
    "/dnsaddr/bootstrap.libp2p.io/p2p/QmNnooDu7bfjPFoTZYxMNLWUQJyrVwtbZg5gBMjTezGAJN",
    "/dnsaddr/bootstrap.libp2p.io/p2p/QmQCU2EcMqAqQPR2i9bChDtGNJchTbq5TbXJJ16u19uLTa",
    "/dnsaddr/bootstrap.libp2p.io/p2p/QmbLHAnMoJPWSCR5Zhtx6BHJX9KiKNN6tpvbUcqanj75Nb",
    "/dnsaddr/bootstrap.libp2p.io/p2p/QmcZf59bWwK5XFi76CZX8cbJ4BhTzzA3gU1ZjYZcYW3dwt",
    "/ip4/104.131.131.82/tcp/4001/p2p/QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ",
    "/ip4/104.131.131.82/udp/4001/quic-v1/p2p/QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ",
)
"""Well-known public bootstrap peers, only used with ``DEFAULT_PROTOCOL_ID``.

Entries sharing a peer id are merged into one target when resolved.
"""
