"""
Probe hosts: one outbound-only network endpoint per transport.

A [PeerHost][bootwatch.core.hosts.PeerHost] is the narrow capability the
prober needs from a DHT/transport stack: connect to a peer, ask it for the
peers closest to a key over one protocol identifier, and forget everything
cached about it. Concrete hosts live outside this package and register a
[HostConstructor][bootwatch.core.hosts.HostConstructor] per transport under
the ``bootwatch.hosts`` entry-point group:

```toml
[project.entry-points."bootwatch.hosts"]
tcp = "my_stack.hosts:build_tcp_host"
quic = "my_stack.hosts:build_quic_host"
```

[build_host_pool()][bootwatch.core.hosts.build_host_pool] builds exactly one
host per configured transport at startup and fails as a whole if any of them
cannot be built.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from importlib.metadata import entry_points
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

from bootwatch.models import TransportKind

from .exceptions import HostConstructionError
from .logger import Logger


if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootwatch.models import BootstrapTarget


HOSTS_ENTRY_POINT_GROUP = "bootwatch.hosts"

logger = Logger("hosts")


@runtime_checkable
class PeerHost(Protocol):
    """Outbound-only endpoint bound to one transport and one query protocol.

    Failures are reported by raising; any exception from ``connect``,
    ``find_closest_peers`` or ``forget`` is treated by the prober as a
    failure of that step. Implementations should let ``CancelledError``
    propagate so an in-flight call can be aborted by task cancellation.
    """

    @property
    def peer_id(self) -> str:
        """This host's own peer identity."""
        ...

    async def connect(self, target: BootstrapTarget) -> None:
        """Open a connection to ``target`` using its known addresses."""
        ...

    async def find_closest_peers(self, peer_id: str, key: str) -> Sequence[object]:
        """Ask the connected peer ``peer_id`` for the peers closest to ``key``."""
        ...

    async def forget(self, peer_id: str) -> None:
        """Drop cached addresses for ``peer_id`` and close its connections."""
        ...

    async def close(self) -> None:
        """Release the endpoint."""
        ...


@dataclass(frozen=True, slots=True)
class HostOptions:
    """Construction parameters handed to a host constructor.

    Attributes:
        transport: The only transport the host may dial over.
        protocol_id: The only protocol identifier the query capability may speak.
        listen_addrs: Local listen addresses. Always empty: probe hosts
            never accept inbound connections.
    """

    transport: TransportKind
    protocol_id: str
    listen_addrs: tuple[str, ...] = ()


HostConstructor = Callable[[HostOptions], Awaitable[PeerHost]]


class HostPool(Mapping[TransportKind, PeerHost]):
    """Immutable mapping from transport to its probe host.

    Iteration follows the sorted transport order used for construction, so
    sweeps and logs are stable across runs. The pool owns its hosts:
    [close()][bootwatch.core.hosts.HostPool.close] (or leaving the async
    context) closes every one of them.
    """

    def __init__(self, hosts: Mapping[TransportKind, PeerHost]) -> None:
        self._hosts = MappingProxyType(dict(sorted(hosts.items())))

    def __getitem__(self, transport: TransportKind) -> PeerHost:
        return self._hosts[transport]

    def __iter__(self) -> Iterator[TransportKind]:
        return iter(self._hosts)

    def __len__(self) -> int:
        return len(self._hosts)

    @property
    def transports(self) -> tuple[TransportKind, ...]:
        return tuple(self._hosts)

    async def close(self) -> None:
        """Close every host, logging (not raising) individual failures."""
        await _close_hosts(self._hosts)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


async def _close_hosts(hosts: Mapping[TransportKind, PeerHost]) -> None:
    for transport, host in hosts.items():
        try:
            await host.close()
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "host_close_failed",
                transport=transport,
                error=str(e),
                error_type=type(e).__name__,
            )


async def build_host_pool(
    transports: Iterable[TransportKind],
    protocol_id: str,
    constructors: Mapping[TransportKind, HostConstructor],
) -> HostPool:
    """Build one probe host per distinct transport.

    Args:
        transports: Configured transports; duplicates are ignored and the
            result is ordered by transport value.
        protocol_id: Protocol identifier every host's query capability is
            restricted to.
        constructors: Host constructor per transport, usually from
            [load_host_constructors()][bootwatch.core.hosts.load_host_constructors].

    Returns:
        A fully built [HostPool][bootwatch.core.hosts.HostPool].

    Raises:
        HostConstructionError: If a transport has no constructor, a
            constructor raises, or it returns something that is not a
            [PeerHost][bootwatch.core.hosts.PeerHost]. Hosts built before
            the failure are closed first.
    """
    built: dict[TransportKind, PeerHost] = {}

    for transport in sorted(set(transports)):
        constructor = constructors.get(transport)
        if constructor is None:
            await _close_hosts(built)
            raise HostConstructionError(
                f"No host implementation registered for transport '{transport}' "
                f"(entry-point group '{HOSTS_ENTRY_POINT_GROUP}')"
            )

        options = HostOptions(transport=transport, protocol_id=protocol_id)
        try:
            host = await constructor(options)
        except Exception as e:
            await _close_hosts(built)
            raise HostConstructionError(
                f"Failed to build host for transport '{transport}': {e}"
            ) from e

        if not isinstance(host, PeerHost):
            await _close_hosts(built)
            raise HostConstructionError(
                f"Constructor for transport '{transport}' returned "
                f"{type(host).__name__}, which is not a PeerHost"
            )

        built[transport] = host
        logger.info("host_built", transport=transport, peer_id=host.peer_id, protocol=protocol_id)

    return HostPool(built)


def load_host_constructors(
    group: str = HOSTS_ENTRY_POINT_GROUP,
) -> dict[TransportKind, HostConstructor]:
    """Discover host constructors registered by installed distributions.

    Entry-point names are parsed with
    [TransportKind.parse()][bootwatch.models.constants.TransportKind.parse];
    entries with unknown names are logged and skipped. When two entries
    claim the same transport, the first one wins.

    Raises:
        HostConstructionError: If a registered entry point cannot be imported.
    """
    constructors: dict[TransportKind, HostConstructor] = {}

    for ep in entry_points(group=group):
        try:
            transport = TransportKind.parse(ep.name)
        except ValueError:
            logger.warning("host_entry_point_ignored", name=ep.name, value=ep.value)
            continue

        if transport in constructors:
            logger.warning("host_entry_point_duplicate", transport=transport, value=ep.value)
            continue

        try:
            constructors[transport] = ep.load()
        except Exception as e:
            raise HostConstructionError(
                f"Cannot load host constructor {ep.value!r} for transport '{transport}': {e}"
            ) from e

    return constructors
