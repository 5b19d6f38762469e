"""
Bootstrap peer identity with its known network addresses.

Parses multiaddr strings of the form ``<transport-address>/p2p/<peer-id>``
(for example ``/ip4/104.131.131.82/tcp/4001/p2p/QmaCpD...``) into an
immutable target. The transport part is kept verbatim so the host for each
transport can pick the addresses it knows how to dial.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from multiaddr import Multiaddr
from multiaddr.exceptions import Error as MultiaddrError


_PEER_PROTOCOLS = frozenset({"p2p", "ipfs"})


@dataclass(frozen=True, slots=True)
class BootstrapTarget:
    """Immutable bootstrap peer: a peer identity plus one or more addresses.

    Two targets are equal when their peer identities are equal; the address
    list does not take part in equality or hashing, so a target can key the
    [LivenessState][bootwatch.core.liveness.LivenessState] regardless of
    how many addresses were configured for it.

    Attributes:
        peer_id: Base58 (or CID) encoded peer identity.
        addrs: Transport multiaddrs without the trailing ``/p2p`` component,
            deduplicated, in configuration order.

    Raises:
        ValueError: If ``peer_id`` is empty or ``addrs`` is empty.

    Examples:
        ```python
        target = BootstrapTarget.parse(
            "/ip4/104.131.131.82/tcp/4001/p2p/QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ"
        )
        target.peer_id  # 'QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ'
        target.addrs    # ('/ip4/104.131.131.82/tcp/4001',)
        ```
    """

    peer_id: str
    addrs: tuple[str, ...] = field(compare=False)

    def __post_init__(self) -> None:
        if not self.peer_id:
            raise ValueError("Bootstrap target requires a peer id")
        if not self.addrs:
            raise ValueError(f"Bootstrap target {self.peer_id} has no addresses")
        # Bypass frozen restriction to normalize the address tuple
        object.__setattr__(self, "addrs", tuple(dict.fromkeys(self.addrs)))

    def __str__(self) -> str:
        return self.peer_id

    @classmethod
    def parse(cls, raw: str) -> BootstrapTarget:
        """Parse a single ``.../p2p/<peer-id>`` multiaddr string.

        Raises:
            ValueError: If the string is not a valid multiaddr, lacks a
                trailing ``/p2p`` component, or has no transport part.
        """
        text = raw.strip()
        if "\x00" in text:
            raise ValueError("Multiaddr contains null bytes")

        try:
            components = list(Multiaddr(text).items())
        except (MultiaddrError, ValueError, TypeError) as e:
            raise ValueError(f"Invalid multiaddr {raw!r}: {e}") from None

        if not components or components[-1][0].name not in _PEER_PROTOCOLS:
            raise ValueError(f"Multiaddr {raw!r} must end with a /p2p/<peer-id> component")

        peer_id = str(components[-1][1])
        transport = components[:-1]
        if not transport:
            raise ValueError(f"Multiaddr {raw!r} has no network address")
        if any(proto.name in _PEER_PROTOCOLS for proto, _ in transport):
            raise ValueError(f"Multiaddr {raw!r} contains more than one /p2p component")

        addr = "".join(
            f"/{proto.name}" if value is None else f"/{proto.name}/{value}"
            for proto, value in transport
        )
        return cls(peer_id=peer_id, addrs=(addr,))

    def merge(self, other: BootstrapTarget) -> BootstrapTarget:
        """Return a target carrying the addresses of both ``self`` and ``other``.

        Raises:
            ValueError: If the two targets have different peer ids.
        """
        if other.peer_id != self.peer_id:
            raise ValueError(f"Cannot merge targets {self.peer_id} and {other.peer_id}")
        return BootstrapTarget(peer_id=self.peer_id, addrs=self.addrs + other.addrs)
