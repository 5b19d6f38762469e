"""Prober service configuration models.

Every model is frozen: the configuration is built once at startup and
handed to [resolve_targets()][bootwatch.services.prober.utils.resolve_targets],
[build_host_pool()][bootwatch.core.hosts.build_host_pool], and the
[Prober][bootwatch.services.prober.Prober] unchanged.

See Also:
    [BaseServiceConfig][bootwatch.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``run_immediately``,
        ``max_consecutive_failures``, and ``metrics`` fields.

Examples:
    ```yaml
    interval: 5m
    bootstrap:
      peers:
        - /ip4/104.131.131.82/tcp/4001/p2p/QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ
      protocol_id: /ipfs/kad/1.0.0
    transports: [tcp, quic]
    timeouts:
      connect: 30s
    ```
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from bootwatch.core.base_service import BaseServiceConfig
from bootwatch.models import DEFAULT_PROTOCOL_ID, DEFAULT_TRANSPORTS, TransportKind
from bootwatch.utils.parsing import parse_duration, split_list


def _as_list(value: Any) -> Any:
    """Accept a comma-separated string wherever a list of strings is expected."""
    if isinstance(value, str):
        return split_list(value)
    return value


def _parse_transports(value: Any) -> Any:
    """Parse, deduplicate, and sort transport names; empty means all transports."""
    value = _as_list(value)
    if value is None:
        return list(DEFAULT_TRANSPORTS)
    if not isinstance(value, list | tuple | set | frozenset):
        return value
    kinds = {
        item if isinstance(item, TransportKind) else TransportKind.parse(str(item))
        for item in value
    }
    return sorted(kinds) if kinds else list(DEFAULT_TRANSPORTS)


class BootstrapConfig(BaseModel):
    """Where the bootstrap targets come from and which DHT protocol they speak.

    ``peers`` and the lines of ``peers_file`` are combined. When both are
    empty, the well-known public bootstrap peers are used, but only for the
    default protocol identifier.

    See Also:
        [resolve_targets()][bootwatch.services.prober.utils.resolve_targets]:
            Turns this configuration into
            [BootstrapTarget][bootwatch.models.target.BootstrapTarget] values.
    """

    model_config = ConfigDict(frozen=True)

    peers: Annotated[list[str], BeforeValidator(_as_list)] = Field(
        default_factory=list,
        description="Bootstrap peer multiaddrs (network address + /p2p/<peer-id>)",
    )
    peers_file: str | None = Field(
        default=None,
        description="Text file with one bootstrap peer multiaddr per line",
    )
    protocol_id: str = Field(
        default=DEFAULT_PROTOCOL_ID,
        min_length=2,
        pattern=r"^/\S+$",
        description="DHT protocol identifier used for closest-peers queries",
    )

    @property
    def uses_default_protocol(self) -> bool:
        return self.protocol_id == DEFAULT_PROTOCOL_ID


class TimeoutsConfig(BaseModel):
    """Per-step time limits in seconds. ``None`` disables a limit.

    A step that exceeds its limit fails with
    [ProbeTimeoutError][bootwatch.core.exceptions.ProbeTimeoutError] and is
    handled like any other failure of that step.
    """

    model_config = ConfigDict(frozen=True)

    connect: Annotated[float | None, BeforeValidator(parse_duration)] = Field(default=30.0, gt=0)
    query: Annotated[float | None, BeforeValidator(parse_duration)] = Field(default=60.0, gt=0)
    forget: Annotated[float | None, BeforeValidator(parse_duration)] = Field(default=10.0, gt=0)


class ProberConfig(BaseServiceConfig):
    """Prober service configuration.

    ``transports`` accepts names case-insensitively (``tcp``, ``quic``,
    ``ws``/``websocket``, ``wt``/``webtransport``) as a list or a
    comma-separated string. An unknown name fails validation. The value is
    deduplicated and sorted; an empty list means every transport.

    See Also:
        [Prober][bootwatch.services.prober.Prober]: The service class
            that consumes this configuration.
    """

    model_config = ConfigDict(frozen=True)

    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    transports: Annotated[list[TransportKind], BeforeValidator(_parse_transports)] = Field(
        default_factory=lambda: list(DEFAULT_TRANSPORTS),
        description="Transports to probe over, one host each",
    )
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
