"""Prober service utility functions.

Pure helpers that do not require service instance state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from bootwatch.core.exceptions import ConfigurationError
from bootwatch.models import DEFAULT_BOOTSTRAP_PEERS, BootstrapTarget
from bootwatch.utils.parsing import read_peer_file


if TYPE_CHECKING:
    from collections.abc import Iterable

    from .configs import BootstrapConfig

_logger = logging.getLogger(__name__)


def resolve_targets(config: BootstrapConfig) -> tuple[BootstrapTarget, ...]:
    """Turn the bootstrap configuration into the list of probe targets.

    ``config.peers`` and the entries of ``config.peers_file`` are combined.
    If both are empty, the public bootstrap peers are substituted, which is
    only allowed for the default protocol identifier. Entries for the same
    peer id are merged into one target whose addresses are the union, in
    first-seen order.

    Args:
        config: The ``bootstrap`` section of the prober configuration.

    Returns:
        Targets in the order their peer id first appears.

    Raises:
        ConfigurationError: If the peers file cannot be read, an entry is
            not a valid peer multiaddr, or no peers are configured for a
            non-default protocol identifier.
    """
    raw: list[str] = list(config.peers)

    if config.peers_file:
        path = Path(config.peers_file)
        try:
            raw.extend(read_peer_file(path))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read peers file {path}: {e}") from e

    if not raw:
        if not config.uses_default_protocol:
            raise ConfigurationError(
                f"No bootstrap peers configured for protocol '{config.protocol_id}'; "
                "default peers are only available for the default protocol"
            )
        _logger.info("using_default_bootstrap_peers: %d", len(DEFAULT_BOOTSTRAP_PEERS))
        raw = list(DEFAULT_BOOTSTRAP_PEERS)

    parsed: list[BootstrapTarget] = []
    for entry in raw:
        try:
            parsed.append(BootstrapTarget.parse(entry))
        except ValueError as e:
            raise ConfigurationError(f"Invalid bootstrap peer {entry!r}: {e}") from e

    targets = merge_targets(parsed)
    _logger.debug("targets_resolved: entries=%d targets=%d", len(raw), len(targets))
    return targets


def merge_targets(targets: Iterable[BootstrapTarget]) -> tuple[BootstrapTarget, ...]:
    """Collapse targets sharing a peer id, keeping first-seen order."""
    merged: dict[str, BootstrapTarget] = {}
    for target in targets:
        existing = merged.get(target.peer_id)
        merged[target.peer_id] = existing.merge(target) if existing else target
    return tuple(merged.values())
