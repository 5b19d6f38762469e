"""Prober service package.

Re-exports all public symbols::

    from bootwatch.services.prober import Prober, ProberConfig, resolve_targets
"""

from .configs import BootstrapConfig, ProberConfig, TimeoutsConfig
from .service import PairResult, Prober, SweepSummary
from .utils import merge_targets, resolve_targets


__all__ = [
    "BootstrapConfig",
    "PairResult",
    "Prober",
    "ProberConfig",
    "SweepSummary",
    "TimeoutsConfig",
    "merge_targets",
    "resolve_targets",
]
