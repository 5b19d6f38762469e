"""Pure helpers shared by the core and services layers.

Attributes:
    parsing: Duration strings, comma-separated lists, and peer list files.

Note:
    The utils layer has **zero** imports from ``bootwatch.core`` or
    ``bootwatch.services``.
"""

from .parsing import parse_duration, read_peer_file, split_list


__all__ = [
    "parse_duration",
    "read_peer_file",
    "split_list",
]
