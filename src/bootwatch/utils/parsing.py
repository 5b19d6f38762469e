"""Parsing helpers for configuration values coming from YAML, env vars, or CLI flags.

The module depends only on the standard library, keeping it safe to import
from any layer.

Examples:
    ```python
    from bootwatch.utils.parsing import parse_duration, split_list

    parse_duration("5m")        # 300.0
    parse_duration("1h30m")     # 5400.0
    split_list("tcp, quic,ws")  # ['tcp', 'quic', 'ws']
    ```
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Final


if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_DURATION_UNITS: Final[dict[str, float]] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


def parse_duration(value: Any) -> Any:
    """Convert a duration string such as ``"5m"`` or ``"1h30m15s"`` to seconds.

    Numbers and numeric strings are returned as seconds. Any other
    non-string value is returned unchanged so pydantic can report the type
    error itself.

    Raises:
        ValueError: If a string is neither numeric nor a sequence of
            ``<number><unit>`` parts with units ``ms``, ``s``, ``m``, ``h``.
    """
    if not isinstance(value, str):
        return value

    text = value.strip().lower()
    try:
        return float(text)
    except ValueError:
        pass

    parts = _DURATION_PART.findall(text)
    if not parts or "".join(number + unit for number, unit in parts) != text:
        raise ValueError(f"Invalid duration: {value!r} (expected e.g. '300', '30s', '5m', '1h30m')")

    return sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated string, dropping blanks. ``None`` gives ``[]``."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def read_peer_file(path: Path) -> list[str]:
    """Read multiaddr strings from a text file, one per line.

    Blank lines and lines starting with ``#`` are skipped; trailing
    ``# comments`` are stripped.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    peers: list[str] = []
    with path.open(encoding="utf-8") as f:
        for line in f:
            entry = line.split("#", 1)[0].strip()
            if entry:
                peers.append(entry)
    logger.debug("peer_file_read path=%s peers=%d", path, len(peers))
    return peers
