"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so every event is a short
snake_case message plus keyword fields:

```text
info prober connecting peer=QmaCpD... transport=tcp
```

``StructuredFormatter`` is installed on the root handler by the CLI and
renders both [Logger][bootwatch.core.logger.Logger] records (which carry
their fields in the ``structured_kv`` extra) and plain
``logging.getLogger()`` records from the models and utils layers.

``Logger.bind()`` returns a child logger with fixed context fields, which
the prober uses to tag every line of a probe with its peer and transport.

Examples:
    ```python
    from bootwatch.core.logger import Logger

    logger = Logger("prober")
    logger.info("sweep_started", pairs=8)
    # Output: sweep_started pairs=8

    pair_logger = logger.bind(peer="QmaCpD...", transport="tcp")
    pair_logger.warning("connect_failed", error="timeout")
    # Output: connect_failed peer=QmaCpD... transport=tcp error=timeout
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar, Self


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values longer than ``max_value_length`` are truncated. Values containing
    whitespace, equals signs, or quotes are escaped and double-quoted.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ' key1=value1 key2="value with spaces"'.
        Returns empty string if kwargs is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(str(v), max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


def _truncate(value: str, max_length: int | None) -> str:
    if max_length and len(value) > max_length:
        return value[:max_length] + f"...<truncated {len(value) - max_length} chars>"
    return value


class StructuredFormatter(logging.Formatter):
    """Formats all log records as ``level name message key=value ...``.

    Reads structured fields from the ``structured_kv`` extra attached by
    [Logger][bootwatch.core.logger.Logger]; records without it are emitted
    with the same prefix and no fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments as fields.

    Wraps a standard ``logging.Logger``. All public log methods mirror the
    stdlib API with an added ``**kwargs`` parameter. Fields bound with
    [bind()][bootwatch.core.logger.Logger.bind] are emitted before the
    per-call fields.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name, typically the service or module name.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
            context: Fields attached to every record from this logger.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> Self:
        """Return a logger that adds ``context`` to every record.

        The child shares the underlying stdlib logger, output mode, and
        truncation limit. Per-call fields override bound fields of the same
        name.
        """
        return type(self)(
            self._logger.name,
            json_output=self._json_output,
            max_value_length=self._max_value_length,
            context={**self._context, **context},
        )

    def _format_json(self, msg: str, level: str, fields: dict[str, Any]) -> str:
        """Serialize a record for log aggregators (ISO 8601 ``timestamp``, ``level``, ``service``)."""
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **fields,
        }
        return json.dumps(record, default=str)

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = {**self._context, **kwargs}
        if self._json_output:
            text = self._format_json(msg, logging.getLevelName(level).lower(), fields)
            self._logger.log(level, text, exc_info=exc_info)
            return
        truncated = {k: _truncate(str(v), self._max_value_length) for k, v in fields.items()}
        extra = {"structured_kv": truncated} if truncated else {}
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log a CRITICAL level message with optional key=value pairs."""
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
