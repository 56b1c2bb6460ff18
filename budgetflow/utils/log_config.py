"""Logging setup: one line per record, ``extra=`` fields appended as key=value pairs."""
import json
import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _render(value) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    if not text or any(c in text for c in ' ="'):
        return json.dumps(text)
    return text


class KeyValueFormatter(logging.Formatter):
    """Formats a record, then appends its extra fields in insertion order."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = [f"{k}={_render(v)}" for k, v in vars(record).items() if k not in _RECORD_ATTRS]
        if not fields:
            return line
        # Keep the traceback (if any) as the last lines
        head, sep, tail = line.partition("\n")
        return f"{head} [{' '.join(fields)}]{sep}{tail}"


def configure_logging(level: str = "INFO") -> None:
    """Install a KeyValueFormatter handler on the root logger once; later calls only set the level."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(isinstance(h.formatter, KeyValueFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(KeyValueFormatter(LOG_FORMAT))
    root.addHandler(handler)
