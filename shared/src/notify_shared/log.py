"""JSON log output with recipient masking."""

import json
import logging
import sys
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

MASKED_FIELDS = frozenset({"recipient", "to"})
_MASK_KEEP = 7


def mask_recipient(recipient: str) -> str:
    """Keep the first characters of an address or phone, hide the rest."""
    if len(recipient) <= _MASK_KEEP:
        return recipient
    return f"{recipient[:_MASK_KEEP]}***"


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Fields passed through ``extra=`` are copied into the object; string
    values of the masked fields (recipient addresses) are shortened.
    """

    def __init__(self, masked_fields: Iterable[str] = MASKED_FIELDS) -> None:
        super().__init__()
        self._masked = frozenset(masked_fields)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS:
                continue
            if key in self._masked and isinstance(value, str):
                value = mask_recipient(value)
            entry[key] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", suppress: Sequence[str] = ()) -> None:
    """Send JSON lines to stdout from the root logger.

    Loggers named in *suppress* are raised to WARNING.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))
    root.handlers[:] = [handler]

    for name in suppress:
        logging.getLogger(name).setLevel(logging.WARNING)
