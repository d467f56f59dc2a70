"""Log line format: the usual text prefix plus the record's `extra` context rendered as JSON."""
import json
import logging
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}


class ExtraFormatter(logging.Formatter):
    """Formats like logging.Formatter, then appends the extra fields, e.g.
    `... podcaster.pipeline.failure job_failed {"job_id": "...", "step": "SCRAPING"}`."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if not extras:
            return line
        rendered = json.dumps(extras, default=str, ensure_ascii=False, sort_keys=True)
        head, sep, tail = line.partition("\n")
        # Keep the context on the first line when a traceback follows.
        return f"{head} {rendered}{sep}{tail}"


def configure_logging(level: str = "INFO") -> None:
    """Install ExtraFormatter on the root logger at the given level name.
    Why available: Every module logs snake_case event names with context in `extra`; without this the context never reaches the output."""
    handler = logging.StreamHandler()
    handler.setFormatter(ExtraFormatter(LOG_FORMAT))
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), handlers=[handler])
