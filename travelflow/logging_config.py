import json
import logging
import os
from datetime import datetime, timezone

LOGGER_NAME = "travelflow"
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "google_genai", "anthropic", "openai.agents")


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra_data`` fields are merged in at the top level."""

    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(getattr(record, "extra_data", None) or {})
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach the JSON handler to the ``travelflow`` logger once.

    ``level`` falls back to the LOG_LEVEL environment variable, then INFO.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())
    logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
