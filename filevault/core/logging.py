"""Logging setup driven by ``settings.log_level`` and ``settings.log_format``."""

import json
import logging
import sys
from datetime import UTC, datetime

from filevault.core.config import LogFormatEnum, Settings, settings

SIMPLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            payload["request_id"] = request_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: Settings | None = None) -> None:
    """Install a single stdout handler on the root logger."""
    config = config or settings

    handler = logging.StreamHandler(sys.stdout)
    if config.log_format == LogFormatEnum.json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.log_level.value)

    # SQL echo is controlled by ``debug`` on the engine
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
