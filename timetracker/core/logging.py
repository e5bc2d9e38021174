from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..middlewares import principal_ctx_var, request_id_ctx_var

# Fields the formatter owns; extra_data keys with these names are nested under "data".
RESERVED_FIELDS = frozenset(
    {"timestamp", "level", "logger", "message", "service", "request_id", "principal", "exception"}
)

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "multipart")


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, tagged with the request and signed-in email."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            payload["service"] = self.service
        request_id = request_id_ctx_var.get()
        if request_id:
            payload["request_id"] = request_id
        principal = principal_ctx_var.get()
        if principal:
            payload["principal"] = principal
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            clashing = {key: value for key, value in extra.items() if key in RESERVED_FIELDS}
            payload.update((key, value) for key, value in extra.items() if key not in RESERVED_FIELDS)
            if clashing:
                payload["data"] = clashing
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def setup_logging(
    level: str | int = logging.INFO,
    *,
    service: str | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter(service))
    logging.root.handlers = [handler]
    logging.root.setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
