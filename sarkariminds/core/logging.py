from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from sarkariminds.core.config import settings


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "sarkariminds-api",
            "environment": settings.app_env,
        }

        optional_fields = (
            "account_id",
            "email",
            "step",
            "state",
            "scanned",
            "deleted",
            "failed",
            "failed_account_ids",
            "pruned",
            "purged",
            "recipient_id",
            "sender_id",
            "notification_type",
            "job_id",
            "job_type",
            "result",
        )
        for field in optional_fields:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, default=str)


def setup_json_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
