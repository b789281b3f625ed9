"""Redis list used to hand the account cleanup to the worker.

Only job types listed in ``PAYLOAD_VALIDATORS`` can be queued. Payloads are
checked on the way in and again on the way out.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from redis import Redis

from sarkariminds.core.clock import as_utc, parse_iso_datetime, utcnow
from sarkariminds.core.config import settings
from sarkariminds.core.exceptions import InvalidJobError

logger = logging.getLogger("sarkariminds.queue")

CLEANUP_EXPIRED_ACCOUNTS_JOB = "accounts.cleanup_expired"


def _validate_cleanup_payload(payload: dict[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(payload) - {"now"})
    if unknown:
        raise InvalidJobError(f"unexpected payload keys for {CLEANUP_EXPIRED_ACCOUNTS_JOB}: {unknown}")

    raw_now = payload.get("now")
    if raw_now is None:
        return {}
    if not isinstance(raw_now, str):
        raise InvalidJobError("'now' must be an ISO-8601 string")
    try:
        now = parse_iso_datetime(raw_now)
    except ValueError as exc:
        raise InvalidJobError(f"'now' is not an ISO-8601 timestamp: {raw_now!r}") from exc
    return {"now": now.isoformat()}


PAYLOAD_VALIDATORS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    CLEANUP_EXPIRED_ACCOUNTS_JOB: _validate_cleanup_payload,
}


def validate_job(job_type: str, payload: dict[str, Any] | None) -> dict[str, Any]:
    validator = PAYLOAD_VALIDATORS.get(job_type)
    if validator is None:
        raise InvalidJobError(f"unknown job type {job_type!r}")
    return validator(dict(payload or {}))


@dataclass(frozen=True)
class JobEnvelope:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_json(self) -> str:
        return json.dumps(
            {
                "id": self.id,
                "type": self.type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
            },
            ensure_ascii=True,
        )

    @classmethod
    def from_json(cls, raw: str) -> JobEnvelope:
        try:
            data = json.loads(raw)
            job_type = str(data["type"])
            job_id = str(data["id"])
            created_at = as_utc(datetime.fromisoformat(str(data["created_at"])))
        except (ValueError, KeyError, TypeError) as exc:
            raise InvalidJobError(f"malformed job envelope: {raw[:200]!r}") from exc

        return cls(
            type=job_type,
            payload=validate_job(job_type, data.get("payload")),
            id=job_id,
            created_at=created_at,
        )


def _redis_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True, encoding="utf-8")


def enqueue_job(job_type: str, payload: dict[str, Any] | None = None) -> str:
    job = JobEnvelope(type=job_type, payload=validate_job(job_type, payload))
    client = _redis_client()
    try:
        client.rpush(settings.queue_name, job.to_json())
    finally:
        client.close()
    return job.id


def dequeue_job(block_timeout_seconds: int = 5) -> JobEnvelope | None:
    """Pop the next runnable job; malformed entries are logged and dropped."""
    client = _redis_client()
    try:
        result = client.blpop([settings.queue_name], timeout=block_timeout_seconds)
    finally:
        client.close()

    if result is None:
        return None
    _queue_name, raw_job = result
    try:
        return JobEnvelope.from_json(raw_job)
    except InvalidJobError:
        logger.warning("queue.job.dropped", exc_info=True)
        return None
