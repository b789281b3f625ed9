from __future__ import annotations

from sarkariminds.services.queue import CLEANUP_EXPIRED_ACCOUNTS_JOB, enqueue_job


def enqueue_cleanup_expired_accounts(now: str | None = None) -> str:
    payload: dict[str, str] = {}
    if now:
        payload["now"] = now
    return enqueue_job(CLEANUP_EXPIRED_ACCOUNTS_JOB, payload=payload)
