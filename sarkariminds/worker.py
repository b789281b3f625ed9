from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sarkariminds.core.clock import parse_iso_datetime
from sarkariminds.core.logging import setup_json_logging
from sarkariminds.db.session import session_scope
from sarkariminds.jobs.cleanup_expired_accounts import run_cleanup
from sarkariminds.services.queue import CLEANUP_EXPIRED_ACCOUNTS_JOB, JobEnvelope, dequeue_job

logger = logging.getLogger("sarkariminds.worker")


def _handle_cleanup_expired_accounts(payload: dict[str, Any]) -> dict[str, Any]:
    now: datetime | None = None
    raw_now = payload.get("now")
    if isinstance(raw_now, str):
        now = parse_iso_datetime(raw_now)

    with session_scope() as db:
        report = run_cleanup(db, now=now)
    return report.as_dict()


JOB_HANDLERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    CLEANUP_EXPIRED_ACCOUNTS_JOB: _handle_cleanup_expired_accounts,
}


def process_job(job: JobEnvelope) -> None:
    handler = JOB_HANDLERS.get(job.type)
    if handler is None:
        logger.warning(
            "worker.job.unknown",
            extra={"job_id": job.id, "job_type": job.type},
        )
        return

    result = handler(job.payload)
    logger.info(
        "worker.job.completed",
        extra={"job_id": job.id, "job_type": job.type, "result": result},
    )


def run_worker() -> None:
    setup_json_logging()
    logger.info("worker.started")
    while True:
        job = dequeue_job(block_timeout_seconds=5)
        if job is None:
            continue

        try:
            process_job(job)
        except Exception:
            logger.exception(
                "worker.job.failed",
                extra={"job_id": job.id, "job_type": job.type},
            )


if __name__ == "__main__":
    run_worker()
