"""Permanently delete accounts whose scheduled deletion date has passed.

Meant to be fired once a day by an external scheduler, either directly
(``sarkariminds-cleanup``) or through the job queue worker. For every expired
account the job removes it from other accounts' relationship lists, deletes
the connections, posts and notifications that reference it, and finally
deletes the account row itself. One account failing never stops the batch;
it keeps its row and is retried by the next run.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from sqlalchemy import delete, or_, select, text
from sqlalchemy.orm import Session

from sarkariminds.core.clock import as_utc, parse_iso_datetime, utcnow
from sarkariminds.core.logging import setup_json_logging
from sarkariminds.db.session import engine, session_scope
from sarkariminds.models import RELATIONSHIP_LISTS, Account, Connection, Notification, Post

logger = logging.getLogger("sarkariminds.jobs.cleanup")

T = TypeVar("T")


class CandidateState(str, Enum):
    PENDING = "pending"
    PRUNING = "pruning"
    PURGING = "purging"
    REMOVING = "removing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CandidateOutcome:
    account_id: int
    email: str
    state: CandidateState = CandidateState.PENDING
    pruned: dict[str, int] = field(default_factory=dict)
    purged: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


@dataclass
class CleanupReport:
    outcomes: list[CandidateOutcome] = field(default_factory=list)

    @property
    def scanned(self) -> int:
        return len(self.outcomes)

    @property
    def deleted(self) -> int:
        return sum(1 for item in self.outcomes if item.state == CandidateState.DONE)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.outcomes if item.state == CandidateState.FAILED)

    def as_dict(self) -> dict[str, Any]:
        return {
            "scanned": self.scanned,
            "deleted": self.deleted,
            "failed": self.failed,
            "failed_account_ids": [item.account_id for item in self.outcomes if item.state == CandidateState.FAILED],
        }


def find_expired_accounts(db: Session, *, now: datetime | None = None) -> list[Account]:
    cutoff = as_utc(now or utcnow())
    return list(
        db.scalars(
            select(Account)
            .where(
                Account.scheduled_deletion_date.is_not(None),
                Account.scheduled_deletion_date <= cutoff,
            )
            .order_by(Account.id.asc()),
        ).all(),
    )


def _delete_rows(db: Session, statement: Any) -> int:
    result = db.execute(statement)
    db.commit()
    return int(result.rowcount or 0)


def prune_account_references(db: Session, account_id: int) -> dict[str, int]:
    # One bulk write per list: a peer can hold the id in several lists at once.
    pruned: dict[str, int] = {}
    for list_name, table in RELATIONSHIP_LISTS.items():
        pruned[list_name] = _delete_rows(db, delete(table).where(table.c.peer_id == account_id))
    return pruned


def purge_account_records(db: Session, account_id: int) -> dict[str, int]:
    notifications = _delete_rows(
        db,
        delete(Notification).where(
            or_(Notification.recipient_id == account_id, Notification.sender_id == account_id),
        ),
    )
    connections = _delete_rows(
        db,
        delete(Connection).where(
            or_(Connection.requester_id == account_id, Connection.recipient_id == account_id),
        ),
    )
    posts = _delete_rows(db, delete(Post).where(Post.account_id == account_id))
    return {"notifications": notifications, "connections": connections, "posts": posts}


def remove_account(db: Session, account_id: int) -> bool:
    account = db.get(Account, account_id)
    if account is None:
        return False
    db.delete(account)
    db.commit()
    return True


def _attempt(db: Session, outcome: CandidateOutcome, step: str, action: Callable[[Session, int], T]) -> T | None:
    try:
        return action(db, outcome.account_id)
    except Exception as exc:
        db.rollback()
        outcome.errors.append(f"{step}: {exc}")
        logger.exception(
            "cleanup.account.step_failed",
            extra={"account_id": outcome.account_id, "email": outcome.email, "step": step},
        )
        return None


def _mark_failed(outcome: CandidateOutcome) -> CandidateOutcome:
    outcome.state = CandidateState.FAILED
    logger.error(
        "cleanup.account.failed",
        extra={"account_id": outcome.account_id, "email": outcome.email, "result": outcome.errors},
    )
    return outcome


def cleanup_account(db: Session, account_id: int, email: str) -> CandidateOutcome:
    outcome = CandidateOutcome(account_id=account_id, email=email)
    logger.info("cleanup.account.started", extra={"account_id": account_id, "email": email})

    outcome.state = CandidateState.PRUNING
    pruned = _attempt(db, outcome, "prune", prune_account_references)
    if pruned is not None:
        outcome.pruned = pruned

    # Purging does not depend on pruning, so it runs even after a failed prune.
    outcome.state = CandidateState.PURGING
    purged = _attempt(db, outcome, "purge", purge_account_records)
    if purged is not None:
        outcome.purged = purged

    # The row must outlive every reference to it.
    if outcome.errors:
        return _mark_failed(outcome)

    outcome.state = CandidateState.REMOVING
    removed = _attempt(db, outcome, "remove", remove_account)
    if outcome.errors:
        return _mark_failed(outcome)

    outcome.state = CandidateState.DONE
    logger.info(
        "cleanup.account.deleted" if removed else "cleanup.account.already_removed",
        extra={
            "account_id": account_id,
            "email": email,
            "pruned": outcome.pruned,
            "purged": outcome.purged,
        },
    )
    return outcome


def run_cleanup(db: Session, *, now: datetime | None = None) -> CleanupReport:
    """Scan for expired accounts and clean each one up in turn.

    Errors raised while scanning propagate; errors for a single account are
    recorded on its outcome and the loop moves on.
    """
    # Snapshot ids and emails: a rollback expires the loaded rows.
    candidates = [(account.id, account.email) for account in find_expired_accounts(db, now=now)]
    logger.info("cleanup.scan.completed", extra={"scanned": len(candidates)})

    report = CleanupReport()
    for account_id, email in candidates:
        try:
            outcome = cleanup_account(db, account_id, email)
        except Exception as exc:
            logger.exception("cleanup.account.crashed", extra={"account_id": account_id, "email": email})
            outcome = CandidateOutcome(
                account_id=account_id,
                email=email,
                state=CandidateState.FAILED,
                errors=[str(exc)],
            )
        report.outcomes.append(outcome)

    return report


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sarkariminds-cleanup",
        description="Delete accounts whose scheduled deletion date has passed.",
    )
    parser.add_argument(
        "--now",
        type=parse_iso_datetime,
        default=None,
        help="ISO-8601 timestamp to use as the current time (defaults to now, UTC)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    setup_json_logging()

    try:
        with session_scope() as db:
            db.execute(text("SELECT 1"))
            logger.info("cleanup.connected")
            report = run_cleanup(db, now=args.now)
    except Exception:
        logger.exception("cleanup.aborted")
        return 1
    finally:
        engine.dispose()

    logger.info("cleanup.completed", extra=report.as_dict())
    return 0


if __name__ == "__main__":
    sys.exit(main())
