from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from sarkariminds.core.clock import as_utc, utcnow
from sarkariminds.core.config import settings
from sarkariminds.models import Account

logger = logging.getLogger("sarkariminds.account_deletion")


def is_pending_deletion(account: Account, *, now: datetime | None = None) -> bool:
    if account.scheduled_deletion_date is None:
        return False
    current = as_utc(now or utcnow())
    return current < as_utc(account.scheduled_deletion_date)


def schedule_account_deletion(db: Session, account: Account, *, now: datetime | None = None) -> datetime:
    requested_at = as_utc(now or utcnow())
    deletion_date = requested_at + timedelta(days=settings.account_deletion_grace_days)

    account.deletion_requested_at = requested_at
    account.scheduled_deletion_date = deletion_date
    db.commit()

    logger.info(
        "account.deletion.scheduled",
        extra={"account_id": account.id, "email": account.email},
    )
    return deletion_date


def cancel_scheduled_deletion(db: Session, account: Account, *, now: datetime | None = None) -> bool:
    """Clear a pending deletion, as done when the owner logs back in.

    A schedule whose date has already passed is left alone: the account now
    belongs to the cleanup job.
    """
    if not is_pending_deletion(account, now=now):
        return False

    account.deletion_requested_at = None
    account.scheduled_deletion_date = None
    db.commit()

    logger.info(
        "account.deletion.cancelled",
        extra={"account_id": account.id, "email": account.email},
    )
    return True
