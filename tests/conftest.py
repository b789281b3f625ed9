from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import datetime

import pytest

os.environ.setdefault("SARKARIMINDS_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SARKARIMINDS_REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("SARKARIMINDS_APP_ENV", "test")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sarkariminds.db.base import Base  # noqa: E402
from sarkariminds.models import Account  # noqa: E402


@pytest.fixture
def db() -> Iterator[Session]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_account(db: Session) -> Callable[..., Account]:
    counter = {"value": 0}

    def _make(
        name: str | None = None,
        *,
        scheduled_deletion_date: datetime | None = None,
        notification_preferences: dict[str, bool] | None = None,
    ) -> Account:
        counter["value"] += 1
        label = name or f"user{counter['value']}"
        account = Account(
            email=f"{label.lower()}@sarkariminds.test",
            name=label,
            password_hash="x",
            notification_preferences=notification_preferences or {},
            scheduled_deletion_date=scheduled_deletion_date,
        )
        db.add(account)
        db.commit()
        return account

    return _make
