from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sarkariminds.jobs import cleanup_expired_accounts as cleanup_module
from sarkariminds.jobs.cleanup_expired_accounts import (
    CandidateState,
    find_expired_accounts,
    prune_account_references,
    purge_account_records,
    remove_account,
    run_cleanup,
)
from sarkariminds.models import (
    RELATIONSHIP_LISTS,
    Account,
    Connection,
    ConnectionStatus,
    Notification,
    NotificationType,
    Post,
)

NOW = datetime(2026, 10, 19, 2, 0, tzinfo=UTC)
YESTERDAY = NOW - timedelta(days=1)
TOMORROW = NOW + timedelta(days=1)


def _account_exists(db: Session, account_id: int) -> bool:
    return db.scalar(select(Account.id).where(Account.id == account_id)) is not None


def _count(db: Session, model: Any, *criteria: Any) -> int:
    return int(db.scalar(select(func.count()).select_from(model).where(*criteria)) or 0)


def _lists_referencing(db: Session, account_id: int) -> dict[str, list[int]]:
    return {
        name: list(db.scalars(select(table.c.account_id).where(table.c.peer_id == account_id)).all())
        for name, table in RELATIONSHIP_LISTS.items()
    }


def _connect(db: Session, first: Account, second: Account) -> Connection:
    first.connections.append(second)
    second.connections.append(first)
    connection = Connection(requester_id=first.id, recipient_id=second.id, status=ConnectionStatus.ACCEPTED)
    db.add(connection)
    db.commit()
    return connection


def _follow(db: Session, follower: Account, followee: Account) -> None:
    follower.following.append(followee)
    followee.followers.append(follower)
    db.commit()


def _post(db: Session, owner: Account, content: str = "KAS prelims notes") -> Post:
    post = Post(account_id=owner.id, content=content)
    db.add(post)
    db.commit()
    return post


def test_scan_returns_only_accounts_past_their_deletion_date(
    db: Session,
    make_account: Callable[..., Account],
) -> None:
    expired = make_account("expired", scheduled_deletion_date=YESTERDAY)
    due_now = make_account("due", scheduled_deletion_date=NOW)
    make_account("future", scheduled_deletion_date=TOMORROW)
    make_account("unscheduled")

    found = find_expired_accounts(db, now=NOW)

    assert [account.id for account in found] == [expired.id, due_now.id]


def test_scan_without_candidates_is_empty(db: Session, make_account: Callable[..., Account]) -> None:
    make_account("unscheduled")
    assert find_expired_accounts(db, now=NOW) == []


def test_prune_removes_id_from_every_list(db: Session, make_account: Callable[..., Account]) -> None:
    leaving = make_account("leaving")
    peer = make_account("peer")
    other = make_account("other")
    _connect(db, leaving, peer)
    _follow(db, peer, leaving)
    _follow(db, leaving, other)
    leaving_id, peer_id, other_id = leaving.id, peer.id, other.id

    pruned = prune_account_references(db, leaving_id)

    assert pruned == {"connections": 1, "followers": 1, "following": 1}
    assert _lists_referencing(db, leaving_id) == {"connections": [], "followers": [], "following": []}
    # The departing account's own lists are not touched by pruning.
    assert [account.id for account in db.get(Account, leaving_id).connections] == [peer_id]
    assert [account.id for account in db.get(Account, leaving_id).following] == [other_id]


def test_purge_deletes_connections_in_both_directions_and_owned_posts(
    db: Session,
    make_account: Callable[..., Account],
) -> None:
    leaving = make_account("leaving")
    requester = make_account("requester")
    recipient = make_account("recipient")
    bystander = make_account("bystander")
    db.add_all(
        [
            Connection(requester_id=requester.id, recipient_id=leaving.id),
            Connection(requester_id=leaving.id, recipient_id=recipient.id),
            Connection(requester_id=requester.id, recipient_id=bystander.id),
        ],
    )
    db.commit()
    _post(db, leaving)
    _post(db, leaving, "Daily current affairs")
    kept_post = _post(db, bystander)
    db.add(Notification(recipient_id=leaving.id, sender_id=bystander.id, type=NotificationType.LIKE))
    db.add(Notification(recipient_id=bystander.id, sender_id=leaving.id, type=NotificationType.COMMENT))
    db.commit()
    leaving_id, kept_post_id = leaving.id, kept_post.id

    purged = purge_account_records(db, leaving_id)

    assert purged == {"notifications": 2, "connections": 2, "posts": 2}
    assert _count(db, Connection) == 1
    assert _count(db, Post) == 1
    assert _count(db, Post, Post.id == kept_post_id) == 1
    assert _count(db, Notification) == 0


def test_remove_account_reports_missing_rows(db: Session, make_account: Callable[..., Account]) -> None:
    account = make_account("leaving")
    account_id = account.id

    assert remove_account(db, account_id) is True
    assert _account_exists(db, account_id) is False
    assert remove_account(db, account_id) is False


def test_cleanup_scenario_follower_connection_and_post(
    db: Session,
    make_account: Callable[..., Account],
) -> None:
    u1 = make_account("U1", scheduled_deletion_date=YESTERDAY)
    u2 = make_account("U2")
    u3 = make_account("U3")
    _follow(db, u2, u1)
    _connect(db, u1, u3)
    p1 = _post(db, u1)
    u1_id, u2_id, u3_id, p1_id = u1.id, u2.id, u3.id, p1.id

    report = run_cleanup(db, now=NOW)

    assert report.scanned == 1
    assert report.deleted == 1
    assert report.failed == 0
    assert _account_exists(db, u1_id) is False
    assert u1_id not in [account.id for account in db.get(Account, u2_id).following]
    assert u1_id not in [account.id for account in db.get(Account, u3_id).connections]
    assert _count(db, Connection) == 0
    assert _count(db, Post, Post.id == p1_id) == 0
    assert _lists_referencing(db, u1_id) == {"connections": [], "followers": [], "following": []}


def test_cleanup_leaves_unscheduled_and_future_accounts_untouched(
    db: Session,
    make_account: Callable[..., Account],
) -> None:
    u4 = make_account("U4")
    later = make_account("later", scheduled_deletion_date=TOMORROW)
    friend = make_account("friend")
    _connect(db, u4, friend)
    _follow(db, later, u4)
    _post(db, u4)
    _post(db, later)
    u4_id, later_id, friend_id = u4.id, later.id, friend.id

    report = run_cleanup(db, now=NOW)

    assert report.scanned == 0
    assert _account_exists(db, u4_id)
    assert _account_exists(db, later_id)
    assert _count(db, Post, Post.account_id == u4_id) == 1
    assert _count(db, Post, Post.account_id == later_id) == 1
    assert _count(db, Connection) == 1
    assert [account.id for account in db.get(Account, u4_id).connections] == [friend_id]
    assert [account.id for account in db.get(Account, later_id).following] == [u4_id]


def test_cleanup_removes_several_expired_accounts_that_reference_each_other(
    db: Session,
    make_account: Callable[..., Account],
) -> None:
    first = make_account("first", scheduled_deletion_date=YESTERDAY)
    second = make_account("second", scheduled_deletion_date=YESTERDAY)
    survivor = make_account("survivor")
    _connect(db, first, second)
    _follow(db, survivor, first)
    _follow(db, survivor, second)
    _follow(db, first, survivor)
    first_id, second_id, survivor_id = first.id, second.id, survivor.id

    report = run_cleanup(db, now=NOW)

    assert report.deleted == 2
    assert not _account_exists(db, first_id)
    assert not _account_exists(db, second_id)
    survivor_row = db.get(Account, survivor_id)
    assert survivor_row.following == []
    assert survivor_row.followers == []
    assert _count(db, Connection) == 0


def test_failure_for_one_account_does_not_stop_the_next(
    db: Session,
    make_account: Callable[..., Account],
    monkeypatch: Any,
) -> None:
    broken = make_account("broken", scheduled_deletion_date=YESTERDAY)
    healthy = make_account("healthy", scheduled_deletion_date=YESTERDAY)
    watcher = make_account("watcher")
    _follow(db, watcher, broken)
    _follow(db, watcher, healthy)
    _post(db, healthy)
    broken_id, healthy_id, watcher_id = broken.id, healthy.id, watcher.id

    real_prune = cleanup_module.prune_account_references

    def flaky_prune(session: Session, account_id: int) -> dict[str, int]:
        if account_id == broken_id:
            raise RuntimeError("database unavailable")
        return real_prune(session, account_id)

    monkeypatch.setattr(cleanup_module, "prune_account_references", flaky_prune)

    report = run_cleanup(db, now=NOW)

    outcomes = {item.account_id: item for item in report.outcomes}
    assert outcomes[broken_id].state == CandidateState.FAILED
    assert outcomes[broken_id].errors == ["prune: database unavailable"]
    assert outcomes[healthy_id].state == CandidateState.DONE
    assert report.as_dict() == {
        "scanned": 2,
        "deleted": 1,
        "failed": 1,
        "failed_account_ids": [broken_id],
    }
    # The failed account keeps its row and its inbound references.
    assert _account_exists(db, broken_id)
    assert [account.id for account in db.get(Account, watcher_id).following] == [broken_id]
    assert not _account_exists(db, healthy_id)
    assert _count(db, Post, Post.account_id == healthy_id) == 0


def test_failed_prune_still_purges_but_never_removes_the_account(
    db: Session,
    make_account: Callable[..., Account],
    monkeypatch: Any,
) -> None:
    leaving = make_account("leaving", scheduled_deletion_date=YESTERDAY)
    _post(db, leaving)
    leaving_id = leaving.id
    removed: list[int] = []

    def failing_prune(_session: Session, _account_id: int) -> dict[str, int]:
        raise RuntimeError("lock timeout")

    def tracking_remove(session: Session, account_id: int) -> bool:
        removed.append(account_id)
        return remove_account(session, account_id)

    monkeypatch.setattr(cleanup_module, "prune_account_references", failing_prune)
    monkeypatch.setattr(cleanup_module, "remove_account", tracking_remove)

    report = run_cleanup(db, now=NOW)

    assert report.outcomes[0].state == CandidateState.FAILED
    assert report.outcomes[0].purged == {"notifications": 0, "connections": 0, "posts": 1}
    assert removed == []
    assert _account_exists(db, leaving_id)


def test_failed_account_is_picked_up_again_by_the_next_run(
    db: Session,
    make_account: Callable[..., Account],
    monkeypatch: Any,
) -> None:
    leaving = make_account("leaving", scheduled_deletion_date=YESTERDAY)
    leaving_id = leaving.id

    def failing_purge(_session: Session, _account_id: int) -> dict[str, int]:
        raise RuntimeError("connection reset")

    with monkeypatch.context() as patch:
        patch.setattr(cleanup_module, "purge_account_records", failing_purge)
        first_run = run_cleanup(db, now=NOW)

    second_run = run_cleanup(db, now=NOW)

    assert first_run.failed == 1
    assert second_run.deleted == 1
    assert not _account_exists(db, leaving_id)


def test_unexpected_crash_is_contained_to_the_candidate(
    db: Session,
    make_account: Callable[..., Account],
    monkeypatch: Any,
) -> None:
    crashing = make_account("crashing", scheduled_deletion_date=YESTERDAY)
    fine = make_account("fine", scheduled_deletion_date=YESTERDAY)
    crashing_id, fine_id = crashing.id, fine.id
    real_cleanup = cleanup_module.cleanup_account

    def crashing_cleanup(session: Session, account_id: int, email: str) -> Any:
        if account_id == crashing_id:
            raise RuntimeError("boom")
        return real_cleanup(session, account_id, email)

    monkeypatch.setattr(cleanup_module, "cleanup_account", crashing_cleanup)

    report = run_cleanup(db, now=NOW)

    assert [item.state for item in report.outcomes] == [CandidateState.FAILED, CandidateState.DONE]
    assert report.outcomes[0].errors == ["boom"]
    assert not _account_exists(db, fine_id)
