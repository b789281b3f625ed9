from __future__ import annotations

from sqlalchemy import ColumnElement, and_, delete, or_, select
from sqlalchemy.orm import Session

from sarkariminds.core.exceptions import NetworkError
from sarkariminds.models import Account, Connection, ConnectionStatus, NotificationType
from sarkariminds.services.notifications import create_notification


def _between(first_id: int, second_id: int) -> ColumnElement[bool]:
    return or_(
        and_(Connection.requester_id == first_id, Connection.recipient_id == second_id),
        and_(Connection.requester_id == second_id, Connection.recipient_id == first_id),
    )


def follow_account(db: Session, follower: Account, followee: Account) -> None:
    if follower.id == followee.id:
        raise NetworkError("You cannot follow yourself")

    if followee not in follower.following:
        follower.following.append(followee)
    if follower not in followee.followers:
        followee.followers.append(follower)
    db.commit()


def unfollow_account(db: Session, follower: Account, followee: Account) -> None:
    if followee in follower.following:
        follower.following.remove(followee)
    if follower in followee.followers:
        followee.followers.remove(follower)
    db.commit()


def send_connection_request(db: Session, requester: Account, recipient: Account) -> Connection:
    if requester.id == recipient.id:
        raise NetworkError("You cannot connect with yourself")

    existing = db.scalar(select(Connection).where(_between(requester.id, recipient.id)))
    if existing is not None:
        if existing.status == ConnectionStatus.ACCEPTED:
            raise NetworkError("Already connected")
        raise NetworkError("Connection request already exists")

    connection = Connection(
        requester_id=requester.id,
        recipient_id=recipient.id,
        status=ConnectionStatus.PENDING,
    )
    db.add(connection)
    db.commit()

    create_notification(db, recipient.id, requester.id, NotificationType.CONNECTION_REQUEST)
    return connection


def respond_to_request(
    db: Session,
    connection_id: int,
    responder: Account,
    status: ConnectionStatus | str,
) -> Connection:
    decision = ConnectionStatus(status)
    if decision == ConnectionStatus.PENDING:
        raise NetworkError("A request can only be accepted or rejected")

    connection = db.get(Connection, connection_id)
    if connection is None:
        raise NetworkError("Request not found")
    if connection.recipient_id != responder.id:
        raise NetworkError("Not authorized")

    connection.status = decision
    if decision == ConnectionStatus.ACCEPTED:
        requester = db.get(Account, connection.requester_id)
        if requester is None:
            raise NetworkError("Requester no longer exists")
        if responder not in requester.connections:
            requester.connections.append(responder)
        if requester not in responder.connections:
            responder.connections.append(requester)
    db.commit()

    if decision == ConnectionStatus.ACCEPTED:
        create_notification(db, connection.requester_id, responder.id, NotificationType.CONNECTION_ACCEPTED)
    return connection


def withdraw_request(db: Session, connection_id: int, requester: Account) -> None:
    connection = db.get(Connection, connection_id)
    if connection is None:
        raise NetworkError("Request not found")
    if connection.requester_id != requester.id:
        raise NetworkError("Not authorized")
    if connection.status != ConnectionStatus.PENDING:
        raise NetworkError("Only pending requests can be withdrawn")

    db.delete(connection)
    db.commit()


def remove_connection(db: Session, account: Account, peer: Account) -> None:
    if peer in account.connections:
        account.connections.remove(peer)
    if account in peer.connections:
        peer.connections.remove(account)
    db.execute(delete(Connection).where(_between(account.id, peer.id)))
    db.commit()
