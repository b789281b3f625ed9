from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sarkariminds.models import Account, Notification, NotificationType

logger = logging.getLogger("sarkariminds.notifications")

# Reactions and replies follow the likes/comments switches.
PREFERENCE_KEY_BY_TYPE: dict[NotificationType, str] = {
    NotificationType.LIKE: "likes",
    NotificationType.STORY_REACTION: "likes",
    NotificationType.COMMENT: "comments",
    NotificationType.STORY_REPLY: "comments",
    NotificationType.CONNECTION_REQUEST: "connection_requests",
    NotificationType.NEW_POST: "new_posts",
}


def is_notification_allowed(recipient: Account, notification_type: NotificationType) -> bool:
    preference_key = PREFERENCE_KEY_BY_TYPE.get(notification_type)
    if preference_key is None:
        return True
    preferences = recipient.notification_preferences or {}
    # Only an explicit opt-out suppresses delivery.
    return preferences.get(preference_key) is not False


def create_notification(
    db: Session,
    recipient_id: int,
    sender_id: int,
    type: NotificationType | str,
    post_id: int | None = None,
    story_id: int | None = None,
) -> Notification | None:
    notification_type = NotificationType(type)
    try:
        recipient = db.get(Account, recipient_id)
        if recipient is None:
            return None
        if not is_notification_allowed(recipient, notification_type):
            return None

        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=notification_type,
            post_id=post_id,
            story_id=story_id,
        )
        db.add(notification)
        db.commit()
        return notification
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "notification.create.failed",
            extra={
                "recipient_id": recipient_id,
                "sender_id": sender_id,
                "notification_type": notification_type.value,
            },
        )
        return None
