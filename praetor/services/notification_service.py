"""Notification enqueueing and user directory lookups."""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from praetor.models import AppUser, Notification, UserRole

logger = logging.getLogger(__name__)


def list_manager_ids(session: Session, excluding_user_id: Optional[int] = None) -> List[int]:
    """Active manager ids, optionally without the acting user."""
    query = session.query(AppUser.id).filter(
        AppUser.role == UserRole.MANAGER.value,
        AppUser.is_disabled == False  # noqa: E712
    )
    if excluding_user_id is not None:
        query = query.filter(AppUser.id != excluding_user_id)
    return [row[0] for row in query.order_by(AppUser.id).all()]


def enqueue_notification(
    session: Session,
    user_id: int,
    type: str,
    title: str,
    message: str = None,
    data: Dict[str, Any] = None
) -> Notification:
    """
    Queue a notification row for a user.

    Note: Caller is responsible for committing the session.
    """
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=json.dumps(data, default=str) if data is not None else None,
    )
    session.add(notification)
    return notification
