"""
In-app notifications with optional email delivery.

Channels requested by the caller are filtered through the user's
NotificationPreference before the row is stored. Realtime fan-out (Redis)
and email are best effort and never fail the notification itself.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from kamleen.core.redis import publish
from kamleen.database.models import Notification, NotificationPreference, User
from kamleen.services.email_service import send_email

logger = logging.getLogger(__name__)

TOAST = "TOAST"
EMAIL = "EMAIL"

BOOKING_CREATED = "BOOKING_CREATED"
BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
BOOKING_CANCELLED = "BOOKING_CANCELLED"

EVENT_TOGGLES = {
    BOOKING_CREATED: "on_booking_created",
    BOOKING_CONFIRMED: "on_booking_confirmed",
    BOOKING_CANCELLED: "on_booking_cancelled",
}


def get_preferences(db: Session, user_id: int) -> NotificationPreference:
    pref = db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()
    if pref is None:
        pref = NotificationPreference(user_id=user_id)
        db.add(pref)
        db.commit()
        db.refresh(pref)
    return pref


def effective_channels(pref: NotificationPreference, event_type: str, channels: List[str]) -> List[str]:
    toggle = EVENT_TOGGLES.get(event_type)
    if toggle and not getattr(pref, toggle):
        return []
    allowed = {TOAST: pref.toast_enabled, EMAIL: pref.email_enabled}
    return [c for c in channels if allowed.get(c, False)]


def to_dto(n: Notification) -> Dict[str, Any]:
    return {
        "id": n.id,
        "title": n.title,
        "message": n.message,
        "priority": n.priority,
        "event_type": n.event_type,
        "channels": n.channels or [],
        "href": n.href,
        "metadata": n.meta,
        "read_at": n.read_at.isoformat() if n.read_at else None,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


async def create_notification(
    db: Session,
    user_id: int,
    title: str,
    message: str,
    event_type: str = "GENERAL",
    channels: Optional[List[str]] = None,
    priority: str = "normal",
    href: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    pref = get_preferences(db, user_id)
    channels = effective_channels(pref, event_type, channels or [TOAST])

    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        priority=priority,
        event_type=event_type,
        channels=channels,
        href=href,
        meta=metadata,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    dto = to_dto(record)

    try:
        await publish(f"notify:{user_id}", dto)
    except Exception as e:
        logger.warning("Realtime publish failed for user %s: %s", user_id, e)

    if EMAIL in channels:
        user = db.query(User).filter(User.id == user_id).first()
        if user is not None and user.email:
            try:
                await send_email(db, user.email, title, text=message)
            except Exception as e:
                logger.warning("Notification email to user %s failed: %s", user_id, e)

    return dto
