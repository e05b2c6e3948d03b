import logging

from django.db import transaction

from core.exceptions import NotFoundError
from core.results import service_action
from .models import Notification

logger = logging.getLogger(__name__)


def notify(user_id, title, message, type, link=''):
    """
    Store a notification for ``user_id``.

    Best-effort: a failure is logged and ``None`` returned, so the caller's
    primary mutation is never affected. The row is written in its own
    savepoint so an enclosing transaction stays usable.
    """
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                link=link or '',
            )
        logger.info(f"Notification '{title}' created for user {user_id}")
        return notification
    except Exception as e:
        logger.error(f"Failed to create notification '{title}' for user {user_id}: {str(e)}")
        return None


def notify_many(user_ids, title, message, type, link=''):
    return [n for n in (notify(user_id, title, message, type, link) for user_id in user_ids) if n is not None]


@service_action("Failed to fetch notifications")
def get_notifications(user, unread_only=False):
    notifications = Notification.objects.filter(user=user)
    if unread_only:
        notifications = notifications.filter(is_read=False)
    return list(notifications)


@service_action("Failed to update notification")
def mark_notification_read(user, notification_id):
    try:
        notification = Notification.objects.get(id=notification_id, user=user)
    except Notification.DoesNotExist:
        raise NotFoundError("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return notification


@service_action("Failed to update notifications")
def mark_all_notifications_read(user):
    updated = Notification.objects.filter(user=user, is_read=False).update(is_read=True)
    logger.info(f"Marked {updated} notifications read for user {user.id}")
    return {'updated': updated}


@service_action("Failed to count notifications")
def get_unread_notification_count(user):
    return {'count': Notification.objects.filter(user=user, is_read=False).count()}
