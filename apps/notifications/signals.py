from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from .realtime import NEW_NOTIFICATION, get_event_bus, user_channel

logger = logging.getLogger(__name__)

@receiver(post_save, sender='notifications.Notification')
def publish_new_notification(sender, instance, created, **kwargs):
    """Push freshly created notifications to the owner's channel."""
    if not created:
        return
    try:
        get_event_bus().publish(user_channel(instance.user_id), NEW_NOTIFICATION, instance.as_event_payload())
    except Exception as e:
        logger.error(f"Error publishing notification {instance.id} for user {instance.user_id}: {str(e)}")
