import logging
from functools import reduce
from operator import or_

from django.db import transaction
from django.db.models import Count, IntegerField, OuterRef, Prefetch, Q, Subquery
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.disputes.services import assignment_in_dispute
from apps.notifications.realtime import (
    ADMIN_SUPPORT_CHANNEL, MESSAGES_READ, NEW_MESSAGE, NEW_SUPPORT_MESSAGE, get_event_bus, task_channel, user_channel,
)
from apps.tasks.models import Assignment
from apps.tasks.services import is_assignment_finalized
from core.attachments import attachments_to_json
from core.constants import SYSTEM_MESSAGE_PHRASES
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from core.results import ActionResult, service_action
from .models import Message, SupportChatSession, SupportMessage

logger = logging.getLogger(__name__)


def _get_assignment_for_party(user, task_id):
    try:
        return Assignment.objects.get(Q(poster=user) | Q(doer=user), id=task_id)
    except Assignment.DoesNotExist:
        raise NotFoundError("Assignment not found or access denied")


def _system_phrase_filter():
    return reduce(or_, (Q(content__icontains=phrase) for phrase in SYSTEM_MESSAGE_PHRASES))


def message_payload(message):
    return {
        'id': message.id,
        'assignment_id': message.assignment_id,
        'sender_id': message.sender_id,
        'receiver_id': message.receiver_id,
        'content': message.content,
        'attachments': message.attachments,
        'is_read': message.is_read,
        'created_at': message.created_at.isoformat(),
    }


@service_action("Failed to send message")
def send_message(user, task_id, receiver_id, content='', attachment=None, file_name=None, file_type=None):
    task = _get_assignment_for_party(user, task_id)
    if not task.doer_id:
        raise ConflictError("Chat is only available after a bid has been accepted")
    if assignment_in_dispute(task.id):
        raise ConflictError("Messaging is restricted while this task is in dispute")
    if task.status == 'COMPLETED':
        raise ConflictError("Messaging is not available for completed tasks")
    if is_assignment_finalized(task.id):
        raise ConflictError("This task has been finalized and messaging is no longer available")
    if str(receiver_id) != str(task.counterparty_id(user.id)):
        raise ValidationFailed("Invalid recipient")

    content = (content or '').strip()
    file_urls = attachments_to_json(attachment, file_name, file_type)
    if not content and not file_urls:
        raise ValidationFailed("Message content or an attachment is required")

    message = Message.objects.create(
        assignment=task,
        sender=user,
        receiver_id=task.counterparty_id(user.id),
        content=content,
        file_urls=file_urls,
    )
    logger.info(f"Message {message.id} sent on task {task.id} from user {user.id}")
    get_event_bus().publish(task_channel(task.id), NEW_MESSAGE, message_payload(message))
    return ActionResult.ok(message)


@service_action("Failed to load messages")
def get_messages(user, task_id):
    task = _get_assignment_for_party(user, task_id)
    if not task.doer_id:
        return []
    parties = [task.poster_id, task.doer_id]
    conversation = Message.objects.filter(
        assignment=task, kind='USER', sender_id__in=parties, receiver_id__in=parties
    )
    messages = list(
        conversation.exclude(_system_phrase_filter()).select_related('sender').order_by('created_at', 'id')
    )

    marked = conversation.filter(receiver=user, is_read=False).update(is_read=True)
    if marked:
        logger.info(f"Marked {marked} message(s) read on task {task.id} for user {user.id}")
        for message in messages:
            if message.receiver_id == user.id:
                message.is_read = True
        get_event_bus().publish(task_channel(task.id), MESSAGES_READ, {'reader_id': user.id, 'count': marked})
    return messages


@service_action("Failed to get unread count")
def get_unread_message_count(user):
    return {'count': Message.objects.filter(receiver=user, is_read=False, kind='USER').count()}


@service_action("Failed to get unread count")
def get_assignment_unread_count(user, task_id):
    count = Message.objects.filter(assignment_id=task_id, receiver=user, is_read=False, kind='USER').count()
    return {'count': count}


# Support chat

def _sent_by_admin():
    return Q(sender__role='ADMIN') | Q(sender__is_superuser=True)


def _support_sessions():
    messages = SupportMessage.objects.select_related('sender').order_by('created_at', 'id')
    return SupportChatSession.objects.select_related('user').prefetch_related(Prefetch('messages', queryset=messages))


def _get_visible_session(user, session_id, denied_message):
    try:
        session = SupportChatSession.objects.select_related('user').get(id=session_id)
    except SupportChatSession.DoesNotExist:
        raise NotFoundError("Chat session not found")
    if not session.is_visible_to(user):
        raise ForbiddenError(denied_message)
    return session


def support_message_payload(message):
    return {
        'id': message.id,
        'session_id': message.session_id,
        'sender_id': message.sender_id,
        'content': message.content,
        'attachments': message.attachments,
        'is_read': message.is_read,
        'created_at': message.created_at.isoformat(),
    }


@service_action("Failed to get support chat")
def get_user_support_chat(user):
    """Return the caller's open support session, opening one on first contact."""
    session = _support_sessions().filter(user=user, status='open').first()
    if session is None:
        session = SupportChatSession.objects.create(user=user)
        logger.info(f"Opened support chat {session.id} for user {user.id}")
        session = _support_sessions().get(id=session.id)
    return session


@service_action("Failed to send message")
def send_support_message(user, session_id, content='', attachments=None):
    """
    Post into a support session as its owner or as an admin.

    Admin replies go to the owner's channel; everything else goes to the
    shared admin inbox channel.
    """
    session = _get_visible_session(user, session_id, "You don't have permission to send messages in this chat")
    if session.status == 'closed':
        raise ConflictError("This support chat has been closed")

    content = (content or '').strip()
    file_urls = attachments_to_json(attachments)
    if not content and not file_urls:
        raise ValidationFailed("Message content or an attachment is required")

    message = SupportMessage.objects.create(session=session, sender=user, content=content, file_urls=file_urls)
    # updated_at orders the admin inbox
    session.save(update_fields=['updated_at'])
    logger.info(f"Support message {message.id} sent in session {session.id} by user {user.id}")

    channel = user_channel(session.user_id) if user.is_admin_role else ADMIN_SUPPORT_CHANNEL
    get_event_bus().publish(
        channel, NEW_SUPPORT_MESSAGE, {'session_id': session.id, 'message': support_message_payload(message)}
    )
    return ActionResult.ok(message)


@service_action("Failed to get support chats")
def get_all_support_chats(user):
    if not user.is_admin_role:
        raise ForbiddenError("Only admins can view all support chats")
    unread = (
        SupportMessage.objects.filter(session=OuterRef('pk'), is_read=False)
        .exclude(sender=user)
        .exclude(_sent_by_admin())
        .order_by()
        .values('session')
        .annotate(total=Count('id'))
        .values('total')
    )
    sessions = _support_sessions().annotate(
        unread_count=Coalesce(Subquery(unread, output_field=IntegerField()), 0)
    ).order_by('-updated_at', '-id')
    return list(sessions)


@service_action("Failed to get support chat")
def get_support_chat_by_id(user, session_id):
    """Load one session and mark everything the caller did not send as read."""
    session = _get_visible_session(user, session_id, "You don't have permission to view this chat")
    marked = session.messages.filter(is_read=False).exclude(sender=user).update(is_read=True)
    if marked:
        logger.info(f"Marked {marked} support message(s) read in session {session.id} for user {user.id}")
    return _support_sessions().get(id=session.id)


@service_action("Failed to close support chat")
def close_support_chat(user, session_id):
    session = _get_visible_session(user, session_id, "You don't have permission to close this chat")
    closer = 'admin' if user.is_admin_role else 'user'
    with transaction.atomic():
        SupportChatSession.objects.filter(id=session.id).update(status='closed', updated_at=timezone.now())
        SupportMessage.objects.create(
            session=session, sender=user, content=f"Chat was closed by {closer}", is_read=True
        )
    logger.info(f"Support chat {session.id} closed by {closer} {user.id}")
    session.refresh_from_db()
    return ActionResult.ok(session, message="Support chat closed")


@service_action("Failed to mark messages as read")
def mark_support_messages_read(user, message_ids):
    """
    Mark specific support messages read.

    Only messages in sessions the caller may see, and not sent by the caller,
    are touched. Ids outside that scope are ignored.
    """
    if not message_ids:
        return {'updated': 0}
    messages = SupportMessage.objects.filter(id__in=message_ids, is_read=False).exclude(sender=user)
    if not user.is_admin_role:
        messages = messages.filter(session__user=user)
    return {'updated': messages.update(is_read=True)}


@service_action("Failed to get unread count")
def get_unread_support_message_count(user):
    """
    Admins count unread user messages across every session. Everyone else
    counts unread admin replies in their open session.
    """
    if user.is_admin_role:
        count = SupportMessage.objects.filter(is_read=False).exclude(_sent_by_admin()).count()
    else:
        count = SupportMessage.objects.filter(
            _sent_by_admin(), session__user=user, session__status='open', is_read=False
        ).count()
    return {'count': count}
