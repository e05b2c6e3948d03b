"""
Task lifecycle actions.

Every action takes the acting user first and returns an ActionResult. State
changes are guarded with conditional updates (``filter(status=...).update``)
so two racing requests cannot both win; notifications and real-time events
go out only after the database work has been committed or rolled back.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, Exists, OuterRef, Q

from apps.notifications.realtime import (
    BID_ACCEPTED, BID_REJECTED, NEW_BID, SUBMISSION_STATUS_UPDATED, TASK_UPDATED, URGENT_NOTIFICATION,
    bid_channel, get_event_bus, task_channel, user_channel,
)
from apps.notifications.services import notify
from apps.payments.models import Payment
from core.attachments import normalize_attachments
from core.constants import FINALIZED_PAYMENT_STATUSES, TASK_STATUS_TRANSITIONS, WORKING_ASSIGNMENT_STATUSES
from core.exceptions import ConflictError, ForbiddenError, InvalidTransitionError, NotFoundError, ValidationFailed
from core.results import ActionResult, service_action
from .models import Assignment, Bid, Submission
from .utils import parse_amount, parse_deadline, require_text, status_label

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    'IN_PROGRESS': "has started working on",
    'UNDER_REVIEW': "has submitted work for",
    'COMPLETED': "has completed",
}


def _require_id(value, message):
    if value in (None, ''):
        raise ValidationFailed(message)
    return value


def _publish(channel, event, payload):
    get_event_bus().publish(channel, event, payload)


def is_assignment_finalized(assignment_id):
    return Payment.objects.filter(assignment_id=assignment_id, status__in=FINALIZED_PAYMENT_STATUSES).exists()


# Tasks

@service_action("Failed to create task. Please try again.")
def create_task(user, title, description, category, budget, deadline, attachments=None):
    if not user.is_poster:
        raise ForbiddenError("Only posters can create tasks")
    task = Assignment.objects.create(
        poster=user,
        title=require_text(title, "Title is required"),
        description=require_text(description, "Description is required"),
        category=(category or '').strip() or 'General',
        budget=parse_amount(budget, "Budget must be greater than zero"),
        deadline=parse_deadline(deadline),
        attachments=normalize_attachments(attachments),
    )
    logger.info(f"Task {task.id} created by poster {user.id}")
    return ActionResult.ok(task, message=f'Task "{task.title}" created successfully')


@service_action("Failed to update task")
def update_task(user, task_id, **changes):
    _require_id(task_id, "Task ID is required")
    try:
        task = Assignment.objects.get(id=task_id, poster=user)
    except Assignment.DoesNotExist:
        raise NotFoundError("Task not found")
    if task.status != 'OPEN':
        raise ConflictError("Cannot update a task that is already in progress or completed")
    if task.bids.exists():
        raise ConflictError("Cannot update a task that already has bids from doers")

    fields = {}
    if 'title' in changes:
        fields['title'] = require_text(changes['title'], "Title is required")
    if 'description' in changes:
        fields['description'] = require_text(changes['description'], "Description is required")
    if 'category' in changes:
        fields['category'] = require_text(changes['category'], "Category is required")
    if 'budget' in changes:
        fields['budget'] = parse_amount(changes['budget'], "Budget must be greater than zero")
    if 'deadline' in changes:
        fields['deadline'] = parse_deadline(changes['deadline'])
    if 'attachments' in changes:
        fields['attachments'] = normalize_attachments(changes['attachments'])
    if not fields:
        raise ValidationFailed("No changes provided")

    updated = Assignment.objects.filter(id=task.id, status='OPEN').update(**fields)
    if not updated:
        raise ConflictError("Cannot update a task that is already in progress or completed")
    task.refresh_from_db()
    logger.info(f"Task {task.id} updated by poster {user.id}: {', '.join(sorted(fields))}")
    return ActionResult.ok(task, message="Task updated successfully")


@service_action("Failed to delete task")
def delete_task(user, task_id):
    _require_id(task_id, "Task ID is required")
    if not Assignment.objects.filter(id=task_id, poster=user).exists():
        raise NotFoundError("Task not found")
    deleted, _ = Assignment.objects.filter(id=task_id, poster=user, status='OPEN').delete()
    if not deleted:
        raise ConflictError("Cannot delete a task that is already in progress or completed")
    logger.info(f"Task {task_id} deleted by poster {user.id}")
    return ActionResult.ok({'id': task_id}, message="Task deleted successfully")


@service_action("Failed to fetch available tasks")
def get_available_tasks(user):
    return list(
        Assignment.objects.filter(status='OPEN')
        .exclude(poster=user)
        .select_related('poster')
        .annotate(
            bids_count=Count('bids', distinct=True),
            user_has_bid=Exists(Bid.objects.filter(assignment=OuterRef('pk'), user=user)),
        )
    )


@service_action("Failed to fetch tasks")
def get_user_tasks(user):
    return list(
        Assignment.objects.filter(poster=user)
        .select_related('doer')
        .annotate(
            bids_count=Count('bids', distinct=True),
            messages_count=Count('messages', distinct=True),
            submissions_count=Count('submissions', distinct=True),
        )
    )


@service_action("Failed to fetch task details")
def get_task_details(user, task_id):
    _require_id(task_id, "Task ID is required")
    try:
        task = (
            Assignment.objects.select_related('poster', 'doer')
            .prefetch_related('bids__user', 'submissions')
            .get(Q(poster=user) | Q(doer=user), id=task_id)
        )
    except Assignment.DoesNotExist:
        raise NotFoundError("Task not found")
    return task


# Bids

@service_action("Failed to submit bid")
def submit_bid(user, task_id, content, amount):
    _require_id(task_id, "User ID and Task ID are required")
    content = require_text(content, "Bid content is required")
    amount = parse_amount(amount, "A valid bid amount is required")

    try:
        task = Assignment.objects.get(id=task_id, status='OPEN')
    except Assignment.DoesNotExist:
        raise NotFoundError("Task not found or is no longer accepting bids")
    if task.poster_id == user.id:
        raise ForbiddenError("You cannot bid on your own task")
    if Bid.objects.filter(assignment=task, user=user).exists():
        raise ConflictError("You have already placed a bid on this task")

    try:
        with transaction.atomic():
            bid = Bid.objects.create(assignment=task, user=user, content=content, bid_amount=amount)
    except IntegrityError:
        raise ConflictError("You have already placed a bid on this task")
    logger.info(f"Bid {bid.id} of {amount} placed by user {user.id} on task {task.id}")

    # Notify poster
    notify(
        task.poster_id,
        "New Bid Received",
        f"{user.display_name} has placed a bid of Rs {amount} on your task: {task.title}",
        'new_bid',
        f"/poster/tasks/{task.id}",
    )
    _publish(task_channel(task.id), NEW_BID, {
        'bid': {'id': bid.id, 'amount': str(amount), 'status': bid.status, 'user_id': user.id},
        'task': {'id': task.id, 'title': task.title},
    })
    return ActionResult.ok(bid, message="Bid submitted successfully")


def _get_bid_for_poster(user, bid_id, action):
    _require_id(bid_id, "Bid ID and User ID are required")
    try:
        bid = Bid.objects.select_related('assignment', 'user').get(id=bid_id)
    except Bid.DoesNotExist:
        raise NotFoundError("Bid not found")
    if bid.assignment.poster_id != user.id:
        raise ForbiddenError(f"You don't have permission to {action} this bid")
    return bid


@service_action("Failed to accept bid")
def accept_bid(user, bid_id):
    bid = _get_bid_for_poster(user, bid_id, 'accept')
    task = bid.assignment
    if task.status != 'OPEN':
        raise ConflictError("This task is no longer open for accepting bids")
    if bid.user_id == user.id:
        raise ForbiddenError("You cannot accept your own bid on your own task")
    if bid.status != 'pending':
        raise ConflictError("Only pending bids can be accepted")

    with transaction.atomic():
        assigned = Assignment.objects.filter(id=task.id, status='OPEN').update(status='ASSIGNED', doer_id=bid.user_id)
        if not assigned:
            raise ConflictError("This task is no longer open for accepting bids")
        if not Bid.objects.filter(id=bid.id, status='pending').update(status='accepted'):
            raise ConflictError("Only pending bids can be accepted")
        losing_bids = list(
            Bid.objects.select_for_update()
            .filter(assignment_id=task.id, status='pending')
            .exclude(id=bid.id)
            .values_list('id', 'user_id')
        )
        Bid.objects.filter(assignment_id=task.id).exclude(id=bid.id).update(status='rejected')
        payment = Payment.objects.create(
            assignment_id=task.id,
            payer_id=task.poster_id,
            payee_id=bid.user_id,
            amount=bid.bid_amount,
            status='PENDING',
        )
    logger.info(
        f"Bid {bid.id} accepted on task {task.id}; doer {bid.user_id} assigned, "
        f"{len(losing_bids)} other bid(s) rejected, payment {payment.id} held"
    )

    task.refresh_from_db()
    # Notify accepted doer
    notify(
        bid.user_id,
        "Bid Accepted!",
        f"{user.display_name} has accepted your bid on task: {task.title}",
        'bid_accepted',
        f"/doer/tasks/{task.id}",
    )
    _publish(bid_channel(bid.id), BID_ACCEPTED, {
        'bid': {'id': bid.id, 'status': 'accepted'},
        'task': {'id': task.id, 'title': task.title, 'status': task.status},
    })
    _publish(task_channel(task.id), TASK_UPDATED, {
        'task': {'id': task.id, 'title': task.title, 'status': task.status, 'doer_id': task.doer_id},
        'updateType': 'bid_accepted',
    })

    # Notify rejected bidders
    for losing_bid_id, bidder_id in losing_bids:
        _publish(bid_channel(losing_bid_id), BID_REJECTED, {'bid': {'id': losing_bid_id, 'status': 'rejected'}})
        notify(
            bidder_id,
            "Bid Not Selected",
            f'Your bid on task: "{task.title}" was not selected by the client.',
            'bid_rejected',
            "/doer/bids",
        )
    return ActionResult.ok(task, message="Bid accepted successfully")


@service_action("Failed to reject bid")
def reject_bid(user, bid_id):
    bid = _get_bid_for_poster(user, bid_id, 'reject')
    task = bid.assignment
    if task.status != 'OPEN':
        raise ConflictError("This task is no longer open for rejecting bids")
    if not Bid.objects.filter(id=bid.id, status='pending').update(status='rejected'):
        raise ConflictError("Only pending bids can be rejected")
    bid.refresh_from_db()
    logger.info(f"Bid {bid.id} rejected on task {task.id}")

    # Notify doer
    notify(
        bid.user_id,
        "Bid Rejected",
        f"{user.display_name} has rejected your bid on task: {task.title}",
        'bid_rejected',
        "/doer/bids",
    )
    _publish(bid_channel(bid.id), BID_REJECTED, {'bid': {'id': bid.id, 'status': 'rejected'}})
    return ActionResult.ok(bid, message="Bid rejected successfully")


def _get_own_bid(user, bid_id, action):
    _require_id(bid_id, "Bid ID and User ID are required")
    try:
        bid = Bid.objects.select_related('assignment').get(id=bid_id)
    except Bid.DoesNotExist:
        raise NotFoundError("Bid not found")
    if bid.user_id != user.id:
        raise ForbiddenError(f"You don't have permission to {action} this bid")
    if bid.status != 'pending':
        raise ConflictError(f"You can only {action} pending bids")
    return bid


@service_action("Failed to withdraw bid")
def withdraw_bid(user, bid_id):
    bid = _get_own_bid(user, bid_id, 'withdraw')
    deleted, _ = Bid.objects.filter(id=bid.id, user=user, status='pending').delete()
    if not deleted:
        raise ConflictError("You can only withdraw pending bids")
    logger.info(f"Bid {bid_id} withdrawn by user {user.id}")
    return ActionResult.ok({'id': bid_id}, message="Bid withdrawn successfully")


@service_action("Failed to update bid")
def update_bid(user, bid_id, content=None, amount=None):
    bid = _get_own_bid(user, bid_id, 'update')
    fields = {}
    if content is not None:
        fields['content'] = require_text(content, "Bid content is required")
    if amount is not None:
        fields['bid_amount'] = parse_amount(amount, "A valid bid amount is required")
    if not fields:
        raise ValidationFailed("No changes provided")
    if not Bid.objects.filter(id=bid.id, status='pending', assignment__status='OPEN').update(**fields):
        raise ConflictError("You can only update pending bids")
    bid.refresh_from_db()
    logger.info(f"Bid {bid.id} updated by user {user.id}")
    return ActionResult.ok(bid, message="Bid updated successfully")


@service_action("Failed to fetch bids")
def get_user_bids(user):
    return list(
        Bid.objects.filter(user=user)
        .filter(
            Q(status='accepted', assignment__doer=user)
            | Q(status='pending', assignment__status='OPEN')
            | Q(status='rejected')
        )
        .select_related('assignment', 'assignment__poster')
    )


# Work

@service_action("Failed to update task status")
def update_task_status(user, task_id, new_status):
    _require_id(task_id, "Task ID and User ID are required")
    if not new_status:
        raise ValidationFailed("New status is required")
    try:
        task = Assignment.objects.select_related('poster').get(id=task_id, doer=user)
    except Assignment.DoesNotExist:
        raise NotFoundError("Task not found or you are not the assigned doer")

    current = task.status
    if new_status not in TASK_STATUS_TRANSITIONS.get(current, ()):
        raise InvalidTransitionError(f"Cannot transition from {current} to {new_status}")
    if not Assignment.objects.filter(id=task.id, status=current).update(status=new_status):
        task.refresh_from_db()
        raise InvalidTransitionError(f"Cannot transition from {task.status} to {new_status}")
    task.refresh_from_db()
    logger.info(f"Task {task.id} moved from {current} to {new_status} by doer {user.id}")

    _publish(task_channel(task.id), TASK_UPDATED, {
        'task': {'id': task.id, 'title': task.title, 'status': new_status},
        'updateType': 'status_change',
        'updatedBy': {'id': user.id, 'name': user.display_name},
    })
    # Notify poster
    if new_status in STATUS_MESSAGES:
        message = f"{user.display_name} {STATUS_MESSAGES[new_status]} your task: {task.title}"
    else:
        message = f'Status of task "{task.title}" has been updated to {status_label(new_status)}'
    notify(task.poster_id, "Task Status Updated", message, 'status_update', f"/poster/tasks/{task.id}")
    return ActionResult.ok(task, message=f"Task status updated to {new_status.lower()}")


@service_action("Failed to create submission")
def create_task_submission(user, task_id, content, attachments=None):
    _require_id(task_id, "Missing required parameters")
    content = require_text(content, "Submission content is required")
    with transaction.atomic():
        try:
            task = Assignment.objects.select_for_update().get(id=task_id, doer=user)
        except Assignment.DoesNotExist:
            raise NotFoundError("Task not found or you are not the assigned doer")
        if task.has_open_dispute():
            raise ConflictError("Submissions are restricted while this task is in dispute")
        if task.status == 'COMPLETED':
            raise ConflictError("Submissions are not allowed for completed tasks")
        if is_assignment_finalized(task.id):
            raise ConflictError("This task has been finalized and submissions are no longer allowed")
        if task.status not in WORKING_ASSIGNMENT_STATUSES:
            raise ConflictError("Submissions are not allowed for this task")

        submission = Submission.objects.create(
            assignment=task,
            user=user,
            content=content,
            attachments=normalize_attachments(attachments),
        )
        if task.status == 'IN_PROGRESS':
            Assignment.objects.filter(id=task.id, status='IN_PROGRESS').update(status='UNDER_REVIEW')
    task.refresh_from_db()
    logger.info(f"Submission {submission.id} created on task {task.id}; task is {task.status}")

    _publish(task_channel(task.id), TASK_UPDATED, {
        'submission': {
            'id': submission.id,
            'status': submission.status,
            'createdAt': submission.created_at.isoformat(),
            'content': content[:100],
        },
        'task': {'id': task.id, 'title': task.title, 'status': task.status},
    })
    # Notify poster
    notify(
        task.poster_id,
        "⚠️ ACTION REQUIRED: Work Submitted for Review",
        f'{user.display_name} has submitted their work for your task: "{task.title}". '
        f"Please review and approve or provide feedback.",
        'submission_review_required',
        f"/poster/tasks/{task.id}",
    )
    _publish(user_channel(task.poster_id), URGENT_NOTIFICATION, {
        'message': f'New work submitted for "{task.title}" is waiting for your review',
        'taskId': task.id,
        'submissionId': submission.id,
    })
    return ActionResult.ok(submission, message="Submission created successfully")


@service_action("Failed to update submission")
def update_submission_status(user, submission_id, new_status):
    _require_id(submission_id, "Submission ID is required")
    if new_status not in ('approved', 'rejected'):
        raise ValidationFailed("Status must be either 'approved' or 'rejected'")
    try:
        submission = Submission.objects.select_related('assignment').get(id=submission_id, assignment__poster=user)
    except Submission.DoesNotExist:
        raise NotFoundError("Submission not found or you don't have permission to update it")

    with transaction.atomic():
        task = Assignment.objects.select_for_update().get(id=submission.assignment_id)
        if task.status not in WORKING_ASSIGNMENT_STATUSES:
            raise ConflictError(f"Submissions cannot be reviewed while the task is {status_label(task.status)}")
        if not Submission.objects.filter(id=submission.id, status='pending').update(status=new_status):
            raise ConflictError("This submission has already been reviewed")
        if new_status == 'approved':
            task_status = 'COMPLETED'
            Payment.objects.filter(assignment_id=task.id, status='PENDING').update(status='COMPLETED')
        else:
            task_status = 'IN_PROGRESS'
        Assignment.objects.filter(id=task.id, status=task.status).update(status=task_status)
    submission.refresh_from_db()
    logger.info(f"Submission {submission.id} {new_status}; task {task.id} is now {task_status}")

    # Notify doer
    if new_status == 'approved':
        title = "Submission Approved"
        message = f'Your submission for "{task.title}" has been approved!'
    else:
        title = "Submission Rejected"
        message = (
            f'Your submission for "{task.title}" has been rejected. '
            f"Please make the necessary changes and submit again."
        )
    notify(submission.user_id, title, message, 'submission_status', f"/doer/tasks/{task.id}")
    _publish(user_channel(submission.user_id), SUBMISSION_STATUS_UPDATED, {
        'message': message,
        'submissionId': submission.id,
        'taskId': task.id,
        'status': new_status.upper(),
    })
    _publish(task_channel(task.id), TASK_UPDATED, {
        'task': {'id': task.id, 'title': task.title, 'status': task_status},
        'updateType': 'submission_review',
    })
    return ActionResult.ok(submission, message=f"Submission {new_status}")
