"""
Dispute lifecycle actions.

Opening a dispute freezes the task (IN_DISPUTE) and its escrow (DISPUTED);
only an admin resolution unfreezes them. The dispute's own thread (response
and follow-ups) stays writable for the parties throughout.
"""
import logging

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.management.models import ManagementLog
from apps.notifications.realtime import TASK_UPDATED, get_event_bus, task_channel
from apps.notifications.services import notify, notify_many
from apps.payments.models import Payment
from apps.tasks.models import Assignment
from apps.users.models import User
from core.attachments import normalize_attachments
from core.constants import DISPUTABLE_ASSIGNMENT_STATUSES, FINALIZED_PAYMENT_STATUSES, RESOLUTION_OUTCOMES
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from core.results import ActionResult, service_action
from .models import Dispute, DisputeFollowup

logger = logging.getLogger(__name__)


def _require_text(value, message):
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(message)
    return value.strip()


def _dispute_queryset():
    return Dispute.objects.select_related(
        'assignment', 'assignment__poster', 'assignment__doer', 'payment', 'initiator', 'resolved_by'
    )


def assignment_in_dispute(assignment_id):
    return Dispute.objects.filter(assignment_id=assignment_id, status='OPEN').exists()


@service_action("Failed to create dispute")
def create_dispute(user, task_id, reason, evidence=None):
    if not task_id:
        raise ValidationFailed("Missing required fields")
    reason = _require_text(reason, "A reason for the dispute is required")

    with transaction.atomic():
        try:
            task = Assignment.objects.select_for_update().get(id=task_id)
        except Assignment.DoesNotExist:
            raise NotFoundError("Assignment not found.")
        if not task.is_party(user):
            raise ForbiddenError("You can only create disputes for tasks you are part of")
        if assignment_in_dispute(task.id):
            raise ConflictError("There is already an active dispute for this assignment.")
        payment = Payment.objects.select_for_update().filter(assignment_id=task.id).first()
        if payment is None:
            raise ConflictError("No payment found for this assignment. A dispute cannot be created.")
        if task.status == 'COMPLETED':
            raise ConflictError("Disputes cannot be raised for completed tasks.")
        if payment.status in FINALIZED_PAYMENT_STATUSES:
            raise ConflictError(
                "This task has been finalized and payment has been processed. Disputes cannot be raised."
            )

        frozen = Assignment.objects.filter(id=task.id, status__in=DISPUTABLE_ASSIGNMENT_STATUSES).update(
            status='IN_DISPUTE'
        )
        if not frozen:
            raise ConflictError(f"Disputes cannot be raised while the task is {task.status}")
        Payment.objects.filter(id=payment.id).exclude(status__in=FINALIZED_PAYMENT_STATUSES).update(status='DISPUTED')
        dispute = Dispute.objects.create(
            assignment=task,
            payment=payment,
            initiator=user,
            reason=reason,
            evidence=normalize_attachments(evidence),
        )
    logger.info(f"Dispute {dispute.id} opened on task {task.id} by user {user.id}")

    # Notify the other party and every admin
    notify(
        task.counterparty_id(user.id),
        "⚠️ Dispute Raised",
        f'A dispute has been raised for task: "{task.title}". Please review and respond.',
        'dispute',
        f"/dashboard/disputes/{dispute.id}",
    )
    admin_ids = User.objects.filter(Q(role='ADMIN') | Q(is_superuser=True)).exclude(id=user.id).values_list('id', flat=True)
    notify_many(
        list(admin_ids),
        "⚠️ New Dispute Requires Attention",
        f'A new dispute has been raised for task: "{task.title}". Please review and take action.',
        'dispute',
        f"/dashboard/admin/disputes/{dispute.id}",
    )
    get_event_bus().publish(task_channel(task.id), TASK_UPDATED, {
        'task': {'id': task.id, 'title': task.title, 'status': 'IN_DISPUTE'},
        'dispute': {'id': dispute.id, 'status': dispute.status},
        'updateType': 'dispute_created',
    })
    dispute.refresh_from_db()
    return ActionResult.ok(dispute, message="Dispute created successfully")


@service_action("Failed to submit response.")
def submit_dispute_response(user, dispute_id, response, evidence=None):
    response = _require_text(response, "Missing required fields")
    try:
        dispute = _dispute_queryset().get(id=dispute_id, status='OPEN')
    except Dispute.DoesNotExist:
        raise NotFoundError("Dispute not found or already resolved.")
    if not dispute.is_involved(user):
        raise ForbiddenError("You are not authorized to respond to this dispute.")

    updated = Dispute.objects.filter(id=dispute.id, status='OPEN').update(
        response=response,
        response_evidence=normalize_attachments(evidence),
        has_response=True,
        updated_at=timezone.now(),
    )
    if not updated:
        raise ConflictError("Dispute not found or already resolved.")
    dispute.refresh_from_db()
    logger.info(f"Response submitted on dispute {dispute.id} by user {user.id}")

    task = dispute.assignment
    if user.id != dispute.initiator_id:
        notify(
            dispute.initiator_id,
            "Dispute Response Received",
            f'The other party has responded to the dispute for task "{task.title}".',
            'dispute',
            f"/dashboard/disputes/{dispute.id}",
        )
    return ActionResult.ok(dispute, message="Response submitted successfully")


@service_action("Failed to add follow-up message.")
def add_dispute_follow_up(user, dispute_id, message, evidence=None):
    message = _require_text(message, "Dispute ID and message are required")
    try:
        dispute = _dispute_queryset().get(id=dispute_id)
    except Dispute.DoesNotExist:
        raise NotFoundError("Dispute not found.")
    if not dispute.is_involved(user):
        raise ForbiddenError("You are not authorized to add follow-up messages to this dispute.")

    followup = DisputeFollowup.objects.create(
        dispute=dispute,
        sender=user,
        message=message,
        evidence=normalize_attachments(evidence),
    )
    logger.info(f"Follow-up {followup.id} added to dispute {dispute.id} by user {user.id}")
    return ActionResult.ok(followup, message="Follow-up added successfully")


@service_action("Failed to resolve dispute.")
def resolve_dispute(user, dispute_id, resolution, status):
    if not user.is_admin_role:
        raise ForbiddenError("Only administrators can resolve disputes")
    if status not in RESOLUTION_OUTCOMES:
        raise ValidationFailed("Invalid resolution status. Use RESOLVED_RELEASE or RESOLVED_REFUND.")
    resolution = _require_text(resolution, "A resolution note is required")
    outcome = RESOLUTION_OUTCOMES[status]

    with transaction.atomic():
        try:
            dispute = _dispute_queryset().select_for_update(of=('self',)).get(id=dispute_id)
        except Dispute.DoesNotExist:
            raise NotFoundError("Dispute not found.")
        if dispute.status != 'OPEN':
            raise ConflictError("This dispute has already been resolved.")

        closed = Dispute.objects.filter(id=dispute.id, status='OPEN').update(
            status=status,
            resolution=resolution,
            resolved_by=user,
            resolved_at=timezone.now(),
        )
        if not closed:
            raise ConflictError("This dispute has already been resolved.")
        Assignment.objects.filter(id=dispute.assignment_id).update(status=outcome['assignment'])
        settled = Payment.objects.filter(id=dispute.payment_id).exclude(
            status__in=FINALIZED_PAYMENT_STATUSES
        ).update(status=outcome['payment'], released_at=timezone.now() if status == 'RESOLVED_RELEASE' else None)
        if settled and outcome['payment'] == 'RELEASED':
            User.objects.filter(id=dispute.payment.payee_id).update(
                account_balance=F('account_balance') + dispute.payment.amount
            )
        ManagementLog.record(
            user,
            'resolve_dispute',
            f"Resolved dispute {dispute.id} on task {dispute.assignment_id} as {status}: {resolution}",
        )
    dispute.refresh_from_db()
    task = dispute.assignment
    task.refresh_from_db()
    logger.info(f"Dispute {dispute.id} resolved as {status} by admin {user.id}")

    released = status == 'RESOLVED_RELEASE'
    base = f'The dispute for task "{task.title}" has been resolved.'
    # Notify poster
    notify(
        task.poster_id,
        "⚠️ Dispute Resolved",
        f"{base} {'Payment has been released to the doer.' if released else 'Payment has been refunded to you.'}",
        'dispute',
        f"/dashboard/disputes/{dispute.id}",
    )
    # Notify doer
    if task.doer_id:
        notify(
            task.doer_id,
            "⚠️ Dispute Resolved",
            f"{base} {'Payment has been released to you.' if released else 'Payment has been refunded to the poster.'}",
            'dispute',
            f"/dashboard/disputes/{dispute.id}",
        )
    get_event_bus().publish(task_channel(task.id), TASK_UPDATED, {
        'task': {'id': task.id, 'title': task.title, 'status': task.status},
        'dispute': {'id': dispute.id, 'status': dispute.status},
        'updateType': 'dispute_resolved',
    })
    return ActionResult.ok(dispute, message="Dispute resolved successfully")


@service_action("Failed to check dispute status.")
def is_assignment_in_dispute(user, task_id):
    return {'in_dispute': assignment_in_dispute(task_id)}


@service_action("Failed to fetch disputes.")
def get_user_disputes(user):
    disputes = list(
        _dispute_queryset()
        .filter(Q(initiator=user) | Q(assignment__poster=user) | Q(assignment__doer=user))
        .distinct()
    )
    for dispute in disputes:
        dispute.is_initiator = dispute.initiator_id == user.id
        if dispute.is_initiator:
            dispute.needs_response = dispute.is_open and not dispute.response
        else:
            dispute.needs_response = dispute.is_open and not dispute.has_response
    return disputes


@service_action("Failed to fetch dispute details")
def get_dispute_details(user, dispute_id):
    try:
        dispute = _dispute_queryset().prefetch_related('followups__sender').get(id=dispute_id)
    except Dispute.DoesNotExist:
        raise NotFoundError("Dispute not found")
    if not (dispute.is_involved(user) or user.is_admin_role):
        raise ForbiddenError("You do not have permission to view this dispute")
    dispute.is_initiator = dispute.initiator_id == user.id
    return dispute


@service_action("Failed to fetch disputes")
def get_all_disputes(user, status=None):
    if not user.is_admin_role:
        raise ForbiddenError("Only administrators can view all disputes")
    disputes = _dispute_queryset().order_by('-created_at')
    if status:
        disputes = disputes.filter(status=status)
    return list(disputes)
