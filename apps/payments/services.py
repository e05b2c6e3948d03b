import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.notifications.realtime import TASK_UPDATED, get_event_bus, task_channel
from apps.notifications.services import notify
from apps.users.models import User
from core.exceptions import ConflictError, NotFoundError, ValidationFailed
from core.results import ActionResult, service_action
from .models import Payment

logger = logging.getLogger(__name__)

RELEASABLE_STATUSES = ('PENDING', 'COMPLETED')


@service_action("Failed to release payment")
def release_payment(user, task_id):
    """Pay the escrowed amount out to the doer of a completed task."""
    if not task_id:
        raise ValidationFailed("Task ID is required")
    try:
        payment = Payment.objects.select_related('assignment').get(assignment_id=task_id, payer=user)
    except Payment.DoesNotExist:
        raise NotFoundError("Payment not found for this task")
    task = payment.assignment
    if task.status != 'COMPLETED':
        raise ConflictError("Payment can only be released for completed tasks")
    if task.has_open_dispute() or payment.status == 'DISPUTED':
        raise ConflictError("Payment is under dispute and cannot be released")
    if payment.status not in RELEASABLE_STATUSES:
        raise ConflictError("Payment has already been finalized")

    with transaction.atomic():
        released = Payment.objects.filter(id=payment.id, status__in=RELEASABLE_STATUSES).update(
            status='RELEASED', released_at=timezone.now()
        )
        if not released:
            raise ConflictError("Payment has already been finalized")
        User.objects.filter(id=payment.payee_id).update(account_balance=F('account_balance') + payment.amount)
    payment.refresh_from_db()
    logger.info(f"Payment {payment.id} of {payment.amount} released to doer {payment.payee_id}")

    # Notify doer
    notify(
        payment.payee_id,
        "Payment Released",
        f'Rs {payment.amount} for task "{task.title}" has been released to your account.',
        'payment',
        "/doer/earnings",
    )
    get_event_bus().publish(task_channel(task.id), TASK_UPDATED, {
        'task': {'id': task.id, 'title': task.title, 'status': task.status},
        'payment': {'id': payment.id, 'status': payment.status},
        'updateType': 'payment_released',
    })
    return ActionResult.ok(payment, message="Payment released successfully")


@service_action("Failed to fetch earnings")
def get_doer_earnings(user):
    payments = list(Payment.objects.filter(payee=user).select_related('assignment'))

    def total(*statuses):
        return sum((p.amount for p in payments if p.status in statuses), Decimal('0'))

    # Refunded money went back to the poster
    summary = {
        'total_earnings': total('PENDING', 'COMPLETED', 'DISPUTED', 'RELEASED'),
        'pending_earnings': total('PENDING'),
        'disputed_earnings': total('DISPUTED'),
        'completed_earnings': total('COMPLETED', 'RELEASED'),
        'account_balance': user.account_balance,
    }
    return {'summary': summary, 'payments': payments}
