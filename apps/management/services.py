import logging

from django.db.models import Sum

from apps.disputes.models import Dispute
from apps.payments.models import Payment
from apps.tasks.models import Assignment
from apps.users.models import User
from core.constants import ACTIVE_ASSIGNMENT_STATUSES, USER_ROLE_CHOICES
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from core.results import ActionResult, service_action
from .models import ManagementLog

logger = logging.getLogger(__name__)

ESCROW_HELD_STATUSES = ('PENDING', 'COMPLETED', 'DISPUTED')


def _require_admin(user):
    if not user.is_admin_role:
        raise ForbiddenError("Only administrators can perform this action")


@service_action("Failed to fetch admin statistics")
def get_admin_dashboard_stats(user):
    _require_admin(user)
    escrow = Payment.objects.filter(status__in=ESCROW_HELD_STATUSES).aggregate(total=Sum('amount'))['total']
    return {
        'total_users': User.objects.count(),
        'active_assignments': Assignment.objects.filter(status__in=ACTIVE_ASSIGNMENT_STATUSES).count(),
        'open_disputes': Dispute.objects.filter(status='OPEN').count(),
        'escrow_held': escrow or 0,
    }


@service_action("Failed to fetch users")
def list_users(user, role=None):
    _require_admin(user)
    users = User.objects.all().order_by('-date_joined')
    if role:
        role = role.upper()
        if role not in dict(USER_ROLE_CHOICES):
            raise ValidationFailed("Role must be POSTER, DOER or ADMIN")
        users = users.filter(role=role)
    ManagementLog.record(user, 'list_users', f"Listed users with role filter: {role or 'all'}")
    return list(users)


def _set_active(user, user_id, active):
    _require_admin(user)
    try:
        target = User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise NotFoundError("User not found")
    if target.id == user.id:
        raise ConflictError("You cannot change the status of your own account")
    if target.is_active == active:
        raise ConflictError(f"User is already {'active' if active else 'suspended'}")
    target.is_active = active
    target.save(update_fields=['is_active'])
    action = 'reactivate_user' if active else 'suspend_user'
    ManagementLog.record(user, action, f"{'Reactivated' if active else 'Suspended'} user {target.username}")
    logger.info(f"Admin {user.id} {'reactivated' if active else 'suspended'} user {target.id}")
    return target


@service_action("Failed to suspend user")
def suspend_user(user, user_id):
    return ActionResult.ok(_set_active(user, user_id, False), message="User suspended")


@service_action("Failed to reactivate user")
def reactivate_user(user, user_id):
    return ActionResult.ok(_set_active(user, user_id, True), message="User reactivated")
