import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.notifications.services import notify
from apps.tasks.models import Assignment
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from core.results import ActionResult, service_action
from .models import Review, User

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = ('COMPLETED', 'IN_DISPUTE')
REVIEW_EDIT_WINDOW = timedelta(hours=48)
SWITCHABLE_ROLES = ('POSTER', 'DOER')


def _parse_rating(rating):
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        raise ValidationFailed("Rating must be a whole number between 1 and 5")
    if rating < 1 or rating > 5:
        raise ValidationFailed("Rating must be a whole number between 1 and 5")
    return rating


@service_action("Failed to create review")
def create_review(user, receiver_id, task_id, rating, comment=''):
    rating = _parse_rating(rating)
    try:
        task = Assignment.objects.get(id=task_id)
    except Assignment.DoesNotExist:
        raise NotFoundError("Assignment not found")
    if not task.is_party(user):
        raise ForbiddenError("You're not associated with this assignment")
    if task.status not in REVIEWABLE_STATUSES:
        raise ConflictError("Reviews can only be left for completed assignments")
    if str(receiver_id) not in (str(task.poster_id), str(task.doer_id)):
        raise ValidationFailed("The receiver must be the poster or doer of this assignment")
    if str(receiver_id) == str(user.id):
        raise ValidationFailed("You cannot review yourself")
    if Review.objects.filter(assignment=task, reviewer=user, receiver_id=receiver_id).exists():
        raise ConflictError("You've already reviewed this user for this assignment")

    try:
        with transaction.atomic():
            review = Review.objects.create(
                assignment=task,
                reviewer=user,
                receiver_id=receiver_id,
                rating=rating,
                comment=(comment or '').strip(),
            )
    except IntegrityError:
        raise ConflictError("You've already reviewed this user for this assignment")
    new_rating = review.receiver.refresh_rating()
    logger.info(f"Review {review.id} left by user {user.id} for user {receiver_id}; rating now {new_rating}")

    notify(
        review.receiver_id,
        "New Review",
        f'{user.display_name} rated you {rating}/5 for task "{task.title}".',
        'review',
        f"/profile/{review.receiver_id}",
    )
    return ActionResult.ok(review, message="Review submitted successfully")


def _get_own_recent_review(user, review_id, action, past):
    try:
        review = Review.objects.select_related('receiver').get(id=review_id)
    except Review.DoesNotExist:
        raise NotFoundError("Review not found")
    if review.reviewer_id != user.id:
        raise ForbiddenError(f"You can only {action} your own reviews")
    if timezone.now() - review.created_at > REVIEW_EDIT_WINDOW:
        raise ConflictError(f"Reviews can only be {past} within 48 hours of posting")
    return review


@service_action("Failed to edit review")
def edit_review(user, review_id, rating, comment=''):
    review = _get_own_recent_review(user, review_id, "edit", "edited")
    review.rating = _parse_rating(rating)
    review.comment = (comment or '').strip()
    review.save(update_fields=['rating', 'comment', 'updated_at'])
    review.receiver.refresh_rating()
    return ActionResult.ok(review, message="Review updated successfully")


@service_action("Failed to delete review")
def delete_review(user, review_id):
    review = _get_own_recent_review(user, review_id, "delete", "deleted")
    receiver = review.receiver
    review.delete()
    receiver.refresh_rating()
    logger.info(f"Review {review_id} deleted by user {user.id}")
    return ActionResult.ok({'id': review_id}, message="Review deleted successfully")


@service_action("Failed to fetch reviews")
def get_user_reviews(user, user_id):
    if not User.objects.filter(id=user_id).exists():
        raise NotFoundError("User not found")
    return list(Review.objects.filter(receiver_id=user_id).select_related('reviewer', 'assignment'))


@service_action("Failed to fetch rating statistics")
def get_rating_stats(user, user_id):
    try:
        subject = User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise NotFoundError("User not found")
    return subject.get_rating_stats()


@service_action("Failed to switch role")
def switch_role(user, role):
    if role not in SWITCHABLE_ROLES:
        raise ValidationFailed("Role must be either POSTER or DOER")
    if user.role == 'ADMIN':
        raise ForbiddenError("Administrators cannot switch roles")
    if user.role != role:
        user.role = role
        user.save(update_fields=['role'])
        logger.info(f"User {user.id} switched role to {role}")
    return ActionResult.ok(user, message=f"Successfully switched to {role.lower()} role")
