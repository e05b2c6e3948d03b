from datetime import timedelta

import pytest
from django.utils import timezone

from apps.notifications.models import Notification
from apps.tasks.models import Assignment
from apps.users import services
from apps.users.models import Review


@pytest.fixture
def finished_task(assigned_task):
    Assignment.objects.filter(id=assigned_task.id).update(status="COMPLETED")
    assigned_task.refresh_from_db()
    return assigned_task


@pytest.mark.django_db
class TestCreateReview:

    def test_poster_reviews_doer_and_rating_is_recomputed(self, finished_task, poster, doer):
        result = services.create_review(poster, doer.id, finished_task.id, 4, "Solid work")

        assert result.success
        doer.refresh_from_db()
        assert doer.rating == 4.0
        assert Notification.objects.get(user=doer).type == "review"

    def test_one_review_per_task_and_direction(self, finished_task, poster, doer):
        services.create_review(poster, doer.id, finished_task.id, 5)

        result = services.create_review(poster, doer.id, finished_task.id, 1)

        assert result.kind == "conflict"
        assert Review.objects.count() == 1

    def test_both_sides_can_review_each_other(self, finished_task, poster, doer):
        assert services.create_review(poster, doer.id, finished_task.id, 5).success
        assert services.create_review(doer, poster.id, finished_task.id, 3).success

    def test_unfinished_task_cannot_be_reviewed(self, assigned_task, poster, doer):
        assert services.create_review(poster, doer.id, assigned_task.id, 5).kind == "conflict"

    def test_self_review_is_rejected(self, finished_task, poster):
        assert services.create_review(poster, poster.id, finished_task.id, 5).kind == "validation"

    def test_outsider_cannot_review(self, finished_task, outsider, doer):
        assert services.create_review(outsider, doer.id, finished_task.id, 5).kind == "forbidden"

    @pytest.mark.parametrize("rating", [0, 6, "five", None])
    def test_rating_range(self, finished_task, poster, doer, rating):
        assert services.create_review(poster, doer.id, finished_task.id, rating).kind == "validation"


@pytest.mark.django_db
class TestEditAndDeleteReview:

    @pytest.fixture
    def review(self, finished_task, poster, doer):
        return services.create_review(poster, doer.id, finished_task.id, 2, "Slow").data

    def test_edit_within_window(self, review, poster, doer):
        result = services.edit_review(poster, review.id, 5, "Turned it around")

        assert result.success
        doer.refresh_from_db()
        assert doer.rating == 5.0

    def test_edit_after_window_is_refused(self, review, poster):
        Review.objects.filter(id=review.id).update(created_at=timezone.now() - timedelta(hours=49))

        result = services.edit_review(poster, review.id, 5)

        assert result.kind == "conflict"
        assert result.error == "Reviews can only be edited within 48 hours of posting"

    def test_only_the_author_edits(self, review, doer):
        assert services.edit_review(doer, review.id, 5).kind == "forbidden"

    def test_delete_resets_rating(self, review, poster, doer):
        result = services.delete_review(poster, review.id)

        assert result.success
        doer.refresh_from_db()
        assert doer.rating == 0.0
        assert not Review.objects.exists()


@pytest.mark.django_db
class TestRatingsAndRoles:

    def test_rating_stats_breakdown(self, finished_task, poster, doer, other_doer):
        services.create_review(poster, doer.id, finished_task.id, 5)

        stats = services.get_rating_stats(other_doer, doer.id).data

        assert stats["average_rating"] == 5.0
        assert stats["total_ratings"] == 1
        assert stats["rating_breakdown"]["5_star"] == 100.0

    def test_reviews_for_unknown_user(self, poster):
        assert services.get_user_reviews(poster, 424242).kind == "not_found"

    def test_switch_between_poster_and_doer(self, doer):
        result = services.switch_role(doer, "POSTER")

        assert result.success
        doer.refresh_from_db()
        assert doer.role == "POSTER"

    def test_cannot_switch_into_admin(self, doer):
        assert services.switch_role(doer, "ADMIN").kind == "validation"

    def test_admins_keep_their_role(self, admin_user):
        assert services.switch_role(admin_user, "DOER").kind == "forbidden"
