from decimal import Decimal

import pytest

from apps.disputes.models import Dispute
from apps.notifications.models import Notification
from apps.payments import services
from apps.payments.models import Payment
from apps.tasks import services as task_services
from apps.tasks.models import Assignment


@pytest.fixture
def completed_task(assigned_task):
    Assignment.objects.filter(id=assigned_task.id).update(status="COMPLETED")
    Payment.objects.filter(assignment=assigned_task).update(status="COMPLETED")
    assigned_task.refresh_from_db()
    return assigned_task


@pytest.mark.django_db
class TestReleasePayment:

    def test_release_credits_the_doer_once(self, completed_task, poster, doer, subscribe):
        feed = subscribe(f"task-{completed_task.id}")

        result = services.release_payment(poster, completed_task.id)

        assert result.success
        assert result.data.status == "RELEASED"
        assert result.data.released_at is not None
        doer.refresh_from_db()
        assert doer.account_balance == Decimal("500.00")
        assert Notification.objects.get(user=doer).title == "Payment Released"
        assert [event.name for event in feed.drain()] == ["task-updated"]

        again = services.release_payment(poster, completed_task.id)

        assert again.kind == "conflict"
        doer.refresh_from_db()
        assert doer.account_balance == Decimal("500.00")

    def test_release_requires_completed_task(self, assigned_task, poster):
        result = services.release_payment(poster, assigned_task.id)

        assert result.kind == "conflict"
        assert Payment.objects.get(assignment=assigned_task).status == "PENDING"

    def test_disputed_payment_is_not_released(self, completed_task, poster):
        Dispute.objects.create(
            assignment=completed_task, payment=completed_task.payment, initiator=poster, reason="Quality"
        )

        assert services.release_payment(poster, completed_task.id).kind == "conflict"

    def test_only_the_payer_can_release(self, completed_task, doer):
        assert services.release_payment(doer, completed_task.id).kind == "not_found"


@pytest.mark.django_db
class TestEarnings:

    def test_earnings_summary_buckets(self, assigned_task, doer, poster, open_task):
        result = services.get_doer_earnings(doer)

        summary = result.data["summary"]
        assert summary["total_earnings"] == Decimal("500.00")
        assert summary["pending_earnings"] == Decimal("500.00")
        assert summary["completed_earnings"] == Decimal("0")
        assert summary["disputed_earnings"] == Decimal("0")
        assert len(result.data["payments"]) == 1

    def test_refunded_money_is_not_counted(self, assigned_task, doer):
        Payment.objects.filter(assignment=assigned_task).update(status="REFUNDED")

        summary = services.get_doer_earnings(doer).data["summary"]

        assert summary["total_earnings"] == Decimal("0")


@pytest.mark.django_db
def test_full_marketplace_happy_path(open_task, poster, doer):
    """Bid, accept, work, submit, approve, then release."""
    bid = task_services.submit_bid(doer, open_task.id, "Three concepts in five days", "750").data
    assert task_services.accept_bid(poster, bid.id).success
    assert task_services.update_task_status(doer, open_task.id, "IN_PROGRESS").success
    submission = task_services.create_task_submission(doer, open_task.id, "Final logo pack").data
    assert task_services.update_submission_status(poster, submission.id, "approved").success

    result = services.release_payment(poster, open_task.id)

    assert result.success
    doer.refresh_from_db()
    assert doer.account_balance == Decimal("750.00")
    summary = services.get_doer_earnings(doer).data["summary"]
    assert summary["completed_earnings"] == Decimal("750.00")
    assert summary["account_balance"] == Decimal("750.00")
