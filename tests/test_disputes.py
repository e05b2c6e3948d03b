from decimal import Decimal

import pytest

from apps.disputes import services
from apps.disputes.models import Dispute, DisputeFollowup
from apps.management.models import ManagementLog
from apps.notifications.models import Notification
from apps.payments.models import Payment
from apps.tasks.models import Assignment
from apps.users.models import User


@pytest.fixture
def open_dispute(in_progress_task, poster):
    return services.create_dispute(poster, in_progress_task.id, "Work is two weeks late").data


@pytest.mark.django_db
class TestCreateDispute:

    def test_dispute_freezes_task_and_escrow(self, in_progress_task, poster, doer, admin_user, subscribe):
        feed = subscribe(f"task-{in_progress_task.id}")

        result = services.create_dispute(
            poster, in_progress_task.id, "Work is two weeks late", ["https://cdn.example.com/chat.png"]
        )

        assert result.success
        dispute = result.data
        assert dispute.status == "OPEN"
        assert dispute.initiator_id == poster.id
        assert dispute.normalized_evidence[0]["name"] == "chat.png"
        in_progress_task.refresh_from_db()
        assert in_progress_task.status == "IN_DISPUTE"
        assert Payment.objects.get(assignment=in_progress_task).status == "DISPUTED"
        assert Notification.objects.get(user=doer).title == "⚠️ Dispute Raised"
        assert Notification.objects.get(user=admin_user).title == "⚠️ New Dispute Requires Attention"
        assert [event.name for event in feed.drain()] == ["task-updated"]

    def test_superusers_are_told_about_new_disputes(self, in_progress_task, doer):
        root = User.objects.create_superuser("root", "root@example.com", "s3cure-pass-123")

        services.create_dispute(doer, in_progress_task.id, "Poster stopped answering")

        assert Notification.objects.filter(user=root, type="dispute").exists()

    def test_only_one_open_dispute_per_task(self, open_dispute, in_progress_task, doer):
        result = services.create_dispute(doer, in_progress_task.id, "Counter claim")

        assert result.kind == "conflict"
        assert result.error == "There is already an active dispute for this assignment."
        assert Dispute.objects.filter(assignment=in_progress_task).count() == 1

    def test_outsider_cannot_dispute(self, in_progress_task, outsider):
        result = services.create_dispute(outsider, in_progress_task.id, "Nosy")

        assert result.kind == "forbidden"
        in_progress_task.refresh_from_db()
        assert in_progress_task.status == "IN_PROGRESS"

    def test_task_without_escrow_cannot_be_disputed(self, open_task, poster):
        result = services.create_dispute(poster, open_task.id, "No one bid")

        assert result.error == "No payment found for this assignment. A dispute cannot be created."

    def test_completed_task_cannot_be_disputed(self, in_progress_task, poster):
        Assignment.objects.filter(id=in_progress_task.id).update(status="COMPLETED")

        assert services.create_dispute(poster, in_progress_task.id, "Changed my mind").kind == "conflict"

    def test_finalized_payment_cannot_be_disputed(self, in_progress_task, poster):
        Payment.objects.filter(assignment=in_progress_task).update(status="RELEASED")

        result = services.create_dispute(poster, in_progress_task.id, "Too late")

        assert result.kind == "conflict"
        assert "finalized" in result.error

    def test_reason_is_required(self, in_progress_task, poster):
        assert services.create_dispute(poster, in_progress_task.id, "   ").kind == "validation"

    def test_dispute_status_lookup(self, open_dispute, in_progress_task, poster):
        assert services.is_assignment_in_dispute(poster, in_progress_task.id).data == {"in_dispute": True}


@pytest.mark.django_db
class TestDisputeThread:

    def test_counterparty_response_marks_dispute_answered(self, open_dispute, doer, poster):
        result = services.submit_dispute_response(doer, open_dispute.id, "Delivered on time, see log", ["https://x.io/log.txt"])

        assert result.success
        assert result.data.has_response is True
        assert result.data.response == "Delivered on time, see log"
        assert result.data.normalized_response_evidence[0]["url"] == "https://x.io/log.txt"
        assert Notification.objects.filter(user=poster, title="Dispute Response Received").exists()

    def test_outsider_cannot_respond(self, open_dispute, outsider):
        assert services.submit_dispute_response(outsider, open_dispute.id, "Hi").kind == "forbidden"

    def test_resolved_dispute_takes_no_response(self, open_dispute, doer, admin_user):
        services.resolve_dispute(admin_user, open_dispute.id, "Refund", "RESOLVED_REFUND")

        assert services.submit_dispute_response(doer, open_dispute.id, "Wait").kind == "not_found"

    def test_follow_ups_append_to_thread(self, open_dispute, doer, poster):
        services.add_dispute_follow_up(doer, open_dispute.id, "Any update?")
        services.add_dispute_follow_up(poster, open_dispute.id, "Still waiting on files")

        details = services.get_dispute_details(poster, open_dispute.id).data
        assert [f.message for f in details.followups.all()] == ["Any update?", "Still waiting on files"]
        assert details.is_initiator is True

    def test_follow_up_requires_message(self, open_dispute, doer):
        assert services.add_dispute_follow_up(doer, open_dispute.id, "").kind == "validation"
        assert not DisputeFollowup.objects.exists()

    def test_user_disputes_flag_pending_responses(self, open_dispute, poster, doer):
        poster_view = services.get_user_disputes(poster).data
        doer_view = services.get_user_disputes(doer).data

        assert poster_view[0].is_initiator is True
        assert poster_view[0].needs_response is True
        assert doer_view[0].is_initiator is False
        assert doer_view[0].needs_response is True

        services.submit_dispute_response(doer, open_dispute.id, "My side")

        assert services.get_user_disputes(doer).data[0].needs_response is False

    def test_details_hidden_from_outsiders_but_not_admins(self, open_dispute, outsider, admin_user):
        assert services.get_dispute_details(outsider, open_dispute.id).kind == "forbidden"
        assert services.get_dispute_details(admin_user, open_dispute.id).success


@pytest.mark.django_db
class TestResolveDispute:

    def test_release_completes_task_and_pays_doer(self, open_dispute, admin_user, doer, poster, subscribe):
        feed = subscribe(f"task-{open_dispute.assignment_id}")

        result = services.resolve_dispute(admin_user, open_dispute.id, "Work was delivered", "RESOLVED_RELEASE")

        assert result.success
        dispute = result.data
        assert dispute.status == "RESOLVED_RELEASE"
        assert dispute.resolved_by_id == admin_user.id
        assert dispute.resolved_at is not None
        task = Assignment.objects.get(id=dispute.assignment_id)
        payment = Payment.objects.get(assignment=task)
        assert task.status == "COMPLETED"
        assert payment.status == "RELEASED"
        assert payment.released_at is not None
        doer.refresh_from_db()
        assert doer.account_balance == Decimal("500.00")
        assert ManagementLog.objects.filter(admin=admin_user, action="resolve_dispute").exists()
        assert Notification.objects.filter(user=doer, message__endswith="Payment has been released to you.").exists()
        assert Notification.objects.filter(
            user=poster, message__endswith="Payment has been released to the doer."
        ).exists()
        assert [event.name for event in feed.drain()] == ["task-updated"]

    def test_refund_cancels_task(self, open_dispute, admin_user, doer, poster):
        services.resolve_dispute(admin_user, open_dispute.id, "Nothing delivered", "RESOLVED_REFUND")

        task = Assignment.objects.get(id=open_dispute.assignment_id)
        assert task.status == "CANCELLED"
        assert Payment.objects.get(assignment=task).status == "REFUNDED"
        doer.refresh_from_db()
        assert doer.account_balance == Decimal("0")
        assert Notification.objects.filter(user=poster, message__endswith="Payment has been refunded to you.").exists()

    def test_resolution_is_final(self, open_dispute, admin_user, doer):
        services.resolve_dispute(admin_user, open_dispute.id, "Release", "RESOLVED_RELEASE")

        result = services.resolve_dispute(admin_user, open_dispute.id, "Refund instead", "RESOLVED_REFUND")

        assert result.kind == "conflict"
        doer.refresh_from_db()
        assert doer.account_balance == Decimal("500.00")

    @pytest.mark.parametrize("outcome", ["OPEN", "CANCELLED", "resolved_release", ""])
    def test_outcome_must_be_release_or_refund(self, open_dispute, admin_user, outcome):
        result = services.resolve_dispute(admin_user, open_dispute.id, "Note", outcome)

        assert result.kind == "validation"
        open_dispute.refresh_from_db()
        assert open_dispute.status == "OPEN"

    def test_parties_cannot_resolve(self, open_dispute, poster):
        assert services.resolve_dispute(poster, open_dispute.id, "I win", "RESOLVED_REFUND").kind == "forbidden"

    def test_admin_dispute_queue_filters_by_status(self, open_dispute, admin_user, poster):
        assert [d.id for d in services.get_all_disputes(admin_user, "OPEN").data] == [open_dispute.id]
        assert services.get_all_disputes(admin_user, "RESOLVED_REFUND").data == []
        assert services.get_all_disputes(poster).kind == "forbidden"
