from decimal import Decimal

import pytest
from django.contrib.auth.models import AnonymousUser

from apps.notifications.models import Notification
from apps.payments.models import Payment
from apps.tasks import services
from apps.tasks.models import Assignment, Bid


@pytest.mark.django_db
class TestSubmitBid:

    def test_submit_bid_creates_pending_bid_and_notifies_poster(self, open_task, doer, poster, subscribe):
        task_feed = subscribe(f"task-{open_task.id}")
        poster_feed = subscribe(f"user-{poster.id}")

        result = services.submit_bid(doer, open_task.id, "I can do this", 500)

        assert result.success
        bid = result.data
        assert bid.status == "pending"
        assert bid.bid_amount == Decimal("500.00")
        notification = Notification.objects.get(user=poster)
        assert notification.title == "New Bid Received"
        assert notification.type == "new_bid"
        assert "Dan Doer" in notification.message
        assert [event.name for event in task_feed.drain()] == ["new-bid"]
        assert [event.name for event in poster_feed.drain()] == ["new-notification"]

    def test_second_bid_from_same_doer_is_a_conflict(self, open_task, doer):
        assert services.submit_bid(doer, open_task.id, "First offer", 500).success

        result = services.submit_bid(doer, open_task.id, "Second offer", 450)

        assert not result.success
        assert result.kind == "conflict"
        assert result.error == "You have already placed a bid on this task"
        assert Bid.objects.filter(assignment=open_task, user=doer).count() == 1

    def test_poster_cannot_bid_on_own_task(self, open_task, poster):
        result = services.submit_bid(poster, open_task.id, "Self dealing", 100)

        assert result.kind == "forbidden"

    @pytest.mark.parametrize("content,amount", [("", 100), ("   ", 100), ("Offer", 0), ("Offer", -5), ("Offer", "abc"), ("Offer", "0.001"), ("Offer", "1e30")])
    def test_invalid_bid_payload_is_rejected(self, open_task, doer, content, amount):
        result = services.submit_bid(doer, open_task.id, content, amount)

        assert not result.success
        assert result.kind == "validation"

    def test_bid_on_closed_task_is_not_found(self, assigned_task, other_doer):
        result = services.submit_bid(other_doer, assigned_task.id, "Late offer", 300)

        assert result.kind == "not_found"

    def test_anonymous_caller_is_unauthorized(self, open_task):
        result = services.submit_bid(AnonymousUser(), open_task.id, "Offer", 100)

        assert not result.success
        assert result.kind == "unauthorized"


@pytest.mark.django_db
class TestAcceptBid:

    def test_accept_assigns_doer_rejects_siblings_and_funds_escrow(self, open_task, doer, other_doer, poster, subscribe):
        winning = Bid.objects.create(assignment=open_task, user=doer, content="Mine", bid_amount=Decimal("500"))
        losing = Bid.objects.create(assignment=open_task, user=other_doer, content="Pick me", bid_amount=Decimal("450"))
        winning_feed = subscribe(f"bid-{winning.id}")
        losing_feed = subscribe(f"bid-{losing.id}")

        result = services.accept_bid(poster, winning.id)

        assert result.success
        assert result.message == "Bid accepted successfully"
        open_task.refresh_from_db()
        winning.refresh_from_db()
        losing.refresh_from_db()
        assert open_task.status == "ASSIGNED"
        assert open_task.doer_id == doer.id
        assert winning.status == "accepted"
        assert losing.status == "rejected"
        payment = Payment.objects.get(assignment=open_task)
        assert payment.status == "PENDING"
        assert payment.amount == Decimal("500.00")
        assert payment.payee_id == doer.id
        assert Notification.objects.get(user=doer).title == "Bid Accepted!"
        assert Notification.objects.get(user=other_doer).title == "Bid Not Selected"
        assert [event.name for event in winning_feed.drain()] == ["bid-accepted"]
        assert [event.name for event in losing_feed.drain()] == ["bid-rejected"]

    def test_exactly_one_accepted_bid_and_doer_matches_it(self, open_task, doer, other_doer, poster):
        Bid.objects.create(assignment=open_task, user=doer, content="A", bid_amount=Decimal("500"))
        second = Bid.objects.create(assignment=open_task, user=other_doer, content="B", bid_amount=Decimal("400"))

        services.accept_bid(poster, second.id)

        open_task.refresh_from_db()
        accepted = Bid.objects.filter(assignment=open_task, status="accepted")
        assert accepted.count() == 1
        assert accepted.get().user_id == open_task.doer_id
        assert not Bid.objects.filter(assignment=open_task, status="pending").exists()

    def test_second_accept_on_same_task_is_a_conflict(self, open_task, doer, other_doer, poster):
        first = Bid.objects.create(assignment=open_task, user=doer, content="A", bid_amount=Decimal("500"))
        second = Bid.objects.create(assignment=open_task, user=other_doer, content="B", bid_amount=Decimal("400"))
        assert services.accept_bid(poster, first.id).success

        result = services.accept_bid(poster, second.id)

        assert result.kind == "conflict"
        open_task.refresh_from_db()
        assert open_task.doer_id == doer.id
        assert Payment.objects.filter(assignment=open_task).count() == 1

    def test_only_the_poster_can_accept(self, pending_bid, other_doer):
        result = services.accept_bid(other_doer, pending_bid.id)

        assert result.kind == "forbidden"
        pending_bid.refresh_from_db()
        assert pending_bid.status == "pending"

    def test_poster_cannot_accept_own_bid(self, open_task, poster):
        own = Bid.objects.create(assignment=open_task, user=poster, content="Me", bid_amount=Decimal("10"))

        result = services.accept_bid(poster, own.id)

        assert result.kind == "forbidden"
        open_task.refresh_from_db()
        assert open_task.doer_id is None

    def test_failed_notification_does_not_undo_acceptance(self, pending_bid, poster, monkeypatch):
        def broken_create(*args, **kwargs):
            raise RuntimeError("notification store down")

        monkeypatch.setattr(Notification.objects, "create", broken_create)

        result = services.accept_bid(poster, pending_bid.id)

        assert result.success
        pending_bid.refresh_from_db()
        assert pending_bid.status == "accepted"

    def test_missing_bid_is_not_found(self, poster):
        assert services.accept_bid(poster, 9999).kind == "not_found"


@pytest.mark.django_db
class TestRejectWithdrawUpdateBid:

    def test_reject_marks_only_that_bid(self, pending_bid, poster, open_task, subscribe):
        feed = subscribe(f"bid-{pending_bid.id}")

        result = services.reject_bid(poster, pending_bid.id)

        assert result.success
        pending_bid.refresh_from_db()
        open_task.refresh_from_db()
        assert pending_bid.status == "rejected"
        assert open_task.status == "OPEN"
        assert open_task.doer_id is None
        assert Notification.objects.get(user=pending_bid.user).title == "Bid Rejected"
        assert [event.name for event in feed.drain()] == ["bid-rejected"]

    def test_rejected_bid_cannot_be_accepted_later(self, pending_bid, poster):
        services.reject_bid(poster, pending_bid.id)

        assert services.accept_bid(poster, pending_bid.id).kind == "conflict"

    def test_withdraw_deletes_pending_bid(self, pending_bid, doer):
        result = services.withdraw_bid(doer, pending_bid.id)

        assert result.success
        assert not Bid.objects.filter(id=pending_bid.id).exists()

    def test_withdraw_of_accepted_bid_is_refused(self, assigned_task, doer):
        bid = Bid.objects.get(assignment=assigned_task, user=doer)

        result = services.withdraw_bid(doer, bid.id)

        assert result.kind == "conflict"
        assert Bid.objects.filter(id=bid.id).exists()

    def test_withdraw_someone_elses_bid_is_forbidden(self, pending_bid, other_doer):
        assert services.withdraw_bid(other_doer, pending_bid.id).kind == "forbidden"

    def test_update_bid_changes_content_and_amount(self, pending_bid, doer):
        result = services.update_bid(doer, pending_bid.id, content="Revised offer", amount="420.50")

        assert result.success
        assert result.data.content == "Revised offer"
        assert result.data.bid_amount == Decimal("420.50")

    def test_update_bid_revalidates_amount(self, pending_bid, doer):
        assert services.update_bid(doer, pending_bid.id, amount=0).kind == "validation"


@pytest.mark.django_db
class TestBidListings:

    def test_user_bids_hide_pending_bids_on_closed_tasks(self, open_task, doer, poster):
        other_task = Assignment.objects.create(
            poster=poster, title="Closed", description="x", category="x",
            budget=Decimal("10"), deadline=open_task.deadline, status="CANCELLED",
        )
        visible = Bid.objects.create(assignment=open_task, user=doer, content="A", bid_amount=Decimal("5"))
        Bid.objects.create(assignment=other_task, user=doer, content="B", bid_amount=Decimal("5"))

        result = services.get_user_bids(doer)

        assert [bid.id for bid in result.data] == [visible.id]

    def test_available_tasks_exclude_own_and_flag_existing_bids(self, open_task, pending_bid, doer, poster):
        result = services.get_available_tasks(doer)

        task = result.data[0]
        assert task.id == open_task.id
        assert task.bids_count == 1
        assert task.user_has_bid is True
        assert services.get_available_tasks(poster).data == []
