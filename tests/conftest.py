from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.notifications.realtime import get_event_bus
from apps.payments.models import Payment
from apps.tasks.models import Assignment, Bid
from apps.users.models import User


def make_user(username, role, name=None, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="s3cure-pass-123",
        name=name or username.title(),
        role=role,
        **extra,
    )


@pytest.fixture
def poster(db):
    return make_user("paula", "POSTER", name="Paula Poster")


@pytest.fixture
def doer(db):
    return make_user("dan", "DOER", name="Dan Doer")


@pytest.fixture
def other_doer(db):
    return make_user("olga", "DOER", name="Olga Other")


@pytest.fixture
def admin_user(db):
    return make_user("ada", "ADMIN", name="Ada Admin")


@pytest.fixture
def outsider(db):
    return make_user("oscar", "DOER", name="Oscar Outsider")


@pytest.fixture
def open_task(poster):
    return Assignment.objects.create(
        poster=poster,
        title="Design a logo",
        description="Logo for a bakery, three concepts",
        category="Design",
        budget=Decimal("1000.00"),
        deadline=timezone.now() + timedelta(days=7),
    )


@pytest.fixture
def pending_bid(open_task, doer):
    return Bid.objects.create(assignment=open_task, user=doer, content="I can do this", bid_amount=Decimal("500.00"))


@pytest.fixture
def assigned_task(open_task, doer):
    """An assignment whose bid was accepted, with escrow funded."""
    Bid.objects.create(
        assignment=open_task, user=doer, content="I can do this", bid_amount=Decimal("500.00"), status="accepted"
    )
    open_task.status = "ASSIGNED"
    open_task.doer = doer
    open_task.save()
    Payment.objects.create(
        assignment=open_task, payer=open_task.poster, payee=doer, amount=Decimal("500.00"), status="PENDING"
    )
    return open_task


@pytest.fixture
def in_progress_task(assigned_task):
    assigned_task.status = "IN_PROGRESS"
    assigned_task.save()
    return assigned_task


@pytest.fixture
def subscribe():
    """Subscribe to bus channels; every subscription is closed after the test."""
    subscriptions = []

    def _subscribe(channel):
        subscription = get_event_bus().subscribe(channel)
        subscriptions.append(subscription)
        return subscription

    yield _subscribe
    for subscription in subscriptions:
        subscription.close()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client_for(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _client_for
