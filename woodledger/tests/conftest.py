"""
Pytest fixtures for Woodledger tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.utils import timezone

from woodledger import ledger
from woodledger.adapters.members import reset_member_directory
from woodledger.protocols import Actor


User = get_user_model()


@pytest.fixture(autouse=True)
def _fresh_member_directory():
    """Each test resolves WOODLEDGER['MEMBER_DIRECTORY'] again."""
    reset_member_directory()
    yield
    reset_member_directory()


@pytest.fixture
def user(db):
    """Create a test user (storekeeper)."""
    return User.objects.create_user(
        username='storekeeper',
        password='testpass123'
    )


@pytest.fixture
def member(db):
    """Create a community member (members are users by default)."""
    return User.objects.create_user(
        username='member',
        password='testpass123'
    )


@pytest.fixture
def other_member(db):
    return User.objects.create_user(
        username='other-member',
        password='testpass123'
    )


@pytest.fixture
def actor(user):
    """Actor with every capability."""
    return Actor.system(user)


@pytest.fixture
def clerk(db):
    """Actor that can create and cancel requests but not approve or deliver."""
    clerk_user = User.objects.create_user(username='clerk', password='testpass123')
    return Actor(user=clerk_user, can_write=True)


@pytest.fixture
def approver_user(db):
    """User holding the approve/deliver/add permissions."""
    approver = User.objects.create_user(username='approver', password='testpass123')
    approver.user_permissions.add(*Permission.objects.filter(
        content_type__app_label='woodledger',
        codename__in=['approve_distribution', 'deliver_distribution', 'add_distribution'],
    ))
    # Drop the cached permissions
    return User.objects.get(pk=approver.pk)


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def item(user):
    """Teak 2x4 batch: 100 available, threshold 10, price 5.00."""
    return ledger.intake(
        'Teak',
        '2x4',
        Decimal('100'),
        price_per_unit=Decimal('5.00'),
        minimum_threshold=Decimal('10'),
        location='Shed A',
        user=user,
    )


@pytest.fixture
def perishable_item(user):
    """Pine batch expiring in 5 days."""
    return ledger.intake(
        'Pine',
        '1x6',
        Decimal('40'),
        expiry_date=timezone.now() + timedelta(days=5),
        user=user,
    )


@pytest.fixture
def request_dist(item, member, actor):
    """Factory: create a pending distribution against `item`."""
    def _request(quantity='30', **kwargs):
        kwargs.setdefault('actor', actor)
        return ledger.request_distribution(member.pk, item.pk, quantity, **kwargs)
    return _request
