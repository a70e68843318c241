"""
Tests for stock status derivation.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from woodledger.classify import classify, derive_status, status_q
from woodledger.models import StockItem, StockStatus


class TestDeriveStatus:
    """Pure derivation, no database."""

    def test_available_above_threshold(self):
        assert derive_status(Decimal('100'), Decimal('10')) == StockStatus.AVAILABLE

    def test_low_stock_at_threshold(self):
        """available == threshold counts as low."""
        assert derive_status(Decimal('10'), Decimal('10')) == StockStatus.LOW_STOCK

    def test_low_stock_below_threshold(self):
        assert derive_status(Decimal('5'), Decimal('10')) == StockStatus.LOW_STOCK

    def test_out_of_stock_at_zero(self):
        assert derive_status(Decimal('0'), Decimal('10')) == StockStatus.OUT_OF_STOCK

    def test_expired_wins_over_quantity(self):
        now = timezone.now()
        status = derive_status(Decimal('100'), Decimal('10'), expiry_date=now - timedelta(days=1), now=now)
        assert status == StockStatus.EXPIRED

    def test_expiry_equal_to_now_is_expired(self):
        now = timezone.now()
        assert derive_status(Decimal('100'), Decimal('10'), expiry_date=now, now=now) == StockStatus.EXPIRED

    def test_future_expiry_not_expired(self):
        now = timezone.now()
        status = derive_status(Decimal('100'), Decimal('10'), expiry_date=now + timedelta(days=1), now=now)
        assert status == StockStatus.AVAILABLE

    def test_reserved_override(self):
        assert derive_status(Decimal('100'), Decimal('10'), reserved=True) == StockStatus.RESERVED

    def test_reserved_beats_out_of_stock(self):
        assert derive_status(Decimal('0'), Decimal('10'), reserved=True) == StockStatus.RESERVED

    def test_expired_beats_reserved(self):
        now = timezone.now()
        status = derive_status(
            Decimal('100'), Decimal('10'), expiry_date=now - timedelta(hours=1), now=now, reserved=True
        )
        assert status == StockStatus.EXPIRED

    def test_zero_threshold(self):
        """With threshold 0 any positive quantity is Available."""
        assert derive_status(Decimal('0.01'), Decimal('0')) == StockStatus.AVAILABLE

    def test_classify_reads_item_fields(self):
        item = StockItem(available=Decimal('3'), minimum_threshold=Decimal('10'))
        assert classify(item) == StockStatus.LOW_STOCK

    def test_classify_is_side_effect_free(self):
        item = StockItem(available=Decimal('50'), minimum_threshold=Decimal('10'))
        classify(item)
        assert item.status == StockStatus.OUT_OF_STOCK  # model default, untouched


@pytest.mark.django_db
class TestStatusQ:
    """status_q() must select exactly the items classify() puts in each status."""

    def test_matches_classify_for_every_status(self):
        now = timezone.now()
        StockItem.objects.bulk_create([
            StockItem(wood_type='Oak', size='a', available=Decimal('50'), minimum_threshold=Decimal('10')),
            StockItem(wood_type='Oak', size='b', available=Decimal('10'), minimum_threshold=Decimal('10')),
            StockItem(wood_type='Oak', size='c', available=Decimal('0'), minimum_threshold=Decimal('10')),
            StockItem(wood_type='Oak', size='d', available=Decimal('50'), minimum_threshold=Decimal('10'),
                      reserved=True),
            StockItem(wood_type='Oak', size='e', available=Decimal('50'), minimum_threshold=Decimal('10'),
                      expiry_date=now - timedelta(days=1)),
            StockItem(wood_type='Oak', size='f', available=Decimal('50'), minimum_threshold=Decimal('10'),
                      expiry_date=now + timedelta(days=1)),
        ])

        for status in StockStatus.values:
            via_query = set(StockItem.objects.filter(status_q(status, now)).values_list('size', flat=True))
            via_python = {item.size for item in StockItem.objects.all() if classify(item, now) == status}
            assert via_query == via_python, status

    def test_each_item_in_exactly_one_status(self):
        now = timezone.now()
        StockItem.objects.create(wood_type='Ash', size='x', available=Decimal('7'))
        counts = [StockItem.objects.filter(status_q(s, now)).count() for s in StockStatus.values]
        assert sum(counts) == 1

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            status_q('Missing')
