"""NGO daily approval limits and the performance metrics that size them."""

from datetime import timedelta

import pytest
from django.utils import timezone

from donations.models import Donation, NGODailyLimit, NGOPerformance, Priority
from donations.services.capacity import load_level_for


@pytest.fixture
def capacity(services):
    return services.capacity


class TestInitialLimit:
    def test_default_without_performance(self, capacity, make_ngo):
        ngo = make_ngo()
        assert capacity.initial_daily_limit(ngo.pk) == 7

    @pytest.mark.parametrize('volunteers, rating, expected', [
        (5, 4.5, 8),
        (3, 4.0, 7),
        (5, 4.0, 7),
        (2, 5.0, 5),
        (4, 3.9, 5),
    ])
    def test_performance_derived(self, capacity, make_ngo, volunteers, rating, expected):
        ngo = make_ngo()
        NGOPerformance.objects.create(ngo=ngo, volunteer_count=volunteers, rating=rating)
        assert capacity.initial_daily_limit(ngo.pk) == expected

    def test_row_created_lazily_once(self, capacity, make_ngo):
        ngo = make_ngo()
        assert not NGODailyLimit.objects.filter(ngo=ngo).exists()
        first = capacity.get_or_create_daily_limit(ngo.pk)
        second = capacity.get_or_create_daily_limit(ngo.pk)
        assert first.pk == second.pk
        assert first.daily_limit == 7
        assert first.date == timezone.localdate()


class TestCanApprove:
    def test_within_limit(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        verdict = capacity.can_approve(ngo.pk, make_donation().pk)
        assert verdict.can_approve
        assert verdict.remaining == 7
        assert not verdict.is_critical

    def test_limit_reached(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        NGODailyLimit.objects.create(ngo=ngo, date=timezone.localdate(), daily_limit=7, approvals_used=7)
        verdict = capacity.can_approve(ngo.pk, make_donation().pk)
        assert not verdict.can_approve
        assert verdict.remaining == 0
        assert 'Daily limit reached' in verdict.reason

    def test_critical_bypasses_full_limit(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        NGODailyLimit.objects.create(ngo=ngo, date=timezone.localdate(), daily_limit=7, approvals_used=7)
        verdict = capacity.can_approve(ngo.pk, make_donation(priority=Priority.CRITICAL).pk)
        assert verdict.can_approve
        assert verdict.is_critical

    def test_missing_donation(self, capacity, make_ngo):
        assert not capacity.can_approve(make_ngo().pk, 999999).can_approve


class TestRecordApproval:
    def test_non_critical_uses_the_counter(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        limit = capacity.record_approval(ngo.pk, make_donation().pk)
        assert limit.approvals_used == 1
        assert limit.critical_approvals == 0
        assert limit.load_level == NGODailyLimit.LoadLevel.LOW

    def test_critical_counts_separately(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        NGODailyLimit.objects.create(ngo=ngo, date=timezone.localdate(), daily_limit=7, approvals_used=7)
        limit = capacity.record_approval(ngo.pk, make_donation(grains=5).pk)
        assert limit.approvals_used == 7
        assert limit.critical_approvals == 1

    def test_refreshes_performance(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        capacity.record_approval(ngo.pk, make_donation().pk)
        assert NGOPerformance.objects.filter(ngo=ngo).exists()


@pytest.mark.parametrize('remaining, level', [(7, 'low'), (5, 'low'), (4, 'medium'), (2, 'medium'), (1, 'high'), (0, 'high')])
def test_load_level(remaining, level):
    assert load_level_for(remaining) == level


class TestPerformanceMetrics:
    def test_fast_ngo_with_full_coverage_keeps_top_rating(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        donation = make_donation(ngo=ngo, status=Donation.Status.ASSIGNED)
        Donation.objects.filter(pk=donation.pk).update(approved_at=donation.created_at + timedelta(hours=1))

        performance = capacity.update_performance_metrics(ngo.pk)
        assert performance.rating == 5.0
        assert performance.total_approvals == 1
        assert performance.city_coverage_percentage == 100.0

    def test_slow_ngo_is_penalized(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        other = make_ngo(ngo_name='Other Trust')
        mine = make_donation(ngo=ngo, status=Donation.Status.DELIVERED)
        Donation.objects.filter(pk=mine.pk).update(
            approved_at=mine.created_at + timedelta(hours=30),
            delivered_at=mine.created_at + timedelta(hours=130),
        )
        for _ in range(4):
            make_donation(ngo=other, status=Donation.Status.ASSIGNED)

        performance = capacity.update_performance_metrics(ngo.pk)
        assert performance.avg_approval_time_hours == pytest.approx(30)
        assert performance.avg_delivery_time_hours == pytest.approx(100)
        assert performance.city_coverage_percentage == pytest.approx(20.0)
        assert performance.total_deliveries == 1
        assert performance.rating == 3.0

    def test_low_coverage_penalty(self, capacity, make_ngo, make_donation):
        ngo = make_ngo()
        other = make_ngo(ngo_name='Other Trust')
        make_donation(ngo=ngo, status=Donation.Status.ASSIGNED)
        for _ in range(5):
            make_donation(ngo=other, status=Donation.Status.ASSIGNED)

        performance = capacity.update_performance_metrics(ngo.pk)
        assert performance.rating == 4.5

    def test_volunteer_count(self, capacity, make_ngo, make_volunteer):
        ngo = make_ngo()
        make_volunteer(registered_ngo=ngo)
        make_volunteer(registered_ngo=ngo)
        assert capacity.update_performance_metrics(ngo.pk).volunteer_count == 2
