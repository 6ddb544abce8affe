# donations/services/capacity.py
"""
NGO capacity ledger: per-NGO, per-day approval counters and the rolling
performance metrics that size tomorrow's limit.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..models import Donation, NGODailyLimit, NGOPerformance, NGOProfile, VolunteerProfile
from ..utils.priority import is_critical

logger = logging.getLogger(__name__)

SLOW_APPROVAL_HOURS = 24
SLOW_DELIVERY_HOURS = 72
LOW_COVERAGE_PERCENT = 20


@dataclass(frozen=True)
class CapacityVerdict:
    can_approve: bool
    reason: str
    remaining: int
    is_critical: bool

    def to_dict(self):
        return {
            'can_approve': self.can_approve,
            'reason': self.reason,
            'remaining': self.remaining,
            'is_critical': self.is_critical,
        }


def load_level_for(remaining):
    if remaining >= 5:
        return NGODailyLimit.LoadLevel.LOW
    if remaining >= 2:
        return NGODailyLimit.LoadLevel.MEDIUM
    return NGODailyLimit.LoadLevel.HIGH


def _average(values):
    return sum(values) / len(values) if values else 0.0


def _hours_between(start, end):
    return (end - start).total_seconds() / 3600


class NGOCapacityLedger:
    def __init__(self, config, clock=timezone.now):
        self.config = config
        self.clock = clock

    def today(self):
        return timezone.localdate(self.clock())

    def initial_daily_limit(self, ngo_id):
        """High performers get more requests, small or slow NGOs fewer."""
        performance = NGOPerformance.objects.filter(ngo_id=ngo_id).first()
        if performance is None:
            return self.config.default_daily_limit
        if performance.volunteer_count >= 5 and performance.rating >= 4.5:
            return 8
        if performance.volunteer_count >= 3 and performance.rating >= 4.0:
            return 7
        return 5

    def get_or_create_daily_limit(self, ngo_id, date=None):
        date = date or self.today()
        limit, created = NGODailyLimit.objects.get_or_create(
            ngo_id=ngo_id,
            date=date,
            defaults={'daily_limit': self.initial_daily_limit(ngo_id)},
        )
        if created:
            logger.info(f"Daily limit for NGO {ngo_id} on {date}: {limit.daily_limit}")
        return limit

    def lock_daily_limit(self, ngo_id, date=None):
        """Row-locked daily limit. Must be called inside transaction.atomic()."""
        limit = self.get_or_create_daily_limit(ngo_id, date)
        return NGODailyLimit.objects.select_for_update().get(pk=limit.pk)

    def evaluate(self, limit, donation):
        if is_critical(donation):
            return CapacityVerdict(True, 'Critical priority - no limit applied', limit.remaining, True)
        if limit.approvals_used >= limit.daily_limit:
            return CapacityVerdict(
                False,
                f'Daily limit reached ({limit.approvals_used}/{limit.daily_limit})',
                0,
                False,
            )
        return CapacityVerdict(True, 'Within daily limits', limit.remaining, False)

    def can_approve(self, ngo_id, donation_id, date=None):
        donation = Donation.objects.filter(pk=donation_id).first()
        if donation is None:
            return CapacityVerdict(False, 'Donation not found', 0, False)
        limit = self.get_or_create_daily_limit(ngo_id, date)
        return self.evaluate(limit, donation)

    def apply_approval(self, limit, donation):
        """Bump the right counter on a locked limit row, then refresh performance."""
        if is_critical(donation):
            NGODailyLimit.objects.filter(pk=limit.pk).update(critical_approvals=F('critical_approvals') + 1)
        else:
            NGODailyLimit.objects.filter(pk=limit.pk).update(approvals_used=F('approvals_used') + 1)
        limit.refresh_from_db()

        limit.load_level = load_level_for(limit.remaining)
        limit.save(update_fields=['load_level', 'updated_at'])

        performance = self.update_performance_metrics(limit.ngo_id)
        if performance is not None:
            NGODailyLimit.objects.filter(pk=limit.pk).update(performance_score=performance.rating)
            limit.performance_score = performance.rating
        return limit

    def record_approval(self, ngo_id, donation_id, date=None):
        with transaction.atomic():
            donation = Donation.objects.filter(pk=donation_id).first()
            if donation is None:
                return None
            limit = self.lock_daily_limit(ngo_id, date)
            return self.apply_approval(limit, donation)

    def update_performance_metrics(self, ngo_id):
        ngo = NGOProfile.objects.filter(pk=ngo_id).first()
        if ngo is None:
            return None

        now = self.clock()
        window_start = now - timedelta(days=self.config.performance_window_days)
        rows = list(
            Donation.objects.filter(ngo_id=ngo_id, created_at__gte=window_start)
            .values_list('created_at', 'approved_at', 'delivered_at', 'status')
        )

        approval_hours = [_hours_between(created, approved) for created, approved, _, _ in rows if approved]
        delivery_hours = [
            _hours_between(approved, delivered)
            for _, approved, delivered, _ in rows
            if approved and delivered
        ]
        total_deliveries = sum(
            1 for _, _, _, status in rows
            if status in (Donation.Status.DELIVERED, Donation.Status.COMPLETED)
        )

        coverage_start = now - timedelta(days=self.config.coverage_window_days)
        district_approvals = Donation.objects.filter(
            district=ngo.district,
            ngo__isnull=False,
            created_at__gte=coverage_start,
        )
        district_total = district_approvals.count()
        coverage = (district_approvals.filter(ngo_id=ngo_id).count() / district_total * 100) if district_total else 0.0

        avg_approval = _average(approval_hours)
        avg_delivery = _average(delivery_hours)

        rating = 5.0
        if avg_approval > SLOW_APPROVAL_HOURS:
            rating -= 1.0
        if avg_delivery > SLOW_DELIVERY_HOURS:
            rating -= 1.0
        if coverage < LOW_COVERAGE_PERCENT:
            rating -= 0.5
        rating = max(0.0, min(5.0, rating))

        performance, _ = NGOPerformance.objects.update_or_create(
            ngo_id=ngo_id,
            defaults={
                'total_approvals': len(approval_hours),
                'total_deliveries': total_deliveries,
                'avg_approval_time_hours': round(avg_approval, 2),
                'avg_delivery_time_hours': round(avg_delivery, 2),
                'volunteer_count': VolunteerProfile.objects.filter(registered_ngo_id=ngo_id).count(),
                'city_coverage_percentage': round(coverage, 2),
                'rating': rating,
            },
        )
        return performance
