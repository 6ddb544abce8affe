# donations/services/coverage.py
"""
District-level analytics: coverage snapshots, which NGOs should receive a
donation, and how approval load is spread across a district's NGOs.
"""

import logging
from datetime import timedelta

from django.utils import timezone

from ..models import (
    DistrictCoverageSnapshot,
    Donation,
    NGODailyLimit,
    NGOPerformance,
    NGOProfile,
    normalize_district,
)
from ..utils.priority import is_critical
from .capacity import load_level_for

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5


def _suggestion_score(critical, rating):
    if critical:
        return 1.0
    if rating >= 4.5:
        return 0.9
    if rating >= 4.0:
        return 0.8
    if rating >= 3.5:
        return 0.7
    return 0.6


def _suggestion_reason(critical, rating, remaining):
    if critical:
        return 'Critical priority - immediate attention needed'
    if rating >= 4.5:
        return 'High-performing NGO with excellent track record'
    if remaining > 3:
        return 'Good capacity available for timely processing'
    return 'Available capacity for processing'


class DistributionAdvisor:
    def __init__(self, config, capacity, matcher, clock=timezone.now):
        self.config = config
        self.capacity = capacity
        self.matcher = matcher
        self.clock = clock

    def _capacity_rows(self, ngos, date):
        """(ngo, remaining, daily_limit, used) without creating limit rows."""
        limits = {
            limit.ngo_id: limit
            for limit in NGODailyLimit.objects.filter(ngo__in=ngos, date=date)
        }
        rows = []
        for ngo in ngos:
            limit = limits.get(ngo.pk)
            if limit is None:
                daily_limit = self.capacity.initial_daily_limit(ngo.pk)
                rows.append((ngo, daily_limit, daily_limit, 0))
            else:
                rows.append((ngo, limit.remaining, limit.daily_limit, limit.approvals_used))
        return rows

    def district_snapshot(self, district, date=None):
        """Recompute and store today's coverage snapshot for a district."""
        district = normalize_district(district)
        date = date or timezone.localdate(self.clock())
        window_start = self.clock() - timedelta(days=self.config.coverage_window_days)

        ngos = NGOProfile.objects.filter(district=district)
        requests = Donation.objects.filter(district=district, created_at__gte=window_start)
        total_requests = requests.count()
        approved = requests.filter(ngo_approval_status=Donation.ApprovalStatus.APPROVED).count()
        pending = requests.filter(
            status=Donation.Status.PENDING_APPROVAL,
            ngo_approval_status=Donation.ApprovalStatus.PENDING,
        ).count()
        active_ngos = requests.filter(ngo__isnull=False).values('ngo').distinct().count()

        snapshot, _ = DistrictCoverageSnapshot.objects.update_or_create(
            district=district,
            date=date,
            defaults={
                'total_ngos': ngos.count(),
                'active_ngos': active_ngos,
                'total_requests': total_requests,
                'approved_requests': approved,
                'pending_requests': pending,
                'coverage_percentage': round(approved / total_requests * 100, 2) if total_requests else 0.0,
            },
        )
        logger.info(f"Coverage for '{district}' on {date}: {snapshot.coverage_percentage}%")
        return snapshot

    def distribution_suggestions(self, donation):
        """
        Up to five verified NGOs in the donation's district that may take it,
        best first. NGOs out of capacity are skipped unless the donation is critical.
        """
        critical = is_critical(donation)
        ngos = list(
            NGOProfile.objects.filter(district=donation.district, is_verified=True)
            .exclude(rejections__donation=donation)
        )
        performance = {p.ngo_id: p for p in NGOPerformance.objects.filter(ngo__in=ngos)}
        today = timezone.localdate(self.clock())

        suggestions = []
        for ngo, remaining, _, _ in self._capacity_rows(ngos, today):
            if remaining <= 0 and not critical:
                continue
            if not self.matcher.can_ngo_approve(ngo, donation).allowed:
                continue
            perf = performance.get(ngo.pk)
            rating = perf.rating if perf else 0.0
            suggestions.append({
                'ngo_id': ngo.pk,
                'ngo_name': ngo.ngo_name,
                'ngo_type': ngo.ngo_type,
                'remaining_capacity': remaining,
                'rating': rating,
                'volunteer_count': perf.volunteer_count if perf else 0,
                'priority_score': _suggestion_score(critical, rating),
                'reason': _suggestion_reason(critical, rating, remaining),
                'confidence': 0.95 if critical else min(0.9, 0.5 + rating * 0.1),
            })

        suggestions.sort(key=lambda s: (-s['priority_score'], -s['volunteer_count'], -s['rating'], s['ngo_id']))
        return suggestions[:MAX_SUGGESTIONS]

    def load_balancing(self, district):
        """NGOs of a district ordered by spare capacity today."""
        ngos = list(NGOProfile.objects.filter(district=normalize_district(district)))
        today = timezone.localdate(self.clock())
        rows = [
            {
                'ngo_id': ngo.pk,
                'ngo_name': ngo.ngo_name,
                'daily_limit': daily_limit,
                'approvals_used': used,
                'remaining': remaining,
                'load_level': load_level_for(remaining),
            }
            for ngo, remaining, daily_limit, used in self._capacity_rows(ngos, today)
        ]
        rows.sort(key=lambda r: (-r['remaining'], r['ngo_id']))
        return rows
