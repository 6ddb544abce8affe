# donations/services/trust.py
"""
Volunteer trust score ledger.

Every score mutation is clamped to [0, 100], re-derives the tier from the
band table and appends an immutable TrustScoreActivity row, all inside one
transaction holding a row lock on the volunteer's score.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Value
from django.db.models.functions import Coalesce

from ..models import TrustScoreActivity, TrustTier, VolunteerProfile, VolunteerTrustScore

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100

# (tier, lowest score, highest score)
TIER_BANDS = (
    (TrustTier.ELITE, 90, 100),
    (TrustTier.PREMIUM, 75, 89),
    (TrustTier.STANDARD, 50, 74),
    (TrustTier.NEW, 30, 49),
    (TrustTier.RESTRICTED, 0, 29),
)

# Activity types
INITIALIZED = 'initialized'
DELIVERY_COMPLETED = 'delivery_completed'
NO_SHOW = 'no_show'
REASSIGNMENT = 'reassignment'


def tier_for_score(score):
    for tier, low, high in TIER_BANDS:
        if low <= score <= high:
            return tier
    return TrustTier.RESTRICTED


def clamp_score(score):
    return max(MIN_SCORE, min(MAX_SCORE, score))


class TrustScoreLedger:
    def __init__(self, config):
        self.initial_score = clamp_score(config.initial_trust_score)

    def _get_or_create_locked(self, volunteer_id):
        """Return the volunteer's score row, locked for update, creating it on first touch."""
        record = VolunteerTrustScore.objects.select_for_update().filter(volunteer_id=volunteer_id).first()
        if record is not None:
            return record
        try:
            with transaction.atomic():
                record = VolunteerTrustScore.objects.create(
                    volunteer_id=volunteer_id,
                    score=self.initial_score,
                    tier=tier_for_score(self.initial_score),
                )
                TrustScoreActivity.objects.create(
                    volunteer_id=volunteer_id,
                    activity_type=INITIALIZED,
                    score_change=0,
                    description='Trust score initialized',
                )
                return record
        except IntegrityError:
            # Another writer created it first
            return VolunteerTrustScore.objects.select_for_update().get(volunteer_id=volunteer_id)

    def get_score(self, volunteer_id):
        with transaction.atomic():
            record = self._get_or_create_locked(volunteer_id)
        return {'score': record.score, 'tier': record.tier}

    def update(self, volunteer_id, activity_type, delta, description=''):
        """Apply a bounded delta and log it. Returns the new {'score', 'tier'}."""
        with transaction.atomic():
            record = self._get_or_create_locked(volunteer_id)
            old_score = record.score
            record.score = clamp_score(old_score + delta)
            record.tier = tier_for_score(record.score)
            record.save(update_fields=['score', 'tier', 'last_updated'])
            TrustScoreActivity.objects.create(
                volunteer_id=volunteer_id,
                activity_type=activity_type,
                score_change=delta,
                description=description or f"Trust score updated: {delta:+d}",
            )

        logger.info(f"Trust score for volunteer {volunteer_id}: {old_score} -> {record.score} ({activity_type})")
        return {'score': record.score, 'tier': record.tier}

    def log_activity(self, volunteer_id, activity_type, description, score_change=0):
        """Audit entry that does not move the score."""
        return TrustScoreActivity.objects.create(
            volunteer_id=volunteer_id,
            activity_type=activity_type,
            score_change=score_change,
            description=description,
        )

    def list_activities(self, volunteer_id, limit=10):
        return list(TrustScoreActivity.objects.filter(volunteer_id=volunteer_id).order_by('-created_at', '-id')[:limit])

    def all_volunteer_scores(self):
        """Active volunteers with their score, best first. Volunteers never scored show the initial score."""
        volunteers = (
            VolunteerProfile.objects.filter(is_active=True)
            .annotate(current_score=Coalesce('trust_score__score', Value(self.initial_score)))
            .order_by('-current_score', 'full_name')
        )
        return [
            {
                'volunteer_id': v.pk,
                'name': v.full_name,
                'district': v.district,
                'score': v.current_score,
                'tier': tier_for_score(v.current_score),
            }
            for v in volunteers
        ]

    def initialize_missing(self):
        """Create score rows for active volunteers that have none. Returns how many were created."""
        missing = VolunteerProfile.objects.filter(is_active=True, trust_score__isnull=True).values_list('pk', flat=True)
        created = 0
        for volunteer_id in missing:
            with transaction.atomic():
                self._get_or_create_locked(volunteer_id)
            created += 1
        logger.info(f"Initialized trust scores for {created} volunteers")
        return created
