# donations/services/allocation.py
"""
Volunteer allocation: which approved donations a volunteer may take, the
race-free accept, and trust-ranked reassignment for the reconciler.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..models import Donation, VolunteerAssignment, VolunteerProfile, normalize_district
from ..utils.distance import Location, distance_summary
from ..utils.priority import priority_order
from .results import ErrorType, ServiceResult, transient_on_db_error
from .trust import REASSIGNMENT

logger = logging.getLogger(__name__)


class PickupLimitReached(Exception):
    """Raised inside the accept transaction to roll back a claim over the cap."""


class VolunteerAllocator:
    def __init__(self, config, trust, geocoder=None, clock=timezone.now):
        self.config = config
        self.trust = trust
        self.geocoder = geocoder
        self.clock = clock

    def list_available(self, district):
        """Approved donations in the district nobody has taken yet, critical first then newest."""
        return list(
            Donation.objects.filter(
                status=Donation.Status.ASSIGNED,
                volunteer__isnull=True,
                district=normalize_district(district),
            )
            .select_related('donor', 'ngo')
            .annotate(rank=priority_order())
            .order_by('rank', '-created_at')
        )

    def active_pickups(self, volunteer_id):
        return list(
            Donation.objects.filter(
                volunteer_id=volunteer_id,
                status__in=[Donation.Status.ASSIGNED, Donation.Status.PICKED_UP, Donation.Status.IN_TRANSIT],
            )
            .select_related('donor', 'ngo')
            .annotate(rank=priority_order())
            .order_by('rank', '-created_at')
        )

    def _claim(self, donation_id, volunteer):
        """
        Conditionally attach the volunteer and open an accepted assignment.
        Must run inside transaction.atomic(). Returns the assignment, or None
        when the donation was not claimable.
        """
        now = self.clock()
        claimed = Donation.objects.filter(
            pk=donation_id,
            status=Donation.Status.ASSIGNED,
            volunteer__isnull=True,
            district=volunteer.district,
        ).update(
            volunteer=volunteer,
            volunteer_name=volunteer.full_name,
            volunteer_phone=volunteer.phone_number,
            assigned_at=now,
            auto_unassigned=False,
            updated_at=now,
        )
        if not claimed:
            return None

        assignment = VolunteerAssignment.objects.create(
            donation_id=donation_id,
            volunteer=volunteer,
            status=VolunteerAssignment.Status.ACCEPTED,
            accepted_at=now,
        )
        Donation.objects.filter(pk=donation_id).update(assignment=assignment)
        return assignment

    @transient_on_db_error
    def accept(self, donation_id, volunteer_id):
        volunteer = VolunteerProfile.objects.filter(pk=volunteer_id).first()
        if volunteer is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, 'Volunteer profile not found.')
        if not volunteer.is_active:
            return ServiceResult.fail(ErrorType.VALIDATION, 'Inactive volunteers cannot accept donations.')

        try:
            with transaction.atomic():
                # Write first so SQLite takes the write lock before any read
                assignment = self._claim(donation_id, volunteer)
                if assignment is not None:
                    active = VolunteerAssignment.objects.filter(
                        volunteer=volunteer,
                        status__in=VolunteerAssignment.ACTIVE_STATUSES,
                    ).count()
                    if active > self.config.max_active_pickups:
                        raise PickupLimitReached()
        except PickupLimitReached:
            return ServiceResult.fail(
                ErrorType.VALIDATION,
                f'You cannot accept more than {self.config.max_active_pickups} donations at a time.',
            )
        except IntegrityError:
            # A concurrent accept opened the active assignment first
            assignment = None

        if assignment is None:
            donation = Donation.objects.filter(pk=donation_id).first()
            if donation is None:
                return ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
            if donation.district != volunteer.district:
                return ServiceResult.fail(ErrorType.VALIDATION, 'This donation is outside your district.')
            return ServiceResult.fail(
                ErrorType.CONFLICT,
                'This donation is no longer available.',
                current_status=donation.status,
            )

        logger.info(f"Volunteer {volunteer.pk} accepted donation {donation_id} (assignment {assignment.pk})")
        return ServiceResult.ok(
            'Donation accepted! Please check your active pickups.',
            donation_id=donation_id,
            assignment_id=assignment.pk,
        )

    def select_replacement(self, district, exclude_ids=()):
        """
        Best-trusted active volunteer in the district holding no active
        assignment. Unscored volunteers rank at the initial score; ties go
        to the earliest registration, then the lowest id.
        """
        busy = VolunteerAssignment.objects.filter(
            status__in=VolunteerAssignment.ACTIVE_STATUSES,
        ).values('volunteer_id')
        return (
            VolunteerProfile.objects.filter(is_active=True, district=normalize_district(district))
            .exclude(pk__in=busy)
            .exclude(pk__in=list(exclude_ids))
            .annotate(current_score=Coalesce('trust_score__score', Value(self.trust.initial_score)))
            .order_by('-current_score', 'created_at', 'pk')
            .first()
        )

    def reassign(self, donation_id, district, exclude_ids=()):
        """Hand a freed donation to the best replacement. Returns the volunteer, or None."""
        candidate = self.select_replacement(district, exclude_ids)
        if candidate is None:
            logger.warning(f"No eligible volunteer in '{district}' to take donation {donation_id}")
            return None

        try:
            with transaction.atomic():
                assignment = self._claim(donation_id, candidate)
        except IntegrityError:
            assignment = None

        if assignment is None:
            logger.warning(f"Donation {donation_id} could not be reassigned to volunteer {candidate.pk}")
            return None

        self.trust.log_activity(
            candidate.pk,
            REASSIGNMENT,
            f"Donation #{donation_id} reassigned to you after a missed pickup",
        )
        logger.info(f"Donation {donation_id} reassigned to volunteer {candidate.pk}")
        return candidate

    def _resolve(self, lat, lon, address):
        if lat is not None and lon is not None:
            return lat, lon
        if self.geocoder is None:
            return None, None
        found = self.geocoder.geocode(address)
        if found is None:
            return None, None
        return found['lat'], found['lng']

    @transient_on_db_error
    def pickup_distance(self, donation_id, volunteer_id, area_type='urban', mode='car'):
        """
        Approximate trip from the volunteer to the pickup point. Missing
        coordinates are geocoded; if that fails the result says so instead
        of failing the request.
        """
        donation = Donation.objects.filter(pk=donation_id).first()
        if donation is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
        volunteer = VolunteerProfile.objects.filter(pk=volunteer_id).first()
        if volunteer is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, 'Volunteer profile not found.')

        pickup_lat, pickup_lon = self._resolve(
            donation.latitude, donation.longitude, donation.pickup_address or donation.city,
        )
        if pickup_lat is not None and donation.latitude is None:
            Donation.objects.filter(pk=donation.pk).update(latitude=pickup_lat, longitude=pickup_lon)

        volunteer_lat, volunteer_lon = self._resolve(volunteer.latitude, volunteer.longitude, volunteer.city)

        if pickup_lat is None or volunteer_lat is None:
            return ServiceResult.ok('Coordinates unavailable.', coordinates_available=False)

        try:
            summary = distance_summary(
                Location(volunteer_lat, volunteer_lon, volunteer.full_name),
                Location(pickup_lat, pickup_lon, donation.pickup_address),
                area_type=area_type,
                mode=mode,
                vehicle_type=volunteer.vehicle_type,
            )
        except ValueError as e:
            return ServiceResult.fail(ErrorType.VALIDATION, str(e))

        return ServiceResult.ok('Distance calculated.', coordinates_available=True, **summary)
