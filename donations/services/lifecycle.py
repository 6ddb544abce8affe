# donations/services/lifecycle.py
"""
Donation state machine.

    pending_approval -> assigned -> picked_up -> in_transit -> delivered -> completed

`rejected` and `cancelled` are reachable only before pickup. Every transition
locks the donation row, re-checks its guard and writes in one transaction, so
two actors can never both move the same donation.
"""

import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..models import (
    ITEM_CATEGORIES,
    Donation,
    DonationRejection,
    NGOProfile,
    Priority,
    User,
    VolunteerAssignment,
    VolunteerProfile,
    normalize_district,
)
from ..utils.distance import validate_coordinates
from ..utils.priority import is_universal, priority_order
from .results import ErrorType, ServiceResult, transient_on_db_error
from .trust import DELIVERY_COMPLETED

logger = logging.getLogger(__name__)

PRE_PICKUP_STATUSES = (Donation.Status.PENDING_APPROVAL, Donation.Status.ASSIGNED)


def _is_admin(user):
    return user.is_superuser or user.user_type == User.UserType.ADMIN


def _conflict(donation, message):
    return ServiceResult.fail(
        ErrorType.CONFLICT,
        message,
        current_status=donation.status,
        ngo_approval_status=donation.ngo_approval_status,
    )


class DonationStateMachine:
    def __init__(self, config, matcher, capacity, trust, clock=timezone.now):
        self.config = config
        self.matcher = matcher
        self.capacity = capacity
        self.trust = trust
        self.clock = clock

    # --- Donor ---

    @transient_on_db_error
    def create(self, donor, data):
        """
        Register a donation at pending_approval. `data` carries item
        quantities, priority, optional custom item and location fields.
        """
        quantities = {}
        for category in ITEM_CATEGORIES:
            try:
                quantities[category] = int(data.get(category) or 0)
            except (TypeError, ValueError):
                return ServiceResult.fail(ErrorType.VALIDATION, f'Quantity for {category} must be a whole number.')
            if quantities[category] < 0:
                return ServiceResult.fail(ErrorType.VALIDATION, f'Quantity for {category} cannot be negative.')

        is_custom = bool(data.get('is_custom_item'))
        try:
            custom_quantity = int(data.get('custom_quantity') or 0)
        except (TypeError, ValueError):
            return ServiceResult.fail(ErrorType.VALIDATION, 'Custom quantity must be a whole number.')
        if custom_quantity < 0:
            return ServiceResult.fail(ErrorType.VALIDATION, 'Custom quantity cannot be negative.')
        if is_custom and not (data.get('custom_item_name') or '').strip():
            return ServiceResult.fail(ErrorType.VALIDATION, 'Custom items need a name.')

        if not any(quantities.values()) and not (is_custom and custom_quantity):
            return ServiceResult.fail(ErrorType.VALIDATION, 'A donation must contain at least one item.')

        priority = (data.get('priority') or Priority.MEDIUM).lower()
        if priority not in Priority.values:
            return ServiceResult.fail(ErrorType.VALIDATION, f"Unknown priority '{priority}'.")

        latitude, longitude = data.get('latitude'), data.get('longitude')
        if latitude is not None or longitude is not None:
            try:
                validate_coordinates(latitude, longitude)
            except (TypeError, ValueError) as e:
                return ServiceResult.fail(ErrorType.VALIDATION, str(e))

        city = (data.get('city') or donor.city or '').strip()
        district = normalize_district(city)
        if not district:
            return ServiceResult.fail(ErrorType.VALIDATION, 'A city is required to route the donation.')

        donation = Donation(
            donor=donor,
            is_custom_item=is_custom,
            custom_item_name=(data.get('custom_item_name') or '').strip() if is_custom else '',
            custom_quantity=custom_quantity if is_custom else 0,
            custom_description=(data.get('custom_description') or '') if is_custom else '',
            description=data.get('description') or '',
            priority=priority,
            city=city,
            district=district,
            pickup_address=data.get('pickup_address') or donor.address,
            latitude=latitude,
            longitude=longitude,
            **quantities,
        )
        donation.is_universal_item = is_universal(donation)
        donation.save()

        logger.info(f"Donation {donation.pk} created by donor {donor.pk} in '{district}' ({priority})")
        return ServiceResult.ok(
            'Donation submitted! Nearby NGOs will review it shortly.',
            donation_id=donation.pk,
            status=donation.status,
            is_universal_item=donation.is_universal_item,
        )

    @transient_on_db_error
    def cancel(self, donation_id, actor, reason=''):
        """Donor (own donations) or admin, only before pickup."""
        now = self.clock()
        with transaction.atomic():
            donation = Donation.objects.select_for_update().filter(pk=donation_id).first()
            if donation is None:
                return ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
            if not _is_admin(actor) and donation.donor_id != actor.pk:
                return ServiceResult.fail(ErrorType.PERMISSION, 'Unauthorized.')
            if donation.status not in PRE_PICKUP_STATUSES:
                return _conflict(donation, 'Cannot cancel donation in current status.')

            VolunteerAssignment.objects.filter(
                donation=donation,
                status__in=VolunteerAssignment.ACTIVE_STATUSES,
            ).update(status=VolunteerAssignment.Status.CANCELLED, cancelled_reason='donation_cancelled')

            donation.status = Donation.Status.CANCELLED
            donation.cancelled_at = now
            donation.cancelled_reason = (reason or 'cancelled')[:100]
            donation.volunteer = None
            donation.volunteer_name = ''
            donation.volunteer_phone = ''
            donation.assignment = None
            donation.save(update_fields=[
                'status', 'cancelled_at', 'cancelled_reason', 'volunteer',
                'volunteer_name', 'volunteer_phone', 'assignment', 'updated_at',
            ])

        logger.info(f"Donation {donation_id} cancelled by user {actor.pk}")
        return ServiceResult.ok('Donation cancelled.', donation_id=donation_id, status=Donation.Status.CANCELLED)

    # --- NGO ---

    def pending_queue(self, ngo):
        """
        Donations awaiting approval in the NGO's district that it has not
        rejected, each paired with its specialization and capacity verdicts.
        """
        donations = (
            Donation.objects.filter(
                district=ngo.district,
                status=Donation.Status.PENDING_APPROVAL,
                ngo_approval_status=Donation.ApprovalStatus.PENDING,
            )
            .exclude(rejections__ngo=ngo)
            .select_related('donor')
            .annotate(rank=priority_order())
            .order_by('rank', '-created_at')
        )
        limit = self.capacity.get_or_create_daily_limit(ngo.pk)
        return [
            {
                'donation': donation,
                'specialization': self.matcher.can_ngo_approve(ngo, donation),
                'capacity': self.capacity.evaluate(limit, donation),
            }
            for donation in donations
        ]

    @transient_on_db_error
    def approve(self, donation_id, ngo_id):
        ngo = NGOProfile.objects.filter(pk=ngo_id).first()
        if ngo is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, 'NGO profile not found.')

        now = self.clock()
        with transaction.atomic():
            donation = Donation.objects.select_for_update().filter(pk=donation_id).first()
            if donation is None:
                return ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
            if donation.district != ngo.district:
                return ServiceResult.fail(ErrorType.PERMISSION, 'This donation is outside your district.')
            if (donation.status != Donation.Status.PENDING_APPROVAL
                    or donation.ngo_approval_status != Donation.ApprovalStatus.PENDING):
                return _conflict(donation, 'This donation has already been handled.')
            if DonationRejection.objects.filter(donation=donation, ngo=ngo).exists():
                return _conflict(donation, 'You have already rejected this donation.')

            verdict = self.matcher.can_ngo_approve(ngo, donation)
            if not verdict.allowed:
                return ServiceResult.fail(
                    ErrorType.PERMISSION,
                    verdict.reason,
                    match_type=verdict.match_type.value,
                )

            limit = self.capacity.lock_daily_limit(ngo.pk, timezone.localdate(now))
            capacity = self.capacity.evaluate(limit, donation)
            if not capacity.can_approve and self.config.enforce_daily_limit:
                return ServiceResult.fail(
                    ErrorType.CAPACITY,
                    capacity.reason,
                    remaining=0,
                    is_critical=False,
                )

            updated = Donation.objects.filter(
                pk=donation.pk,
                status=Donation.Status.PENDING_APPROVAL,
                ngo_approval_status=Donation.ApprovalStatus.PENDING,
            ).update(
                status=Donation.Status.ASSIGNED,
                ngo_approval_status=Donation.ApprovalStatus.APPROVED,
                ngo=ngo,
                approved_at=now,
                updated_at=now,
            )
            if not updated:
                donation.refresh_from_db()
                return _conflict(donation, 'This donation has already been handled.')

            limit = self.capacity.apply_approval(limit, donation)

        logger.info(
            f"NGO {ngo.pk} approved donation {donation_id} "
            f"({verdict.match_type.value}, critical={capacity.is_critical}, remaining={limit.remaining})"
        )
        return ServiceResult.ok(
            'Donation approved! It is now visible to volunteers in your district.',
            donation_id=donation_id,
            status=Donation.Status.ASSIGNED,
            remaining=limit.remaining,
            is_critical=capacity.is_critical,
            match_type=verdict.match_type.value,
        )

    @transient_on_db_error
    def reject(self, donation_id, ngo_id, reason=''):
        """
        Record this NGO's rejection. The donation stays pending for the other
        NGOs of its district and becomes rejected once all of them decline.
        """
        ngo = NGOProfile.objects.filter(pk=ngo_id).first()
        if ngo is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, 'NGO profile not found.')

        now = self.clock()
        with transaction.atomic():
            donation = Donation.objects.select_for_update().filter(pk=donation_id).first()
            if donation is None:
                return ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
            if donation.district != ngo.district:
                return ServiceResult.fail(ErrorType.PERMISSION, 'This donation is outside your district.')
            if (donation.status != Donation.Status.PENDING_APPROVAL
                    or donation.ngo_approval_status != Donation.ApprovalStatus.PENDING):
                return _conflict(donation, 'This donation has already been handled.')

            _, created = DonationRejection.objects.get_or_create(
                donation=donation,
                ngo=ngo,
                defaults={'reason': (reason or '')[:255]},
            )
            if not created:
                return _conflict(donation, 'You have already rejected this donation.')

            still_open = NGOProfile.objects.filter(district=donation.district).exclude(
                rejections__donation=donation,
            ).exists()
            if not still_open:
                donation.status = Donation.Status.REJECTED
                donation.ngo_approval_status = Donation.ApprovalStatus.REJECTED
                donation.cancelled_reason = 'rejected_by_all_ngos'
                donation.updated_at = now
                donation.save(update_fields=['status', 'ngo_approval_status', 'cancelled_reason', 'updated_at'])

        logger.info(f"NGO {ngo.pk} rejected donation {donation_id} (still open: {still_open})")
        return ServiceResult.ok(
            'Donation rejected.',
            donation_id=donation_id,
            status=donation.status,
            visible_to_other_ngos=still_open,
        )

    @transient_on_db_error
    def complete(self, donation_id, actor):
        """The receiving NGO (or an admin) confirms a delivered donation."""
        now = self.clock()
        with transaction.atomic():
            donation = Donation.objects.select_for_update().filter(pk=donation_id).first()
            if donation is None:
                return ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
            if not _is_admin(actor) and not (
                actor.user_type == User.UserType.NGO and donation.ngo_id == actor.pk
            ):
                return ServiceResult.fail(ErrorType.PERMISSION, 'Unauthorized.')
            if donation.status != Donation.Status.DELIVERED:
                return _conflict(donation, 'Only delivered donations can be completed.')

            donation.status = Donation.Status.COMPLETED
            donation.completed_at = now
            donation.save(update_fields=['status', 'completed_at', 'updated_at'])

        logger.info(f"Donation {donation_id} completed by user {actor.pk}")
        return ServiceResult.ok('Donation marked as completed.', donation_id=donation_id, status=donation.status)

    # --- Volunteer ---

    def _lock_for_volunteer(self, donation_id, volunteer_id, allowed_statuses, message):
        """Locked donation or a failure result. Must run inside transaction.atomic()."""
        donation = Donation.objects.select_for_update().filter(pk=donation_id).first()
        if donation is None:
            return None, ServiceResult.fail(ErrorType.NOT_FOUND, 'Donation not found.')
        if donation.volunteer_id is None or donation.volunteer_id != volunteer_id:
            return None, ServiceResult.fail(ErrorType.PERMISSION, 'Unauthorized.')
        if donation.status not in allowed_statuses:
            return None, _conflict(donation, message)
        return donation, None

    @transient_on_db_error
    def pickup(self, donation_id, volunteer_id):
        now = self.clock()
        with transaction.atomic():
            donation, failure = self._lock_for_volunteer(
                donation_id, volunteer_id, (Donation.Status.ASSIGNED,), 'Invalid donation status.',
            )
            if failure is not None:
                return failure

            if donation.assignment_id is not None:
                started = VolunteerAssignment.objects.filter(
                    pk=donation.assignment_id,
                    status=VolunteerAssignment.Status.ACCEPTED,
                ).update(status=VolunteerAssignment.Status.STARTED, started_at=now)
                if not started:
                    return _conflict(donation, 'This pickup is no longer assigned to you.')

            donation.status = Donation.Status.PICKED_UP
            donation.picked_up_at = now
            donation.save(update_fields=['status', 'picked_up_at', 'updated_at'])

        logger.info(f"Volunteer {volunteer_id} picked up donation {donation_id}")
        return ServiceResult.ok('Marked as collected!', donation_id=donation_id, status=donation.status)

    @transient_on_db_error
    def start_transit(self, donation_id, volunteer_id):
        with transaction.atomic():
            donation, failure = self._lock_for_volunteer(
                donation_id, volunteer_id, (Donation.Status.PICKED_UP,), 'Invalid donation status.',
            )
            if failure is not None:
                return failure
            donation.status = Donation.Status.IN_TRANSIT
            donation.save(update_fields=['status', 'updated_at'])

        logger.info(f"Volunteer {volunteer_id} is delivering donation {donation_id}")
        return ServiceResult.ok('Donation is on its way.', donation_id=donation_id, status=donation.status)

    @transient_on_db_error
    def deliver(self, donation_id, volunteer_id, ngo_id=None):
        now = self.clock()
        with transaction.atomic():
            donation, failure = self._lock_for_volunteer(
                donation_id,
                volunteer_id,
                (Donation.Status.PICKED_UP, Donation.Status.IN_TRANSIT),
                'Invalid donation status.',
            )
            if failure is not None:
                return failure

            update_fields = ['status', 'delivered_at', 'updated_at']
            if ngo_id is not None and donation.ngo_id is None:
                if not NGOProfile.objects.filter(pk=ngo_id).exists():
                    return ServiceResult.fail(ErrorType.NOT_FOUND, 'NGO profile not found.')
                donation.ngo_id = ngo_id
                update_fields.append('ngo')

            donation.status = Donation.Status.DELIVERED
            donation.delivered_at = now
            donation.save(update_fields=update_fields)

            if donation.assignment_id is not None:
                VolunteerAssignment.objects.filter(
                    pk=donation.assignment_id,
                    status__in=VolunteerAssignment.ACTIVE_STATUSES,
                ).update(status=VolunteerAssignment.Status.COMPLETED, completed_at=now)

            VolunteerProfile.objects.filter(pk=volunteer_id).update(
                completed_deliveries=F('completed_deliveries') + 1,
            )
            trust = self.trust.update(
                volunteer_id,
                DELIVERY_COMPLETED,
                self.config.delivery_reward,
                f"Delivered donation #{donation_id}",
            )

        logger.info(f"Volunteer {volunteer_id} delivered donation {donation_id}")
        return ServiceResult.ok(
            'Donation delivered. Thank you!',
            donation_id=donation_id,
            status=donation.status,
            trust_score=trust['score'],
            trust_tier=trust['tier'],
        )
