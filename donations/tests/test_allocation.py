"""Volunteer allocation: available work, the race-free accept, replacements, distance."""

import threading
from datetime import timedelta

import pytest
from django.db import connection
from django.utils import timezone

from donations.conf import PipelineConfig
from donations.models import Donation, Priority, VolunteerAssignment, VolunteerProfile
from donations.services import ErrorType, build_services


@pytest.fixture
def allocator(services):
    return services.allocator


class TestListAvailable:
    def test_priority_then_newest(self, allocator, make_approved_donation):
        now = timezone.now()
        low = make_approved_donation(priority=Priority.LOW)
        older_high = make_approved_donation(priority=Priority.HIGH)
        newer_high = make_approved_donation(priority=Priority.HIGH)
        critical = make_approved_donation(priority=Priority.CRITICAL)
        Donation.objects.filter(pk=older_high.pk).update(created_at=now - timedelta(hours=3))
        Donation.objects.filter(pk=newer_high.pk).update(created_at=now - timedelta(hours=1))
        Donation.objects.filter(pk=critical.pk).update(created_at=now - timedelta(days=2))

        available = allocator.list_available('Pune')
        assert [d.pk for d in available] == [critical.pk, newer_high.pk, older_high.pk, low.pk]

    def test_only_unclaimed_approved_donations_in_district(self, allocator, make_approved_donation,
                                                           make_donation, make_volunteer):
        open_donation = make_approved_donation()
        taken = make_approved_donation()
        make_approved_donation(city='Nagpur')
        make_donation()
        allocator.accept(taken.pk, make_volunteer().pk)

        assert [d.pk for d in allocator.list_available(' PUNE ')] == [open_donation.pk]


class TestAccept:
    def test_accept_creates_assignment(self, allocator, make_approved_donation, make_volunteer):
        donation = make_approved_donation()
        volunteer = make_volunteer(full_name='Meera Joshi', phone_number='9000000001')

        result = allocator.accept(donation.pk, volunteer.pk)
        assert result.success
        donation.refresh_from_db()
        assert donation.volunteer_id == volunteer.pk
        assert donation.volunteer_name == 'Meera Joshi'
        assert donation.volunteer_phone == '9000000001'
        assert donation.assigned_at is not None
        assert donation.status == Donation.Status.ASSIGNED

        assignment = VolunteerAssignment.objects.get(pk=result.data['assignment_id'])
        assert assignment.status == VolunteerAssignment.Status.ACCEPTED
        assert assignment.started_at is None
        assert donation.assignment_id == assignment.pk

    def test_exactly_one_of_many_accepts_wins(self, allocator, make_approved_donation, make_volunteer):
        donation = make_approved_donation()
        volunteers = [make_volunteer() for _ in range(5)]

        results = [allocator.accept(donation.pk, v.pk) for v in volunteers]
        assert sum(r.success for r in results) == 1
        failures = [r for r in results if not r.success]
        assert all(r.error_type is ErrorType.CONFLICT for r in failures)
        assert all(r.message == 'This donation is no longer available.' for r in failures)

        donation.refresh_from_db()
        assert donation.volunteer_id == volunteers[0].pk
        assert VolunteerAssignment.objects.filter(
            donation=donation, status__in=VolunteerAssignment.ACTIVE_STATUSES,
        ).count() == 1

    def test_other_district(self, allocator, make_approved_donation, make_volunteer):
        donation = make_approved_donation()
        result = allocator.accept(donation.pk, make_volunteer(city='Nagpur').pk)
        assert result.error_type is ErrorType.VALIDATION
        donation.refresh_from_db()
        assert donation.volunteer_id is None

    def test_pending_donation_is_not_available(self, allocator, make_donation, make_volunteer):
        result = allocator.accept(make_donation().pk, make_volunteer().pk)
        assert result.error_type is ErrorType.CONFLICT
        assert result.data['current_status'] == Donation.Status.PENDING_APPROVAL

    def test_missing_donation_or_volunteer(self, allocator, make_approved_donation, make_volunteer):
        assert allocator.accept(999999, make_volunteer().pk).error_type is ErrorType.NOT_FOUND
        assert allocator.accept(make_approved_donation().pk, 999999).error_type is ErrorType.NOT_FOUND

    def test_inactive_volunteer(self, allocator, make_approved_donation, make_volunteer):
        volunteer = make_volunteer(is_active=False)
        assert allocator.accept(make_approved_donation().pk, volunteer.pk).error_type is ErrorType.VALIDATION

    def test_active_pickup_cap(self, make_approved_donation, make_volunteer, geocoder):
        allocator = build_services(config=PipelineConfig(max_active_pickups=1), geocoder=geocoder).allocator
        volunteer = make_volunteer()
        assert allocator.accept(make_approved_donation().pk, volunteer.pk).success

        result = allocator.accept(make_approved_donation().pk, volunteer.pk)
        assert result.error_type is ErrorType.VALIDATION
        assert 'more than 1' in result.message

    def test_over_the_cap_leaves_donation_available(self, make_approved_donation, make_volunteer, geocoder):
        allocator = build_services(config=PipelineConfig(max_active_pickups=1), geocoder=geocoder).allocator
        volunteer = make_volunteer()
        allocator.accept(make_approved_donation().pk, volunteer.pk)
        second = make_approved_donation()

        assert allocator.accept(second.pk, volunteer.pk).error_type is ErrorType.VALIDATION
        second.refresh_from_db()
        assert second.volunteer_id is None
        assert second.assignment_id is None
        assert not VolunteerAssignment.objects.filter(donation=second).exists()

    def test_active_pickups(self, allocator, make_approved_donation, make_volunteer):
        volunteer = make_volunteer()
        donation = make_approved_donation()
        allocator.accept(donation.pk, volunteer.pk)
        assert [d.pk for d in allocator.active_pickups(volunteer.pk)] == [donation.pk]


class TestReplacement:
    def test_highest_trust_wins(self, services, make_volunteer):
        steady = make_volunteer(full_name='Steady One')
        star = make_volunteer(full_name='Star One')
        services.trust.update(star.pk, 'x', 30)
        services.trust.update(steady.pk, 'x', 10)

        assert services.allocator.select_replacement('pune') == star

    def test_unscored_volunteer_ranks_at_initial_score(self, services, make_volunteer):
        low = make_volunteer(full_name='Low One')
        fresh = make_volunteer(full_name='Fresh One')
        services.trust.update(low.pk, 'x', -20)
        assert services.allocator.select_replacement('pune') == fresh

    def test_ties_go_to_earliest_registration(self, services, make_volunteer):
        later = make_volunteer(full_name='Later One')
        earlier = make_volunteer(full_name='Earlier One')
        VolunteerProfile.objects.filter(pk=earlier.pk).update(created_at=timezone.now() - timedelta(days=30))
        assert services.allocator.select_replacement('pune').pk == earlier.pk
        assert later.pk != earlier.pk

    def test_busy_inactive_excluded_and_other_district_skipped(self, services, make_volunteer,
                                                               make_approved_donation):
        busy = make_volunteer(full_name='Busy One')
        services.allocator.accept(make_approved_donation().pk, busy.pk)
        make_volunteer(full_name='Resting One', is_active=False)
        make_volunteer(full_name='Far One', city='Nagpur')
        excluded = make_volunteer(full_name='Excluded One')

        assert services.allocator.select_replacement('pune', exclude_ids=[excluded.pk]) is None

    def test_reassign_claims_donation_and_logs(self, services, make_approved_donation, make_volunteer):
        donation = make_approved_donation()
        volunteer = make_volunteer()

        chosen = services.allocator.reassign(donation.pk, donation.district)
        assert chosen == volunteer
        donation.refresh_from_db()
        assert donation.volunteer_id == volunteer.pk
        assert services.trust.list_activities(volunteer.pk)[0].activity_type == 'reassignment'

    def test_reassign_without_candidates(self, services, make_approved_donation):
        donation = make_approved_donation()
        assert services.allocator.reassign(donation.pk, donation.district) is None


class TestPickupDistance:
    def test_known_coordinates(self, services, make_approved_donation, make_volunteer, geocoder):
        donation = make_approved_donation(latitude=18.5204, longitude=73.8567)
        volunteer = make_volunteer(latitude=18.5590, longitude=73.7868, vehicle_type='2-wheeler')

        result = services.allocator.pickup_distance(donation.pk, volunteer.pk)
        assert result.success
        assert result.data['coordinates_available'] is True
        assert 0 < result.data['straight_km'] < 10
        assert result.data['approximate'] is True
        assert geocoder.calls == []

    def test_geocodes_missing_coordinates(self, services, make_approved_donation, make_volunteer, geocoder):
        geocoder.results = {
            '12 MG Road, Pune': {'lat': 18.5167, 'lng': 73.8562, 'address': 'MG Road'},
            'Pune': {'lat': 18.5204, 'lng': 73.8567, 'address': 'Pune'},
        }
        donation = make_approved_donation(pickup_address='12 MG Road, Pune')
        volunteer = make_volunteer()

        result = services.allocator.pickup_distance(donation.pk, volunteer.pk)
        assert result.data['coordinates_available'] is True
        donation.refresh_from_db()
        assert donation.latitude == 18.5167

    def test_unavailable_coordinates_degrade(self, services, make_approved_donation, make_volunteer):
        donation = make_approved_donation(pickup_address='Nowhere Lane')
        result = services.allocator.pickup_distance(donation.pk, make_volunteer().pk)
        assert result.success
        assert result.data == {'coordinates_available': False}
        assert result.message == 'Coordinates unavailable.'


@pytest.mark.django_db(transaction=True)
class TestConcurrentAccept:
    def test_simultaneous_accepts_yield_one_winner(self, allocator, make_approved_donation, make_volunteer):
        donation = make_approved_donation()
        volunteers = [make_volunteer() for _ in range(6)]
        barrier = threading.Barrier(len(volunteers))
        results = []

        def accept(volunteer):
            try:
                barrier.wait()
                results.append(allocator.accept(donation.pk, volunteer.pk))
            finally:
                connection.close()

        threads = [threading.Thread(target=accept, args=(v,)) for v in volunteers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 6
        assert sum(r.success for r in results) == 1
        assert [r.error_type for r in results if not r.success] == [ErrorType.CONFLICT] * 5
        assert VolunteerAssignment.objects.filter(
            donation=donation, status__in=VolunteerAssignment.ACTIVE_STATUSES,
        ).count() == 1
