"""Shared fixtures: wired services and factories for users, profiles and donations."""

import itertools
from datetime import timedelta

import pytest
from django.utils import timezone

from donations.conf import PipelineConfig
from donations.models import (
    ITEM_CATEGORIES,
    DonorProfile,
    Donation,
    NGOProfile,
    NGOType,
    User,
    VolunteerAssignment,
    VolunteerProfile,
    normalize_district,
)
from donations.services import build_services

_sequence = itertools.count(1)


class FakeGeocoder:
    """Answers from a fixed address table and records every lookup."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        return self.results.get(address)


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def services(config, geocoder):
    return build_services(config=config, geocoder=geocoder)


@pytest.fixture
def make_user(db):
    def _make(user_type, username=None, **extra):
        username = username or f"{user_type.lower()}{next(_sequence)}"
        return User.objects.create_user(username=username, password='s3cret-pass', user_type=user_type, **extra)
    return _make


@pytest.fixture
def make_donor(make_user):
    def _make(city='Pune', full_name='Asha Rao', address='12 MG Road', **extra):
        user = make_user(User.UserType.DONOR)
        return DonorProfile.objects.create(user=user, full_name=full_name, city=city, address=address, **extra)
    return _make


@pytest.fixture
def make_ngo(make_user):
    def _make(ngo_type=NGOType.MULTI_PURPOSE, city='Pune', ngo_name='Helping Hands', **extra):
        user = make_user(User.UserType.NGO)
        return NGOProfile.objects.create(
            user=user,
            ngo_name=ngo_name,
            registration_number=f"REG{user.pk:05d}",
            ngo_type=ngo_type,
            city=city,
            **extra,
        )
    return _make


@pytest.fixture
def make_volunteer(make_user):
    def _make(city='Pune', full_name='Ravi Kumar', phone_number='9876543210', **extra):
        user = make_user(User.UserType.VOLUNTEER)
        return VolunteerProfile.objects.create(
            user=user,
            full_name=full_name,
            city=city,
            phone_number=phone_number,
            **extra,
        )
    return _make


@pytest.fixture
def make_donation(make_donor):
    """Saved donation; three books unless items are given."""
    def _make(donor=None, **fields):
        donor = donor or make_donor()
        fields.setdefault('city', donor.city)
        fields.setdefault('district', normalize_district(fields['city']))
        if not any(fields.get(category) for category in ITEM_CATEGORIES) and not fields.get('is_custom_item'):
            fields['books'] = 3
        return Donation.objects.create(donor=donor, **fields)
    return _make


@pytest.fixture
def make_approved_donation(make_donation, make_ngo):
    """Donation an NGO already approved, waiting for a volunteer."""
    def _make(ngo=None, **fields):
        donation = make_donation(**fields)
        donation.ngo = ngo or make_ngo(city=donation.city)
        donation.status = Donation.Status.ASSIGNED
        donation.ngo_approval_status = Donation.ApprovalStatus.APPROVED
        donation.approved_at = timezone.now()
        donation.save()
        return donation
    return _make


@pytest.fixture
def make_stuck_assignment(services, make_approved_donation, make_volunteer):
    """Accepted assignment backdated by `hours`."""
    def _make(hours=5, volunteer=None, donation=None, **donation_fields):
        donation = donation or make_approved_donation(**donation_fields)
        volunteer = volunteer or make_volunteer(city=donation.city)
        result = services.allocator.accept(donation.pk, volunteer.pk)
        assert result.success, result.message
        assignment = VolunteerAssignment.objects.get(pk=result.data['assignment_id'])
        assignment.accepted_at = timezone.now() - timedelta(hours=hours)
        assignment.save(update_fields=['accepted_at'])
        return assignment
    return _make
