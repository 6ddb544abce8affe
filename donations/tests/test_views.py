"""JSON views: access control, input handling and status codes."""

import json

import pytest
from django.urls import reverse

from donations.models import Donation, User


def post_json(client, url, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type='application/json')


@pytest.fixture
def donor_client(client, make_donor):
    donor = make_donor()
    client.force_login(donor.user)
    client.donor = donor
    return client


@pytest.fixture
def ngo_client(client, make_ngo):
    ngo = make_ngo()
    client.force_login(ngo.user)
    client.ngo = ngo
    return client


@pytest.fixture
def volunteer_client(client, make_volunteer):
    volunteer = make_volunteer()
    client.force_login(volunteer.user)
    client.volunteer = volunteer
    return client


@pytest.fixture
def admin_client_json(client, make_user):
    client.force_login(make_user(User.UserType.ADMIN))
    return client


class TestAccessControl:
    def test_anonymous_gets_401(self, client, db):
        response = client.get(reverse('available_donations'))
        assert response.status_code == 401
        assert response.json()['success'] is False

    def test_wrong_user_type_gets_403(self, donor_client):
        assert donor_client.get(reverse('available_donations')).status_code == 403

    def test_superuser_passes(self, client, make_user):
        superuser = make_user(User.UserType.ADMIN, is_superuser=True, is_staff=True)
        client.force_login(superuser)
        assert client.get(reverse('trust_leaderboard')).status_code == 200

    def test_wrong_method(self, volunteer_client, make_approved_donation):
        donation = make_approved_donation()
        assert volunteer_client.get(reverse('accept_donation', args=[donation.pk])).status_code == 405


class TestDonorViews:
    def test_create_donation(self, donor_client):
        response = post_json(donor_client, reverse('create_donation'), {'books': 2, 'priority': 'low'})
        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert Donation.objects.get(pk=body['donation_id']).district == 'pune'

    def test_negative_quantity(self, donor_client):
        response = post_json(donor_client, reverse('create_donation'), {'books': -2})
        assert response.status_code == 400
        assert response.json()['type'] == 'validation'
        assert 'books' in response.json()['errors']

    def test_empty_donation(self, donor_client):
        response = post_json(donor_client, reverse('create_donation'), {})
        assert response.status_code == 400
        assert response.json()['type'] == 'validation'

    def test_invalid_json(self, donor_client):
        response = donor_client.post(reverse('create_donation'), data='{not json', content_type='application/json')
        assert response.status_code == 400

    def test_list_own_donations(self, donor_client, make_donation):
        mine = make_donation(donor=donor_client.donor)
        make_donation()
        response = donor_client.get(reverse('donor_donations'))
        assert [d['id'] for d in response.json()['donations']] == [mine.pk]

    def test_cancel(self, donor_client, make_donation):
        donation = make_donation(donor=donor_client.donor)
        response = post_json(donor_client, reverse('cancel_donation', args=[donation.pk]), {'reason': 'Moved away'})
        assert response.status_code == 200
        assert response.json()['status'] == 'cancelled'

    def test_cancel_someone_elses(self, donor_client, make_donation):
        response = post_json(donor_client, reverse('cancel_donation', args=[make_donation().pk]))
        assert response.status_code == 403
        assert response.json()['type'] == 'permission'

    def test_priority_suggestion(self, donor_client):
        response = post_json(donor_client, reverse('priority_suggestion'), {'item_name': 'Insulin'})
        assert response.json()['suggested_priority'] == 'critical'


class TestNGOViews:
    def test_pending_queue(self, ngo_client, make_donation):
        donation = make_donation(priority='high')
        body = ngo_client.get(reverse('ngo_pending_donations')).json()
        assert [d['id'] for d in body['donations']] == [donation.pk]
        assert body['donations'][0]['specialization']['allowed'] is True
        assert body['donations'][0]['capacity']['remaining'] == 7

    def test_approve(self, ngo_client, make_donation):
        donation = make_donation()
        response = post_json(ngo_client, reverse('approve_donation', args=[donation.pk]))
        assert response.status_code == 200
        assert response.json()['remaining'] == 6

    def test_approve_twice_conflicts(self, ngo_client, make_donation):
        donation = make_donation()
        post_json(ngo_client, reverse('approve_donation', args=[donation.pk]))
        response = post_json(ngo_client, reverse('approve_donation', args=[donation.pk]))
        assert response.status_code == 409
        assert response.json()['current_status'] == 'assigned'

    def test_approve_missing(self, ngo_client):
        assert post_json(ngo_client, reverse('approve_donation', args=[999999])).status_code == 404

    def test_reject(self, ngo_client, make_donation):
        donation = make_donation()
        response = post_json(ngo_client, reverse('reject_donation', args=[donation.pk]), {'reason': 'No space'})
        assert response.status_code == 200
        assert response.json()['status'] == 'rejected'

    def test_capacity(self, ngo_client):
        body = ngo_client.get(reverse('ngo_capacity')).json()
        assert body['daily_limit'] == 7
        assert body['remaining'] == 7
        assert 'books' in body['allowed_items']

    def test_load_and_suggestions(self, ngo_client, make_donation):
        donation = make_donation()
        load = ngo_client.get(reverse('district_load')).json()
        assert [n['ngo_id'] for n in load['ngos']] == [ngo_client.ngo.pk]
        suggestions = ngo_client.get(reverse('distribution_suggestions', args=[donation.pk])).json()
        assert [s['ngo_id'] for s in suggestions['suggestions']] == [ngo_client.ngo.pk]


class TestVolunteerViews:
    def test_available_and_accept(self, volunteer_client, make_approved_donation):
        donation = make_approved_donation()
        body = volunteer_client.get(reverse('available_donations')).json()
        assert [d['id'] for d in body['donations']] == [donation.pk]

        response = post_json(volunteer_client, reverse('accept_donation', args=[donation.pk]))
        assert response.status_code == 200
        assert response.json()['assignment_id']

    def test_taken_donation_conflicts(self, volunteer_client, make_approved_donation, make_volunteer, services):
        donation = make_approved_donation()
        services.allocator.accept(donation.pk, make_volunteer().pk)
        response = post_json(volunteer_client, reverse('accept_donation', args=[donation.pk]))
        assert response.status_code == 409
        assert response.json()['message'] == 'This donation is no longer available.'

    def test_pickup_transit_deliver(self, volunteer_client, make_approved_donation):
        donation = make_approved_donation()
        post_json(volunteer_client, reverse('accept_donation', args=[donation.pk]))

        assert post_json(volunteer_client, reverse('mark_as_collected', args=[donation.pk])).status_code == 200
        assert post_json(volunteer_client, reverse('mark_in_transit', args=[donation.pk])).status_code == 200
        response = post_json(volunteer_client, reverse('mark_as_delivered', args=[donation.pk]))
        assert response.status_code == 200
        assert response.json()['trust_score'] == 50

        pickups = volunteer_client.get(reverse('volunteer_pickups')).json()
        assert pickups['donations'] == []

    def test_deliver_with_bad_ngo_id(self, volunteer_client, make_approved_donation):
        donation = make_approved_donation()
        response = post_json(volunteer_client, reverse('mark_as_delivered', args=[donation.pk]), {'ngo_id': 'abc'})
        assert response.status_code == 400

    def test_distance_with_known_coordinates(self, volunteer_client, make_approved_donation):
        volunteer = volunteer_client.volunteer
        volunteer.latitude, volunteer.longitude = 18.5590, 73.7868
        volunteer.save()
        donation = make_approved_donation(latitude=18.5204, longitude=73.8567)

        body = volunteer_client.get(reverse('donation_distance', args=[donation.pk]), {'mode': 'bike'}).json()
        assert body['coordinates_available'] is True
        assert body['category'] in ('close', 'moderate')

    def test_distance_unknown_mode(self, volunteer_client, make_approved_donation):
        donation = make_approved_donation()
        response = volunteer_client.get(reverse('donation_distance', args=[donation.pk]), {'mode': 'rocket'})
        assert response.status_code == 400


class TestTrustAndAdminViews:
    def test_my_trust_score(self, volunteer_client):
        body = volunteer_client.get(reverse('my_trust_score')).json()
        assert body['score'] == 40
        assert body['tier'] == 'NEW'
        assert body['activities'][0]['activity_type'] == 'initialized'

    def test_ngo_reads_volunteer_score(self, ngo_client, make_volunteer):
        volunteer = make_volunteer()
        assert ngo_client.get(reverse('volunteer_trust_score', args=[volunteer.pk])).json()['score'] == 40
        assert ngo_client.get(reverse('volunteer_trust_score', args=[999999])).status_code == 404

    def test_stuck_assignments_and_manual_sweep(self, admin_client_json, make_stuck_assignment):
        make_stuck_assignment(hours=5)
        body = admin_client_json.get(reverse('stuck_assignments')).json()
        assert len(body['assignments']) == 1
        assert body['statistics']['pending_start'] == 1

        sweep = post_json(admin_client_json, reverse('run_reconciler')).json()
        assert sweep['checked'] == 1

    def test_initialize_trust_scores(self, admin_client_json, make_volunteer):
        make_volunteer()
        assert post_json(admin_client_json, reverse('initialize_trust_scores')).json()['created'] == 1

    def test_district_coverage(self, admin_client_json, make_donation):
        make_donation()
        body = admin_client_json.get(reverse('district_coverage', args=['Pune'])).json()
        assert body['district'] == 'pune'
        assert body['total_requests'] == 1
