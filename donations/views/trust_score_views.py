# donations/views/trust_score_views.py
"""
Trust score views for volunteers and admins
"""

from django.http import JsonResponse
from django.views.decorators.http import require_GET

from ..decorators import user_type_required
from ..models import VolunteerProfile
from .common import error_response, get_services


def _activity_to_dict(activity):
    return {
        'activity_type': activity.activity_type,
        'score_change': activity.score_change,
        'description': activity.description,
        'created_at': activity.created_at.isoformat(),
    }


def _trust_payload(volunteer_id, limit):
    trust = get_services().trust
    score = trust.get_score(volunteer_id)
    return {
        'success': True,
        'volunteer_id': volunteer_id,
        'score': score['score'],
        'tier': score['tier'],
        'activities': [_activity_to_dict(a) for a in trust.list_activities(volunteer_id, limit)],
    }


def _limit_param(request):
    try:
        return max(1, min(100, int(request.GET.get('limit', 10))))
    except ValueError:
        return 10


@require_GET
@user_type_required('VOLUNTEER')
def my_trust_score(request):
    """
    Volunteer's own score, tier and recent activity
    """
    if not VolunteerProfile.objects.filter(pk=request.user.pk).exists():
        return error_response('Complete your volunteer profile first.', status=400)
    return JsonResponse(_trust_payload(request.user.pk, _limit_param(request)))


@require_GET
@user_type_required('ADMIN', 'NGO')
def volunteer_trust_score(request, volunteer_id):
    if not VolunteerProfile.objects.filter(pk=volunteer_id).exists():
        return error_response('Volunteer not found.', status=404)
    return JsonResponse(_trust_payload(volunteer_id, _limit_param(request)))


@require_GET
@user_type_required('ADMIN')
def trust_leaderboard(request):
    return JsonResponse({'success': True, 'volunteers': get_services().trust.all_volunteer_scores()})
