# donations/views/volunteer_views.py
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from ..decorators import user_type_required
from ..models import VolunteerProfile
from ..utils.distance import ROUTE_FACTORS, TRAVEL_SPEEDS
from .common import (
    donation_to_dict,
    error_response,
    get_services,
    json_body,
    result_response,
    server_error,
)


def _volunteer_profile(request):
    return VolunteerProfile.objects.filter(pk=request.user.pk).first()


@require_GET
@user_type_required('VOLUNTEER')
def available_donations(request):
    volunteer = _volunteer_profile(request)
    if volunteer is None:
        return error_response('Complete your volunteer profile first.', status=400)
    try:
        donations = get_services().allocator.list_available(volunteer.district)
    except Exception as e:
        return server_error('available_donations', e)
    return JsonResponse({
        'success': True,
        'district': volunteer.district,
        'donations': [donation_to_dict(d) for d in donations],
    })


@require_GET
@user_type_required('VOLUNTEER')
def volunteer_pickups(request):
    donations = get_services().allocator.active_pickups(request.user.pk)
    return JsonResponse({'success': True, 'donations': [donation_to_dict(d) for d in donations]})


@require_POST
@user_type_required('VOLUNTEER')
def accept_donation(request, donation_id):
    try:
        result = get_services().allocator.accept(donation_id, request.user.pk)
        return result_response(result)
    except Exception as e:
        return server_error('accept_donation', e)


@require_POST
@user_type_required('VOLUNTEER')
def mark_as_collected(request, donation_id):
    try:
        result = get_services().lifecycle.pickup(donation_id, request.user.pk)
        return result_response(result)
    except Exception as e:
        return server_error('mark_as_collected', e)


@require_POST
@user_type_required('VOLUNTEER')
def mark_in_transit(request, donation_id):
    try:
        result = get_services().lifecycle.start_transit(donation_id, request.user.pk)
        return result_response(result)
    except Exception as e:
        return server_error('mark_in_transit', e)


@require_POST
@user_type_required('VOLUNTEER')
def mark_as_delivered(request, donation_id):
    data = json_body(request)
    if data is None:
        return error_response('Invalid JSON body.')
    ngo_id = data.get('ngo_id')
    if ngo_id is not None:
        try:
            ngo_id = int(ngo_id)
        except (TypeError, ValueError):
            return error_response('ngo_id must be an integer.')
    try:
        result = get_services().lifecycle.deliver(donation_id, request.user.pk, ngo_id=ngo_id)
        return result_response(result)
    except Exception as e:
        return server_error('mark_as_delivered', e)


@require_GET
@user_type_required('VOLUNTEER')
def donation_distance(request, donation_id):
    area_type = request.GET.get('area_type', 'urban')
    mode = request.GET.get('mode', 'car')
    if area_type not in ROUTE_FACTORS:
        return error_response(f"Unknown area type '{area_type}'.")
    if mode not in TRAVEL_SPEEDS:
        return error_response(f"Unknown transport mode '{mode}'.")
    try:
        result = get_services().allocator.pickup_distance(donation_id, request.user.pk, area_type=area_type, mode=mode)
        return result_response(result)
    except Exception as e:
        return server_error('donation_distance', e)
