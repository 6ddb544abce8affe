# donations/views/ngo_views.py
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from ..decorators import user_type_required
from ..forms import RejectionForm
from ..models import Donation, NGOProfile
from .common import (
    donation_to_dict,
    error_response,
    get_services,
    json_body,
    result_response,
    server_error,
)


def _ngo_profile(request):
    return NGOProfile.objects.filter(pk=request.user.pk).first()


@require_GET
@user_type_required('NGO')
def ngo_pending_donations(request):
    ngo = _ngo_profile(request)
    if ngo is None:
        return error_response('Complete your NGO profile first.', status=400)
    try:
        queue = get_services().lifecycle.pending_queue(ngo)
    except Exception as e:
        return server_error('ngo_pending_donations', e)

    return JsonResponse({
        'success': True,
        'donations': [
            {
                **donation_to_dict(entry['donation']),
                'specialization': entry['specialization'].to_dict(),
                'capacity': entry['capacity'].to_dict(),
            }
            for entry in queue
        ],
    })


@require_POST
@user_type_required('NGO')
def approve_donation(request, donation_id):
    try:
        result = get_services().lifecycle.approve(donation_id, request.user.pk)
        return result_response(result)
    except Exception as e:
        return server_error('approve_donation', e)


@require_POST
@user_type_required('NGO')
def reject_donation(request, donation_id):
    data = json_body(request)
    if data is None:
        return error_response('Invalid JSON body.')
    form = RejectionForm(data)
    if not form.is_valid():
        return error_response('Invalid rejection reason.')
    try:
        result = get_services().lifecycle.reject(donation_id, request.user.pk, form.cleaned_data['reason'])
        return result_response(result)
    except Exception as e:
        return server_error('reject_donation', e)


@require_POST
@user_type_required('NGO', 'ADMIN')
def complete_donation(request, donation_id):
    try:
        result = get_services().lifecycle.complete(donation_id, request.user)
        return result_response(result)
    except Exception as e:
        return server_error('complete_donation', e)


@require_GET
@user_type_required('NGO')
def ngo_capacity(request):
    ngo = _ngo_profile(request)
    if ngo is None:
        return error_response('Complete your NGO profile first.', status=400)
    services = get_services()
    limit = services.capacity.get_or_create_daily_limit(ngo.pk)
    return JsonResponse({
        'success': True,
        'date': limit.date.isoformat(),
        'daily_limit': limit.daily_limit,
        'approvals_used': limit.approvals_used,
        'critical_approvals': limit.critical_approvals,
        'remaining': limit.remaining,
        'load_level': limit.load_level,
        'allowed_items': services.matcher.allowed_items(ngo.ngo_type, ngo.can_accept_universal),
    })


@require_GET
@user_type_required('NGO', 'ADMIN')
def distribution_suggestions(request, donation_id):
    donation = Donation.objects.filter(pk=donation_id).first()
    if donation is None:
        return error_response('Donation not found.', status=404)
    suggestions = get_services().advisor.distribution_suggestions(donation)
    return JsonResponse({'success': True, 'donation_id': donation.pk, 'suggestions': suggestions})


@require_GET
@user_type_required('NGO', 'ADMIN')
def district_load(request):
    ngo = _ngo_profile(request)
    district = request.GET.get('district') or (ngo.district if ngo else '')
    if not district:
        return error_response('A district is required.')
    return JsonResponse({
        'success': True,
        'district': district,
        'ngos': get_services().advisor.load_balancing(district),
    })
