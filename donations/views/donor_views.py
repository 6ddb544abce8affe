# donations/views/donor_views.py
from django.views.decorators.http import require_GET, require_POST
from django.http import JsonResponse

from ..decorators import user_type_required
from ..forms import DonationForm
from ..models import DonorProfile
from ..utils.priority import suggest_priority
from .common import (
    donation_to_dict,
    error_response,
    get_services,
    json_body,
    result_response,
    server_error,
)


def _donor_profile(request):
    return DonorProfile.objects.filter(pk=request.user.pk).first()


@require_POST
@user_type_required('DONOR')
def create_donation(request):
    donor = _donor_profile(request)
    if donor is None:
        return error_response('Complete your donor profile first.', status=400)

    data = json_body(request)
    if data is None:
        return error_response('Invalid JSON body.')

    form = DonationForm(data)
    if not form.is_valid():
        return JsonResponse({
            'success': False,
            'message': 'Please correct the errors below.',
            'type': 'validation',
            'errors': form.errors.get_json_data(),
        }, status=400)

    try:
        result = get_services().lifecycle.create(donor, form.cleaned_data)
        return result_response(result)
    except Exception as e:
        return server_error('create_donation', e)


@require_GET
@user_type_required('DONOR')
def donor_donations(request):
    donor = _donor_profile(request)
    if donor is None:
        return error_response('Complete your donor profile first.', status=400)
    donations = donor.donations.order_by('-created_at')
    return JsonResponse({'success': True, 'donations': [donation_to_dict(d) for d in donations]})


@require_POST
@user_type_required('DONOR', 'ADMIN')
def cancel_donation(request, donation_id):
    data = json_body(request) or {}
    try:
        result = get_services().lifecycle.cancel(donation_id, request.user, data.get('reason', ''))
        return result_response(result)
    except Exception as e:
        return server_error('cancel_donation', e)


@require_POST
@user_type_required('DONOR')
def priority_suggestion(request):
    data = json_body(request)
    if data is None:
        return error_response('Invalid JSON body.')
    suggestion = suggest_priority(
        data.get('item_name', ''),
        data.get('description', ''),
        data.get('category', ''),
    )
    return JsonResponse({'success': True, **suggestion})
