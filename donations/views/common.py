# donations/views/common.py
"""
Helpers shared by the JSON views.
"""

import json
import logging

from django.apps import apps
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def get_services():
    return apps.get_app_config('donations').services


def json_body(request):
    """Parsed JSON object from the request body, falling back to form data."""
    if request.content_type == 'application/json':
        try:
            body = json.loads(request.body or b'{}')
        except json.JSONDecodeError:
            return None
        return body if isinstance(body, dict) else None
    return request.POST.dict()


def result_response(result):
    return JsonResponse(result.to_dict(), status=result.status_code)


def error_response(message, status=400):
    return JsonResponse({'success': False, 'message': message}, status=status)


def server_error(view_name, exc):
    logger.exception(f"Error in {view_name}: {exc}")
    return JsonResponse({'success': False, 'message': 'An unexpected error occurred.'}, status=500)


def donation_to_dict(donation):
    data = {
        'id': donation.pk,
        'status': donation.status,
        'ngo_approval_status': donation.ngo_approval_status,
        'priority': donation.priority,
        'items': {name: qty for name, qty in donation.item_quantities().items() if qty},
        'is_universal_item': donation.is_universal_item,
        'description': donation.description,
        'city': donation.city,
        'district': donation.district,
        'pickup_address': donation.pickup_address,
        'latitude': donation.latitude,
        'longitude': donation.longitude,
        'ngo_id': donation.ngo_id,
        'volunteer_id': donation.volunteer_id,
        'volunteer_name': donation.volunteer_name,
        'created_at': donation.created_at.isoformat() if donation.created_at else None,
        'approved_at': donation.approved_at.isoformat() if donation.approved_at else None,
        'assigned_at': donation.assigned_at.isoformat() if donation.assigned_at else None,
    }
    if donation.is_custom_item:
        data['custom_item'] = {
            'name': donation.custom_item_name,
            'quantity': donation.custom_quantity,
            'description': donation.custom_description,
        }
    return data
