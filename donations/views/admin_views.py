# donations/views/admin_views.py
"""
Operational views: reconciler monitoring and manual sweeps, trust score
backfill and district coverage.
"""

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from ..decorators import user_type_required
from .common import error_response, get_services, server_error


@require_GET
@user_type_required('ADMIN')
def stuck_assignments(request):
    reconciler = get_services().reconciler
    return JsonResponse({
        'success': True,
        'assignments': reconciler.stuck_assignments(),
        'statistics': reconciler.statistics(),
    })


@require_POST
@user_type_required('ADMIN')
def run_reconciler(request):
    try:
        report = get_services().reconciler.sweep()
    except Exception as e:
        return server_error('run_reconciler', e)
    return JsonResponse({'success': True, 'message': 'Reconciler sweep finished.', **report.to_dict()})


@require_POST
@user_type_required('ADMIN')
def initialize_trust_scores(request):
    created = get_services().trust.initialize_missing()
    return JsonResponse({'success': True, 'message': f'Initialized {created} trust scores.', 'created': created})


@require_GET
@user_type_required('ADMIN', 'NGO')
def district_coverage(request, district):
    if not district.strip():
        return error_response('A district is required.')
    snapshot = get_services().advisor.district_snapshot(district)
    return JsonResponse({
        'success': True,
        'district': snapshot.district,
        'date': snapshot.date.isoformat(),
        'total_ngos': snapshot.total_ngos,
        'active_ngos': snapshot.active_ngos,
        'total_requests': snapshot.total_requests,
        'approved_requests': snapshot.approved_requests,
        'pending_requests': snapshot.pending_requests,
        'coverage_percentage': snapshot.coverage_percentage,
    })
