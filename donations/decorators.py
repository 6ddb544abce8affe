# donations/decorators.py
from functools import wraps

from django.http import JsonResponse


def user_type_required(*user_types):
    """
    Restrict a JSON view to authenticated users of the given types.
    Superusers always pass.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return JsonResponse({'success': False, 'message': 'Authentication required.'}, status=401)
            if request.user.is_superuser or request.user.user_type in user_types:
                return view_func(request, *args, **kwargs)
            return JsonResponse({'success': False, 'message': 'Unauthorized.'}, status=403)
        return _wrapped_view
    return decorator
