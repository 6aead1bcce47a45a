from functools import wraps

from rest_framework.exceptions import NotAuthenticated
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from bloodbridge.exceptions import Forbidden


def role_required(*allowed_roles):
    """
    Role-based decorator for REST API views.
    Place it below @api_view so ``request.user`` is already authenticated.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            user = request.user

            if not user or not user.is_authenticated:
                raise NotAuthenticated("Authentication required")

            if user.user_type not in allowed_roles:
                raise Forbidden(f"Access denied. Allowed roles: {', '.join(allowed_roles)}.")

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


def require_role(user, *allowed_roles):
    """Same check as @role_required for engine functions called outside a view."""
    if user is None or not getattr(user, 'is_authenticated', False):
        raise NotAuthenticated("Authentication required")
    if user.user_type not in allowed_roles:
        raise Forbidden(f"Access denied. Allowed roles: {', '.join(allowed_roles)}.")


# REST API Token serializer
class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['user_type'] = user.user_type
        token['username'] = user.username
        return token
