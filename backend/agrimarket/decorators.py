# Overview: Request guards for API routes: authentication, coarse role/permission gates and body parsing.

"""
Guard Pipeline

Routes stack the guards in a fixed order; each either passes control on or
raises a MarketError that the app error handler turns into the envelope:

    @require_auth                      -> 401 AuthenticationError
    @require_roles(RoleType.X, ...)    -> 403 AuthorizationError
    @validate_json(parse_fn)           -> 400 ValidationError
    def view(..., payload): ...

Fine-grained gates (ownership, per-transition roles) run inside the services.
"""

from functools import wraps

from flask import request, g

from .errors import AuthenticationError, AuthorizationError, ValidationError
from .permissions import split_permission_code, validate_permission_code
from .services import session_service, permission_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def require_auth(f):
    """
    Resolve the bearer token into g.current_user.

    SECURITY: Raises AuthenticationError if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            raise AuthenticationError("Authentication required")

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token)

        if not context:
            raise AuthenticationError("Invalid or expired token", code="AUTH_TOKEN_INVALID")

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*role_types):
    """Require the current user to hold any of role_types."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise AuthenticationError("Authentication required")

            if not permission_service.has_role(g.current_user.id, role_types):
                names = [getattr(r, "value", r) for r in role_types]
                raise AuthorizationError(
                    f"Requires any of roles: {', '.join(names)}",
                    details={"required_roles": names},
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_permission(permission_code: str):
    """Require a specific "resource:action" permission."""
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")
    resource, action = split_permission_code(permission_code)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise AuthenticationError("Authentication required")

            if not permission_service.has_permission(g.current_user.id, resource, action):
                raise AuthorizationError(
                    "Permission denied",
                    details={"required_permission": permission_code},
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def validate_json(parser):
    """
    Parse the JSON body with `parser` and pass the result as `payload`.

    A missing or non-object body is a ValidationError.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            body = request.get_json(silent=True)
            if not isinstance(body, dict):
                raise ValidationError("Request body must be a JSON object")
            kwargs["payload"] = parser(body)
            return f(*args, **kwargs)

        return decorated_function
    return decorator
