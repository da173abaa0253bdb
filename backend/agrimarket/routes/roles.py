# Overview: Flask API routes for roles and user role grants; parses input and returns JSON responses.

"""
Role Routes

- GET    /api/roles                  any authenticated user
- GET    /api/users/<id>/roles       the user themself, or roles:read
- POST   /api/users/<id>/roles       roles:manage  {roleType, expiresAt?}
- DELETE /api/users/<id>/roles       roles:manage  {roleType}

Grants and revocations are recorded as security events.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission, validate_json
from ..errors import AuthorizationError, ValidationError
from ..responses import success_response
from ..services import permission_service
from ..services.user_service import get_user
from ..validation import parse_role_grant, parse_role_revoke


roles_bp = Blueprint("roles", __name__, url_prefix="/api")


def _grants_payload(user_id: int) -> dict:
    grants = permission_service.list_role_grants(user_id)
    return {
        "user_id": user_id,
        "roles": sorted(r.value for r in permission_service.effective_roles(user_id)),
        "grants": [grant.to_dict() for grant in grants],
    }


@roles_bp.get("/roles")
@require_auth
def list_roles_route():
    roles = [
        {**role.to_dict(), "permissions": permission_service.get_role_permission_codes(role)}
        for role in permission_service.list_roles()
    ]
    return success_response(roles, "Roles fetched successfully")


@roles_bp.get("/users/<int:user_id>/roles")
@require_auth
def get_user_roles_route(user_id: int):
    actor_id = g.current_user.id
    if actor_id != user_id and not permission_service.has_permission(actor_id, "roles", "read"):
        raise AuthorizationError("Not allowed to view roles of another user")

    get_user(user_id)
    return success_response(_grants_payload(user_id), "User roles fetched successfully")


@roles_bp.post("/users/<int:user_id>/roles")
@require_auth
@require_permission("roles:manage")
@validate_json(parse_role_grant)
def grant_user_role_route(user_id: int, payload):
    """Request body: {"roleType": "SUPPLIER", "expiresAt": "2026-01-01T00:00:00Z"}"""
    get_user(user_id)
    granted = permission_service.grant_role(
        user_id,
        payload["role_type"],
        granted_by=g.current_user.id,
        expires_at=payload["expires_at"],
    )
    if not granted:
        raise ValidationError(f"Role {payload['role_type']} cannot be granted", details={"field": "roleType"})

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="ROLE_GRANTED",
        success=True,
        resource=f"users/{user_id}/roles",
        action=payload["role_type"],
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return success_response(_grants_payload(user_id), "Role granted successfully", 201)


@roles_bp.delete("/users/<int:user_id>/roles")
@require_auth
@require_permission("roles:manage")
@validate_json(parse_role_revoke)
def revoke_user_role_route(user_id: int, payload):
    """Request body: {"roleType": "SUPPLIER"}"""
    get_user(user_id)
    permission_service.revoke_role(user_id, payload["role_type"], revoked_by=g.current_user.id)

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="ROLE_REVOKED",
        success=True,
        resource=f"users/{user_id}/roles",
        action=payload["role_type"],
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return success_response(_grants_payload(user_id), "Role revoked successfully")
