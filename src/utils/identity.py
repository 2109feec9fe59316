"""
Resolve the calling principal from an API Gateway event.

The identity provider is trusted as-is: in AWS the HTTP API JWT authorizer
puts the claims on the request context; local callers pass headers instead.
Anything missing or unrecognised fails closed.
"""

from typing import Any, Dict

from models.identity import Principal, Role
from utils.error_handling import AuthorizationError

ROLE_CLAIM = "custom:role"
USER_HEADER = "x-user-id"
ROLE_HEADER = "x-user-role"


def principal_from_event(event: Dict[str, Any]) -> Principal:
    """Build a Principal from JWT claims or identity headers."""
    claims = (
        event.get("requestContext", {})
        .get("authorizer", {})
        .get("jwt", {})
        .get("claims", {})
    )
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}

    user_id = claims.get("sub") or headers.get(USER_HEADER)
    role_value = claims.get(ROLE_CLAIM) or headers.get(ROLE_HEADER)
    if not user_id or not role_value:
        raise AuthorizationError("Missing caller identity")

    try:
        role = Role(str(role_value).lower())
    except ValueError:
        raise AuthorizationError("Unrecognised role claim") from None
    return Principal(user_id=user_id, role=role)


def require_role(caller: Principal, role: Role) -> None:
    """Reject the call unless the caller holds the given role."""
    if caller.role != role:
        raise AuthorizationError(
            f"This operation requires the {role.value} role",
            required_role=role.value,
        )
