"""Request authentication for the front-of-house API.

Every request carries two headers:

- ``X-API-Key``: the key of the calling front end, checked against the
  configured service keys.
- ``X-Staff-Id``: the signed-in staff member, resolved to a role through the
  identity service.

The role is then checked against the navigation policy of the view a route
belongs to.
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException

from tableflow_service.auth.navigation import StaffRole, View, can_access
from tableflow_service.services.identity_service_client import IdentityServiceClient

logger = logging.getLogger(__name__)


class APIKeyValidator:
    """Checks front-end API keys against the configured set."""

    def __init__(self, api_keys: list[str]) -> None:
        """Initialize validator with the accepted keys.

        Raises:
            ValueError: If no non-empty key is given
        """
        keys = {key.strip() for key in api_keys if key and key.strip()}
        if not keys:
            raise ValueError("At least one API key must be provided")
        self.api_keys = frozenset(keys)

    def validate(self, api_key: str | None) -> bool:
        return bool(api_key) and api_key in self.api_keys


@dataclass(frozen=True)
class StaffContext:
    """The authenticated caller of a request."""

    staff_id: str
    role: StaffRole


def check_api_key(x_api_key: str | None, validator: APIKeyValidator) -> str:
    """Validate the X-API-Key header value.

    Raises:
        HTTPException: 401 if the key is missing or not accepted
    """
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing API key")
    if not validator.validate(x_api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return x_api_key


async def resolve_staff(
    x_staff_id: str | None, identity_client: IdentityServiceClient
) -> StaffContext:
    """Resolve the X-Staff-Id header to a StaffContext.

    Raises:
        HTTPException: 401 if the header is missing, 403 if the identity
            service does not know the staff member or their role
    """
    if not x_staff_id:
        raise HTTPException(status_code=401, detail="Missing staff id")

    role = await identity_client.get_role(x_staff_id)
    if role is None:
        logger.warning(f"Rejected request from unknown staff {x_staff_id}")
        raise HTTPException(status_code=403, detail="Staff member has no role")

    return StaffContext(staff_id=x_staff_id, role=role)


def authorize_view(context: StaffContext, *views: View) -> StaffContext:
    """Require the caller's role to open at least one of the given views.

    Raises:
        HTTPException: 403 if none of the views is allowed for the role
    """
    if not any(can_access(context.role, view) for view in views):
        logger.info(
            f"Staff {context.staff_id} ({context.role.value}) denied access to "
            f"{[view.value for view in views]}"
        )
        raise HTTPException(status_code=403, detail="Not allowed for this role")
    return context
