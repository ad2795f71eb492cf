"""Client for the external identity service that stores staff roles."""

import logging

import httpx

from tableflow_service.auth.navigation import StaffRole

logger = logging.getLogger(__name__)


class IdentityServiceClient:
    """HTTP client resolving a signed-in staff member to their role.

    Authentication itself happens in the identity service; this service only
    asks it which role a staff id carries.
    """

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 5.0) -> None:
        """Initialize the identity service client.

        Args:
            base_url: Base URL of the identity service API
            api_key: API key for service-to-service authentication
            timeout_seconds: Request timeout
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    async def get_role(self, staff_id: str) -> StaffRole | None:
        """Fetch the role of a staff member.

        Args:
            staff_id: Identity service user id

        Returns:
            The StaffRole, or None if the user is unknown, has no recognised
            role, or the request failed
        """
        url = f"{self.base_url}/users/{staff_id}"
        headers = {"X-API-Key": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, headers=headers)
                if response.status_code == 404:
                    logger.warning(f"No identity record for staff {staff_id}")
                    return None
                response.raise_for_status()
                data = response.json()

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Failed to fetch role for staff {staff_id}: {e}")  # pragma: no cover
            return None
        except ValueError as e:
            logger.error(f"Identity service returned invalid JSON for staff {staff_id}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Identity service returned a non-object body for staff {staff_id}")
            return None

        role = data.get("role")
        try:
            return StaffRole(role)
        except ValueError:
            logger.warning(f"Staff {staff_id} has unrecognised role {role!r}")
            return None
