"""Unit tests for the navigation policy, request authentication and identity client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import HTTPException

from tableflow_service.auth.navigation import (
    StaffRole,
    View,
    allowed_views,
    can_access,
    landing_view,
)
from tableflow_service.auth.staff_auth import (
    APIKeyValidator,
    StaffContext,
    authorize_view,
    check_api_key,
    resolve_staff,
)
from tableflow_service.services.identity_service_client import IdentityServiceClient


@pytest.mark.unit
class TestNavigationPolicy:
    """Tests for the role to view table."""

    def test_admin_and_manager_see_everything(self) -> None:
        assert allowed_views(StaffRole.ADMIN) == frozenset(View)
        assert allowed_views(StaffRole.MANAGER) == frozenset(View)

    def test_waiter_views(self) -> None:
        assert allowed_views(StaffRole.WAITER) == {
            View.TABLES,
            View.ORDERS,
            View.MENU,
            View.BILLING,
        }

    def test_cashier_views(self) -> None:
        assert allowed_views(StaffRole.CASHIER) == {View.ORDERS, View.BILLING}

    def test_kitchen_views(self) -> None:
        assert allowed_views(StaffRole.KITCHEN) == {View.KITCHEN}

    def test_staff_role_views(self) -> None:
        assert allowed_views(StaffRole.STAFF) == {View.ORDERS}
        assert can_access(StaffRole.STAFF, View.ORDERS)
        assert not can_access(StaffRole.STAFF, View.BILLING)

    @pytest.mark.parametrize("role", list(StaffRole))
    def test_landing_view_is_allowed(self, role: StaffRole) -> None:
        assert can_access(role, landing_view(role))

    @pytest.mark.parametrize(
        ("role", "expected"),
        [
            (StaffRole.ADMIN, View.DASHBOARD),
            (StaffRole.MANAGER, View.DASHBOARD),
            (StaffRole.WAITER, View.ORDERS),
            (StaffRole.CASHIER, View.ORDERS),
            (StaffRole.STAFF, View.ORDERS),
            (StaffRole.KITCHEN, View.KITCHEN),
        ],
    )
    def test_landing_view(self, role: StaffRole, expected: View) -> None:
        assert landing_view(role) == expected


@pytest.mark.unit
class TestAPIKeyValidator:
    """Test suite for APIKeyValidator."""

    def test_requires_a_key(self) -> None:
        with pytest.raises(ValueError, match="At least one API key"):
            APIKeyValidator(api_keys=[])

    def test_ignores_blank_keys(self) -> None:
        with pytest.raises(ValueError):
            APIKeyValidator(api_keys=["", "  "])

    def test_validate(self) -> None:
        validator = APIKeyValidator(api_keys=["key-1", " key-2 "])

        assert validator.validate("key-1")
        assert validator.validate("key-2")
        assert not validator.validate("key-3")
        assert not validator.validate(None)

    def test_check_api_key_missing(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            check_api_key(None, APIKeyValidator(["key-1"]))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Missing API key"

    def test_check_api_key_invalid(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            check_api_key("wrong", APIKeyValidator(["key-1"]))

        assert exc_info.value.detail == "Invalid API key"


@pytest.mark.unit
class TestResolveStaff:
    """Tests for staff role resolution and view authorization."""

    @pytest.fixture
    def identity_client(self) -> MagicMock:
        client = MagicMock(spec=IdentityServiceClient)
        client.get_role = AsyncMock(return_value=StaffRole.WAITER)
        return client

    @pytest.mark.asyncio
    async def test_resolves_role(self, identity_client: MagicMock) -> None:
        context = await resolve_staff("usr_1", identity_client)

        assert context == StaffContext(staff_id="usr_1", role=StaffRole.WAITER)
        identity_client.get_role.assert_awaited_once_with("usr_1")

    @pytest.mark.asyncio
    async def test_missing_staff_id(self, identity_client: MagicMock) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await resolve_staff(None, identity_client)

        assert exc_info.value.status_code == 401
        identity_client.get_role.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_staff(self, identity_client: MagicMock) -> None:
        identity_client.get_role.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await resolve_staff("usr_ghost", identity_client)

        assert exc_info.value.status_code == 403

    def test_authorize_view_any_of(self) -> None:
        context = StaffContext(staff_id="usr_1", role=StaffRole.KITCHEN)

        assert authorize_view(context, View.ORDERS, View.KITCHEN) is context

    def test_authorize_view_denied(self) -> None:
        context = StaffContext(staff_id="usr_1", role=StaffRole.CASHIER)

        with pytest.raises(HTTPException) as exc_info:
            authorize_view(context, View.KITCHEN)

        assert exc_info.value.status_code == 403


@pytest.mark.unit
class TestIdentityServiceClient:
    """Test suite for IdentityServiceClient."""

    @pytest.fixture
    def client(self) -> IdentityServiceClient:
        return IdentityServiceClient(base_url="https://identity.test.com/", api_key="test-api-key")

    def test_client_initialization(self, client: IdentityServiceClient) -> None:
        assert client.base_url == "https://identity.test.com"
        assert client.api_key == "test-api-key"

    @pytest.mark.asyncio
    async def test_get_role_success(self, client: IdentityServiceClient) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"id": "usr_1", "role": "cashier"}
        mock_get = AsyncMock(return_value=mock_response)

        with patch("httpx.AsyncClient.get", mock_get):
            role = await client.get_role("usr_1")

        assert role == StaffRole.CASHIER
        assert mock_get.call_args.args[0] == "https://identity.test.com/users/usr_1"
        assert mock_get.call_args.kwargs["headers"]["X-API-Key"] == "test-api-key"

    @pytest.mark.asyncio
    async def test_get_role_unknown_user(self, client: IdentityServiceClient) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 404

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await client.get_role("usr_ghost") is None

    @pytest.mark.asyncio
    async def test_get_role_unrecognised_role(self, client: IdentityServiceClient) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"role": "sommelier"}

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await client.get_role("usr_1") is None

    @pytest.mark.asyncio
    async def test_get_role_server_error(self, client: IdentityServiceClient) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 500
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Server error", request=MagicMock(), response=mock_response
        )

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await client.get_role("usr_1") is None

    @pytest.mark.asyncio
    async def test_get_role_network_error(self, client: IdentityServiceClient) -> None:
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=httpx.RequestError("Connection failed", request=MagicMock()),
        ):
            assert await client.get_role("usr_1") is None

    @pytest.mark.asyncio
    async def test_get_role_malformed_body(self, client: IdentityServiceClient) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.side_effect = ValueError("Expecting value")

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await client.get_role("usr_1") is None

    @pytest.mark.asyncio
    async def test_get_role_body_not_an_object(self, client: IdentityServiceClient) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = ["admin"]

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await client.get_role("usr_1") is None
