"""
HTTP implementation of the budget service using httpx

This service handles:
1. Building requests for every backend endpoint
2. The X-User-ID header the backend uses instead of tokens
3. Unwrapping response envelopes ({"categories": [...]}, {"category": {...}})
4. Mapping every failure onto the BudgetServiceError taxonomy

Retries: none by default, matching the behaviour users know (a failed
request shows an error and the user tries again). Setting
BUDGET_API_MAX_ATTEMPTS above 1 retries GET requests on transport
errors only; mutations are never replayed.
"""

from datetime import datetime
from typing import Any, Optional

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from family_budget.config import ApiSettings, get_settings
from family_budget.models.budget import (
    Account,
    AccountPayload,
    Category,
    CategoryArchivePayload,
    CategoryPayload,
    CompletePlannedOperationPayload,
    CompletePlannedOperationResponse,
    FamilyMember,
    PlannedOperation,
    PlannedOperationPayload,
    PlannedOperationsResponse,
    RegisterRequest,
    RegisterResponse,
    ReportsOverview,
    Transaction,
    TransactionQuery,
    TransactionRequest,
    UpdateSettingsRequest,
    UserSettingsSummary,
)
from family_budget.models.dates import format_wire_datetime
from family_budget.services.api.interface import (
    BudgetServiceInterface,
    DecodeError,
    ServerError,
    TransportError,
)


API_PREFIX = "/api/v1"

_CATEGORY_LIST = TypeAdapter(list[Category])
_ACCOUNT_LIST = TypeAdapter(list[Account])
_MEMBER_LIST = TypeAdapter(list[FamilyMember])
_TRANSACTION_LIST = TypeAdapter(list[Transaction])


def _decode(adapter: TypeAdapter, body: Any, key: Optional[str] = None):
    """Validate a response body (or one key of it) against a model."""
    try:
        data = body[key] if key is not None else body
        return adapter.validate_python(data)
    except (KeyError, TypeError, PydanticValidationError) as e:
        raise DecodeError() from e


class HttpBudgetService(BudgetServiceInterface):
    """
    Budget backend client over HTTP.

    IMPORTANT BOUNDARIES:
    1. This service only moves data - it never decides what the view shows
    2. Every failure surfaces as a BudgetServiceError subclass
    3. Server error bodies are passed through untouched
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        user_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the HTTP service.

        Args:
            settings: API settings; loaded from the environment if None
            user_id: Sent as X-User-ID once known
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._settings = settings or get_settings().api
        self.user_id = user_id
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._logger = structlog.get_logger(__name__)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        if self.user_id:
            return {"X-User-ID": self.user_id}
        return {}

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        client = self._get_client()
        try:
            response = await client.request(
                method,
                API_PREFIX + path,
                json=json,
                params=params,
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            raise TransportError(f"Could not reach the server: {e}") from e

        self._logger.debug(
            "api_response",
            method=method,
            path=path,
            status_code=response.status_code,
        )

        if response.is_error:
            raise ServerError(
                response.status_code,
                response.text or response.reason_phrase,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError() from e

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        attempts = self._settings.max_attempts if method == "GET" else 1
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception_type(TransportError),
            reraise=True,
        ):
            with attempt:
                return await self._send(method, path, json=json, params=params)

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def register(self, payload: RegisterRequest) -> RegisterResponse:
        body = await self._request("POST", "/users", json=payload.to_wire())
        response = _decode(TypeAdapter(RegisterResponse), body)
        self.user_id = response.user.id
        return response

    async def list_categories(self, user_id: str) -> list[Category]:
        body = await self._request("GET", f"/users/{user_id}/categories")
        return _decode(_CATEGORY_LIST, body, "categories")

    async def create_category(self, user_id: str, payload: CategoryPayload) -> Category:
        body = await self._request(
            "POST", f"/users/{user_id}/categories", json=payload.to_wire()
        )
        return _decode(TypeAdapter(Category), body, "category")

    async def update_category(
        self,
        user_id: str,
        category_id: str,
        payload: CategoryPayload,
    ) -> Category:
        body = await self._request(
            "PUT", f"/users/{user_id}/categories/{category_id}", json=payload.to_wire()
        )
        return _decode(TypeAdapter(Category), body, "category")

    async def set_category_archived(
        self,
        user_id: str,
        category_id: str,
        archived: bool,
    ) -> Category:
        body = await self._request(
            "POST",
            f"/users/{user_id}/categories/{category_id}/archive",
            json=CategoryArchivePayload(archived=archived).to_wire(),
        )
        return _decode(TypeAdapter(Category), body, "category")

    async def list_accounts(self, user_id: str) -> list[Account]:
        body = await self._request("GET", f"/users/{user_id}/accounts")
        return _decode(_ACCOUNT_LIST, body, "accounts")

    async def create_account(self, user_id: str, payload: AccountPayload) -> Account:
        body = await self._request(
            "POST", f"/users/{user_id}/accounts", json=payload.to_wire()
        )
        return _decode(TypeAdapter(Account), body, "account")

    async def list_members(self, user_id: str) -> list[FamilyMember]:
        body = await self._request("GET", f"/users/{user_id}/members")
        return _decode(_MEMBER_LIST, body, "members")

    async def get_settings(self, user_id: str) -> UserSettingsSummary:
        body = await self._request("GET", f"/users/{user_id}/settings")
        return _decode(TypeAdapter(UserSettingsSummary), body)

    async def update_settings(
        self,
        user_id: str,
        payload: UpdateSettingsRequest,
    ) -> UserSettingsSummary:
        body = await self._request(
            "PUT", f"/users/{user_id}/settings", json=payload.to_wire()
        )
        return _decode(TypeAdapter(UserSettingsSummary), body)

    async def list_transactions(
        self,
        user_id: str,
        query: Optional[TransactionQuery] = None,
    ) -> list[Transaction]:
        params = query.to_params() if query else None
        body = await self._request(
            "GET", f"/users/{user_id}/transactions", params=params or None
        )
        return _decode(_TRANSACTION_LIST, body, "transactions")

    async def create_transaction(self, payload: TransactionRequest) -> Transaction:
        body = await self._request("POST", "/transactions", json=payload.to_wire())
        return _decode(TypeAdapter(Transaction), body, "transaction")

    async def list_planned_operations(self, user_id: str) -> PlannedOperationsResponse:
        body = await self._request("GET", f"/users/{user_id}/planned-operations")
        return _decode(TypeAdapter(PlannedOperationsResponse), body)

    async def create_planned_operation(
        self,
        user_id: str,
        payload: PlannedOperationPayload,
    ) -> PlannedOperation:
        body = await self._request(
            "POST", f"/users/{user_id}/planned-operations", json=payload.to_wire()
        )
        return _decode(TypeAdapter(PlannedOperation), body, "planned_operation")

    async def complete_planned_operation(
        self,
        user_id: str,
        operation_id: str,
        payload: Optional[CompletePlannedOperationPayload] = None,
    ) -> CompletePlannedOperationResponse:
        body = await self._request(
            "POST",
            f"/users/{user_id}/planned-operations/{operation_id}/complete",
            json=payload.to_wire() if payload else None,
        )
        return _decode(TypeAdapter(CompletePlannedOperationResponse), body)

    async def get_reports_overview(
        self,
        user_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> ReportsOverview:
        params = {}
        if start_date:
            params["start_date"] = format_wire_datetime(start_date)
        if end_date:
            params["end_date"] = format_wire_datetime(end_date)
        body = await self._request(
            "GET", f"/users/{user_id}/reports/overview", params=params or None
        )
        return _decode(TypeAdapter(ReportsOverview), body, "reports")
