"""
Async HTTP client for the analytics API
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


class ApiRequestError(Exception):
    """Base for every failed API call"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or []


class ApiUnavailableError(ApiRequestError):
    """Server unreachable (connection refused, DNS, timeout)"""
    pass


class ApiAuthError(ApiRequestError):
    """401: credential missing, invalid or expired"""
    pass


class ApiNotFoundError(ApiRequestError):
    """404: unknown id or route"""
    pass


class ApiResponseError(ApiRequestError):
    """Any other non-2xx response"""
    pass


class AnalyticsApiClient:
    """
    Thin wrapper over ``httpx.AsyncClient``

    The bearer token is read through ``token_provider`` on every request so
    the caller can log in and out without rebuilding the client.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider or (lambda: None)
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning(f"API request {method} {path} failed: {e}")
            raise ApiUnavailableError(f"Server unreachable: {e}") from e

        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") or f"HTTP error! status: {response.status_code}"
        details = body.get("details")

        logger.debug(f"API request {method} {path} returned {response.status_code}: {message}")
        if response.status_code == 401:
            raise ApiAuthError(message, 401)
        if response.status_code == 404:
            raise ApiNotFoundError(message, 404)
        raise ApiResponseError(message, response.status_code, details)

    # System / auth

    async def health(self) -> Dict[str, Any]:
        return await self.request("GET", "/health")

    async def login(self, password: str, action: Optional[str] = None) -> Dict[str, Any]:
        body = {"password": password}
        if action:
            body["action"] = action
        return await self.request("POST", "/auth/login", json=body)

    async def verify(self) -> Dict[str, Any]:
        return await self.request("POST", "/auth/verify")

    # Records

    async def list_page(self, collection: str, page: int = 1, limit: int = PAGE_SIZE, **params) -> Dict[str, Any]:
        return await self.request("GET", f"/{collection}", params={"page": page, "limit": limit, **params})

    async def fetch_all(self, collection: str) -> List[Dict[str, Any]]:
        """Every record of a collection, newest first, across pages"""
        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            body = await self.list_page(collection, page=page)
            records.extend(body.get("data") or [])
            pages = (body.get("pagination") or {}).get("pages", 1)
            if page >= pages:
                return records
            page += 1

    async def get(self, collection: str, record_id: str) -> Dict[str, Any]:
        return (await self.request("GET", f"/{collection}/{record_id}"))["data"]

    async def create(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        return (await self.request("POST", f"/{collection}", json=record))["data"]

    async def update(self, collection: str, record_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        return (await self.request("PUT", f"/{collection}/{record_id}", json=record))["data"]

    async def delete(self, collection: str, record_id: str) -> None:
        await self.request("DELETE", f"/{collection}/{record_id}")

    # Settings / analytics

    async def get_settings(self) -> Dict[str, Any]:
        return (await self.request("GET", "/settings"))["data"]

    async def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return (await self.request("PUT", "/settings", json={"settings": values}))["data"]

    async def dashboard(self) -> Dict[str, Any]:
        return (await self.request("GET", "/analytics/dashboard"))["data"]
