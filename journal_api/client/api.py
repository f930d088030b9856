# journal_api/client/api.py
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx

from ..logging_config import get_logger

logger = get_logger(__name__)


class APIError(Exception):
    """Non-2xx response from the journal API, carrying the error envelope"""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(message)

    @property
    def suppresses_retry(self) -> bool:
        # Quota and rate-limit errors: don't retry until the content changes
        return self.status_code in (402, 429)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "APIError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("error") or f"Request failed with status {response.status_code}"
        return cls(response.status_code, message, body.get("code"))


class JournalAPIClient:
    """Thin async wrapper over the /api routes"""

    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 35.0,
    ):
        # Slightly above the server's LLM timeout so 504s arrive as responses
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.token = token

    async def __aenter__(self) -> "JournalAPIClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = await self._client.request(method, f"/api{path}", headers=headers, **kwargs)
        if response.status_code >= 400:
            error = APIError.from_response(response)
            logger.debug(
                f"API error: {method} {path} - {error.status_code}",
                extra={"extra_data": {"code": error.code, "message": error.message}}
            )
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Entries

    async def list_entries(self, q: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"q": q} if q else None
        data = await self._request("GET", "/entries", params=params)
        return data["entries"]

    async def get_entry(self, entry_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/entries/{entry_id}")

    async def create_entry(self, content: str) -> Dict[str, Any]:
        return await self._request("POST", "/entries", json={"content": content})

    async def update_entry(self, entry_id: str, content: str) -> Dict[str, Any]:
        return await self._request("PUT", f"/entries/{entry_id}", json={"content": content})

    async def delete_entry(self, entry_id: str) -> None:
        await self._request("DELETE", f"/entries/{entry_id}")

    # Prompts and usage

    async def generate_prompt(self, content: str, entry_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": content}
        if entry_id:
            payload["entry_id"] = str(UUID(str(entry_id)))
        return await self._request("POST", "/prompts/generate", json=payload)

    async def get_usage(self) -> Dict[str, Any]:
        return await self._request("GET", "/usage")

    # Billing

    async def create_checkout_session(self) -> Dict[str, Any]:
        return await self._request("POST", "/billing/checkout-session")
