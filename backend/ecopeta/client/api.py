import logging
from typing import Any, Optional

import requests

from ecopeta.client.storage import TOKEN_KEY, MemoryStorage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


class ApiError(Exception):
    """A failed call to the backend.

    ``status_code`` is 0 when the request never got a response.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ApiClient:
    def __init__(
        self,
        base_url: str,
        storage: Optional[MemoryStorage] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage if storage is not None else MemoryStorage()
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.storage.get_item(TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(0, f"Network error: {exc}") from exc

        payload = self._decode(response)
        error_text = None
        if isinstance(payload, dict):
            error_text = payload.get("error") or payload.get("message")

        if not 200 <= response.status_code < 300:
            raise ApiError(response.status_code, str(error_text or response.reason or "Request failed"))
        if isinstance(payload, dict) and payload.get("success") is False:
            raise ApiError(response.status_code, str(error_text or "Request failed"))
        return payload

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str, json: Any = None) -> Any:
        return self.request("DELETE", path, json=json)
