import logging
from typing import Any, Optional

from ecopeta.client.api import ApiClient, ApiError
from ecopeta.client.storage import TOKEN_KEY, USER_KEY

logger = logging.getLogger(__name__)


class SessionContext:
    """Authentication state shared by the client views.

    Starts in the loading state with no user until ``check_auth`` runs.
    """

    def __init__(self, api: ApiClient):
        self.api = api
        self.user: Optional[dict[str, Any]] = None
        self.token: Optional[str] = None
        self.is_loading = True
        self.is_authenticated = False

    @property
    def storage(self):
        return self.api.storage

    @property
    def role(self) -> Optional[str]:
        return (self.user or {}).get("role")

    def _set_session(self, token: str, user: dict[str, Any]) -> None:
        self.storage.set_item(TOKEN_KEY, token)
        self.storage.set_item(USER_KEY, user)
        self.token = token
        self.user = user
        self.is_authenticated = True
        self.is_loading = False

    def _clear(self) -> None:
        self.storage.remove_item(TOKEN_KEY)
        self.storage.remove_item(USER_KEY)
        self.user = None
        self.token = None
        self.is_authenticated = False
        self.is_loading = False

    def check_auth(self) -> None:
        self.is_loading = True
        token = self.storage.get_item(TOKEN_KEY)
        if not token:
            self._clear()
            return

        try:
            payload = self.api.get("/auth/me")
        except ApiError as exc:
            logger.warning("Session check failed: %s", exc.message)
            self._clear()
            return

        live_user = (payload or {}).get("data")
        stored_user = self.storage.get_item(USER_KEY)
        current = live_user or stored_user
        if live_user and live_user != stored_user:
            self.storage.set_item(USER_KEY, live_user)
        self.user = current
        self.token = token
        self.is_authenticated = True
        self.is_loading = False

    def _authenticate(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        self.is_loading = True
        try:
            payload = self.api.post(path, json=body)
        except ApiError:
            self.is_loading = False
            raise
        self._set_session(payload["token"], payload["user"])
        return payload["user"]

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._authenticate("/auth/login", {"email": email, "password": password})

    def register(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._authenticate("/auth/register", data)

    def logout(self) -> None:
        self._clear()

    def _merge_user(self, updated: dict[str, Any]) -> dict[str, Any]:
        merged = {**(self.user or {}), **(updated or {})}
        self.user = merged
        self.storage.set_item(USER_KEY, merged)
        return merged

    def update_profile(self, data: dict[str, Any]) -> dict[str, Any]:
        payload = self.api.put("/auth/updatedetails", json=data)
        return self._merge_user(payload.get("data") or {})

    def update_business_info(self, data: dict[str, Any]) -> dict[str, Any]:
        payload = self.api.put("/auth/updatebusiness", json=data)
        return self._merge_user(payload.get("data") or {})
