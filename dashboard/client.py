import os
from typing import Any

import requests

DEFAULT_BACKEND_URL = os.getenv("BACKEND_API_URL", "http://localhost:8000/api")
REQUEST_TIMEOUT = 8

Result = tuple[dict[str, Any] | None, str | None]


class MonitorClient:
    def __init__(self, base_url: str = DEFAULT_BACKEND_URL, timeout: float = REQUEST_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Result:
        try:
            response = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json(), None
        except requests.RequestException as exc:
            return None, str(exc)

    def health(self) -> Result:
        return self._get("/health")

    def latest(self, device_id: str | None = None) -> Result:
        return self._get("/readings/latest", {"deviceId": device_id} if device_id else None)

    def history(self, limit: int = 240, device_id: str | None = None, hours: int | None = None) -> Result:
        params: dict[str, Any] = {"limit": limit}
        if device_id:
            params["deviceId"] = device_id
        if hours:
            params["hours"] = hours
        return self._get("/readings", params)

    def devices(self) -> Result:
        return self._get("/devices")

    def alert_state(self) -> Result:
        return self._get("/alerts/state")


def condition_badge(condition: str | None) -> str:
    return {"Good": "OK", "Okay": "FAIR", "Bad": "LOW"}.get(condition or "", "UNKNOWN")


def history_rows(payload: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Oldest-first rows for charting from a newest-first readings page."""
    if not payload:
        return []
    return list(reversed(payload.get("items", [])))
