"""StreamrecClient — sync httpx wrapper for the streamrec API.

The running server owns schedules.json and settings changes that affect
live triggers, so CLI writes go through it.
"""

from __future__ import annotations

from typing import Any

import httpx


class APIError(Exception):
    """Raised when the API returns a non-2xx response."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


class StreamrecClient:
    """Synchronous HTTP client for the streamrec REST API."""

    def __init__(self, base_url: str = "http://127.0.0.1:80", timeout: float = 10.0):
        self._base_url = base_url.rstrip("/")
        self._http = httpx.Client(base_url=self._base_url, timeout=timeout)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send request, raise APIError on failure."""
        resp = self._http.request(method, path, **kwargs)
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise APIError(resp.status_code, str(detail))
        return resp.json()

    def health(self) -> dict:
        """GET /health."""
        return self._request("GET", "/health")

    # ── Schedules ────────────────────────────────────────────

    def add_schedule(self, name: str, url: str, schedule: str, duration: int) -> dict:
        """POST /api/schedule."""
        return self._request(
            "POST",
            "/api/schedule",
            json={"name": name, "url": url, "schedule": schedule, "duration": duration},
        )

    def remove_schedule(self, job_id: str) -> dict:
        """DELETE /api/schedule/{id}."""
        return self._request("DELETE", f"/api/schedule/{job_id}")

    # ── Settings ─────────────────────────────────────────────

    def get_settings(self) -> dict:
        """GET /api/settings."""
        return self._request("GET", "/api/settings")

    def save_settings(self, settings: dict[str, Any]) -> dict:
        """POST /api/settings."""
        return self._request("POST", "/api/settings", json=settings)

    def close(self) -> None:
        self._http.close()
