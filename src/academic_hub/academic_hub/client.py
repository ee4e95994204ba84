"""HTTP client for the Academic Hub API.

Every method returns the decoded response envelope
(``{"success": ..., "data": ..., ...}``); failures raise :class:`ApiError`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests

from .core.constants import CLIENT_TIMEOUT_SECONDS, DEFAULT_API_URL

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: Optional[int], message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        token: Optional[str] = None,
        timeout: float = CLIENT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                params={k: v for k, v in (params or {}).items() if v is not None} or None,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(None, "Network error. Please check your connection.") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 401:
            self.token = None

        if not response.ok or not body.get("success", False):
            message = body.get("message") or f"Request failed with status {response.status_code}"
            raise ApiError(response.status_code, message, body)
        return body

    # -------- Auth --------
    def health(self) -> dict:
        return self._request("GET", "/health")

    def register(self, **fields) -> dict:
        body = self._request("POST", "/auth/register", json=fields)
        self.token = body["data"]["token"]
        return body

    def login(self, email: str, password: str) -> dict:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = body["data"]["token"]
        return body

    def logout(self) -> None:
        self.token = None

    def me(self) -> dict:
        return self._request("GET", "/auth/me")

    def update_profile(self, **fields) -> dict:
        return self._request("PUT", "/auth/profile", json=fields)

    # -------- Users --------
    def list_users(self, **params) -> dict:
        return self._request("GET", "/users", params=params)

    def list_students(self, **params) -> dict:
        return self._request("GET", "/users/students", params=params)

    def list_teachers(self, **params) -> dict:
        return self._request("GET", "/users/teachers", params=params)

    def user_overview(self) -> dict:
        return self._request("GET", "/users/stats/overview")

    def get_user(self, user_id: int) -> dict:
        return self._request("GET", f"/users/{user_id}")

    def create_user(self, **fields) -> dict:
        return self._request("POST", "/users", json=fields)

    def update_user(self, user_id: int, **fields) -> dict:
        return self._request("PUT", f"/users/{user_id}", json=fields)

    def delete_user(self, user_id: int) -> dict:
        return self._request("DELETE", f"/users/{user_id}")

    # -------- Timetable --------
    def list_timetable(self, **params) -> dict:
        return self._request("GET", "/timetable", params=params)

    def get_timetable_entry(self, entry_id: int) -> dict:
        return self._request("GET", f"/timetable/{entry_id}")

    def create_timetable_entry(self, **fields) -> dict:
        return self._request("POST", "/timetable", json=fields)

    def update_timetable_entry(self, entry_id: int, **fields) -> dict:
        return self._request("PUT", f"/timetable/{entry_id}", json=fields)

    def delete_timetable_entry(self, entry_id: int) -> dict:
        return self._request("DELETE", f"/timetable/{entry_id}")

    # -------- Attendance --------
    def list_attendance(self, **params) -> dict:
        return self._request("GET", "/attendance", params=params)

    def attendance_stats(self, **params) -> dict:
        return self._request("GET", "/attendance/stats", params=params)

    def mark_attendance(self, **fields) -> dict:
        return self._request("POST", "/attendance", json=fields)

    def mark_bulk_attendance(self, **fields) -> dict:
        return self._request("POST", "/attendance/bulk", json=fields)

    def update_attendance(self, attendance_id: int, **fields) -> dict:
        return self._request("PUT", f"/attendance/{attendance_id}", json=fields)

    def delete_attendance(self, attendance_id: int) -> dict:
        return self._request("DELETE", f"/attendance/{attendance_id}")
