"""
REST client for the hosted database (PostgREST dialect).

Each call is one blocking HTTPS request with a timeout; failures raise
:class:`farmview.errors.BackendError` so pages can show a notification and
let the user re-submit.
"""

from __future__ import annotations

from typing import Any, Optional

import requests
from loguru import logger

from farmview.errors import BackendError

DEFAULT_TIMEOUT = 15


def _render_filters(filters: Optional[dict[str, Any]]) -> dict[str, str]:
    """Render ``{column: value}`` as PostgREST ``column=eq.value`` params."""
    params = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"eq.{str(value).lower()}"
        else:
            params[column] = f"eq.{value}"
    return params


class RestClient:
    """
    Minimal table client for a Supabase project.

    Parameters
    ----------
    base_url : str
        Project URL, e.g. ``https://<ref>.supabase.co``.
    api_key : str
        Anon or service key, sent as ``apikey`` and bearer token.
    session : requests.Session, optional
        Injected session, mainly for tests.
    timeout : float, optional
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, str]] = None,
        payload: Any = None,
    ) -> list[dict[str, Any]]:
        if not self.is_configured():
            raise BackendError("Backend URL or API key not configured")

        logger.debug(f"{method} {table} params={params}")
        try:
            resp = self._session.request(
                method,
                self._url(table),
                params=params,
                json=payload,
                headers=self._headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise BackendError(f"Request to '{table}' timed out") from exc
        except requests.RequestException as exc:
            raise BackendError(f"Request to '{table}' failed: {exc}") from exc

        if resp.status_code >= 300:
            raise BackendError(self._error_message(resp, table), resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return []
        try:
            data = resp.json()
        except ValueError as exc:
            raise BackendError(f"Invalid JSON from '{table}'", resp.status_code) from exc
        if isinstance(data, dict):
            return [data]
        return list(data)

    @staticmethod
    def _error_message(resp: requests.Response, table: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or body.get("hint")
            if message:
                return str(message)
        return f"Request to '{table}' failed"

    def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        """
        Select all columns of matching rows.

        Parameters
        ----------
        table : str
            Table name.
        filters : dict, optional
            Equality filters ``{column: value}``.
        order : str, optional
            Column to sort by.
        ascending : bool, optional
            Sort direction, by default True.
        """
        params = {"select": "*"}
        params.update(_render_filters(filters))
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        return self._request("GET", table, params=params)

    def insert(self, table: str, rows: list[dict[str, Any]] | dict[str, Any]) -> list[dict[str, Any]]:
        """Insert rows and return them as stored by the backend."""
        if isinstance(rows, dict):
            rows = [rows]
        return self._request("POST", table, params={"select": "*"}, payload=rows)

    def update(
        self, table: str, values: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Update matching rows; an empty filter set is refused."""
        if not filters:
            raise BackendError("Refusing to update without filters")
        params = {"select": "*"}
        params.update(_render_filters(filters))
        return self._request("PATCH", table, params=params, payload=values)

    def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """Delete matching rows; an empty filter set is refused."""
        if not filters:
            raise BackendError("Refusing to delete without filters")
        return self._request("DELETE", table, params=_render_filters(filters))
