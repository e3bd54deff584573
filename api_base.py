"""
Shared HTTP plumbing for the node and Central API clients.

Every call carries its own timeout. Transport failures, timeouts, 5xx
responses and undecodable bodies become BackendUnavailable; 401/403
become AuthRejected.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from constants import REFRESH
from errors import AuthRejected, BackendUnavailable

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin JSON-over-HTTP client bound to one base URL."""

    name = "api"

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = REFRESH.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        if not self.base_url.startswith("http"):
            self.base_url = f"http://{self.base_url}"
        self.timeout = timeout
        self.session = session or requests.Session()
        if headers:
            self.session.headers.update(headers)

    def request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        *,
        allow_missing: bool = False,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.
        Returns None for empty bodies, and for 404 when allow_missing is set.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            raise BackendUnavailable(f"{self.name}: {method} {path} timed out") from exc
        except requests.exceptions.RequestException as exc:
            raise BackendUnavailable(f"{self.name}: {method} {path} failed: {exc}") from exc

        status = response.status_code
        if status in (401, 403):
            raise AuthRejected(f"{self.name}: {method} {path} rejected ({status})")
        if status == 404 and allow_missing:
            return None
        if status >= 400:
            raise BackendUnavailable(f"{self.name}: {method} {path} returned HTTP {status}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendUnavailable(f"{self.name}: {method} {path} returned invalid JSON") from exc
