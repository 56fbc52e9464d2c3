"""
Thin HTTP client for the Kie.ai job API.

  POST {create_path}                 → { code, msg, data: { taskId } } or a direct result
  GET  {status_path}?taskId={id}     → { code, msg, data: { status|state, completeTime, ... } }

No retries happen here. Task creation is metered, so the fallback policy lives
in jobs.submit; polling tolerates flaky attempts on its own.
"""

import re
import logging
from typing import Any, Optional

import requests

from . import config

logger = logging.getLogger(__name__)

_DOUBLED_BASE = re.compile(r"^https?://api\.kie\.ai(?=https?://)", re.IGNORECASE)


class ProviderResponse:
    """Status code plus decoded JSON body (None when the body was not JSON)."""

    def __init__(self, status_code: int, payload: Any):
        self.status_code = status_code
        self.payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_json(self) -> bool:
        return self.payload is not None

    def __repr__(self):
        return f"ProviderResponse(status_code={self.status_code}, payload={str(self.payload)[:200]})"


def build_url(endpoint_or_url: str, base: Optional[str] = None) -> str:
    """
    Join an endpoint path onto the API base.

    Absolute URLs pass through; a base accidentally prefixed twice
    (``https://api.kie.aihttps://api.kie.ai/...``) is collapsed.
    """
    raw = (endpoint_or_url or "").strip()
    if not raw:
        raise ValueError("Empty endpoint")

    if re.match(r"^https?://", raw, re.IGNORECASE):
        return _DOUBLED_BASE.sub("", raw)

    base = (base or config.KIE_API_BASE).rstrip("/")
    path = raw if raw.startswith("/") else f"/{raw}"
    return f"{base}{path}"


class KieClient:
    """
    Bearer-authenticated client. ``session`` is any object with a
    ``requests.Session``-compatible ``request`` method. Without one, each call
    goes through ``requests.request``, which opens and closes its own session.

    Transport failures propagate as ``requests.RequestException``.
    """

    def __init__(self, api_key: str, session=None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key
        self.session = session
        self.base_url = base_url or config.KIE_API_BASE
        self.timeout = timeout if timeout is not None else config.KIE_REQUEST_TIMEOUT

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _send(self, method: str, endpoint: str, **kwargs) -> ProviderResponse:
        url = build_url(endpoint, self.base_url)
        sender = self.session if self.session is not None else requests
        response = sender.request(
            method, url, headers=self._headers(), timeout=self.timeout, **kwargs
        )
        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Kie.ai {method} {url} returned non-JSON body (HTTP {response.status_code})")
            payload = None
        return ProviderResponse(response.status_code, payload)

    def create_task(self, endpoint: str, body: dict) -> ProviderResponse:
        logger.info(f"Kie.ai create → {endpoint}")
        return self._send("POST", endpoint, json=body)

    def get_task(self, endpoint: str, task_id: str) -> ProviderResponse:
        return self._send("GET", endpoint, params={"taskId": task_id})
