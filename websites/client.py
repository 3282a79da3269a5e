"""
HTTP client for the snapshot endpoint.

Used by anything that needs a website snapshot from outside this process
(workers, scripts, the dashboard BFF). Single-shot: no retries, errors go
back to the caller to decide.
"""
import logging

import requests

from .exceptions import NotFound, TransportError
from .snapshot import WebsiteSnapshot

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 15  # seconds


class SnapshotClient:

    def __init__(self, base_url, token=None, timeout=FETCH_TIMEOUT, session=None):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def fetch(self, identifier):
        """
        GET /api/v1/websites/{identifier}/snapshot/

        Returns a WebsiteSnapshot. Raises NotFound for an unknown identifier
        and TransportError for network failures, 5xx and unreadable bodies.
        """
        url = f"{self.base_url}/api/v1/websites/{identifier}/snapshot/"
        try:
            resp = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Snapshot fetch for %s failed: %s", identifier, exc)
            raise TransportError(str(exc))

        if resp.status_code == 404:
            raise NotFound(identifier)
        if resp.status_code >= 400:
            logger.warning(
                "Snapshot fetch for %s failed: HTTP %s: %s",
                identifier, resp.status_code, resp.text[:500],
            )
            raise TransportError(f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            return WebsiteSnapshot.from_dict(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise TransportError(f"Malformed snapshot payload: {exc}", status_code=resp.status_code)
