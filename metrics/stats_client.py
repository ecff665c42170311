# metrics/stats_client.py
"""HTTP retrieval of the raw stats line."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from errors import BadStatusError, BodyReadError, FetchError

log = logging.getLogger(__name__)


class StatsClient:
    """Issues one GET per call against the stats endpoint."""

    def __init__(self, url: str, timeout: float, session: Optional[requests.Session] = None) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch(self) -> str:
        """Return the response body as text.

        Raises FetchError when the request cannot be sent or times out,
        BadStatusError on a non-200 response and BodyReadError when the body
        cannot be read.
        """
        try:
            response = self._session.get(self.url, timeout=self.timeout, stream=True)
        except requests.RequestException as exc:
            raise FetchError(f"request to {self.url} failed: {exc}") from exc

        with response:
            if response.status_code != requests.codes.ok:
                raise BadStatusError(response.status_code, response.reason or "")
            try:
                body = response.text
            except requests.RequestException as exc:
                raise BodyReadError(f"reading response from {self.url} failed: {exc}") from exc

        log.debug("Fetched %d bytes from %s", len(body), self.url)
        return body

    def close(self) -> None:
        self._session.close()
