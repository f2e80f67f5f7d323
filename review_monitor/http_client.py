
# ETag-aware JSON client for the Gerrit REST API.

# Gerrit specifics handled here:
#   - every JSON body starts with the XSSI guard ")]}'" which must be cut
#     before decoding
#   - authenticated endpoints live under /a/ and take HTTP basic auth
#   - detail endpoints send an ETag; when the server answers 304 the body
#     cached from the previous 200 is returned instead of re-downloading it

import asyncio
import json
import logging
from typing import Any

import aiohttp

from review_monitor.config import REQUEST_TIMEOUT_SECONDS

log = logging.getLogger(__name__)

XSSI_PREFIX = ")]}'"


def decode_gerrit_json(text: str) -> Any:
    if text.startswith(XSSI_PREFIX):
        text = text[len(XSSI_PREFIX):]
    return json.loads(text)


class GerritHTTPClient:
    """
    Wraps an aiohttp.ClientSession bound to one Gerrit account.

    Per-URL ETag and body caches live on the instance, so a new account gets
    a new client and never sees another account's cached responses.
    """

    def __init__(self, session: aiohttp.ClientSession, base_url: str, user: str, password: str) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._auth = aiohttp.BasicAuth(user, password)
        self._etags: dict[str, str] = {}   # url → last received ETag
        self._bodies: dict[str, Any] = {}  # url → last decoded body

    async def get_json(self, path: str, params: list[tuple[str, str]] | None = None) -> Any:
        """
        Authenticated GET of `path` (relative to /a/).

        Raises:
            aiohttp.ClientResponseError  on non-2xx / non-304 responses
            asyncio.TimeoutError         on request timeout
            ValueError                   on a body that is not JSON
        """
        url = f"{self._base_url}/a/{path.lstrip('/')}"
        cache_key = f"{url}?{params}" if params else url
        headers: dict[str, str] = {"Accept": "application/json"}
        if cache_key in self._etags:
            headers["If-None-Match"] = self._etags[cache_key]

        try:
            async with self._session.get(
                url,
                params=params,
                headers=headers,
                auth=self._auth,
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                if resp.status == 304 and cache_key in self._bodies:
                    return self._bodies[cache_key]

                resp.raise_for_status()
                data = decode_gerrit_json(await resp.text())

                etag = resp.headers.get("ETag")
                if etag:
                    self._etags[cache_key] = etag
                    self._bodies[cache_key] = data
                return data

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error fetching %s: %s %s", url, exc.status, exc.message)
            raise
        except asyncio.TimeoutError:
            log.warning("Timeout fetching %s", url)
            raise
