"""Review service interface and its Gerrit implementation."""

import asyncio
import logging
from typing import Protocol
from urllib.parse import quote

import aiohttp

from review_monitor.config import CHANGE_LIST_QUERY
from review_monitor.http_client import GerritHTTPClient
from review_monitor.models import Change
from review_monitor.parser import parse_change, parse_change_list

log = logging.getLogger(__name__)


class ReviewServiceError(Exception):
    """A fetch failed: network, HTTP status, timeout or undecodable body."""


class ReviewService(Protocol):
    async def fetch_change_list(self) -> list[Change]: ...

    async def fetch_change_detail(self, change_id: str) -> Change | None: ...


class GerritService:

    _LIST_OPTIONS = ("MESSAGES", "DETAILED_ACCOUNTS")

    def __init__(self, http_client: GerritHTTPClient, user: str, query: str = CHANGE_LIST_QUERY) -> None:
        self.user = user
        self._http = http_client
        self._query = query

    async def fetch_change_list(self) -> list[Change]:
        params = [("q", self._query)] + [("o", opt) for opt in self._LIST_OPTIONS]
        data = await self._get("changes/", params)
        if not isinstance(data, list):
            raise ReviewServiceError(f"Expected a list of changes, got {type(data).__name__}")
        return parse_change_list(data, self.user)

    async def fetch_change_detail(self, change_id: str) -> Change | None:
        data = await self._get(f"changes/{quote(change_id, safe='')}/detail")
        if not isinstance(data, dict):
            return None
        return parse_change(data, self.user)

    async def _get(self, path: str, params: list[tuple[str, str]] | None = None):
        try:
            return await self._http.get_json(path, params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ReviewServiceError(f"{type(exc).__name__}: {exc}") from exc
