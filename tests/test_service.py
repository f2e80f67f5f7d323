"""Tests for the Gerrit HTTP client and service wrapper."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from review_monitor.http_client import GerritHTTPClient, decode_gerrit_json
from review_monitor.service import GerritService, ReviewServiceError

_CHANGE = {
    "id": "proj~master~I1",
    "_number": 7,
    "subject": "Add retries",
    "change_id": "I1",
    "owner": {"_account_id": 1, "name": "Me", "username": "me"},
    "messages": [],
}


class _FakeResponse:
    def __init__(self, status=200, body=None, headers=None):
        self.status = status
        self._body = body
        self.headers = headers or {}

    async def text(self):
        return self._body

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(MagicMock(), (), status=self.status, message="boom")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self._responses.pop(0)


def _gerrit_body(data):
    return ")]}'\n" + json.dumps(data)


# ---------------------------------------------------------------------------
# decode_gerrit_json
# ---------------------------------------------------------------------------


class TestDecodeGerritJson:
    def test_strips_xssi_prefix(self):
        assert decode_gerrit_json(_gerrit_body([1, 2])) == [1, 2]

    def test_plain_json(self):
        assert decode_gerrit_json('{"a": 1}') == {"a": 1}

    def test_garbage_raises_value_error(self):
        with pytest.raises(ValueError):
            decode_gerrit_json("<html>login</html>")


# ---------------------------------------------------------------------------
# GerritHTTPClient
# ---------------------------------------------------------------------------


class TestGerritHTTPClient:
    def test_authenticated_url_and_auth(self):
        session = _FakeSession([_FakeResponse(body=_gerrit_body([]))])
        client = GerritHTTPClient(session, "https://review.example.com/", "me", "secret")

        assert asyncio.run(client.get_json("changes/", [("q", "is:open")])) == []
        url, kwargs = session.calls[0]
        assert url == "https://review.example.com/a/changes/"
        assert kwargs["auth"] == aiohttp.BasicAuth("me", "secret")
        assert kwargs["params"] == [("q", "is:open")]

    def test_not_modified_returns_cached_body(self):
        session = _FakeSession([
            _FakeResponse(body=_gerrit_body({"x": 1}), headers={"ETag": '"abc"'}),
            _FakeResponse(status=304),
        ])
        client = GerritHTTPClient(session, "https://review.example.com", "me", "secret")

        async def scenario():
            first = await client.get_json("changes/I1/detail")
            second = await client.get_json("changes/I1/detail")
            return first, second

        assert asyncio.run(scenario()) == ({"x": 1}, {"x": 1})
        assert session.calls[1][1]["headers"]["If-None-Match"] == '"abc"'

    def test_http_error_propagates(self):
        session = _FakeSession([_FakeResponse(status=401, body="Unauthorized")])
        client = GerritHTTPClient(session, "https://review.example.com", "me", "wrong")

        with pytest.raises(aiohttp.ClientResponseError):
            asyncio.run(client.get_json("changes/"))


# ---------------------------------------------------------------------------
# GerritService
# ---------------------------------------------------------------------------


class TestGerritService:
    def test_fetch_change_list_parses_changes(self):
        http = MagicMock()
        http.get_json = AsyncMock(return_value=[_CHANGE])
        service = GerritService(http, user="me")

        changes = asyncio.run(service.fetch_change_list())

        assert [c.number for c in changes] == [7]
        assert changes[0].is_ours
        path, params = http.get_json.call_args.args
        assert path == "changes/"
        assert ("o", "MESSAGES") in params
        # mergeability comes from the change's own field, no extra option needed
        assert ("o", "SUBMITTABLE") not in params

    def test_transport_error_is_wrapped(self):
        http = MagicMock()
        http.get_json = AsyncMock(side_effect=asyncio.TimeoutError())
        service = GerritService(http, user="me")

        with pytest.raises(ReviewServiceError):
            asyncio.run(service.fetch_change_list())

    def test_bad_json_is_wrapped(self):
        http = MagicMock()
        http.get_json = AsyncMock(side_effect=ValueError("Expecting value"))
        with pytest.raises(ReviewServiceError):
            asyncio.run(GerritService(http, user="me").fetch_change_list())

    def test_unexpected_shape_is_an_error(self):
        http = MagicMock()
        http.get_json = AsyncMock(return_value={"not": "a list"})
        with pytest.raises(ReviewServiceError):
            asyncio.run(GerritService(http, user="me").fetch_change_list())

    def test_fetch_change_detail(self):
        http = MagicMock()
        http.get_json = AsyncMock(return_value={**_CHANGE, "status": "MERGED", "submitter": {"name": "Alice"}})
        detail = asyncio.run(GerritService(http, user="me").fetch_change_detail("proj~master~I1"))

        assert detail.is_merged
        assert detail.merged_by == "Alice"
        assert http.get_json.call_args.args[0] == "changes/proj~master~I1/detail"
