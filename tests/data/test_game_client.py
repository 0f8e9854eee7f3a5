"""Tests for GameResultClient."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from supercore.data.game_client import GameResultClient
from supercore.models.outcome import HistoryRecord, RecordStatus

URL = "https://results.test/latest"


def _body(*entries: dict[str, Any]) -> dict[str, Any]:
    return {"code": 0, "data": {"list": list(entries)}}


def _client_returning(response: httpx.Response) -> tuple[GameResultClient, AsyncMock]:
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.post = AsyncMock(return_value=response)
    mock_client.is_closed = False
    client = GameResultClient(URL)
    client._client = mock_client
    return client, mock_client


class TestParseLatest:
    def test_newest_entry(self) -> None:
        data = _body({"issueNumber": "20260301100", "number": "7"}, {"issueNumber": "20260301099", "number": "2"})
        record = GameResultClient.parse_latest(data)
        assert record == HistoryRecord(period="20260301100", actual=7)
        assert record is not None and record.status == RecordStatus.PENDING

    def test_numeric_period(self) -> None:
        record = GameResultClient.parse_latest(_body({"issueNumber": 55, "number": 0}))
        assert record is not None
        assert record.period == "55"
        assert record.actual == 0

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"data": {"list": []}},
            {"data": None},
            _body({"issueNumber": "1"}),
            _body({"issueNumber": "1", "number": "x"}),
            ["not", "a", "dict"],
        ],
    )
    def test_unusable_payloads(self, data: Any) -> None:
        assert GameResultClient.parse_latest(data) is None

    def test_out_of_range_number(self) -> None:
        assert GameResultClient.parse_latest(_body({"issueNumber": "1", "number": 12})) is None


class TestFetchLatest:
    @pytest.mark.asyncio()
    async def test_success(self) -> None:
        response = httpx.Response(
            200,
            json=_body({"issueNumber": "901", "number": 5}),
            request=httpx.Request("POST", URL),
        )
        client, mock_client = _client_returning(response)

        record = await client.fetch_latest()
        assert record == HistoryRecord(period="901", actual=5)
        body = mock_client.post.await_args.kwargs["json"]
        assert body["pageSize"] == 10
        assert isinstance(body["timestamp"], int)

    @pytest.mark.asyncio()
    async def test_http_error_propagates(self) -> None:
        response = httpx.Response(503, request=httpx.Request("POST", URL))
        client, _ = _client_returning(response)
        with pytest.raises(httpx.HTTPStatusError):
            await client.fetch_latest()

    @pytest.mark.asyncio()
    async def test_custom_payload(self) -> None:
        response = httpx.Response(200, json=_body(), request=httpx.Request("POST", URL))
        client, mock_client = _client_returning(response)
        client._payload = {"typeId": 30}

        assert await client.fetch_latest() is None
        assert mock_client.post.await_args.kwargs["json"]["typeId"] == 30

    @pytest.mark.asyncio()
    async def test_close(self) -> None:
        response = httpx.Response(200, json=_body(), request=httpx.Request("POST", URL))
        client, mock_client = _client_returning(response)
        await client.close()
        mock_client.aclose.assert_awaited_once()
        assert client._client is None
