"""Game result feed — polls the results API for the newest period (OutcomeSource protocol)."""

from __future__ import annotations

import time
from typing import Any

import httpx

from supercore.core.logging import get_logger
from supercore.models.outcome import HistoryRecord

log = get_logger(__name__)

_DEFAULT_PAYLOAD: dict[str, Any] = {"pageSize": 10, "pageNo": 1, "typeId": 1, "language": 0}


class GameResultClient:
    """Async client for a results endpoint shaped ``{"data": {"list": [{issueNumber, number}, ...]}}``.

    The newest result is the first list entry.
    """

    def __init__(
        self,
        api_url: str,
        payload: dict[str, Any] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_url = api_url
        self._payload = dict(payload) if payload is not None else dict(_DEFAULT_PAYLOAD)
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def fetch_latest(self) -> HistoryRecord | None:
        """Newest resolved period, or None when the feed has nothing usable.

        Raises:
            httpx.HTTPError: On transport failures or non-2xx responses.
        """
        client = await self._get_client()
        body = {**self._payload, "timestamp": int(time.time())}
        resp = await client.post(self._api_url, json=body)
        resp.raise_for_status()
        return self.parse_latest(resp.json())

    @staticmethod
    def parse_latest(data: Any) -> HistoryRecord | None:
        try:
            latest = data["data"]["list"][0]
            period = str(latest["issueNumber"])
            number = int(latest["number"])
        except (KeyError, IndexError, TypeError, ValueError):
            log.warning("game_result_unparseable", keys=list(data) if isinstance(data, dict) else None)
            return None
        if not 0 <= number <= 9:
            log.warning("game_result_out_of_range", period=period, number=number)
            return None
        return HistoryRecord(period=period, actual=number)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
