from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import httpx

from windstation.core.config import Settings
from windstation.domain.errors import UpstreamError
from windstation.domain.normalizer import normalize_latest_by_station

logger = logging.getLogger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    timeout = httpx.Timeout(settings.source_timeout)
    headers = {"User-Agent": settings.source_user_agent}
    return httpx.AsyncClient(timeout=timeout, headers=headers)


class SourceClient:
    """Client for the upstream telemetry endpoint.

    The same URL serves both operations: without parameters it returns the
    latest row per station, with ``limit``/``estacion`` it returns recent
    history for one station.
    """

    def __init__(self, http: httpx.AsyncClient, settings: Settings) -> None:
        self._http = http
        self._settings = settings

    async def fetch_latest(self) -> dict[int, Mapping[str, Any]]:
        payload = await self._fetch({})
        return normalize_latest_by_station(payload.get("latest_by_station"))

    async def fetch_history(self, station_id: int, limit: int) -> list[Mapping[str, Any]]:
        payload = await self._fetch({"limit": limit, "estacion": station_id})
        items = payload.get("items")
        return list(items) if isinstance(items, list) else []

    async def _fetch(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            # bounds the whole exchange, not only each socket operation
            resp = await asyncio.wait_for(
                self._http.get(self._settings.source_api_url, params=params),
                timeout=self._settings.source_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamError(f"source API timed out after {self._settings.source_timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"source API request failed: {exc}") from exc

        logger.debug("source response params=%s status=%s", params, resp.status_code)
        if not resp.is_success:
            raise UpstreamError(f"source API HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamError("source API returned invalid JSON") from exc
        if not isinstance(payload, dict) or payload.get("ok") is not True:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise UpstreamError(str(error or "source API returned ok=false"))
        return payload
