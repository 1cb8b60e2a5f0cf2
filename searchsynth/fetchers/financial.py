from __future__ import annotations

import asyncio
from typing import Any

import httpx

from searchsynth.config import settings
from searchsynth.models.domain import VisualizationResult, VisualizationType
from searchsynth.services import logger as log_service

MAX_STOCK_POINTS = 30
TIME_SERIES_KEY = "Time Series (Daily)"
OVERVIEW_FIELDS = (
    "Symbol",
    "Name",
    "MarketCapitalization",
    "PERatio",
    "DividendYield",
    "EPS",
    "AnalystTargetPrice",
)


def empty_overview() -> dict[str, str]:
    return {name: "" for name in OVERVIEW_FIELDS}


async def _query_alpha_vantage(
    client: httpx.AsyncClient, function: str, symbol: str
) -> dict[str, Any] | None:
    """One Alpha Vantage call; None on API-level failure.

    Transport errors propagate; the caller decides per call.
    """
    response = await client.get(
        settings.alpha_vantage_base_url,
        params={
            "function": function,
            "symbol": symbol,
            "apikey": settings.alpha_vantage_api_key,
        },
    )
    try:
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPStatusError, ValueError) as e:
        log_service.log_event(
            event_type="fetcher_error",
            message=f"Alpha Vantage {function} returned an unusable response",
            fetcher="financial",
            symbol=symbol,
            error=str(e),
        )
        return None

    if not isinstance(payload, dict) or "Error Message" in payload or "Note" in payload:
        log_service.log_event(
            event_type="fetcher_error",
            message=f"Alpha Vantage {function} reported an error",
            fetcher="financial",
            symbol=symbol,
        )
        return None
    return payload


def process_stock_data(raw: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Up to 30 daily points, in the order the upstream series lists them."""
    if not raw or not isinstance(raw.get(TIME_SERIES_KEY), dict):
        return []

    points: list[dict[str, Any]] = []
    for day, values in list(raw[TIME_SERIES_KEY].items())[:MAX_STOCK_POINTS]:
        try:
            points.append(
                {
                    "date": day,
                    "close": float(values["4. close"]),
                    "volume": int(float(values["5. volume"])),
                }
            )
        except (KeyError, TypeError, ValueError):
            continue
    return points


def _transport_failure(outcome: Any, function: str, symbol: str) -> bool:
    if not isinstance(outcome, httpx.TransportError):
        return False
    log_service.log_event(
        event_type="fetcher_error",
        message=f"Alpha Vantage {function} request failed",
        fetcher="financial",
        symbol=symbol,
        error=str(outcome),
    )
    return True


async def fetch_financial_data(
    symbol: str, *, timeout: float | None = None
) -> VisualizationResult:
    """Overview plus daily series; a failed half falls back to placeholders.

    The error envelope is returned only when neither call reaches the API.
    """
    ticker = symbol.strip().upper()
    async with httpx.AsyncClient(timeout=timeout or settings.fetcher_timeout_seconds) as client:
        overview, series = await asyncio.gather(
            _query_alpha_vantage(client, "OVERVIEW", ticker),
            _query_alpha_vantage(client, "TIME_SERIES_DAILY", ticker),
            return_exceptions=True,
        )

    for outcome in (overview, series):
        if isinstance(outcome, BaseException) and not isinstance(outcome, httpx.TransportError):
            raise outcome

    overview_failed = _transport_failure(overview, "OVERVIEW", ticker)
    series_failed = _transport_failure(series, "TIME_SERIES_DAILY", ticker)
    if overview_failed and series_failed:
        return VisualizationResult.failure(
            VisualizationType.FINANCIAL, "Failed to fetch financial data"
        )

    return VisualizationResult.success(
        VisualizationType.FINANCIAL,
        {
            "overview": (None if overview_failed else overview) or empty_overview(),
            "stockData": process_stock_data(None if series_failed else series),
        },
    )
