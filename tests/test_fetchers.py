from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from searchsynth.fetchers import financial, geo, weather
from searchsynth.models.domain import VisualizationStatus, VisualizationType


class FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "https://example.test")
            raise httpx.HTTPStatusError(
                "error", request=request, response=httpx.Response(self.status_code, request=request)
            )
        return None

    def json(self):
        return self._payload


class FakeClient:
    """Routes GET calls to a handler; raises the handler's exception if it returns one."""

    def __init__(self, handler):
        self.handler = handler
        self.calls: list[tuple[str, dict]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def get(self, url, params=None, headers=None, **kwargs):
        self.calls.append((url, params or {}))
        outcome = self.handler(url, params or {})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


NOMINATIM_MATCH = {
    "lat": "35.6768601",
    "lon": "139.7638947",
    "display_name": "Tokyo, Japan",
    "place_id": 123456,
    "type": "city",
}


@pytest.mark.asyncio
async def test_geographic_fetch_maps_first_match():
    client = FakeClient(lambda url, params: FakeResponse([NOMINATIM_MATCH]))
    with patch("searchsynth.fetchers.geo.httpx.AsyncClient", return_value=client):
        result = await geo.fetch_geographic_data("Tokyo")

    assert result.status == VisualizationStatus.SUCCESS
    assert result.type == VisualizationType.GEOGRAPHIC
    assert result.data == {
        "coordinates": {"lat": 35.6768601, "lng": 139.7638947},
        "formattedAddress": "Tokyo, Japan",
        "placeId": "123456",
        "locationType": "city",
    }
    assert client.calls[0][1] == {"q": "Tokyo", "format": "json", "limit": 1}


@pytest.mark.asyncio
async def test_geographic_fetch_is_idempotent_for_unchanged_upstream():
    with patch(
        "searchsynth.fetchers.geo.httpx.AsyncClient",
        side_effect=lambda **kwargs: FakeClient(lambda url, params: FakeResponse([NOMINATIM_MATCH])),
    ):
        first = await geo.fetch_geographic_data("Tokyo")
        second = await geo.fetch_geographic_data("Tokyo")
    assert first == second


@pytest.mark.asyncio
async def test_geographic_fetch_unknown_location_returns_error_envelope():
    client = FakeClient(lambda url, params: FakeResponse([]))
    with patch("searchsynth.fetchers.geo.httpx.AsyncClient", return_value=client):
        result = await geo.fetch_geographic_data("Atlantis")

    assert result.status == VisualizationStatus.ERROR
    assert result.data is None
    assert result.error == "Failed to fetch geographic data"


def _forecast_payload():
    return {
        "current": {
            "temperature_2m": 18.5,
            "relative_humidity_2m": 60,
            "weather_code": 2,
            "wind_speed_10m": 12.0,
            "wind_direction_10m": 180,
            "apparent_temperature": 17.9,
        },
        "current_units": {"temperature_2m": "°C", "wind_speed_10m": "km/h"},
        "hourly": {
            "time": [f"2026-03-01T{h % 24:02d}:00" for h in range(48)],
            "temperature_2m": list(range(48)),
        },
        "daily": {"time": ["2026-03-01"], "temperature_2m_max": [20.1]},
    }


@pytest.mark.asyncio
async def test_weather_fetch_shapes_forecast():
    def handler(url, params):
        if url.endswith("/search"):
            return FakeResponse([NOMINATIM_MATCH])
        assert params["latitude"] == NOMINATIM_MATCH["lat"]
        return FakeResponse(_forecast_payload())

    with patch("searchsynth.fetchers.weather.httpx.AsyncClient", return_value=FakeClient(handler)):
        result = await weather.fetch_weather_data("Tokyo")

    assert result.ok
    data = result.data
    assert data["location"] == "Tokyo"
    assert data["current"]["description"] == "Partly cloudy"
    assert data["current"]["units"]["temperature"] == "°C"
    assert len(data["hourly"]["time"]) == 24
    assert data["hourly"]["rain"] == []
    assert data["daily"]["temperature_max"] == [20.1]


@pytest.mark.asyncio
async def test_weather_fetch_with_unreachable_geocoder_returns_error_envelope():
    client = FakeClient(lambda url, params: httpx.ConnectError("geocoder unreachable"))
    with patch("searchsynth.fetchers.weather.httpx.AsyncClient", return_value=client):
        result = await weather.fetch_weather_data("Tokyo")

    assert result.type == VisualizationType.WEATHER
    assert result.status == VisualizationStatus.ERROR
    assert result.error == "Failed to fetch weather data"


def test_describe_weather_code():
    assert weather.describe_weather_code(0) == "Clear sky"
    assert weather.describe_weather_code(999) == "Unknown"
    assert weather.describe_weather_code(None) == "Unknown"


def _daily_series(days: int):
    return {
        "Time Series (Daily)": {
            f"day-{i:02d}": {
                "1. open": "190.0",
                "4. close": f"{190 + i}.5",
                "5. volume": str(1000 + i),
            }
            for i in range(days)
        }
    }


@pytest.mark.asyncio
async def test_financial_fetch_uppercases_symbol_and_limits_points():
    overview = {"Symbol": "AAPL", "Name": "Apple Inc", "PERatio": "29.1"}

    def handler(url, params):
        assert params["symbol"] == "AAPL"
        if params["function"] == "OVERVIEW":
            return FakeResponse(overview)
        return FakeResponse(_daily_series(40))

    client = FakeClient(handler)
    with patch("searchsynth.fetchers.financial.httpx.AsyncClient", return_value=client):
        result = await financial.fetch_financial_data("aapl")

    assert result.ok
    assert result.data["overview"]["Symbol"] == "AAPL"
    points = result.data["stockData"]
    assert len(points) == 30
    assert points[0] == {"date": "day-00", "close": 190.5, "volume": 1000}
    assert points[-1]["date"] == "day-29"
    assert {c[1]["function"] for c in client.calls} == {"OVERVIEW", "TIME_SERIES_DAILY"}


@pytest.mark.asyncio
async def test_financial_fetch_uses_placeholder_overview_on_api_error():
    def handler(url, params):
        if params["function"] == "OVERVIEW":
            return FakeResponse({"Note": "API call frequency exceeded"})
        return FakeResponse({}, status_code=500)

    with patch("searchsynth.fetchers.financial.httpx.AsyncClient", return_value=FakeClient(handler)):
        result = await financial.fetch_financial_data("MSFT")

    assert result.ok
    assert result.data["overview"] == financial.empty_overview()
    assert result.data["stockData"] == []


@pytest.mark.asyncio
async def test_financial_fetch_transport_failure_on_both_calls_returns_error_envelope():
    client = FakeClient(lambda url, params: httpx.ConnectError("no route"))
    with patch("searchsynth.fetchers.financial.httpx.AsyncClient", return_value=client):
        result = await financial.fetch_financial_data("AAPL")

    assert result.status == VisualizationStatus.ERROR
    assert result.error == "Failed to fetch financial data"


@pytest.mark.asyncio
async def test_financial_fetch_keeps_overview_when_series_times_out():
    def handler(url, params):
        if params["function"] == "OVERVIEW":
            return FakeResponse({"Symbol": "AAPL", "Name": "Apple Inc"})
        return httpx.ReadTimeout("series timed out")

    with patch("searchsynth.fetchers.financial.httpx.AsyncClient", return_value=FakeClient(handler)):
        result = await financial.fetch_financial_data("AAPL")

    assert result.ok
    assert result.data["overview"]["Symbol"] == "AAPL"
    assert result.data["stockData"] == []


@pytest.mark.asyncio
async def test_financial_fetch_keeps_series_when_overview_is_unreachable():
    def handler(url, params):
        if params["function"] == "OVERVIEW":
            return httpx.ConnectError("no route")
        return FakeResponse(_daily_series(3))

    with patch("searchsynth.fetchers.financial.httpx.AsyncClient", return_value=FakeClient(handler)):
        result = await financial.fetch_financial_data("AAPL")

    assert result.ok
    assert result.data["overview"] == financial.empty_overview()
    assert len(result.data["stockData"]) == 3

def test_process_stock_data_skips_malformed_points():
    raw = {
        "Time Series (Daily)": {
            "2026-02-02": {"4. close": "10.0", "5. volume": "5"},
            "2026-02-01": {"4. close": "n/a", "5. volume": "5"},
        }
    }
    assert financial.process_stock_data(raw) == [{"date": "2026-02-02", "close": 10.0, "volume": 5}]
    assert financial.process_stock_data(None) == []
