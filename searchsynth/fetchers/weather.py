from __future__ import annotations

from typing import Any

import httpx

from searchsynth.config import settings
from searchsynth.fetchers.geo import geocode
from searchsynth.models.domain import VisualizationResult, VisualizationType, utc_now_iso
from searchsynth.services import logger as log_service

HOURLY_POINTS = 24

WEATHER_CODES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    95: "Thunderstorm",
}

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,weather_code,"
    "wind_speed_10m,wind_direction_10m,apparent_temperature"
)
HOURLY_FIELDS = (
    "temperature_2m,relative_humidity_2m,precipitation_probability,rain,visibility,uv_index"
)
DAILY_FIELDS = (
    "temperature_2m_max,temperature_2m_min,sunrise,sunset,uv_index_max,"
    "precipitation_probability_max"
)


def describe_weather_code(code: Any) -> str:
    try:
        return WEATHER_CODES.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


def _first(values: Any, n: int = HOURLY_POINTS) -> list[Any]:
    return list(values or [])[:n]


def shape_forecast(location: str, forecast: dict[str, Any]) -> dict[str, Any]:
    """Map an Open-Meteo forecast document to the weather payload."""
    current = forecast["current"]
    units = forecast.get("current_units", {})
    hourly = forecast.get("hourly", {})
    daily = forecast.get("daily", {})
    return {
        "location": location,
        "current": {
            "temperature": current.get("temperature_2m"),
            "humidity": current.get("relative_humidity_2m"),
            "wind_speed": current.get("wind_speed_10m"),
            "wind_direction": current.get("wind_direction_10m"),
            "feels_like": current.get("apparent_temperature"),
            "description": describe_weather_code(current.get("weather_code")),
            "units": {
                "temperature": units.get("temperature_2m", ""),
                "wind_speed": units.get("wind_speed_10m", ""),
            },
        },
        "hourly": {
            "time": _first(hourly.get("time")),
            "temperature": _first(hourly.get("temperature_2m")),
            "humidity": _first(hourly.get("relative_humidity_2m")),
            "precipitation_probability": _first(hourly.get("precipitation_probability")),
            "rain": _first(hourly.get("rain")),
            "visibility": _first(hourly.get("visibility")),
            "uv_index": _first(hourly.get("uv_index")),
        },
        "daily": {
            "time": list(daily.get("time") or []),
            "temperature_max": list(daily.get("temperature_2m_max") or []),
            "temperature_min": list(daily.get("temperature_2m_min") or []),
            "sunrise": list(daily.get("sunrise") or []),
            "sunset": list(daily.get("sunset") or []),
            "uv_index_max": list(daily.get("uv_index_max") or []),
            "precipitation_probability": list(daily.get("precipitation_probability_max") or []),
        },
        "timestamp": utc_now_iso(),
    }


async def fetch_weather_data(
    location: str, *, timeout: float | None = None
) -> VisualizationResult:
    try:
        async with httpx.AsyncClient(timeout=timeout or settings.fetcher_timeout_seconds) as client:
            place = await geocode(client, location)
            response = await client.get(
                f"{settings.open_meteo_base_url.rstrip('/')}/forecast",
                params={
                    "latitude": place["lat"],
                    "longitude": place["lon"],
                    "current": CURRENT_FIELDS,
                    "hourly": HOURLY_FIELDS,
                    "daily": DAILY_FIELDS,
                    "timezone": "auto",
                },
            )
            response.raise_for_status()
            forecast = response.json()
        data = shape_forecast(location, forecast)
    except Exception as e:
        log_service.log_event(
            event_type="fetcher_error",
            message="Weather data fetch failed",
            fetcher="weather",
            location=location,
            error=str(e),
        )
        return VisualizationResult.failure(VisualizationType.WEATHER, "Failed to fetch weather data")
    return VisualizationResult.success(VisualizationType.WEATHER, data)
