from __future__ import annotations

from typing import Any

import httpx

from searchsynth.config import settings
from searchsynth.errors import LocationNotFoundError
from searchsynth.models.domain import VisualizationResult, VisualizationType
from searchsynth.services import logger as log_service


async def geocode(client: httpx.AsyncClient, location: str) -> dict[str, Any]:
    """Resolve a free-text place name to the best Nominatim match."""
    response = await client.get(
        f"{settings.nominatim_base_url.rstrip('/')}/search",
        params={"q": location, "format": "json", "limit": 1},
        headers={"User-Agent": settings.nominatim_user_agent},
    )
    response.raise_for_status()
    matches = response.json()
    if not isinstance(matches, list) or not matches:
        raise LocationNotFoundError(location)
    return matches[0]


async def fetch_geographic_data(
    location: str, *, timeout: float | None = None
) -> VisualizationResult:
    try:
        async with httpx.AsyncClient(timeout=timeout or settings.fetcher_timeout_seconds) as client:
            place = await geocode(client, location)
        data = {
            "coordinates": {
                "lat": float(place["lat"]),
                "lng": float(place["lon"]),
            },
            "formattedAddress": place.get("display_name", ""),
            "placeId": str(place.get("place_id", "")),
            "locationType": place.get("type", ""),
        }
    except Exception as e:
        log_service.log_event(
            event_type="fetcher_error",
            message="Geographic data fetch failed",
            fetcher="geographic",
            location=location,
            error=str(e),
        )
        return VisualizationResult.failure(
            VisualizationType.GEOGRAPHIC, "Failed to fetch geographic data"
        )
    return VisualizationResult.success(VisualizationType.GEOGRAPHIC, data)
