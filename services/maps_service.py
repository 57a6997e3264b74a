"""
Google Maps Directions and Places Autocomplete lookups.
"""
import math
from typing import Any, Dict, List, Optional
import httpx

from core.config import MapsConfig, settings
from core.exceptions import ConfigurationException, UpstreamServiceException
from core.logging import get_logger
from schemas.maps import LatLng, PlacePrediction, RouteInfo

logger = get_logger("maps")

MIN_PLACE_QUERY_LENGTH = 3


class MapsClient:
    """
    Async client for the two Maps endpoints the app uses.

    ``transport`` is handed to ``httpx.AsyncClient`` and lets tests answer
    requests without the network.
    """

    def __init__(self, config: MapsConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

    def _require_key(self) -> str:
        if not self.config.api_key:
            logger.error("Google Maps API key not configured")
            raise ConfigurationException("Google Maps API key not configured", setting="google_maps_api_key")
        return self.config.api_key

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.base_url.rstrip('/')}/{path}"
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self.transport) as client:
            try:
                response = await client.get(url, params=params)
            except httpx.HTTPError as e:
                logger.error("Maps API unreachable", path=path, error=str(e))
                raise UpstreamServiceException(f"Maps API unreachable: {e}", provider="Google Maps")

        if response.is_error:
            logger.error("Maps API error", path=path, status_code=response.status_code, body=response.text[:500])
            raise UpstreamServiceException(
                f"Maps API error: {response.status_code} - {response.text}",
                provider="Google Maps",
                upstream_status=response.status_code,
                body=response.text,
            )
        return response.json()

    async def calculate_route(self, origin: LatLng, destination: str) -> RouteInfo:
        """
        Driving time and distance of the first route's first leg.

        Raises:
            ConfigurationException: If no API key is configured
            UpstreamServiceException: On HTTP errors, or when the provider finds no route
        """
        key = self._require_key()
        data = await self._get_json("directions/json", {
            "origin": f"{origin.lat},{origin.lng}",
            "destination": destination,
            "key": key,
        })

        if data.get("status") != "OK" or not data.get("routes"):
            message = data.get("error_message") or "No route found"
            logger.warning("No route returned", status=data.get("status"), error_message=message)
            raise UpstreamServiceException(message, provider="Google Maps")

        leg = data["routes"][0]["legs"][0]
        route = RouteInfo(
            duration_minutes=math.ceil(leg["duration"]["value"] / 60),
            distance_km=round(leg["distance"]["value"] / 1000, 1),
            duration_text=leg["duration"]["text"],
            distance_text=leg["distance"]["text"],
        )
        logger.info("Route calculated", duration_minutes=route.duration_minutes, distance_km=route.distance_km)
        return route

    async def search_places(self, query: str) -> List[PlacePrediction]:
        """Autocomplete predictions for a destination query."""
        key = self._require_key()
        if not query or len(query) < MIN_PLACE_QUERY_LENGTH:
            return []

        data = await self._get_json("place/autocomplete/json", {"input": query, "key": key})

        status = data.get("status")
        if status not in ("OK", "ZERO_RESULTS"):
            logger.error("Places API error", status=status, error_message=data.get("error_message"))
            return []

        predictions = []
        for p in data.get("predictions") or []:
            formatting = p.get("structured_formatting") or {}
            predictions.append(PlacePrediction(
                place_id=p["place_id"],
                description=p["description"],
                main_text=formatting.get("main_text") or p["description"],
                secondary_text=formatting.get("secondary_text") or "",
            ))
        return predictions


def get_maps_client() -> MapsClient:
    """FastAPI dependency building a client from settings."""
    return MapsClient(settings.maps_config())
