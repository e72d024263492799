"""
Google Places API integration for resolving venues and photos.
"""

import logging
from typing import Any
from urllib.parse import quote

import requests

from dayweave.core.errors import ProviderUnavailable

logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://maps.googleapis.com/maps/api/place"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
REQUEST_TIMEOUT = 10


class PlacesService:
    """Service for interacting with Google Places API."""

    def __init__(self, api_key: str, session: requests.Session | None = None):
        if not api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY not found in environment variables")
        self.api_key = api_key
        self.session = session or requests.Session()

    def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.get(
                url, params={**params, "key": self.api_key}, timeout=REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise ProviderUnavailable("Places request failed", details=str(e)) from e

    def geocode_location(self, location: str) -> dict[str, float] | None:
        """
        Geocode a location string to latitude/longitude coordinates.

        Args:
            location: City/destination name (e.g., "Southwark, London")

        Returns:
            Dictionary with 'lat' and 'lng' keys, or None if geocoding fails
        """
        try:
            data = self._get_json(GEOCODE_URL, {"address": location})
        except ProviderUnavailable as e:
            logger.warning(f"[PlacesService] Error geocoding {location}: {e.details}")
            return None

        if data.get("status") != "OK" or not data.get("results"):
            logger.info(f"[PlacesService] Geocoding failed for {location}: {data.get('status')}")
            return None

        coords = data["results"][0]["geometry"]["location"]
        return {"lat": coords["lat"], "lng": coords["lng"]}

    def search_places(
        self, query: str, location: str, radius: int = 5000
    ) -> list[dict[str, Any]]:
        """
        Search for places using Text Search API.

        Args:
            query: Search query (e.g., "Tate Modern near Southwark, London")
            location: Area to bias results towards
            radius: Search radius in meters (default 5000m = 5km)

        Returns:
            Place dictionaries with basic info; empty when nothing matches

        Raises:
            ProviderUnavailable: request failed or the API returned an error status
        """
        params: dict[str, Any] = {"query": query}
        coords = self.geocode_location(location) if location else None
        if coords:
            params["location"] = f"{coords['lat']},{coords['lng']}"
            params["radius"] = radius
        elif location:
            params["query"] = f"{query} in {location}"

        data = self._get_json(f"{PLACES_API_BASE}/textsearch/json", params)
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise ProviderUnavailable(
                f"Places search failed: {status}", details=data.get("error_message")
            )

        return [
            {
                "place_id": place.get("place_id"),
                "name": place.get("name"),
                "address": place.get("formatted_address"),
                "rating": place.get("rating"),
                "price_level": place.get("price_level"),
                "types": place.get("types", []),
            }
            for place in data.get("results", [])
            if place.get("place_id")
        ]

    def get_place_details(self, place_id: str) -> dict[str, Any] | None:
        """
        Get detailed information about a specific place.

        Args:
            place_id: Google Place ID

        Returns:
            Dictionary with detailed place information, or None if not found
        """
        data = self._get_json(
            f"{PLACES_API_BASE}/details/json",
            {
                "place_id": place_id,
                "fields": (
                    "name,formatted_address,rating,price_level,photos,"
                    "url,types,website,formatted_phone_number"
                ),
            },
        )

        if data.get("status") != "OK":
            logger.info(f"[PlacesService] Place details failed: {data.get('status')}")
            return None

        result = data.get("result", {})
        photos = result.get("photos") or []
        return {
            "place_id": place_id,
            "name": result.get("name"),
            "address": result.get("formatted_address"),
            "rating": result.get("rating"),
            "price_level": result.get("price_level"),
            "types": result.get("types", []),
            "google_maps_url": result.get("url"),
            "website": result.get("website"),
            "phone": result.get("formatted_phone_number"),
            "photo_reference": photos[0].get("photo_reference") if photos else None,
        }

    def get_place_photo_url(
        self, photo_reference: str, max_width: int = 1080
    ) -> str | None:
        """Google photo URL for a photo reference. Carries the API key, never hand it to clients."""
        if not photo_reference:
            return None

        return (
            f"{PLACES_API_BASE}/photo"
            f"?maxwidth={max_width}"
            f"&photo_reference={quote(photo_reference)}"
            f"&key={self.api_key}"
        )

    def get_proxy_photo_url(self, photo_reference: str, max_width: int = 1080) -> str | None:
        """Relative URL of this service's photo proxy for a photo reference."""
        if not photo_reference:
            return None
        return f"/places/photo?ref={quote(photo_reference)}&w={max_width}"

    def fetch_photo(self, photo_reference: str, max_width: int = 1080) -> tuple[bytes, str]:
        """
        Download a place photo.

        Returns:
            (image bytes, content type)

        Raises:
            ProviderUnavailable: the photo could not be fetched
        """
        photo_url = self.get_place_photo_url(photo_reference, max_width=max_width)
        if not photo_url:
            raise ValueError("Invalid photo reference")

        try:
            response = self.session.get(photo_url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable("Failed to fetch photo", details=str(e)) from e

        return response.content, response.headers.get("Content-Type", "image/jpeg")
