# Copyright 2025 Google LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Clients module for the remote services behind the search box.
Provides classes for the REST site catalog, the Mapbox geocoder, the weather
API shown next to a selected site and the crowd reports API.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from crowdmap_search.catalog import SiteCatalog
from crowdmap_search.data_models.config import AppConfig
from crowdmap_search.data_models.search import GeocodeResult
from crowdmap_search.data_models.sites import (
    CrowdLevel,
    Location,
    Report,
    Site,
    WeatherData,
)
from crowdmap_search.exceptions import (
    ConfigurationError,
    ReportSubmissionError,
    SourceUnavailableError,
)
from crowdmap_search.services import CatalogSearch, GeocodeSearch

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
DEFAULT_GEOCODE_TYPES = ("place", "locality", "neighborhood", "address", "poi")
WEATHER_API_URL = "https://api.weatherapi.com/v1"
DEFAULT_TIMEOUT = 10.0

SITE_COLUMNS = "id,name,description,location,crowd_level,created_at"

_sites_adapter = TypeAdapter(list[Site])
_reports_adapter = TypeAdapter(list[Report])


async def _get_json(
    http_client: httpx.AsyncClient | None,
    source: str,
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """GETs a JSON document, wrapping every failure in SourceUnavailableError."""
    try:
        if http_client is not None:
            response = await http_client.get(url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as e:
        raise SourceUnavailableError(
            source, f"HTTP {e.response.status_code} from {e.request.url}"
        ) from e
    except httpx.RequestError as e:
        raise SourceUnavailableError(source, f"network error: {e}") from e
    except ValueError as e:
        raise SourceUnavailableError(source, f"malformed response: {e}") from e


class SiteCatalogClient:
    """Prefix search over the site catalog exposed through a PostgREST API."""

    source = "catalog"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        limit: int = 10,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Must specify base_url")
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self._http = http_client
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    async def search_sites(self, query: str) -> list[Site]:
        """
        Case-insensitive prefix match on site name, ordered by name.

        Never raises: failures are logged and yield an empty list.
        """
        query = query.strip()
        if not query:
            return []
        # '*' is the PostgREST wildcard; drop any the user typed so the match
        # stays a plain prefix match.
        pattern = query.replace("*", "")
        params = {
            "select": SITE_COLUMNS,
            "name": f"ilike.{pattern}*",
            "order": "name.asc",
            "limit": str(self.limit),
        }
        try:
            data = await _get_json(
                self._http, self.source, self._table_url("sites"), params, self._headers
            )
            return _sites_adapter.validate_python(data)[: self.limit]
        except (SourceUnavailableError, ValidationError) as e:
            logger.error("Error searching sites for '%s': %s", query, e)
            return []

    async def fetch_reports(self, site_id: str) -> list[Report]:
        """Reports for a site, newest first. Returns [] on failure."""
        params = {
            "select": "*",
            "site_id": f"eq.{site_id}",
            "order": "created_at.desc",
        }
        try:
            data = await _get_json(
                self._http, self.source, self._table_url("reports"), params, self._headers
            )
            return _reports_adapter.validate_python(data)
        except (SourceUnavailableError, ValidationError) as e:
            logger.error("Error fetching reports for site %s: %s", site_id, e)
            return []

    async def get_site(self, site_id: str) -> Site | None:
        """
        Fetch one site with its aggregated crowd level.

        Returns None when the site does not exist or the request fails.
        """
        params = {"select": "*", "id": f"eq.{site_id}", "limit": "1"}
        try:
            data = await _get_json(
                self._http,
                self.source,
                self._table_url("site_crowd_levels"),
                params,
                self._headers,
            )
            rows = _sites_adapter.validate_python(data)
        except (SourceUnavailableError, ValidationError) as e:
            logger.error("Error fetching site %s: %s", site_id, e)
            return None
        if not rows:
            logger.warning("Site %s not found", site_id)
            return None
        return rows[0]

    async def get_user_report(self, site_id: str, user_id: str) -> Report | None:
        """The report a user filed for a site, or None if they have not filed one."""
        params = {
            "select": "*",
            "site_id": f"eq.{site_id}",
            "user_id": f"eq.{user_id}",
            "limit": "1",
        }
        try:
            data = await _get_json(
                self._http, self.source, self._table_url("reports"), params, self._headers
            )
            rows = _reports_adapter.validate_python(data)
        except (SourceUnavailableError, ValidationError) as e:
            logger.error("Error fetching user report for site %s: %s", site_id, e)
            return None
        return rows[0] if rows else None


class GeocodingClient:
    """Forward geocoding against the Mapbox Places API."""

    source = "geocoder"

    def __init__(
        self,
        access_token: str | None,
        *,
        limit: int = 5,
        min_query_length: int = 3,
        types: tuple[str, ...] = DEFAULT_GEOCODE_TYPES,
        base_url: str = MAPBOX_GEOCODING_URL,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.access_token = access_token
        self.limit = limit
        self.min_query_length = min_query_length
        self.types = types
        self.base_url = base_url.rstrip("/")
        self._http = http_client

    async def search_locations(self, query: str) -> list[GeocodeResult]:
        """
        Geocode a free-text query.

        Queries shorter than `min_query_length` return [] without a network
        call. Never raises: failures are logged and yield an empty list.
        """
        if not self.access_token:
            logger.warning("Mapbox access token is missing; geocoding disabled")
            return []

        query = query.strip()
        if len(query) < self.min_query_length:
            return []

        url = f"{self.base_url}/{quote(query, safe='')}.json"
        params = {
            "access_token": self.access_token,
            "types": ",".join(self.types),
            "limit": str(self.limit),
        }
        try:
            data = await _get_json(self._http, self.source, url, params)
            return [
                GeocodeResult(
                    id=feature["id"],
                    text=feature["text"],
                    place_name=feature["place_name"],
                    center=feature["center"],
                )
                for feature in data.get("features", [])
            ][: self.limit]
        except (SourceUnavailableError, ValidationError, KeyError, TypeError, AttributeError) as e:
            logger.error("Error searching Mapbox for '%s': %s", query, e)
            return []


class WeatherClient:
    """Current weather for a map location from WeatherAPI.com."""

    source = "weather"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = WEATHER_API_URL,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http = http_client

    async def get_weather(self, location: Location) -> WeatherData | None:
        """
        Fetch current conditions at `location`.

        Never raises: a missing key or any failure is logged and yields None.
        """
        if not self.api_key:
            logger.error("Weather API key not configured")
            return None

        params = {
            "key": self.api_key,
            "q": f"{location.lat},{location.lng}",
            "aqi": "no",
        }
        try:
            data = await _get_json(
                self._http, self.source, f"{self.base_url}/current.json", params
            )
            current = data["current"]
            return WeatherData(
                temperature=round(current["temp_c"]),
                condition=current["condition"]["text"],
                humidity=current["humidity"],
                wind_speed=round(current["wind_kph"]),
                icon=current["condition"]["icon"],
            )
        except (SourceUnavailableError, ValidationError, KeyError, TypeError) as e:
            logger.error("Error fetching weather data: %s", e)
            return None


class ReportsClient:
    """Submits and updates the current user's crowd report for a site."""

    def __init__(
        self, base_url: str, *, http_client: httpx.AsyncClient | None = None
    ) -> None:
        if not base_url:
            raise ValueError("Must specify base_url")
        self.base_url = base_url.rstrip("/")
        self._http = http_client

    async def submit_report(
        self, site_id: str, crowd_level: CrowdLevel | str, content: str | None = None
    ) -> Report:
        payload = {
            "site_id": site_id,
            "crowd_level": CrowdLevel(crowd_level).value,
            "content": content or None,
        }
        return await self._send(
            "POST", f"{self.base_url}/api/reports", payload, "Failed to submit report"
        )

    async def update_report(
        self, report_id: str, crowd_level: CrowdLevel | str, content: str | None = None
    ) -> Report:
        payload = {
            "crowd_level": CrowdLevel(crowd_level).value,
            "content": content or None,
        }
        return await self._send(
            "PATCH",
            f"{self.base_url}/api/reports/{quote(report_id, safe='')}",
            payload,
            "Failed to update report",
        )

    async def _send(
        self, method: str, url: str, payload: dict, default_error: str
    ) -> Report:
        try:
            if self._http is not None:
                response = await self._http.request(method, url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.request(method, url, json=payload)
        except httpx.RequestError as e:
            raise ReportSubmissionError(f"{default_error}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            raise ReportSubmissionError(
                message or default_error, status_code=response.status_code
            )

        try:
            return Report.model_validate(body["data"])
        except (KeyError, TypeError, ValidationError) as e:
            raise ReportSubmissionError(
                f"{default_error}: unexpected response", status_code=response.status_code
            ) from e


def create_search_sources(
    config: AppConfig, http_client: httpx.AsyncClient | None = None
) -> tuple[CatalogSearch, GeocodeSearch]:
    """
    Factory function to create the two search sources based on configuration.

    Returns:
        A (search_catalog, search_geocode) pair of coroutine functions ready to
        be handed to `SearchEngine`.

    Raises:
        ConfigurationError: If no catalog source is configured.
    """
    if not (config.catalog_url or config.catalog_path):
        raise ConfigurationError(
            "Either CATALOG_URL or CATALOG_PATH environment variable is required"
        )

    if config.catalog_path:
        catalog = SiteCatalog.from_file(config.catalog_path, limit=config.catalog_limit)
    else:
        catalog = SiteCatalogClient(
            config.catalog_url,
            config.catalog_api_key,
            limit=config.catalog_limit,
            http_client=http_client,
        )

    geocoder = GeocodingClient(
        config.mapbox_access_token,
        limit=config.geocode_limit,
        min_query_length=config.geocode_min_length,
        http_client=http_client,
    )
    return catalog.search_sites, geocoder.search_locations
