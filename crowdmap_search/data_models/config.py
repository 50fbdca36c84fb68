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
Pydantic models for configuring crowdmap-search.
"""

from pydantic import BaseModel, Field, model_validator


class AppConfig(BaseModel):
    """Configuration for the search sources, reports API and engine."""

    mapbox_access_token: str | None = Field(
        default=None,
        description="Mapbox access token; geocoding is disabled when missing"
    )
    catalog_url: str | None = Field(
        default=None,
        description="Base URL of the REST site catalog"
    )
    catalog_api_key: str | None = Field(
        default=None,
        description="API key sent to the REST site catalog"
    )
    catalog_path: str | None = Field(
        default=None,
        description="Path to a JSON file used as an in-memory site catalog"
    )
    reports_api_url: str | None = Field(
        default=None,
        description="Base URL of the reports API"
    )
    weather_api_key: str | None = Field(
        default=None,
        description="WeatherAPI.com key; site weather is skipped when missing"
    )
    debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Debounce quiet period in milliseconds"
    )
    min_search_length: int = Field(
        default=1,
        ge=1,
        description="Minimum query length for the search engine"
    )
    catalog_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum number of catalog results"
    )
    geocode_limit: int = Field(
        default=5,
        ge=1,
        le=10,
        description="Maximum number of geocoding results"
    )
    geocode_min_length: int = Field(
        default=3,
        ge=1,
        description="Minimum query length sent to the geocoder"
    )

    @model_validator(mode='after')
    def check_catalog_source(self) -> 'AppConfig':
        """At most one catalog source may be configured."""
        if self.catalog_url and self.catalog_path:
            raise ValueError("Cannot specify both catalog_url and catalog_path")
        if self.catalog_url:
            self.catalog_url = self.catalog_url.rstrip("/")
        return self
