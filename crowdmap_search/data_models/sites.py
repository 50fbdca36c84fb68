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
Pydantic models for sites and the crowd reports attached to them.
"""

from enum import Enum

from pydantic import BaseModel, Field


class CrowdLevel(str, Enum):
    """Ordinal crowding indicator for a site."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(CrowdLevel).index(self)


class Location(BaseModel):
    """A point on the map, latitude first."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Site(BaseModel):
    """A point of interest from the site catalog."""

    id: str
    name: str
    description: str | None = None
    location: Location
    crowd_level: CrowdLevel
    created_at: str | None = None


class Report(BaseModel):
    """A single user's crowd report for a site."""

    id: str
    site_id: str
    user_id: str
    content: str | None = None
    crowd_level: CrowdLevel
    created_at: str | None = None


class WeatherData(BaseModel):
    """Current conditions at a site, rounded for display."""

    temperature: int = Field(..., description="Temperature in degrees Celsius")
    condition: str
    humidity: int = Field(..., description="Relative humidity in percent")
    wind_speed: int = Field(..., description="Wind speed in km/h")
    icon: str
