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
Exception types raised by crowdmap-search.
"""


class CrowdMapError(Exception):
    """Base class for all crowdmap-search errors."""


class SourceUnavailableError(CrowdMapError):
    """A search source (catalog or geocoder) could not answer a request."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ReportSubmissionError(CrowdMapError):
    """The reports API rejected a report submission or update."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidAccessTokenError(CrowdMapError):
    """The geocoding access token is invalid or expired."""


class AccessTokenValidationError(CrowdMapError):
    """The geocoding access token could not be validated (network/server error)."""


class ConfigurationError(CrowdMapError, ValueError):
    """Required configuration is missing or inconsistent."""
