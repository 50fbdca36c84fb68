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
Configuration module for crowdmap-search.
"""

import os

from dotenv import load_dotenv
from pydantic import ValidationError

from .data_models.config import AppConfig
from .exceptions import ConfigurationError

# Environment variable names
MAPBOX_ACCESS_TOKEN_ENV = "MAPBOX_ACCESS_TOKEN"
CATALOG_URL_ENV = "CATALOG_URL"
CATALOG_API_KEY_ENV = "CATALOG_API_KEY"
CATALOG_PATH_ENV = "CATALOG_PATH"
REPORTS_API_URL_ENV = "REPORTS_API_URL"
WEATHER_API_KEY_ENV = "WEATHER_API_KEY"
SEARCH_DEBOUNCE_MS_ENV = "SEARCH_DEBOUNCE_MS"
SEARCH_MIN_LENGTH_ENV = "SEARCH_MIN_LENGTH"
CATALOG_LIMIT_ENV = "CATALOG_LIMIT"
GEOCODE_LIMIT_ENV = "GEOCODE_LIMIT"
GEOCODE_MIN_LENGTH_ENV = "GEOCODE_MIN_LENGTH"

# Environment variable name -> AppConfig field
_ENV_FIELDS = {
    MAPBOX_ACCESS_TOKEN_ENV: "mapbox_access_token",
    CATALOG_URL_ENV: "catalog_url",
    CATALOG_API_KEY_ENV: "catalog_api_key",
    CATALOG_PATH_ENV: "catalog_path",
    REPORTS_API_URL_ENV: "reports_api_url",
    WEATHER_API_KEY_ENV: "weather_api_key",
    SEARCH_DEBOUNCE_MS_ENV: "debounce_ms",
    SEARCH_MIN_LENGTH_ENV: "min_search_length",
    CATALOG_LIMIT_ENV: "catalog_limit",
    GEOCODE_LIMIT_ENV: "geocode_limit",
    GEOCODE_MIN_LENGTH_ENV: "geocode_min_length",
}


def _load_env_file() -> None:
    """Load .env file if present in the current directory."""
    load_dotenv()


def _read_env(name: str) -> str | None:
    """
    Read an environment variable, treating blank values as unset.

    Args:
        name: The environment variable name

    Returns:
        The stripped value, or None if unset or blank
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def get_app_config() -> AppConfig:
    """
    Get crowdmap-search configuration from environment variables.

    Returns:
        AppConfig object containing the configuration

    Raises:
        ConfigurationError: If required configuration is missing or invalid
    """
    # Load .env file if present
    _load_env_file()

    # Build config data, only including fields that are provided so the
    # model defaults apply to the rest
    config_data = {}
    for env_name, field_name in _ENV_FIELDS.items():
        value = _read_env(env_name)
        if value is not None:
            config_data[field_name] = value

    try:
        return AppConfig.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
