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

import logging

import httpx

from crowdmap_search.data_models.sites import Location
from crowdmap_search.exceptions import AccessTokenValidationError, InvalidAccessTokenError

logger = logging.getLogger(__name__)

MAPBOX_TOKEN_URL = "https://api.mapbox.com/tokens/v2"
TOKEN_VALID_CODE = "TokenValid"


async def validate_access_token(access_token: str) -> bool:
    """
    Checks a Mapbox access token against the token retrieval endpoint.

    The endpoint answers 200 with a `code` of "TokenValid" for a usable token.
    Any other code, or a 4xx status, means the token cannot be used.

    Returns:
        True if the access token is valid.

    Raises:
        InvalidAccessTokenError: If the token is missing, malformed, expired or revoked.
        AccessTokenValidationError: If Mapbox could not be reached or answered 5xx.
    """
    if not access_token:
        raise InvalidAccessTokenError("Mapbox access token is missing.")

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(
                MAPBOX_TOKEN_URL, params={"access_token": access_token}
            )
    except httpx.RequestError as e:
        raise AccessTokenValidationError(
            f"Failed to validate access token due to a network error: {e}"
        ) from e

    if response.status_code >= 500:
        raise AccessTokenValidationError(
            "Failed to validate access token due to a server error: "
            f"HTTP {response.status_code}"
        )

    try:
        body = response.json()
    except ValueError:
        body = {}
    code = body.get("code") if isinstance(body, dict) else None

    if not response.is_success or code != TOKEN_VALID_CODE:
        raise InvalidAccessTokenError(
            "Access token is invalid or has expired. "
            f"Status: {response.status_code}, code: {code}"
        )

    logger.info("Mapbox access token validation successful.")
    return True


def format_location(location: Location) -> str:
    """Render a location as 'lat, lng' with 5 decimals (about one meter)."""
    return f"{location.lat:.5f}, {location.lng:.5f}"
