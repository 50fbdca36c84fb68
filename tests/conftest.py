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
Global pytest configuration and fixtures.

Pytest automatically discovers and loads this file. Fixtures defined here are
available to all tests in this directory and its subdirectories without
needing to import them explicitly.
"""

import os
from unittest.mock import patch

import pytest

from crowdmap_search.data_models.search import GeocodeResult
from crowdmap_search.data_models.sites import CrowdLevel, Location, Site


@pytest.fixture(autouse=True)
def clean_env():
    """
    Automatically clear environment variables for all tests to ensure
    tests are hermetic and don't depend on the host environment.
    """
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture(autouse=True)
def mock_load_dotenv():
    """
    Automatically mock load_dotenv for all tests to prevent
    loading environment variables from local .env files.
    """
    with patch("crowdmap_search.config.load_dotenv"):
        yield


def _make_site(site_id: str, name: str, level: str = "low") -> Site:
    return Site(
        id=site_id,
        name=name,
        description=f"{name} description",
        location=Location(lat=48.8584, lng=2.2945),
        crowd_level=CrowdLevel(level),
    )


@pytest.fixture
def make_site():
    """Factory fixture building catalog sites."""
    return _make_site


@pytest.fixture
def tower_site() -> Site:
    return _make_site("s1", "Tower", "high")


@pytest.fixture
def paris_result() -> GeocodeResult:
    return GeocodeResult(
        id="p1", text="Paris", place_name="Paris, France", center=[2.35, 48.85]
    )
