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
In-memory site catalog loaded from a JSON file.
"""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from crowdmap_search.data_models.sites import Site

logger = logging.getLogger(__name__)

_sites_adapter = TypeAdapter(list[Site])


class SiteCatalog:
    """A fixed list of sites searchable by name prefix."""

    def __init__(self, sites: list[Site], *, limit: int = 10) -> None:
        # Sorted once; searches then preserve name order.
        self.sites = sorted(sites, key=lambda site: (site.name.casefold(), site.id))
        self.limit = limit

    @classmethod
    def from_file(cls, path: str | Path, *, limit: int = 10) -> "SiteCatalog":
        """
        Load a catalog from a JSON file holding a list of site objects.

        Raises:
            FileNotFoundError: If the file does not exist.
            pydantic.ValidationError: If an entry is not a valid site.
        """
        with Path(path).open(encoding="utf-8") as f:
            data = json.load(f)
        sites = _sites_adapter.validate_python(data)
        logger.info("Loaded %s sites from %s", len(sites), path)
        return cls(sites, limit=limit)

    async def search_sites(self, query: str) -> list[Site]:
        """Case-insensitive prefix match on name, ordered by name."""
        prefix = query.strip().casefold()
        if not prefix:
            return []
        matches = [site for site in self.sites if site.name.casefold().startswith(prefix)]
        return matches[: self.limit]
