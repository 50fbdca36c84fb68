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

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from crowdmap_search.data_models.search import (
    GeocodeResult,
    LocationEntry,
    SearchResults,
    SiteEntry,
)
from crowdmap_search.data_models.sites import Site

logger = logging.getLogger(__name__)

CatalogSearch = Callable[[str], Awaitable[list[Site]]]
GeocodeSearch = Callable[[str], Awaitable[list[GeocodeResult]]]


def merge_search_results(
    sites: Sequence[Site], locations: Sequence[GeocodeResult]
) -> SearchResults:
    """Merge the two source lists into one tagged list, sites first.

    Order within each source is kept as returned. There is no deduplication
    across sources and no ranking.
    """
    combined = [SiteEntry(payload=site) for site in sites]
    combined.extend(LocationEntry(payload=location) for location in locations)
    return SearchResults(
        sites=list(sites),
        locations=list(locations),
        combined=combined,
    )


async def _call_source(source: Callable[[str], Awaitable[list]], query: str) -> list:
    # Errors raised by the call itself surface through the awaitable.
    return await source(query)


def _settled_or_empty(source: str, query: str, outcome: object) -> list:
    """Turn one gathered outcome into a result list, logging failures."""
    if isinstance(outcome, BaseException):
        logger.error("%s search failed for '%s': %s", source, query, outcome)
        return []
    if outcome is None:
        return []
    return list(outcome)


async def unified_search(
    query: str,
    *,
    search_catalog: CatalogSearch,
    search_geocode: GeocodeSearch,
) -> SearchResults:
    """Search the site catalog and the geocoder concurrently.

    Both sources are awaited until they settle; a failure in one never cancels
    or hides the other. Each failed source contributes an empty list and is
    logged.

    Args:
        query: The raw query text. It is trimmed before being sent to either source.
        search_catalog: Coroutine function returning matching sites.
        search_geocode: Coroutine function returning matching places.

    Returns:
        SearchResults holding both lists and their merged form. Never raises
        because of a source failure.
    """
    trimmed = query.strip()
    if not trimmed:
        return SearchResults.empty()

    sites_outcome, locations_outcome = await asyncio.gather(
        _call_source(search_catalog, trimmed),
        _call_source(search_geocode, trimmed),
        return_exceptions=True,
    )

    # Cancellation is not a source failure; let it reach the caller.
    for outcome in (sites_outcome, locations_outcome):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome

    sites = _settled_or_empty("Catalog", trimmed, sites_outcome)
    locations = _settled_or_empty("Geocode", trimmed, locations_outcome)
    return merge_search_results(sites, locations)
