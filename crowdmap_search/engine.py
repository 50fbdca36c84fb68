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
Incremental search engine behind the map search box.

`SearchEngine` owns the session state (query, loading flag, dropdown flag and
merged results). Keystrokes are debounced, each search is stamped by a
`RequestSequencer`, and only the most recently issued search may commit its
results, whatever order the network answers in.

Everything runs on a single asyncio event loop; no locking is involved.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from crowdmap_search.data_models.search import (
    GeocodeResult,
    SearchOptions,
    SearchResults,
    SearchState,
)
from crowdmap_search.data_models.sites import Site
from crowdmap_search.services import CatalogSearch, GeocodeSearch, unified_search

logger = logging.getLogger(__name__)

StateListener = Callable[[SearchState], None]


class RequestSequencer:
    """Hands out increasing tokens and tells whether a token is still the latest."""

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def next_token(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def invalidate(self) -> None:
        """Make every token issued so far stale."""
        self._latest += 1


class Debouncer:
    """Collapses bursts of calls into one delayed action.

    `schedule` replaces any timer that has not fired yet. Once a timer fires the
    action runs as a task and is no longer affected by `cancel`.
    """

    def __init__(self, delay_ms: int) -> None:
        self.delay = delay_ms / 1000
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def schedule(self, action: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, action)

    def cancel(self) -> bool:
        """Discard the unfired timer, if any. Returns True if one was discarded."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, action: Callable[[], Awaitable[None]]) -> None:
        self._handle = None
        task = asyncio.ensure_future(action())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced action failed: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait until no timer is pending and every fired action has finished."""
        loop = asyncio.get_running_loop()
        while self._handle is not None or self._tasks:
            if self._tasks:
                await asyncio.wait(list(self._tasks))
            else:
                await asyncio.sleep(max(0.0, self._handle.when() - loop.time()))


class SearchEngine:
    """State machine for one search box session.

    The host reads `state` (an immutable snapshot) or subscribes to changes,
    and drives the session through the operation methods. Each operation
    returns the new snapshot.

    Args:
        search_catalog: Coroutine function searching the site catalog.
        search_geocode: Coroutine function searching the geocoder.
        debounce_ms: Quiet period after the last keystroke before searching.
        min_search_length: Minimum trimmed query length that triggers a search.
        on_site_select: Called with the Site picked from the results.
        on_location_select: Called with the GeocodeResult picked from the results.
    """

    def __init__(
        self,
        search_catalog: CatalogSearch,
        search_geocode: GeocodeSearch,
        *,
        debounce_ms: int = 300,
        min_search_length: int = 1,
        on_site_select: Callable[[Site], None] | None = None,
        on_location_select: Callable[[GeocodeResult], None] | None = None,
    ) -> None:
        self.options = SearchOptions(
            debounce_ms=debounce_ms, min_search_length=min_search_length
        )
        self._search_catalog = search_catalog
        self._search_geocode = search_geocode
        self._on_site_select = on_site_select
        self._on_location_select = on_location_select

        self._state = SearchState()
        self._listeners: list[StateListener] = []
        self._sequencer = RequestSequencer()
        self._debouncer = Debouncer(self.options.debounce_ms)

    @property
    def state(self) -> SearchState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: SearchState) -> SearchState:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return state

    def _commit(self, **changes) -> SearchState:
        return self._publish(self._state.model_copy(update=changes))

    def set_query(self, query: str) -> SearchState:
        """Replace the query text without searching."""
        return self._commit(query=query)

    def perform_search(self, query: str) -> SearchState:
        """Handle a keystroke: update the query and schedule a debounced search."""
        self._debouncer.cancel()
        trimmed = query.strip()

        if not trimmed or len(trimmed) < self.options.min_search_length:
            # Results of anything still in flight must not resurface.
            self._sequencer.invalidate()
            return self._commit(
                query=query,
                is_open=True,
                results=SearchResults.empty(),
                is_searching=False,
            )

        token = self._sequencer.next_token()
        self._debouncer.schedule(lambda: self._run_search(token, query))
        return self._commit(query=query, is_open=True, is_searching=True)

    async def _run_search(self, token: int, query: str) -> None:
        try:
            results = await unified_search(
                query,
                search_catalog=self._search_catalog,
                search_geocode=self._search_geocode,
            )
        except Exception as e:
            logger.error("Search failed for '%s': %s", query, e, exc_info=e)
            if self._sequencer.is_current(token):
                self._commit(results=SearchResults.empty(), is_searching=False)
            return

        if not self._sequencer.is_current(token):
            logger.debug("Discarding stale results for '%s' (token %s)", query, token)
            return
        self._commit(results=results, is_searching=False)

    def _reset_selection(self, label: str) -> None:
        self._debouncer.cancel()
        self._sequencer.invalidate()
        self._commit(
            query=label,
            is_open=False,
            is_searching=False,
            results=SearchResults.empty(),
        )

    def select_site(self, site: Site) -> SearchState:
        self._reset_selection(site.name)
        if self._on_site_select is not None:
            self._on_site_select(site)
        return self._state

    def select_location(self, location: GeocodeResult) -> SearchState:
        self._reset_selection(location.text)
        if self._on_location_select is not None:
            self._on_location_select(location)
        return self._state

    def clear_search(self) -> SearchState:
        """Cancel any pending search and go back to the idle state."""
        self._debouncer.cancel()
        self._sequencer.invalidate()
        return self._publish(SearchState())

    def open_dropdown(self) -> SearchState:
        return self._commit(is_open=True)

    def close_dropdown(self) -> SearchState:
        return self._commit(is_open=False)

    async def wait_until_idle(self) -> SearchState:
        """Wait for the pending debounce timer and any in-flight search."""
        await self._debouncer.drain()
        return self._state

    async def aclose(self) -> None:
        """Drop the pending timer and let in-flight searches finish."""
        self._debouncer.cancel()
        await self._debouncer.drain()
