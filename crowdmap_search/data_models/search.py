"""
Data models for search functionality.

This module defines Pydantic models for the unified search: geocoding results,
the tagged entries of the merged result list, and the immutable session state
snapshot handed to the host UI.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .sites import Location, Site


class GeocodeResult(BaseModel):
    """A place returned by the geocoding provider."""

    id: str = Field(..., description="Provider feature id")
    text: str = Field(..., description="Short label, e.g. 'Paris'")
    place_name: str = Field(..., description="Full place name, e.g. 'Paris, France'")
    center: tuple[float, float] = Field(
        ..., description="Coordinate pair ordered [longitude, latitude]"
    )

    @property
    def location(self) -> Location:
        """The center as a latitude-first Location."""
        lng, lat = self.center
        return Location(lat=lat, lng=lng)


class SiteEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["site"] = "site"
    payload: Site


class LocationEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["location"] = "location"
    payload: GeocodeResult


SearchEntry = Annotated[Union[SiteEntry, LocationEntry], Field(discriminator="kind")]


class SearchResults(BaseModel):
    """Results of one completed search, grouped per source and merged."""

    model_config = ConfigDict(frozen=True)

    sites: list[Site] = Field(default_factory=list)
    locations: list[GeocodeResult] = Field(default_factory=list)
    combined: list[SearchEntry] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "SearchResults":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.combined


class SearchOptions(BaseModel):
    """Tunables accepted by the search engine at construction."""

    debounce_ms: int = Field(default=300, ge=0, description="Quiet period in ms")
    min_search_length: int = Field(
        default=1, ge=1, description="Minimum trimmed query length that triggers a search"
    )


class SearchState(BaseModel):
    """Read-only snapshot of a search session."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    is_searching: bool = False
    is_open: bool = False
    results: SearchResults = Field(default_factory=SearchResults.empty)
