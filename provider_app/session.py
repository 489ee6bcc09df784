"""Map overlay state kept in step with the filtered provider list.

A ``DirectorySession`` belongs to one client (one page session) and is passed
explicitly to every operation. It holds that client's filtered list, placed
markers, radius circle and viewport. Markers refer back to providers by id
only; the provider itself is looked up in the store when needed. Marker keys
are (id, occurrence) so blank or repeated ids still get one marker per record.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Sequence

from .config import Config
from .filters import SearchRequest, filter_providers
from .geo import GeoPoint, miles_to_meters
from .geocoding import PostalCodeResolver, Resolution
from .logger import logger
from .records import Provider, RecordStore

ACCEPTING_COLOR = "#4CAF50"
NOT_ACCEPTING_COLOR = "#FF5722"


@dataclass(frozen=True)
class MapMarker:
    provider_id: str
    position: GeoPoint
    title: str
    accepting: bool

    @property
    def color(self) -> str:
        return ACCEPTING_COLOR if self.accepting else NOT_ACCEPTING_COLOR

    @classmethod
    def for_provider(cls, provider: Provider) -> MapMarker:
        return cls(
            provider_id=provider.id,
            position=GeoPoint(provider.latitude, provider.longitude),
            title=provider.full_name,
            accepting=provider.accepting_new_patients,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "position": self.position.to_dict(),
            "title": self.title,
            "accepting": self.accepting,
            "color": self.color,
        }


@dataclass(frozen=True)
class Bounds:
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, points: Sequence[GeoPoint]) -> Bounds:
        lats = [p.lat for p in points]
        lngs = [p.lng for p in points]
        return cls(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.south + self.north) / 2, (self.west + self.east) / 2)

    def contains(self, point: GeoPoint) -> bool:
        return self.south <= point.lat <= self.north and self.west <= point.lng <= self.east

    def to_dict(self) -> dict[str, float]:
        return {"south": self.south, "west": self.west, "north": self.north, "east": self.east}


@dataclass(frozen=True)
class RadiusOverlay:
    center: GeoPoint
    radius_miles: float

    @property
    def radius_meters(self) -> float:
        return miles_to_meters(self.radius_miles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": self.center.to_dict(),
            "radius_miles": self.radius_miles,
            "radius_meters": self.radius_meters,
        }


@dataclass
class Viewport:
    center: GeoPoint
    zoom: int | None = None
    bounds: Bounds | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": self.center.to_dict(),
            "zoom": self.zoom,
            "bounds": self.bounds.to_dict() if self.bounds else None,
        }


@dataclass
class SearchOutcome:
    providers: list[Provider]
    markers: list[MapMarker]
    marker_count: int
    accepting_count: int
    overlay: RadiusOverlay | None
    viewport: Viewport
    notice: str | None = None
    resolution: Resolution | None = None

    def to_dict(self) -> dict[str, Any]:
        n = len(self.providers)
        return {
            "count": n,
            "count_label": f"{n} provider{'' if n == 1 else 's'}",
            "providers": [p.to_dict() for p in self.providers],
            "markers": [m.to_dict() for m in self.markers],
            "stats": {"marker_count": self.marker_count, "accepting_count": self.accepting_count},
            "overlay": self.overlay.to_dict() if self.overlay else None,
            "viewport": self.viewport.to_dict(),
            "notice": self.notice,
        }


MarkerKey = tuple[str, int]


@dataclass
class DirectorySession:
    store: RecordStore
    resolver: PostalCodeResolver = field(default_factory=PostalCodeResolver)
    default_center: GeoPoint = GeoPoint(*Config.DEFAULT_CENTER)
    default_zoom: int = Config.DEFAULT_ZOOM
    radius_zoom: int = Config.RADIUS_ZOOM
    focus_zoom: int = Config.FOCUS_ZOOM

    filtered: list[Provider] = field(default_factory=list)
    markers: dict[MarkerKey, MapMarker] = field(default_factory=dict)
    overlay: RadiusOverlay | None = None
    viewport: Viewport | None = None

    def __post_init__(self) -> None:
        if self.viewport is None:
            self.viewport = Viewport(center=self.default_center, zoom=self.default_zoom)

    @classmethod
    def from_config(cls, store: RecordStore, resolver: PostalCodeResolver, config) -> DirectorySession:
        return cls(
            store=store,
            resolver=resolver,
            default_center=GeoPoint(*config["DEFAULT_CENTER"]),
            default_zoom=config["DEFAULT_ZOOM"],
            radius_zoom=config["RADIUS_ZOOM"],
            focus_zoom=config["FOCUS_ZOOM"],
        )

    @property
    def marker_count(self) -> int:
        return len(self.markers)

    @property
    def accepting_count(self) -> int:
        return sum(1 for m in self.markers.values() if m.accepting)

    def marker_for(self, provider_id: str) -> MapMarker | None:
        """First placed marker pointing at provider_id."""
        for marker in self.markers.values():
            if marker.provider_id == provider_id:
                return marker
        return None

    def sync(
        self,
        providers: Sequence[Provider],
        origin: GeoPoint | None = None,
        radius_miles: float | None = None,
    ) -> None:
        """Bring markers, overlay and viewport in line with a new filtered list."""
        self.filtered = list(providers)

        wanted: dict[MarkerKey, MapMarker] = {}
        seen: dict[str, int] = {}
        for p in self.filtered:
            if not p.has_coordinates:
                continue
            occurrence = seen.get(p.id, 0)
            seen[p.id] = occurrence + 1
            wanted[(p.id, occurrence)] = MapMarker.for_provider(p)

        removed = [key for key, marker in self.markers.items() if wanted.get(key) != marker]
        for key in removed:
            del self.markers[key]

        added = 0
        placed: dict[MarkerKey, MapMarker] = {}
        for key, fresh in wanted.items():
            marker = self.markers.get(key)
            if marker is None:
                marker = fresh
                added += 1
            placed[key] = marker
        # keep filtered order
        self.markers = placed
        logger.debug(f"Markers synced: +{added} -{len(removed)} = {len(placed)}")

        if placed:
            bounds = Bounds.around([m.position for m in placed.values()])
            self.viewport = Viewport(center=bounds.center, zoom=None, bounds=bounds)
        else:
            self.viewport = Viewport(center=self.viewport.center, zoom=self.viewport.zoom)

        if origin is not None:
            radius = float(radius_miles if radius_miles is not None else Config.DEFAULT_RADIUS_MILES)
            self.overlay = RadiusOverlay(center=origin, radius_miles=radius)
            self.viewport = Viewport(center=origin, zoom=self.radius_zoom, bounds=self.viewport.bounds)
        else:
            self.overlay = None

    def _outcome(self, notice: str | None = None, resolution: Resolution | None = None) -> SearchOutcome:
        return SearchOutcome(
            providers=list(self.filtered),
            markers=list(self.markers.values()),
            marker_count=self.marker_count,
            accepting_count=self.accepting_count,
            overlay=self.overlay,
            viewport=self.viewport,
            notice=notice,
            resolution=resolution,
        )

    async def search(self, request: SearchRequest) -> SearchOutcome:
        """Resolve the postal code (if any), filter, and sync the overlay."""
        origin: GeoPoint | None = None
        resolution: Resolution | None = None
        notice: str | None = None

        if request.zip_code:
            resolution = await self.resolver.resolve(request.zip_code)
            if resolution.ok:
                origin = resolution.point
            else:
                logger.warning(
                    f"Could not resolve zip {request.zip_code!r} ({resolution.status.value}): {resolution.reason}"
                )
                notice = f"Could not find location for zip code: {request.zip_code}"

        criteria = request.to_criteria(origin)
        results = filter_providers(self.store.all(), criteria)
        logger.info(f"Search matched {len(results)} of {len(self.store)} providers")
        self.sync(results, origin=criteria.origin, radius_miles=criteria.radius_miles)
        return self._outcome(notice, resolution)

    def clear(self) -> SearchOutcome:
        """Show every provider, drop the radius circle, reset the map view."""
        self.sync(self.store.all())
        self.viewport = Viewport(center=self.default_center, zoom=self.default_zoom, bounds=self.viewport.bounds)
        return self._outcome()

    def show_all(self) -> SearchOutcome:
        """Initial display after load: everything, fitted to the markers."""
        self.sync(self.store.all())
        return self._outcome()

    def focus(self, provider_id: str) -> Provider | None:
        """Center on a placed marker and return its provider, or None."""
        marker = self.marker_for(provider_id)
        if marker is None:
            return None
        self.viewport = Viewport(center=marker.position, zoom=self.focus_zoom)
        return self.store.get(provider_id)

    def current(self) -> SearchOutcome:
        return self._outcome()


class SessionRegistry:
    """One DirectorySession per client id, least recently used evicted first."""

    def __init__(self, store: RecordStore, resolver: PostalCodeResolver, config, max_sessions: int = 256):
        self.store = store
        self.resolver = resolver
        self.config = config
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, DirectorySession] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, client_id: str) -> DirectorySession:
        with self._lock:
            session = self._sessions.get(client_id)
            if session is not None:
                self._sessions.move_to_end(client_id)
                return session

            session = DirectorySession.from_config(self.store, self.resolver, self.config)
            session.show_all()
            self._sessions[client_id] = session
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug(f"Evicted directory session {evicted}")
            return session

    def __len__(self) -> int:
        return len(self._sessions)
