"""Postal code -> point resolution through geopy.

The lookup is the only blocking call a search makes, so it is exposed as a
coroutine and the geocoder itself runs on a worker thread.
"""
from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from .config import Config
from .geo import GeoPoint
from .logger import logger


class ResolutionStatus(enum.Enum):
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    SERVICE_ERROR = "service_error"


@dataclass(frozen=True)
class Resolution:
    status: ResolutionStatus
    point: GeoPoint | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED and self.point is not None

    @classmethod
    def resolved(cls, point: GeoPoint) -> Resolution:
        return cls(ResolutionStatus.RESOLVED, point=point)

    @classmethod
    def not_found(cls, reason: str) -> Resolution:
        return cls(ResolutionStatus.NOT_FOUND, reason=reason)

    @classmethod
    def service_error(cls, reason: str) -> Resolution:
        return cls(ResolutionStatus.SERVICE_ERROR, reason=reason)


class _NoMatch(LookupError):
    pass


class PostalCodeResolver:
    """Resolve a postal code within the configured region to a GeoPoint."""

    def __init__(
        self,
        geocoder: Any | None = None,
        region: str = Config.REGION_QUALIFIER,
        timeout: float = Config.GEOCODER_TIMEOUT,
        user_agent: str = Config.GEOCODER_USER_AGENT,
        cache_size: int = Config.GEOCODE_CACHE_SIZE,
    ):
        """
        Args:
            geocoder: Anything with a geopy-style ``geocode(query, ...)``.
                Defaults to Nominatim biased to the US.
            region: Qualifier appended to every postal code.
            timeout: Seconds before the geocoder gives up.
            user_agent: Nominatim user agent.
            cache_size: Most postal codes remembered after a successful lookup.
        """
        self.region = region
        self.timeout = timeout
        self._geocoder = geocoder
        self._user_agent = user_agent
        # Misses raise _NoMatch, so only successful lookups are cached.
        self._cached_point = lru_cache(maxsize=cache_size)(self._lookup_point)

    @property
    def geocoder(self) -> Any:
        if self._geocoder is None:
            self._geocoder = Nominatim(user_agent=self._user_agent, timeout=self.timeout)
        return self._geocoder

    def build_query(self, postal_code: str) -> str:
        return f"{postal_code.strip()}, {self.region}"

    def _lookup(self, query: str):
        if isinstance(self.geocoder, Nominatim):
            return self.geocoder.geocode(query, country_codes="us")
        return self.geocoder.geocode(query)

    def _lookup_point(self, code: str) -> GeoPoint:
        location = self._lookup(self.build_query(code))
        if location is None:
            raise _NoMatch(code)
        return GeoPoint(float(location.latitude), float(location.longitude))

    async def resolve(self, postal_code: str) -> Resolution:
        code = (postal_code or "").strip()
        if not code:
            return Resolution.not_found("Empty postal code")

        query = self.build_query(code)
        try:
            point = await asyncio.to_thread(self._cached_point, code)
        except _NoMatch:
            logger.info(f"No geocoding match for '{query}'")
            return Resolution.not_found(f"No match for {code}")
        except GeopyError as e:
            logger.warning(f"Geocoding service error for '{query}': {e}")
            return Resolution.service_error(str(e) or type(e).__name__)
        return Resolution.resolved(point)

    def cache_info(self):
        return self._cached_point.cache_info()
