from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd

from .config import Config
from .geo import GeoPoint, distances_from
from .records import Provider, providers_frame

_TRUTHY = {"1", "true", "yes", "on", "y"}


def _normalize_specialties(values: Iterable[str] | None) -> list[str]:
    if not values:
        return []
    cleaned: list[str] = []
    for v in values:
        if v is None:
            continue
        v2 = str(v).strip()
        if not v2:
            continue
        cleaned.append(v2)
    # de-dupe while preserving order; specialty match is exact, so no casefold
    seen: set[str] = set()
    out: list[str] = []
    for v in cleaned:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def _split_specialties(values: Iterable[str]) -> list[str]:
    # "Cardiology, Pediatrics" or one value per repeated key
    out: list[str] = []
    for v in values:
        if v is None:
            continue
        out.extend(str(v).replace(";", ",").replace("\n", ",").split(","))
    return out


def _parse_radius(value: Any, default: int, choices: Sequence[int] | None = None) -> int:
    if value is None or not str(value).strip():
        return default
    try:
        radius = int(str(value).strip())
    except ValueError:
        return default
    if radius <= 0:
        return default
    if choices and radius not in choices:
        return default
    return radius


@dataclass(frozen=True)
class FilterCriteria:
    """One search's worth of predicates. Empty values mean "no constraint"."""
    name: str = ""
    specialties: frozenset[str] = frozenset()
    gender: str = ""
    accepting_only: bool = False
    origin: GeoPoint | None = None
    radius_miles: float = Config.DEFAULT_RADIUS_MILES

    @property
    def name_query(self) -> str:
        return self.name.strip().lower()

    @property
    def radius_active(self) -> bool:
        return self.origin is not None

    def is_empty(self) -> bool:
        return not (self.name_query or self.specialties or self.gender or self.accepting_only or self.radius_active)


@dataclass(frozen=True)
class SearchRequest:
    """Raw search input as a caller submits it (postal code not yet resolved)."""
    name: str = ""
    specialties: tuple[str, ...] = field(default_factory=tuple)
    zip_code: str = ""
    radius_miles: int = Config.DEFAULT_RADIUS_MILES
    gender: str = ""
    accepting_only: bool = False

    @classmethod
    def from_values(
        cls,
        values,
        default_radius: int = Config.DEFAULT_RADIUS_MILES,
        radius_choices: Sequence[int] | None = Config.RADIUS_CHOICES_MILES,
    ) -> SearchRequest:
        """Build from a request mapping.

        ``specialty`` may repeat and each value may hold a comma separated list.
        A radius outside ``radius_choices`` falls back to ``default_radius``.
        """
        if hasattr(values, "getlist"):
            specialties = values.getlist("specialty")
        else:
            raw = values.get("specialty") or []
            specialties = [raw] if isinstance(raw, str) else list(raw)

        return cls(
            name=str(values.get("name") or ""),
            specialties=tuple(_normalize_specialties(_split_specialties(specialties))),
            zip_code=str(values.get("zip") or "").strip(),
            radius_miles=_parse_radius(values.get("radius"), default_radius, radius_choices),
            gender=str(values.get("gender") or "").strip(),
            accepting_only=_parse_flag(values.get("accepting")),
        )

    def to_criteria(self, origin: GeoPoint | None = None) -> FilterCriteria:
        return FilterCriteria(
            name=self.name,
            specialties=frozenset(_normalize_specialties(self.specialties)),
            gender=self.gender,
            accepting_only=self.accepting_only,
            origin=origin,
            radius_miles=self.radius_miles,
        )


def filter_mask(df: pd.DataFrame, criteria: FilterCriteria) -> pd.Series:
    """Boolean mask (aligned to df) of rows passing every active predicate."""
    mask = pd.Series(True, index=df.index)

    query = criteria.name_query
    if query:
        first = df["first_name"].astype(str).str.lower().str.contains(query, regex=False)
        last = df["last_name"].astype(str).str.lower().str.contains(query, regex=False)
        mask &= first | last

    if criteria.specialties:
        mask &= df["specialty"].isin(list(criteria.specialties))

    if criteria.gender:
        mask &= df["gender"] == criteria.gender

    if criteria.accepting_only:
        mask &= df["accepting_new_patients"].astype(bool)

    if criteria.origin is not None:
        dist = distances_from(criteria.origin.lat, criteria.origin.lng, df["latitude"], df["longitude"])
        # nan (no coordinates) compares False, so those rows fail outright
        with np.errstate(invalid="ignore"):
            within = dist <= float(criteria.radius_miles)
        mask &= pd.Series(within, index=df.index)

    return mask


def filter_providers(providers: Sequence[Provider], criteria: FilterCriteria) -> list[Provider]:
    """Providers passing all active predicates, in source order."""
    providers = list(providers)
    if not providers:
        return []
    if criteria.is_empty():
        return providers

    df = providers_frame(providers)
    mask = filter_mask(df, criteria)
    return [providers[i] for i in np.flatnonzero(mask.to_numpy(dtype=bool))]
