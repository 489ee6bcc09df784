from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Sequence

import pandas as pd

from .logger import logger
from .tabular import parse_table

ACCEPTING_TRUE = "True"

# Provider field -> accepted header spellings (first is canonical).
PROVIDER_COLUMNS: dict[str, tuple[str, ...]] = {
    "id": ("ID",),
    "first_name": ("First Name",),
    "last_name": ("Last Name",),
    "degree": ("Degree",),
    "specialty": ("Specialty",),
    "gender": ("Gender",),
    "practice_name": ("Practice",),
    "address_line1": ("Practice Address", "Practice:Address"),
    "address_line2": ("Practice Address 2", "Practice:Address 2"),
    "city": ("Practice City", "Practice:City"),
    "zip": ("Practice Zip", "Practice:Zip"),
    "phone": ("Practice Main Line", "Practice:Main Line"),
    "latitude": ("Practice Latitude", "Practice:Latitude"),
    "longitude": ("Practice Longitude", "Practice:Longitude"),
    "accepting_new_patients": ("Accepting New Patients",),
}


@dataclass(frozen=True)
class Provider:
    id: str
    first_name: str
    last_name: str
    degree: str
    specialty: str
    gender: str
    practice_name: str
    address_line1: str
    address_line2: str
    city: str
    zip: str
    phone: str
    latitude: float | None
    longitude: float | None
    accepting_new_patients: bool

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return f"{self.full_name}, {self.degree}" if self.degree else self.full_name

    @property
    def address(self) -> str:
        if self.address_line2:
            return f"{self.address_line1}, {self.address_line2}"
        return self.address_line1

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["display_name"] = self.display_name
        out["address"] = self.address
        return out


def parse_coordinate(value: str | None) -> float | None:
    """Decimal degrees from text; None for empty, non-numeric or non-finite input."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _first_existing(columns: Iterable[str], *names: str) -> str | None:
    lower_map = {c.strip().lower(): c for c in columns}
    for n in names:
        c = lower_map.get(n.lower())
        if c is not None:
            return c
    return None


def resolve_columns(headers: Iterable[str]) -> dict[str, str | None]:
    """Map each Provider field to the header present in the input (or None)."""
    headers = list(headers)
    return {field: _first_existing(headers, *names) for field, names in PROVIDER_COLUMNS.items()}


def provider_from_row(row: dict[str, str], columns: dict[str, str | None] | None = None) -> Provider:
    if columns is None:
        columns = resolve_columns(row.keys())

    def text(field: str) -> str:
        col = columns.get(field)
        return row.get(col, "") if col else ""

    return Provider(
        id=text("id"),
        first_name=text("first_name"),
        last_name=text("last_name"),
        degree=text("degree"),
        specialty=text("specialty"),
        gender=text("gender"),
        practice_name=text("practice_name"),
        address_line1=text("address_line1"),
        address_line2=text("address_line2"),
        city=text("city"),
        zip=text("zip"),
        phone=text("phone"),
        latitude=parse_coordinate(text("latitude")),
        longitude=parse_coordinate(text("longitude")),
        accepting_new_patients=text("accepting_new_patients") == ACCEPTING_TRUE,
    )


def providers_from_rows(rows: Sequence[dict[str, str]]) -> list[Provider]:
    if not rows:
        return []
    columns = resolve_columns(rows[0].keys())
    missing = [PROVIDER_COLUMNS[f][0] for f, c in columns.items() if c is None]
    if missing:
        logger.warning(f"Provider data missing columns (read as empty): {missing}")
    return [provider_from_row(row, columns) for row in rows]


def parse_providers(text: str) -> list[Provider]:
    """Parse a provider export. Raises ParseError when there is no header row."""
    return providers_from_rows(parse_table(text))


class RecordStore:
    """Full provider set plus the derived specialty facet. Read-only between loads."""

    def __init__(self, providers: Iterable[Provider] = ()):
        self._providers: tuple[Provider, ...] = ()
        self._specialties: tuple[str, ...] = ()
        self._by_id: dict[str, Provider] = {}
        self.load(providers)

    def load(self, providers: Iterable[Provider]) -> None:
        """Replace the active set and recompute the specialty facet."""
        self._providers = tuple(providers)
        self._specialties = tuple(sorted({p.specialty for p in self._providers}))

        by_id: dict[str, Provider] = {}
        duplicates: list[str] = []
        for p in self._providers:
            if p.id in by_id:
                duplicates.append(p.id)
                continue
            by_id[p.id] = p
        if duplicates:
            logger.warning(f"Duplicate provider ids (first record wins): {duplicates[:20]}")
        self._by_id = by_id

    def all(self) -> tuple[Provider, ...]:
        return self._providers

    def facet_specialties(self) -> list[str]:
        return list(self._specialties)

    def get(self, provider_id: str) -> Provider | None:
        return self._by_id.get(provider_id)

    def __len__(self) -> int:
        return len(self._providers)

    def to_frame(self, providers: Sequence[Provider] | None = None) -> pd.DataFrame:
        """Providers as a dataframe (source order), one column per Provider field."""
        return providers_frame(self._providers if providers is None else providers)


def providers_frame(providers: Sequence[Provider]) -> pd.DataFrame:
    cols = list(PROVIDER_COLUMNS)
    if not providers:
        return pd.DataFrame(columns=cols)
    df = pd.DataFrame([asdict(p) for p in providers], columns=cols)
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
    df["accepting_new_patients"] = df["accepting_new_patients"].astype(bool)
    return df


def _require_file(path: Path, label: str) -> Path:
    if not path.exists():
        raise FileNotFoundError(f"Missing {label}: {path}")
    if not path.is_file():
        raise FileNotFoundError(f"Not a file for {label}: {path}")
    return path


def load_providers_csv(path: Path) -> RecordStore:
    """Read and parse the provider export into a new store."""
    path = _require_file(Path(path), "provider data")
    text = path.read_text(encoding="utf-8-sig")
    store = RecordStore(parse_providers(text))
    logger.info(f"Loaded {len(store)} providers ({len(store.facet_specialties())} specialties) from {path}")
    return store


@lru_cache(maxsize=4)
def _cached_store(path: str) -> RecordStore:
    return load_providers_csv(Path(path))


def get_store(path: Path) -> RecordStore:
    return _cached_store(str(path))
