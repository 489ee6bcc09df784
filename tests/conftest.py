from __future__ import annotations

from types import SimpleNamespace

import pytest

from provider_app.records import Provider, RecordStore


def make_provider(**overrides) -> Provider:
    fields = dict(
        id="X",
        first_name="Test",
        last_name="Provider",
        degree="MD",
        specialty="Family Medicine",
        gender="Female",
        practice_name="Test Practice",
        address_line1="1 Main St",
        address_line2="",
        city="Providence",
        zip="02903",
        phone="401-555-0000",
        latitude=41.8,
        longitude=-71.4,
        accepting_new_patients=True,
    )
    fields.update(overrides)
    return Provider(**fields)


class FakeGeocoder:
    """geopy-style geocoder answering from a dict; records every query."""

    def __init__(self, answers=None, error: Exception | None = None):
        self.answers = answers or {}
        self.error = error
        self.queries: list[str] = []

    def geocode(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        point = self.answers.get(query.split(",")[0].strip())
        if point is None:
            return None
        return SimpleNamespace(latitude=point[0], longitude=point[1])


@pytest.fixture
def ann():
    return make_provider(
        id="A1", first_name="Ann", last_name="Lee", specialty="Pediatrics",
        gender="Female", latitude=41.8, longitude=-71.4, accepting_new_patients=True,
    )


@pytest.fixture
def bob():
    return make_provider(
        id="B2", first_name="Bob", last_name="Roe", specialty="Cardiology",
        gender="Male", latitude=41.0, longitude=-71.0, accepting_new_patients=False,
    )


@pytest.fixture
def nomad():
    """Accepting pediatrician with no usable coordinates."""
    return make_provider(
        id="N3", first_name="Nora", last_name="Madsen", specialty="Pediatrics",
        gender="Female", latitude=None, longitude=None, accepting_new_patients=True,
    )


@pytest.fixture
def providers(ann, bob, nomad):
    return [ann, bob, nomad]


@pytest.fixture
def store(providers):
    return RecordStore(providers)


SAMPLE_CSV = (
    "First Name,Last Name,Degree,Specialty,Gender,Practice,Practice Address,Practice Address 2,"
    "Practice City,Practice Zip,Practice Main Line,Practice Latitude,Practice Longitude,"
    "Accepting New Patients,ID\n"
    'Ann,Lee,MD,Pediatrics,Female,"Lee Kids, Inc.",1 Main St,Suite 2,Providence,02903,401-555-0101,41.8,-71.4,True,A1\n'
    "Bob,Roe,DO,Cardiology,Male,Roe Heart,2 Elm St,,Newport,02840,401-555-0102,41.0,-71.0,False,B2\n"
    "Nora,Madsen,NP,Pediatrics,Female,Madsen Care,3 Oak St,,Woonsocket,02895,401-555-0103,,,True,N3\n"
    "\n\n"
)


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV
