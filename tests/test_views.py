"""Tests for the Flask endpoints."""
import pytest

from provider_app import create_app

from tests.conftest import FakeGeocoder


@pytest.fixture
def app(store):
    return create_app(
        test_config={"TESTING": True},
        store=store,
        geocoder=FakeGeocoder({"02886": (41.7, -71.5)}),
    )


@pytest.fixture
def client(app):
    return app.test_client()


class TestDirectoryEndpoints:
    def test_specialties(self, client):
        r = client.get("/providers/api/specialties")
        assert r.status_code == 200
        assert r.get_json() == {"specialties": ["Cardiology", "Pediatrics"]}

    def test_initial_state_shows_everyone(self, client):
        body = client.get("/providers/api/current").get_json()
        assert body["count"] == 3
        assert body["stats"]["marker_count"] == 2

    def test_search_by_specialty(self, client):
        r = client.post("/providers/api/search", data={"specialty": "Cardiology"})
        assert r.status_code == 200
        body = r.get_json()
        assert [p["id"] for p in body["providers"]] == ["B2"]
        assert body["overlay"] is None

    def test_search_multiple_specialties_query_string(self, client):
        r = client.get("/providers/api/search?specialty=Cardiology&specialty=Pediatrics&accepting=on")
        assert [p["id"] for p in r.get_json()["providers"]] == ["A1", "N3"]

    def test_radius_search(self, client):
        r = client.post("/providers/api/search", data={"zip": "02886", "radius": "10"})
        body = r.get_json()
        assert [p["id"] for p in body["providers"]] == ["A1"]
        assert body["overlay"]["radius_miles"] == 10
        assert body["viewport"]["center"] == {"lat": 41.7, "lng": -71.5}

    def test_unresolved_zip_returns_notice(self, client):
        body = client.post("/providers/api/search", data={"zip": "00000", "name": "lee"}).get_json()
        assert [p["id"] for p in body["providers"]] == ["A1"]
        assert body["notice"] == "Could not find location for zip code: 00000"
        assert body["overlay"] is None

    def test_comma_separated_specialty_value(self, client):
        r = client.get("/providers/api/search?specialty=Cardiology,Pediatrics")
        assert [p["id"] for p in r.get_json()["providers"]] == ["A1", "B2", "N3"]

    def test_radius_outside_choices_uses_default(self, client):
        body = client.post("/providers/api/search", data={"zip": "02886", "radius": "7"}).get_json()
        assert body["overlay"]["radius_miles"] == 10

    def test_notice_is_not_carried_into_later_responses(self, client):
        client.post("/providers/api/search", data={"zip": "00000"})
        assert client.get("/providers/api/current").get_json()["notice"] is None

    def test_clear(self, client):
        client.post("/providers/api/search", data={"zip": "02886", "radius": "10"})
        body = client.post("/providers/api/clear").get_json()
        assert body["count"] == 3
        assert body["overlay"] is None
        assert body["viewport"]["zoom"] == 9

    def test_focus(self, client):
        r = client.get("/providers/api/providers/A1")
        assert r.status_code == 200
        body = r.get_json()
        assert body["provider"]["display_name"] == "Ann Lee, MD"
        assert body["viewport"]["zoom"] == 15

    def test_focus_unknown(self, client):
        assert client.get("/providers/api/providers/nope").status_code == 404

    def test_export_current_results(self, client):
        client.post("/providers/api/search", data={"specialty": "Pediatrics"})
        r = client.get("/providers/export")
        assert r.status_code == 200
        assert r.mimetype == "text/csv"
        lines = r.get_data(as_text=True).strip().splitlines()
        assert lines[0].startswith("ID,First Name,Last Name")
        assert len(lines) == 3
        assert lines[1].endswith(",True")

    def test_each_client_has_its_own_view(self, app):
        first = app.test_client()
        second = app.test_client()
        body = first.post("/providers/api/search", data={"specialty": "Cardiology"}).get_json()
        assert body["count"] == 1

        other = second.get("/providers/api/current").get_json()
        assert other["count"] == 3
        assert other["stats"]["marker_count"] == 2
        assert first.get("/providers/api/current").get_json()["count"] == 1

        second.post("/providers/api/search", data={"name": "ann"})
        r = first.get("/providers/export")
        assert len(r.get_data(as_text=True).strip().splitlines()) == 2

    def test_rows_without_ids_each_get_a_marker(self, tmp_path):
        path = tmp_path / "no_ids.csv"
        path.write_text(
            "First Name,Last Name,Practice Latitude,Practice Longitude,Accepting New Patients\n"
            "Ann,Lee,41.8,-71.4,True\n"
            "Bob,Roe,41.0,-71.0,False\n"
            "Cat,Poe,41.5,-71.2,True\n",
            encoding="utf-8",
        )
        app = create_app(test_config={"PROVIDERS_CSV": path}, geocoder=FakeGeocoder())
        body = app.test_client().get("/providers/api/current").get_json()
        assert body["count"] == 3
        assert body["stats"] == {"marker_count": 3, "accepting_count": 2}
        assert [m["title"] for m in body["markers"]] == ["Ann Lee", "Bob Roe", "Cat Poe"]


class TestLoadFailure:
    def test_missing_file_answers_503(self, tmp_path):
        app = create_app(test_config={"PROVIDERS_CSV": tmp_path / "missing.csv"})
        client = app.test_client()
        r = client.get("/providers/api/specialties")
        assert r.status_code == 503
        assert "could not be loaded" in r.get_json()["error"]
        assert client.post("/providers/api/search", data={}).status_code == 503

    def test_empty_file_answers_503(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        app = create_app(test_config={"PROVIDERS_CSV": path})
        assert app.test_client().get("/providers/api/current").status_code == 503

    def test_unreadable_file_answers_503(self, monkeypatch):
        import provider_app

        def denied(path):
            raise PermissionError(f"Permission denied: '{path}'")

        monkeypatch.setattr(provider_app, "get_store", denied)
        app = create_app(test_config={"TESTING": True})
        r = app.test_client().get("/providers/api/current")
        assert r.status_code == 503
        assert "Permission denied" in r.get_json()["error"]

    def test_health_reports_missing_file(self, tmp_path):
        app = create_app(test_config={"PROVIDERS_CSV": tmp_path / "missing.csv"})
        r = app.test_client().get("/providers/health")
        assert r.status_code == 503
        body = r.get_json()
        assert body["all_ok"] is False
        assert body["status"]["providers"]["exists"] is False


class TestHealth:
    def test_health_ok_from_file(self, tmp_path, sample_csv):
        path = tmp_path / "providers.csv"
        path.write_text(sample_csv, encoding="utf-8")
        app = create_app(test_config={"PROVIDERS_CSV": path}, geocoder=FakeGeocoder())
        r = app.test_client().get("/providers/health")
        assert r.status_code == 200
        body = r.get_json()
        assert body["all_ok"] is True
        assert body["status"]["providers"]["missing_columns"] == []

    def test_health_skips_leading_blank_lines(self, tmp_path, sample_csv):
        path = tmp_path / "providers.csv"
        path.write_text("\n\r\n" + sample_csv, encoding="utf-8")
        app = create_app(test_config={"PROVIDERS_CSV": path}, geocoder=FakeGeocoder())
        r = app.test_client().get("/providers/health")
        assert r.status_code == 200
        assert r.get_json()["status"]["providers"]["missing_columns"] == []
