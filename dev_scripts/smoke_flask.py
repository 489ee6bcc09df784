from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[1]))

from provider_app import create_app


class _OfflineGeocoder:
    """Resolves every query to downtown Providence so the smoke test needs no network."""

    def geocode(self, query):
        return SimpleNamespace(latitude=41.824, longitude=-71.4128)


def main() -> None:
    app = create_app(geocoder=_OfflineGeocoder())

    with app.test_client() as c:
        r = c.get("/providers/health")
        assert r.status_code == 200, r.get_json()
        print("GET /providers/health OK")

        r = c.get("/providers/api/specialties")
        assert r.status_code == 200
        print("GET specialties OK:", r.get_json()["specialties"])

        r = c.post("/providers/api/search", data={"specialty": "Cardiology"})
        assert r.status_code == 200
        print("POST specialty search OK:", r.get_json()["count_label"])

        r = c.post("/providers/api/search", data={"zip": "02903", "radius": "10"})
        assert r.status_code == 200
        body = r.get_json()
        assert body["overlay"] is not None
        print("POST radius search OK:", body["count_label"])

        r = c.get("/providers/export", buffered=False)
        assert r.status_code == 200
        assert (r.headers.get("Content-Type", "") or "").startswith("text/csv")
        _ = next(r.response)  # read a small chunk
        r.close()
        print("GET export OK")

        r = c.post("/providers/api/clear")
        assert r.status_code == 200
        assert r.get_json()["overlay"] is None
        print("POST clear OK")

    print("Smoke test OK")


if __name__ == "__main__":
    main()
