from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from provider_app.filters import FilterCriteria, filter_providers
from provider_app.records import load_providers_csv


def main() -> None:
    root = Path(__file__).resolve().parents[1]
    store = load_providers_csv(root / "data" / "providers.csv")

    print(f"{len(store)} providers; specialties: {', '.join(store.facet_specialties())}")

    accepting = filter_providers(store.all(), FilterCriteria(accepting_only=True))
    df = store.to_frame(accepting)
    print(df[["id", "first_name", "last_name", "specialty", "city"]].head(10).to_string(index=False))


if __name__ == "__main__":
    main()
