"""Data validation and health checks for the provider export."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from .config import Config
from .logger import logger
from .records import PROVIDER_COLUMNS, resolve_columns
from .tabular import parse_line, split_lines


def check_data_files(providers_csv: Path | None = None) -> Dict[str, Dict[str, Any]]:
    """
    Check that the provider export exists and carries the expected columns.

    Returns:
        Dictionary with status for each data source
    """
    path = Path(providers_csv or Config.PROVIDERS_CSV)
    status: Dict[str, Dict[str, Any]] = {}

    exists = path.exists()
    readable = exists and path.is_file()
    missing_columns: list[str] = []
    if readable:
        try:
            # Same line splitting as the loader, so leading blank lines are skipped alike.
            lines = split_lines(path.read_text(encoding="utf-8-sig"))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            readable = False
            lines = []
    if readable:
        headers = parse_line(lines[0]) if lines else []
        columns = resolve_columns(headers)
        missing_columns = [PROVIDER_COLUMNS[field][0] for field, col in columns.items() if col is None]

    status["providers"] = {
        "exists": exists,
        "path": str(path),
        "readable": readable,
        "missing_columns": missing_columns,
    }
    return status


def get_data_health_summary(providers_csv: Path | None = None) -> str:
    """Get a human-readable summary of data file health."""
    status = check_data_files(providers_csv)

    issues = []
    for name, info in status.items():
        if not info["exists"]:
            issues.append(f"{name}: File not found at {info['path']}")
        elif not info["readable"]:
            issues.append(f"{name}: Path exists but is not a readable file")
        elif info["missing_columns"]:
            issues.append(f"{name}: Missing columns {', '.join(info['missing_columns'])}")

    if not issues:
        return "All required data files are present and accessible."

    return "Data file issues:\n" + "\n".join(f"  - {issue}" for issue in issues)
