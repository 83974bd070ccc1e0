"""
Configuration for the path planner backend.

Values are plain module-level constants.  A handful can be overridden
through environment variables which are read once at import time, so
tests that need a different value should monkeypatch the constant
rather than the environment.
"""

from __future__ import annotations

import os
from pathlib import Path

# Repository root: backend/pysplanner/config.py -> two parents up.
BASE_DIR = Path(__file__).resolve().parents[2]

# Directory holding saved plan documents and the SQLite index.
STORAGE_DIR = Path(os.getenv("PYSPLANNER_STORAGE_DIR", str(BASE_DIR / "storage")))

DATABASE_URL = os.getenv(
    "PYSPLANNER_DATABASE_URL",
    f"sqlite:///{(STORAGE_DIR / 'pysplanner.db').as_posix()}",
)

# Curve interpolation defaults.  Density is expressed in samples per
# unit of segment length.
CURVE_TENSION: float = float(os.getenv("PYSPLANNER_CURVE_TENSION", "0.5"))
CURVE_DENSITY: float = float(os.getenv("PYSPLANNER_CURVE_DENSITY", "0.035"))

# Run capacity.  Reaching SOFT_POINT_LIMIT emits a warning; a run can
# never reach MAX_RUN_POINTS.
SOFT_POINT_LIMIT: int = 25
MAX_RUN_POINTS: int = 50

# Placeholder substituted with the serialised plan in code templates.
PLACEHOLDER_TOKEN = "{INSERT_PATH_PLANNER_DATA}"

_DEFAULT_TEMPLATE_URL = (
    "https://raw.githubusercontent.com/PySplanner/PySplanner/refs/heads/main/pysplanner.py"
)

# Template location per hub type, keyed by the hub's value string.
TEMPLATE_URLS: dict[str, str] = {
    "Spike": os.getenv("PYSPLANNER_TEMPLATE_URL_SPIKE", _DEFAULT_TEMPLATE_URL),
    "EV3": os.getenv("PYSPLANNER_TEMPLATE_URL_EV3", _DEFAULT_TEMPLATE_URL),
}

TEMPLATE_TIMEOUT_S: float = float(os.getenv("PYSPLANNER_TEMPLATE_TIMEOUT", "10.0"))

PLAN_FILE_EXTENSION = ".pysplan"
