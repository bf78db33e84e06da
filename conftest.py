"""Root conftest: applies .env.test to the environment before settings are imported."""
from __future__ import annotations

import os
from pathlib import Path

_ENV_FILE = Path(__file__).resolve().parent / ".env.test"

if _ENV_FILE.exists():
    for raw in _ENV_FILE.read_text().splitlines():
        entry = raw.strip()
        if entry and not entry.startswith("#"):
            name, _, value = entry.partition("=")
            os.environ.setdefault(name.strip(), value.strip())
