import sys
from datetime import datetime, timezone
from pathlib import Path
import os

import pytest


# Ensure project src is on path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (ROOT, SRC):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

# Keep the suite independent of a developer's .env tuning
os.environ.setdefault("REVIEWTRUST_BATCH_MAX_WORKERS", "2")

from reviewtrust.lexicons import default_lexicons  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def lexicons():
    return default_lexicons()


@pytest.fixture
def now():
    return NOW
