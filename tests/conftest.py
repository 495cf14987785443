"""
Pytest configuration file.

Ensures the repo root is on sys.path so that 'import src...' works, and
provides fixtures shared by the codec and service tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the repo root to sys.path
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from src.utils.time import FrozenClock


@pytest.fixture
def frozen_clock():
    """Clock pinned to 2026-01-18 09:00 UTC."""
    return FrozenClock(datetime(2026, 1, 18, 9, 0, tzinfo=timezone.utc))
