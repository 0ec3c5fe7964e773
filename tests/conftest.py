"""
Pytest configuration for policy_engine tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to the path so the package imports without installing
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from policy_engine.primitives.conversion import field_to_address  # noqa: E402
from policy_engine.primitives.hashing import Blake2FieldHasher  # noqa: E402


@pytest.fixture
def hasher() -> Blake2FieldHasher:
    return Blake2FieldHasher()


@pytest.fixture
def addresses():
    """Addresses of the field elements 10, 20, ..., 80."""
    return [field_to_address(v) for v in range(10, 90, 10)]


class SleepRecorder:
    """Stands in for sleep_ms; records requested delays."""

    def __init__(self) -> None:
        self.calls = []

    def __call__(self, ms: float) -> None:
        self.calls.append(ms)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
