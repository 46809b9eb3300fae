"""
pytest configuration for streamfn tests.

Adds src directory to Python path for imports and resets process-wide state
between tests.
"""

import os
import sys
from pathlib import Path

import pytest

# Set test environment variables BEFORE any imports
os.environ.setdefault("TEST_MODE", "true")

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop the shared environment, meter registry and log context."""
    from config import reset_environment
    from core.logging.context import clear_log_context
    from streamfn.metrics import reset_registry

    yield
    reset_environment()
    reset_registry()
    clear_log_context()
