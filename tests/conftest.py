"""
Pytest configuration and fixtures for tilecode tests.

Markers:
    @pytest.mark.codec - Zoom selector and code codec tests
    @pytest.mark.index - Index storage and range query tests
    @pytest.mark.cli - Command-line interface tests
    @pytest.mark.slow - Tests that take longer to run

Usage:
    pytest -m codec              # Run only codec tests
    pytest -m "not slow"         # Skip slow tests
"""

import random
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "codec: Zoom selector and code codec tests")
    config.addinivalue_line("markers", "index: Index storage and range query tests")
    config.addinivalue_line("markers", "cli: Command-line interface tests")
    config.addinivalue_line("markers", "slow: Slow-running tests")


def pytest_collection_modifyitems(config, items):
    """Auto-apply markers based on test file names and test names."""
    for item in items:
        basename = item.fspath.basename
        if "codec" in basename or "projection" in basename:
            item.add_marker(pytest.mark.codec)
        if "index" in basename or "segments" in basename:
            item.add_marker(pytest.mark.index)
        if "cli" in basename:
            item.add_marker(pytest.mark.cli)

        test_name = item.name.lower()
        if "random" in test_name or "stress" in test_name:
            item.add_marker(pytest.mark.slow)


@pytest.fixture
def random_boxes():
    """Small random boxes around New York, reproducible across runs."""
    rng = random.Random(42)
    boxes = []
    for _ in range(400):
        lat = rng.uniform(40.5, 41.0)
        lon = rng.uniform(-74.3, -73.7)
        dlat = rng.uniform(0.0, 0.02)
        dlon = rng.uniform(0.0, 0.02)
        boxes.append((lat, lon, lat + dlat, lon + dlon))
    return boxes


@pytest.fixture
def segment_text():
    """Segment input with two identical segments, one far away and a trailer."""
    return (
        "40.7000,-74.0000 40.7010,-74.0010\n"
        "40.7000,-74.0000 40.7010,-74.0010\n"
        "10.0000,10.0000 10.0010,10.0010\n"
        "--\n"
        "0,0 1,1\n"
    )
