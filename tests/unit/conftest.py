"""Apply the ``unit`` marker to everything collected under tests/unit."""

from pathlib import Path

import pytest


UNIT_DIR = Path(__file__).parent


def pytest_collection_modifyitems(config, items):
    for item in items:
        if UNIT_DIR in item.path.parents:
            item.add_marker(pytest.mark.unit)
