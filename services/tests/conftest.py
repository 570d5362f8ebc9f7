"""Shared fixtures for the plant-care test suite."""

import sys
from pathlib import Path

import pytest

# Add services/ to sys.path so imports work like they do in Docker
SERVICES_DIR = Path(__file__).resolve().parent.parent
if str(SERVICES_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICES_DIR))

from plantcare.models import PredictionRequest  # noqa: E402


@pytest.fixture
def leaf():
    return PredictionRequest(content=b"\xff\xd8leaf-bytes", filename="leaf.jpg", media_type="image/jpeg")


@pytest.fixture
def delays():
    return []


@pytest.fixture
def fake_sleep(delays):
    async def sleep(seconds):
        delays.append(seconds)
    return sleep
