# solarcal/conftest.py
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from solarcal.core.config import Settings  # noqa: E402
from solarcal.models.anchor import AnchorPreset  # noqa: E402

TEST_DEFAULT_ANCHOR = date(2024, 3, 20)


@pytest.fixture
def test_settings():
    """
    Settings with a fixed default anchor.

    Without DEFAULT_ANCHOR_DATE the default anchor moves with the current year.
    """
    return Settings(DEFAULT_ANCHOR_DATE=TEST_DEFAULT_ANCHOR, DATABASE_URL=None, CONFIG_STRICT=False)


@pytest.fixture
def anchor():
    return AnchorPreset(
        id="preset-2020",
        name="New Year 2020",
        start_date=date(2020, 1, 1),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def registry(test_settings):
    from solarcal.features.presets.service import PresetRegistry

    return PresetRegistry(settings_obj=test_settings)


@pytest.fixture
def client(test_settings, registry):
    from solarcal.main import create_app

    app = create_app(settings_obj=test_settings, registry=registry)
    with TestClient(app) as test_client:
        yield test_client
