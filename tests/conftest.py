"""
Pytest configuration and shared fixtures for MowerManager tests.
"""

import os
import sys
import tempfile
from datetime import date

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Point storage and logs at a scratch directory before importing app modules.
# DATABASE_URL is blanked (not removed) so a local .env cannot switch the
# suite onto PostgreSQL.
_TEST_DIR = tempfile.mkdtemp(prefix='mowermanager-tests-')
os.environ["DATA_DIR"] = _TEST_DIR
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["DATABASE_URL"] = ""
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret-key")

from db import get_db  # noqa: E402
from feature_routes import init_all_feature_tables  # noqa: E402

ALL_TABLES = [
    'notifications', 'attachments', 'asset_parts', 'engines',
    'parts', 'tasks', 'service_records', 'mowers',
]

TODAY = date(2025, 6, 15)


@pytest.fixture(scope='session', autouse=True)
def _tables():
    init_all_feature_tables()


@pytest.fixture
def clean_db():
    """Empty every table before and after the test."""
    def _wipe():
        with get_db() as conn:
            for table in ALL_TABLES:
                conn.execute(f"DELETE FROM {table}")
    _wipe()
    yield
    _wipe()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def mower_data():
    return {
        'make': 'Toro',
        'model': 'Greensmaster 3150',
        'year': 2019,
        'serial_number': 'TGM-3150-0042',
        'location': 'Maintenance barn',
        'condition': 'good',
        'status': 'active',
    }


@pytest.fixture
def app_client(clean_db):
    """Flask test client over a clean database."""
    from app import app as _app
    _app.config['TESTING'] = True
    with _app.test_client() as client:
        yield client
