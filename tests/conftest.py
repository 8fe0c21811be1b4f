"""
Pytest Configuration and Fixtures
==================================
Loads test credentials from environment and provides reusable fixtures.
"""

import os
import sys
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from dotenv import load_dotenv

# Add lib to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "lib"))

# Load test environment variables
env_file = project_root / ".env.test"
if env_file.exists():
    load_dotenv(env_file)
else:
    # Try loading from CI environment
    load_dotenv()


# =============================================================================
# CREDENTIAL FIXTURES (live APIs)
# =============================================================================

@pytest.fixture(scope="session")
def dropbox_credentials():
    """Dropbox OAuth client and refresh token from environment."""
    creds = {
        "client_id": os.getenv("TEST_DROPBOX_APP_KEY"),
        "client_secret": os.getenv("TEST_DROPBOX_APP_SECRET"),
        "refresh_token": os.getenv("TEST_DROPBOX_REFRESH_TOKEN"),
    }

    if not all(creds.values()):
        pytest.skip("Dropbox credentials not configured")

    return creds


@pytest.fixture(scope="session")
def google_drive_credentials():
    """Google OAuth client and Drive refresh token from environment."""
    creds = {
        "client_id": os.getenv("TEST_GDRIVE_CLIENT_ID"),
        "client_secret": os.getenv("TEST_GDRIVE_CLIENT_SECRET"),
        "refresh_token": os.getenv("TEST_GDRIVE_REFRESH_TOKEN"),
    }

    if not all(creds.values()):
        pytest.skip("Google Drive credentials not configured")

    return creds


@pytest.fixture(scope="session")
def test_folder_name():
    """Folder (album) name used by live export tests."""
    return os.getenv("TEST_EXPORT_FOLDER", "CloudExport-Tests")


@pytest.fixture(scope="session")
def encryption_key():
    """Fernet encryption key for testing."""
    key = os.getenv("TEST_ENCRYPTION_KEY")

    if not key:
        # Generate a temporary key for unit tests
        from cryptography.fernet import Fernet
        key = Fernet.generate_key().decode()

    return key


# =============================================================================
# TOKEN FIXTURES
# =============================================================================

@pytest.fixture
def valid_credentials():
    """Credentials valid for another hour."""
    from cloud_export.models import ProviderCredentials

    return ProviderCredentials(
        access_token="access-token",
        refresh_token="refresh-token",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def expired_credentials():
    """Credentials that expired ten minutes ago."""
    from cloud_export.models import ProviderCredentials

    return ProviderCredentials(
        access_token="stale-token",
        refresh_token="refresh-token",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=10),
    )


# =============================================================================
# PROVIDER FIXTURES
# =============================================================================

@pytest.fixture
def fake_session():
    """Recording transport shared by requests-based adapters."""
    from fakes import FakeSession

    return FakeSession()


@pytest.fixture
def make_provider(fake_session):
    """Build an adapter wired to the fake transport."""
    from cloud_export.providers import CloudStorageFactory

    def _make_provider(provider_type, **kwargs):
        kwargs.setdefault('session', fake_session)
        kwargs.setdefault('app_folder', 'Mazeloot')
        kwargs.setdefault('max_workers', 1)
        return CloudStorageFactory.create(provider_type, "client-id", "client-secret", **kwargs)

    return _make_provider


@pytest.fixture
def make_files(sample_image_bytes):
    """Build FileDescriptors from (name, subgroup) pairs."""
    from cloud_export.models import FileDescriptor

    def _make_files(*specs, content=None):
        return [
            FileDescriptor(name=name, content=content or sample_image_bytes, subgroup=subgroup)
            for name, subgroup in specs
        ]

    return _make_files


# =============================================================================
# UTILITY FIXTURES
# =============================================================================

@pytest.fixture
def mock_env(monkeypatch):
    """Helper to mock environment variables."""
    def _mock_env(env_dict):
        for key, value in env_dict.items():
            monkeypatch.setenv(key, value)
    return _mock_env


@pytest.fixture
def sample_image_bytes():
    """Minimal valid JPEG bytes for testing uploads."""
    # Smallest valid JPEG (1x1 pixel, gray)
    return bytes([
        0xFF, 0xD8, 0xFF, 0xE0, 0x00, 0x10, 0x4A, 0x46, 0x49, 0x46, 0x00, 0x01,
        0x01, 0x00, 0x00, 0x01, 0x00, 0x01, 0x00, 0x00, 0xFF, 0xDB, 0x00, 0x43,
        0x00, 0x08, 0x06, 0x06, 0x07, 0x06, 0x05, 0x08, 0x07, 0x07, 0x07, 0x09,
        0x09, 0x08, 0x0A, 0x0C, 0x14, 0x0D, 0x0C, 0x0B, 0x0B, 0x0C, 0x19, 0x12,
        0x13, 0x0F, 0x14, 0x1D, 0x1A, 0x1F, 0x1E, 0x1D, 0x1A, 0x1C, 0x1C, 0x20,
        0x24, 0x2E, 0x27, 0x20, 0x22, 0x2C, 0x23, 0x1C, 0x1C, 0x28, 0x37, 0x29,
        0x2C, 0x30, 0x31, 0x34, 0x34, 0x34, 0x1F, 0x27, 0x39, 0x3D, 0x38, 0x32,
        0x3C, 0x2E, 0x33, 0x34, 0x32, 0xFF, 0xC0, 0x00, 0x0B, 0x08, 0x00, 0x01,
        0x00, 0x01, 0x01, 0x01, 0x11, 0x00, 0xFF, 0xC4, 0x00, 0x1F, 0x00, 0x00,
        0x01, 0x05, 0x01, 0x01, 0x01, 0x01, 0x01, 0x01, 0x00, 0x00, 0x00, 0x00,
        0x00, 0x00, 0x00, 0x00, 0x01, 0x02, 0x03, 0x04, 0x05, 0x06, 0x07, 0x08,
        0x09, 0x0A, 0x0B, 0xFF, 0xD9
    ])


# =============================================================================
# TEST MARKERS COLLECTION
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests that call external APIs")
    config.addinivalue_line("markers", "dropbox: Tests requiring Dropbox credentials")
    config.addinivalue_line("markers", "google_drive: Tests requiring Google Drive credentials")
    config.addinivalue_line("markers", "google_photos: Google Photos adapter tests")
    config.addinivalue_line("markers", "onedrive: OneDrive adapter tests")
    config.addinivalue_line("markers", "box: Box adapter tests")
    config.addinivalue_line("markers", "adobe: Adobe Creative Cloud adapter tests")
    config.addinivalue_line("markers", "slow: Tests that take more than 30 seconds")
