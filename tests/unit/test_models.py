"""
Unit Tests: Data Model
======================
Tests token expiry math, file descriptors and export results.
No external API calls - runs fast.
"""

import pytest
from datetime import datetime, timedelta, timezone

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestProviderCredentials:
    """Tests for ProviderCredentials."""

    @pytest.mark.unit
    def test_from_token_response_sets_expiry(self):
        """expires_at should be issue time plus expires_in."""
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials.from_token_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": 14400}, now=NOW,
        )

        assert creds.access_token == "a"
        assert creds.refresh_token == "r"
        assert creds.expires_at == NOW + timedelta(hours=4)

    @pytest.mark.unit
    def test_from_token_response_defaults_lifetime(self):
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials.from_token_response({"access_token": "a"}, now=NOW)

        assert creds.expires_at == NOW + timedelta(seconds=3600)

    @pytest.mark.unit
    def test_from_token_response_keeps_previous_refresh_token(self):
        """Providers that do not rotate refresh tokens omit them."""
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials.from_token_response(
            {"access_token": "a", "expires_in": 60}, previous_refresh_token="old-refresh",
        )

        assert creds.refresh_token == "old-refresh"

    @pytest.mark.unit
    def test_from_token_response_prefers_rotated_refresh_token(self):
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials.from_token_response(
            {"access_token": "a", "refresh_token": "new-refresh"}, previous_refresh_token="old-refresh",
        )

        assert creds.refresh_token == "new-refresh"

    @pytest.mark.unit
    def test_from_token_response_requires_access_token(self):
        from cloud_export.models import ProviderCredentials

        with pytest.raises(ValueError):
            ProviderCredentials.from_token_response({"refresh_token": "r"})

    @pytest.mark.unit
    def test_is_expired_applies_skew(self):
        """A token inside the skew window counts as expired."""
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials(access_token="a", expires_at=NOW + timedelta(seconds=30))

        assert creds.is_expired(skew_seconds=60, now=NOW)
        assert not creds.is_expired(skew_seconds=10, now=NOW)

    @pytest.mark.unit
    def test_without_expiry_never_expires(self):
        from cloud_export.models import ProviderCredentials

        assert not ProviderCredentials(access_token="a").is_expired()

    @pytest.mark.unit
    def test_dict_form_uses_iso_timestamps(self):
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials(access_token="a", refresh_token="r", expires_at=NOW)
        data = creds.to_dict()

        assert data["expires_at"] == "2030-06-01T12:00:00+00:00"
        assert ProviderCredentials.from_dict(data) == creds

    @pytest.mark.unit
    def test_naive_expiry_is_treated_as_utc(self):
        """Naive timestamps from callers or stored rows compare as UTC."""
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials(access_token="a", expires_at=datetime(2030, 6, 1, 12, 0))

        assert creds.expires_at == NOW
        assert not creds.is_expired(now=NOW - timedelta(hours=1))
        assert creds.is_expired(now=datetime(2030, 6, 1, 12, 0))

    @pytest.mark.unit
    def test_naive_stored_timestamp_round_trips(self):
        from cloud_export.models import ProviderCredentials

        creds = ProviderCredentials.from_dict({"access_token": "a", "expires_at": "2030-06-01T12:00:00"})

        assert creds.expires_at.tzinfo is not None
        assert creds.expires_at == NOW


class TestFileDescriptor:
    """Tests for FileDescriptor."""

    @pytest.mark.unit
    def test_reads_in_memory_content(self, sample_image_bytes):
        from cloud_export.models import FileDescriptor

        assert FileDescriptor(name="a.jpg", content=sample_image_bytes).read_bytes() == sample_image_bytes

    @pytest.mark.unit
    def test_reads_from_path(self, tmp_path, sample_image_bytes):
        from cloud_export.models import FileDescriptor

        path = tmp_path / "a.jpg"
        path.write_bytes(sample_image_bytes)

        assert FileDescriptor(name="a.jpg", path=str(path)).read_bytes() == sample_image_bytes

    @pytest.mark.unit
    def test_missing_body_raises(self):
        from cloud_export.models import FileDescriptor

        with pytest.raises(ValueError):
            FileDescriptor(name="a.jpg").read_bytes()

    @pytest.mark.unit
    def test_content_type(self):
        from cloud_export.models import FileDescriptor

        assert FileDescriptor(name="a.JPG").content_type() == "image/jpeg"
        assert FileDescriptor(name="a.bin", mime_type="video/mp4").content_type() == "video/mp4"

    @pytest.mark.unit
    def test_default_subgroup(self):
        from cloud_export.models import FileDescriptor

        assert FileDescriptor(name="a.jpg").subgroup == "Uncategorized"


class TestExportResult:
    """Tests for ExportResult."""

    @pytest.mark.unit
    def test_counts_and_partial_flag(self):
        from cloud_export.models import ExportResult, FileStatus

        result = ExportResult(
            url="https://example.com/album",
            per_file_status=[
                FileStatus(name="a.jpg", ok=True),
                FileStatus(name="b.jpg", ok=False, error="HTTP 500"),
                FileStatus(name="c.jpg", ok=True),
            ],
        )

        assert result.succeeded == 2
        assert [s.name for s in result.failed] == ["b.jpg"]
        assert result.is_partial

    @pytest.mark.unit
    def test_to_dict(self):
        from cloud_export.models import ExportResult, FileStatus

        result = ExportResult(
            url="u",
            per_file_status=[FileStatus(name="a.jpg", ok=True), FileStatus(name="b.jpg", ok=False, error="boom")],
        )

        assert result.to_dict() == {
            "url": "u",
            "succeeded": 1,
            "failed": 1,
            "per_file_status": [
                {"name": "a.jpg", "ok": True},
                {"name": "b.jpg", "ok": False, "error": "boom"},
            ],
        }

    @pytest.mark.unit
    def test_to_dict_includes_file_url(self):
        from cloud_export.models import FileStatus

        status = FileStatus(name="a.jpg", ok=True, url="https://photos.google.com/lr/photo/1")

        assert status.to_dict() == {"name": "a.jpg", "ok": True, "url": "https://photos.google.com/lr/photo/1"}
