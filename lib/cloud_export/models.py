"""
Cloud Export Core - Data Model
==============================
Per-call value objects exchanged between the calling service and the
provider adapters. Nothing here is persisted by this package.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .config.constants import (
    DEFAULT_SUBGROUP,
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    TOKEN_EXPIRY_SKEW_SECONDS,
)
from .utils.file_utils import guess_content_type


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProviderCredentials:
    """
    OAuth2 token pair for one (user, provider).

    Owned and persisted by the caller. Adapters hand back a new instance
    whenever they refresh, which may carry a rotated refresh token.
    """
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    token_type: str = "Bearer"

    def __post_init__(self):
        # Naive expiry times are taken as UTC
        if self.expires_at is not None and self.expires_at.tzinfo is None:
            object.__setattr__(self, 'expires_at', self.expires_at.replace(tzinfo=timezone.utc))

    @classmethod
    def from_token_response(
        cls,
        payload: Dict[str, Any],
        previous_refresh_token: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "ProviderCredentials":
        """
        Build credentials from a token endpoint JSON response.

        Args:
            payload: Decoded token response ({access_token, refresh_token?, expires_in})
            previous_refresh_token: Kept when the response does not rotate it
            now: Issue time (defaults to current UTC time)

        Raises:
            ValueError: If the response has no access_token
        """
        access_token = payload.get('access_token')
        if not access_token:
            raise ValueError("No access token in response")

        issued_at = now or _utcnow()
        expires_in = payload.get('expires_in') or DEFAULT_TOKEN_LIFETIME_SECONDS

        return cls(
            access_token=access_token,
            refresh_token=payload.get('refresh_token') or previous_refresh_token,
            expires_at=issued_at + timedelta(seconds=int(expires_in)),
            token_type=payload.get('token_type') or "Bearer",
        )

    def is_expired(self, skew_seconds: int = TOKEN_EXPIRY_SKEW_SECONDS, now: Optional[datetime] = None) -> bool:
        """True when the access token must not be used without a refresh."""
        if self.expires_at is None:
            return False
        current = now or _utcnow()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current >= self.expires_at - timedelta(seconds=skew_seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'token_type': self.token_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderCredentials":
        expires_at = data.get('expires_at')
        if isinstance(expires_at, str):
            expires_at = datetime.fromisoformat(expires_at)
        return cls(
            access_token=data['access_token'],
            refresh_token=data.get('refresh_token'),
            expires_at=expires_at,
            token_type=data.get('token_type') or "Bearer",
        )


@dataclass
class FileDescriptor:
    """
    One file to export.

    Either ``content`` (bytes already in memory) or ``path`` (local file
    supplied by the storage collaborator) must be set.
    """
    name: str
    content: Optional[bytes] = None
    path: Optional[str] = None
    mime_type: Optional[str] = None
    subgroup: str = DEFAULT_SUBGROUP
    size: Optional[int] = None

    def read_bytes(self) -> bytes:
        """Return the file body, reading it from ``path`` if needed."""
        if self.content is not None:
            return self.content
        if self.path:
            with open(self.path, 'rb') as handle:
                return handle.read()
        raise ValueError(f"File '{self.name}' has neither content nor path")

    def content_type(self) -> str:
        """Declared MIME type, else derived from the file extension."""
        return guess_content_type(self.name, self.mime_type)


@dataclass
class FileStatus:
    """Outcome of exporting a single file."""
    name: str
    ok: bool
    error: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'name': self.name, 'ok': self.ok}
        if self.error:
            data['error'] = self.error
        if self.url:
            data['url'] = self.url
        return data


@dataclass
class ExportResult:
    """Result of a batch export with at least one successful file."""
    url: str
    per_file_status: List[FileStatus] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for status in self.per_file_status if status.ok)

    @property
    def failed(self) -> List[FileStatus]:
        return [status for status in self.per_file_status if not status.ok]

    @property
    def is_partial(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'succeeded': self.succeeded,
            'failed': len(self.failed),
            'per_file_status': [status.to_dict() for status in self.per_file_status],
        }


@dataclass(frozen=True)
class Capability:
    """Static per-provider metadata."""
    provider_name: str
    supports_archive_upload: bool
