"""
Cloud Export Core - Export Service
==================================
Application-facing entry point tying adapters to stored OAuth tokens.

The service owns no persistence: tokens are read from and written to a
CredentialStore supplied by the caller, and rotated tokens produced by
any refresh are written back immediately.
"""

import logging
import secrets
import threading
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Dict, Optional, Sequence, Tuple

from ..config.constants import DEFAULT_ALBUM_NAME, DEFAULT_SUBGROUP
from ..errors import MissingCredentialsError
from ..models import ExportResult, FileDescriptor, FileStatus, ProviderCredentials
from ..providers.base import BaseCloudStorageProvider
from ..providers.factory import CloudStorageFactory
from ..utils.file_utils import build_archive, sanitize_folder_name, unique_archive_path
from .oauth_messages import describe_export_error, describe_oauth_error

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Persistence boundary for OAuth tokens, keyed by (user, provider)."""

    @abstractmethod
    def get_credentials(self, user_id: str, provider: str) -> Optional[ProviderCredentials]:
        pass

    @abstractmethod
    def persist_credentials(self, user_id: str, provider: str, credentials: ProviderCredentials) -> None:
        pass


class InMemoryCredentialStore(CredentialStore):
    """Process-local store, for tests and single-process tools."""

    def __init__(self):
        self._tokens: Dict[Tuple[str, str], ProviderCredentials] = {}
        self._lock = threading.Lock()

    def get_credentials(self, user_id: str, provider: str) -> Optional[ProviderCredentials]:
        with self._lock:
            return self._tokens.get((user_id, provider))

    def persist_credentials(self, user_id: str, provider: str, credentials: ProviderCredentials) -> None:
        with self._lock:
            self._tokens[(user_id, provider)] = credentials


class CloudExportService:
    """
    Runs OAuth linking and exports for a user against any provider.

    Usage:
        service = CloudExportService(store)
        url = service.authorization_url("dropbox", service.new_state(), redirect_uri)
        service.complete_authorization(user_id, "dropbox", code, redirect_uri)
        result = service.export_collection(user_id, "dropbox", files, "Wedding")
    """

    def __init__(
        self,
        store: CredentialStore,
        factory: type = CloudStorageFactory,
        **adapter_options: Any,
    ):
        """
        Args:
            store: Token persistence
            factory: Adapter factory (CloudStorageFactory or compatible)
            **adapter_options: Passed to every adapter (session, max_workers, ...)
        """
        self.store = store
        self.factory = factory
        self.adapter_options = adapter_options

    def _adapter(self, provider: str, user_id: Optional[str] = None) -> Tuple[str, BaseCloudStorageProvider]:
        key = self.factory.resolve_provider_type(provider)
        options = dict(self.adapter_options)
        if user_id is not None:
            options['token_refresh_callback'] = partial(self.store.persist_credentials, user_id, key)
        return key, self.factory.create(key, **options)

    def _load_credentials(self, user_id: str, key: str) -> ProviderCredentials:
        credentials = self.store.get_credentials(user_id, key)
        if credentials is None or not credentials.access_token:
            raise MissingCredentialsError(f"No OAuth token found for cloud storage '{key}'", key)
        return credentials

    # =========================================================================
    # ACCOUNT LINKING
    # =========================================================================

    @staticmethod
    def new_state() -> str:
        """Random anti-forgery nonce for the OAuth state parameter."""
        return secrets.token_hex(20)

    def authorization_url(self, provider: str, state: str, redirect_uri: str) -> str:
        _, adapter = self._adapter(provider)
        return adapter.authorization_url(state, redirect_uri)

    def complete_authorization(self, user_id: str, provider: str, code: str, redirect_uri: str) -> ProviderCredentials:
        """Exchange the callback code and persist the resulting tokens."""
        key, adapter = self._adapter(provider, user_id)
        credentials = adapter.exchange_code(code, redirect_uri)
        self.store.persist_credentials(user_id, key, credentials)
        logger.info("Linked %s for user %s", adapter.get_provider_name(), user_id)
        return credentials

    # =========================================================================
    # EXPORTS
    # =========================================================================

    def upload_file(
        self,
        user_id: str,
        provider: str,
        content: bytes,
        name: str,
        folder_name: Optional[str] = None,
    ) -> str:
        key, adapter = self._adapter(provider, user_id)
        return adapter.upload_file(content, name, self._load_credentials(user_id, key), folder_name)

    def export_collection(
        self,
        user_id: str,
        provider: str,
        files: Sequence[FileDescriptor],
        album_name: str = DEFAULT_ALBUM_NAME,
    ) -> ExportResult:
        """
        Export files file-by-file into album/subgroup folders.

        Raises:
            MissingCredentialsError: If the user has not linked the provider
            ExportError: If no file could be exported
        """
        key, adapter = self._adapter(provider, user_id)
        credentials = self._load_credentials(user_id, key)
        return adapter.export_files(files, credentials, album_name)

    def export_archive(
        self,
        user_id: str,
        provider: str,
        files: Sequence[FileDescriptor],
        album_name: str = DEFAULT_ALBUM_NAME,
        archive_name: Optional[str] = None,
    ) -> ExportResult:
        """
        Export files as one zip archive where the provider accepts archives.

        Archive entries are laid out as ``<subgroup>/<name>``. Providers
        without archive support (Google Photos) get a regular file-by-file
        export instead.
        """
        key, adapter = self._adapter(provider, user_id)
        credentials = self._load_credentials(user_id, key)

        if not adapter.supports_archive_upload():
            logger.info("%s does not accept archives, exporting files individually", adapter.get_provider_name())
            return adapter.export_files(files, credentials, album_name)

        album = sanitize_folder_name(album_name, DEFAULT_ALBUM_NAME)
        statuses = []
        entries: Dict[str, bytes] = {}
        for descriptor in files:
            try:
                content = descriptor.read_bytes()
            except (OSError, ValueError) as e:
                logger.warning("Leaving %s out of the archive: %s", descriptor.name, e)
                statuses.append(FileStatus(name=descriptor.name, ok=False, error=str(e)))
                continue
            folder = sanitize_folder_name(descriptor.subgroup, DEFAULT_SUBGROUP)
            arcname = unique_archive_path(f"{folder}/{descriptor.name}", entries)
            if arcname != f"{folder}/{descriptor.name}":
                logger.info("Archive already has %s/%s, storing it as %s", folder, descriptor.name, arcname)
            entries[arcname] = content
            statuses.append(FileStatus(name=descriptor.name, ok=True))

        if not entries:
            # Nothing readable; let the adapter report the failure
            return adapter.export_files(files, credentials, album_name)

        archive_name = archive_name or f"{album}.zip"
        url = adapter.upload_file(build_archive(entries), archive_name, credentials, folder_name=album)
        logger.info("Uploaded archive %s (%d files) to %s", archive_name, len(entries), adapter.get_provider_name())
        return ExportResult(url=url, per_file_status=statuses)

    # =========================================================================
    # MESSAGES
    # =========================================================================

    @staticmethod
    def describe_oauth_error(provider: str, error: str, description: Optional[str] = None) -> str:
        return describe_oauth_error(provider, error, description)

    @staticmethod
    def describe_export_error(exc: Exception) -> str:
        return describe_export_error(exc)
