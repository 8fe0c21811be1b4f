"""
Cloud Storage Factory
=====================
Resolves a provider key to a configured export adapter.
"""

from typing import Dict, Optional, Type

from .base import BaseCloudStorageProvider
from .adobe_provider import AdobeProvider
from .box_provider import BoxProvider
from .dropbox_provider import DropboxProvider
from .google_drive_provider import GoogleDriveProvider
from .google_photos_provider import GooglePhotosProvider
from .onedrive_provider import OneDriveProvider

from ..config.constants import (
    PROVIDER_ADOBE,
    PROVIDER_ALIASES,
    PROVIDER_BOX,
    PROVIDER_DROPBOX,
    PROVIDER_GOOGLE_DRIVE,
    PROVIDER_GOOGLE_PHOTOS,
    PROVIDER_ONEDRIVE,
)
from ..config.settings import get_app_folder, get_max_workers, load_provider_settings
from ..models import Capability


class CloudStorageFactory:
    """
    Factory for creating export adapter instances.

    Usage:
        # OAuth client from environment variables
        adapter = CloudStorageFactory.create("dropbox")

        # Explicit OAuth client
        adapter = CloudStorageFactory.create("googledrive", client_id, client_secret)
    """

    # Registered provider classes
    _providers: Dict[str, Type[BaseCloudStorageProvider]] = {
        PROVIDER_GOOGLE_DRIVE: GoogleDriveProvider,
        PROVIDER_GOOGLE_PHOTOS: GooglePhotosProvider,
        PROVIDER_DROPBOX: DropboxProvider,
        PROVIDER_ONEDRIVE: OneDriveProvider,
        PROVIDER_BOX: BoxProvider,
        PROVIDER_ADOBE: AdobeProvider,
    }

    @classmethod
    def resolve_provider_type(cls, provider_type: str) -> str:
        """
        Normalize a provider key to its canonical identifier.

        Raises:
            ValueError: If provider type unknown
        """
        key = (provider_type or "").lower().strip()
        key = PROVIDER_ALIASES.get(key, key)

        if key not in cls._providers:
            supported = ", ".join(cls._providers.keys())
            raise ValueError(
                f"Unknown storage provider: '{provider_type}'. "
                f"Supported: {supported}"
            )
        return key

    @classmethod
    def create(
        cls,
        provider_type: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        **kwargs,
    ) -> BaseCloudStorageProvider:
        """
        Create an export adapter.

        Args:
            provider_type: Provider key ('googledrive', 'google', 'dropbox',
                'onedrive', 'box', 'adobe' or an alias)
            client_id: OAuth client id (read from the environment if None)
            client_secret: OAuth client secret (read from the environment if None)
            **kwargs: Passed to the adapter (session, token_refresh_callback, ...)

        Returns:
            Configured adapter instance

        Raises:
            ValueError: If provider type unknown or its OAuth client is not configured
        """
        key = cls.resolve_provider_type(provider_type)

        if not client_id or not client_secret:
            settings = load_provider_settings(key)
            client_id = client_id or settings.client_id
            client_secret = client_secret or settings.client_secret

        kwargs.setdefault('app_folder', get_app_folder())
        kwargs.setdefault('max_workers', get_max_workers())

        provider_class = cls._providers[key]
        return provider_class(client_id, client_secret, **kwargs)

    @classmethod
    def get_capability(cls, provider_type: str) -> Capability:
        """Static capability of a provider, without instantiating it."""
        key = cls.resolve_provider_type(provider_type)
        return Capability(
            provider_name=key,
            supports_archive_upload=cls._providers[key].SUPPORTS_ARCHIVE_UPLOAD,
        )

    @classmethod
    def get_supported_providers(cls) -> list:
        """Get list of supported provider types."""
        return list(cls._providers.keys())

    @classmethod
    def is_provider_supported(cls, provider_type: str) -> bool:
        """Check if a provider type (or alias) is supported."""
        key = (provider_type or "").lower().strip()
        return PROVIDER_ALIASES.get(key, key) in cls._providers

    @classmethod
    def register_provider(cls, provider_type: str, provider_class: type) -> None:
        """
        Register a new provider class.

        Args:
            provider_type: Provider type identifier
            provider_class: Class that implements BaseCloudStorageProvider
        """
        if not issubclass(provider_class, BaseCloudStorageProvider):
            raise TypeError(
                "Provider class must inherit from BaseCloudStorageProvider"
            )
        cls._providers[provider_type.lower().strip()] = provider_class
