"""
Cloud Export Core
=================
Export adapters pushing media collections into a user's own cloud
storage account (Google Drive, Google Photos, Dropbox, OneDrive, Box,
Adobe Creative Cloud).
"""

from .config.constants import EXPORT_CORE_VERSION
from .errors import (
    CloudStorageError,
    AuthExchangeError,
    AuthRefreshError,
    UploadError,
    FolderResolutionError,
    ExportError,
    MissingCredentialsError,
)
from .models import (
    ProviderCredentials,
    FileDescriptor,
    FileStatus,
    ExportResult,
    Capability,
)
from .providers import BaseCloudStorageProvider, CloudStorageFactory
from .services import CloudExportService, CredentialStore, InMemoryCredentialStore

__version__ = EXPORT_CORE_VERSION

__all__ = [
    # Errors
    "CloudStorageError",
    "AuthExchangeError",
    "AuthRefreshError",
    "UploadError",
    "FolderResolutionError",
    "ExportError",
    "MissingCredentialsError",
    # Models
    "ProviderCredentials",
    "FileDescriptor",
    "FileStatus",
    "ExportResult",
    "Capability",
    # Providers
    "BaseCloudStorageProvider",
    "CloudStorageFactory",
    # Services
    "CloudExportService",
    "CredentialStore",
    "InMemoryCredentialStore",
]
