"""
Cloud Export Core - Storage Providers
=====================================
Export adapters for third-party cloud storage.

Supported:
    - Google Drive (folders, anyone-with-link sharing)
    - Google Photos (flat albums, batched media item creation)
    - Dropbox (path folders, shared links)
    - OneDrive (path folders, chunked upload sessions)
    - Box (folder lookup/creation, open shared links)
    - Adobe Creative Cloud (path-keyed files)
"""

from .base import BaseCloudStorageProvider, FolderCache
from .factory import CloudStorageFactory
from .google_drive_provider import GoogleDriveProvider
from .google_photos_provider import GooglePhotosProvider
from .dropbox_provider import DropboxProvider
from .onedrive_provider import OneDriveProvider
from .box_provider import BoxProvider
from .adobe_provider import AdobeProvider

__all__ = [
    "BaseCloudStorageProvider",
    "FolderCache",
    "CloudStorageFactory",
    "GoogleDriveProvider",
    "GooglePhotosProvider",
    "DropboxProvider",
    "OneDriveProvider",
    "BoxProvider",
    "AdobeProvider",
]
