"""
Configuration module - Constants, provider settings and credential sealing.
"""

from .constants import (
    EXPORT_CORE_VERSION,
    PROVIDER_GOOGLE_DRIVE,
    PROVIDER_GOOGLE_PHOTOS,
    PROVIDER_DROPBOX,
    PROVIDER_ONEDRIVE,
    PROVIDER_BOX,
    PROVIDER_ADOBE,
    PROVIDER_DISPLAY_NAMES,
    DEFAULT_ALBUM_NAME,
    DEFAULT_SUBGROUP,
    DEFAULT_APP_FOLDER,
)

from .settings import (
    ProviderSettings,
    load_provider_settings,
    get_app_folder,
    get_max_workers,
)

from .credentials import (
    generate_fernet_key,
    get_encryption_key,
    seal_credentials,
    open_credentials,
    mask_credentials,
)

__all__ = [
    # Constants
    "EXPORT_CORE_VERSION",
    "PROVIDER_GOOGLE_DRIVE",
    "PROVIDER_GOOGLE_PHOTOS",
    "PROVIDER_DROPBOX",
    "PROVIDER_ONEDRIVE",
    "PROVIDER_BOX",
    "PROVIDER_ADOBE",
    "PROVIDER_DISPLAY_NAMES",
    "DEFAULT_ALBUM_NAME",
    "DEFAULT_SUBGROUP",
    "DEFAULT_APP_FOLDER",
    # Settings
    "ProviderSettings",
    "load_provider_settings",
    "get_app_folder",
    "get_max_workers",
    # Credentials
    "generate_fernet_key",
    "get_encryption_key",
    "seal_credentials",
    "open_credentials",
    "mask_credentials",
]
