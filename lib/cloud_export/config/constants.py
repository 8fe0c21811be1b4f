"""
Cloud Export Core - Constants and Configuration
================================================
Shared constants, provider identifiers, endpoints and size/timeout
defaults for the cloud storage export adapters.
"""

from typing import Dict, Tuple

# Version identifier for Cloud Export Core
EXPORT_CORE_VERSION = "1.0.0"
PACKAGE_NAME = "cloud-export-core"

# =============================================================================
# PROVIDER IDENTIFIERS
# =============================================================================

PROVIDER_GOOGLE_DRIVE: str = "googledrive"
PROVIDER_GOOGLE_PHOTOS: str = "google"
PROVIDER_DROPBOX: str = "dropbox"
PROVIDER_ONEDRIVE: str = "onedrive"
PROVIDER_BOX: str = "box"
PROVIDER_ADOBE: str = "adobe"

# Alternate spellings accepted by the factory
PROVIDER_ALIASES: Dict[str, str] = {
    'google_drive': PROVIDER_GOOGLE_DRIVE,
    'gdrive': PROVIDER_GOOGLE_DRIVE,
    'googlephotos': PROVIDER_GOOGLE_PHOTOS,
    'google_photos': PROVIDER_GOOGLE_PHOTOS,
    'creativecloud': PROVIDER_ADOBE,
    'creative_cloud': PROVIDER_ADOBE,
}

# Human-readable names (used in logs and user-facing messages)
PROVIDER_DISPLAY_NAMES: Dict[str, str] = {
    PROVIDER_GOOGLE_DRIVE: 'Google Drive',
    PROVIDER_GOOGLE_PHOTOS: 'Google Photos',
    PROVIDER_DROPBOX: 'Dropbox',
    PROVIDER_ONEDRIVE: 'OneDrive',
    PROVIDER_BOX: 'Box',
    PROVIDER_ADOBE: 'Adobe Creative Cloud',
}

# =============================================================================
# EXPORT DEFAULTS
# =============================================================================

# Album name used when the caller does not supply one
DEFAULT_ALBUM_NAME: str = "Collection"

# Subgroup used for files without a set
DEFAULT_SUBGROUP: str = "Uncategorized"

# Application root folder on path-based providers
DEFAULT_APP_FOLDER: str = "Mazeloot"

# Sequential uploads unless the caller asks for a pool
DEFAULT_MAX_WORKERS: int = 1
MAX_WORKERS_LIMIT: int = 8

# =============================================================================
# TIMEOUTS (seconds)
# =============================================================================

METADATA_TIMEOUT: int = 30
UPLOAD_TIMEOUT: int = 300

# Access tokens are treated as expired this long before their real expiry
TOKEN_EXPIRY_SKEW_SECONDS: int = 60

# Lifetime assumed when a token response omits expires_in
DEFAULT_TOKEN_LIFETIME_SECONDS: int = 3600

# =============================================================================
# UPLOAD SIZES
# =============================================================================

# Dropbox: files above this go through an upload session
UPLOAD_CHUNK_SIZE: int = 8 * 1024 * 1024  # 8MB

# OneDrive: single PUT limit and chunk granularity for upload sessions
ONEDRIVE_SIMPLE_UPLOAD_LIMIT: int = 4 * 1024 * 1024  # 4MB
ONEDRIVE_CHUNK_UNIT: int = 320 * 1024  # 320 KiB, required multiple
ONEDRIVE_CHUNK_SIZE: int = ONEDRIVE_CHUNK_UNIT * 10

# Google Photos mediaItems:batchCreate limit
PHOTOS_BATCH_SIZE: int = 50

# Box folder listing page size
BOX_PAGE_LIMIT: int = 1000

# =============================================================================
# CONTENT TYPE MAPPING
# =============================================================================

CONTENT_TYPE_MAPPING: Dict[str, str] = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'heic': 'image/heic',
    'tif': 'image/tiff',
    'tiff': 'image/tiff',
    'bmp': 'image/bmp',
    'dng': 'image/x-adobe-dng',
    'mp4': 'video/mp4',
    'mov': 'video/quicktime',
    'avi': 'video/x-msvideo',
    'mkv': 'video/x-matroska',
    'pdf': 'application/pdf',
    'zip': 'application/zip',
}

# Prefixes Google Photos accepts
PHOTOS_MEDIA_PREFIXES: Tuple[str, ...] = ('image/', 'video/')

# =============================================================================
# API ENDPOINTS
# =============================================================================

# Google (Drive and Photos share the OAuth client)
GOOGLE_AUTHORIZE_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
GOOGLE_DRIVE_SCOPES: Tuple[str, ...] = ('https://www.googleapis.com/auth/drive.file',)
GOOGLE_DRIVE_FOLDER_MIME: str = "application/vnd.google-apps.folder"
GOOGLE_DRIVE_FOLDER_URL: str = "https://drive.google.com/drive/folders/{folder_id}"
GOOGLE_DRIVE_FILE_URL: str = "https://drive.google.com/file/d/{file_id}/view"
GOOGLE_DRIVE_HOME_URL: str = "https://drive.google.com"

GOOGLE_PHOTOS_SCOPES: Tuple[str, ...] = (
    'https://www.googleapis.com/auth/photoslibrary.appendonly',
    'https://www.googleapis.com/auth/photoslibrary.readonly',
)
PHOTOS_BASE_URL: str = "https://photoslibrary.googleapis.com/v1"
PHOTOS_UPLOAD_URL: str = f"{PHOTOS_BASE_URL}/uploads"
PHOTOS_BATCH_CREATE_URL: str = f"{PHOTOS_BASE_URL}/mediaItems:batchCreate"
PHOTOS_ALBUMS_URL: str = f"{PHOTOS_BASE_URL}/albums"
PHOTOS_ALBUM_URL: str = "https://photos.google.com/album/{album_id}"
PHOTOS_HOME_URL: str = "https://photos.google.com"

# Dropbox
DROPBOX_AUTHORIZE_URL: str = "https://www.dropbox.com/oauth2/authorize"
DROPBOX_TOKEN_URL: str = "https://api.dropboxapi.com/oauth2/token"
DROPBOX_HOME_URL: str = "https://www.dropbox.com/home"

# OneDrive (Microsoft Graph)
ONEDRIVE_AUTHORIZE_URL: str = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
ONEDRIVE_TOKEN_URL: str = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
ONEDRIVE_SCOPES: Tuple[str, ...] = ('files.readwrite', 'offline_access')
GRAPH_BASE_URL: str = "https://graph.microsoft.com/v1.0"
ONEDRIVE_HOME_URL: str = "https://onedrive.live.com/?id=root"

# Box
BOX_AUTHORIZE_URL: str = "https://account.box.com/api/oauth2/authorize"
BOX_TOKEN_URL: str = "https://api.box.com/oauth2/token"
BOX_API_URL: str = "https://api.box.com/2.0"
BOX_UPLOAD_URL: str = "https://upload.box.com/api/2.0/files/content"
BOX_FOLDER_URL: str = "https://app.box.com/folder/{folder_id}"
BOX_ROOT_FOLDER_ID: str = "0"

# Adobe Creative Cloud
ADOBE_AUTHORIZE_URL: str = "https://ims-na1.adobelogin.com/ims/authorize/v2"
ADOBE_TOKEN_URL: str = "https://ims-na1.adobelogin.com/ims/token/v3"
ADOBE_SCOPES: Tuple[str, ...] = ('openid', 'AdobeID', 'creative_sdk', 'cc_files')
ADOBE_FILES_URL: str = "https://cc-api-storage.adobe.io/files"
ADOBE_HOME_URL: str = "https://creative.adobe.com"
