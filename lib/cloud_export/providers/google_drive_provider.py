"""
Cloud Export Core - Google Drive Provider
=========================================
Google Drive export adapter built on google-api-python-client.

Features:
- OAuth2 code exchange and refresh (offline access, forced consent)
- Multipart uploads (JSON metadata + file body in one request)
- Album and subgroup folders found by name or created on demand
- "Anyone with the link" reader permission on files and folders
- Drive service objects built per thread (httplib2 is not thread-safe)
"""

import io
import logging
import threading
from typing import Any, Callable, Dict, Optional

from .base import BaseCloudStorageProvider
from ..config.constants import (
    GOOGLE_AUTHORIZE_URL,
    GOOGLE_DRIVE_FILE_URL,
    GOOGLE_DRIVE_FOLDER_MIME,
    GOOGLE_DRIVE_FOLDER_URL,
    GOOGLE_DRIVE_HOME_URL,
    GOOGLE_DRIVE_SCOPES,
    GOOGLE_TOKEN_URL,
    PROVIDER_GOOGLE_DRIVE,
    UPLOAD_TIMEOUT,
)
from ..errors import CloudStorageError
from ..models import FileDescriptor

logger = logging.getLogger(__name__)

# Lazy import Google libraries
_google_imported = False
_Credentials = None
_AuthorizedHttp = None
_Http = None
_HttpLib2Error = None
_build = None
_MediaIoBaseUpload = None
_HttpError = None


def _import_google_libs():
    """Lazy import Google libraries only when needed"""
    global _google_imported, _Credentials, _AuthorizedHttp, _Http, _HttpLib2Error
    global _build, _MediaIoBaseUpload, _HttpError

    if _google_imported:
        return

    try:
        from google.oauth2.credentials import Credentials
        from google_auth_httplib2 import AuthorizedHttp
        from httplib2 import Http, HttpLib2Error
        from googleapiclient.discovery import build
        from googleapiclient.http import MediaIoBaseUpload
        from googleapiclient.errors import HttpError

        _Credentials = Credentials
        _AuthorizedHttp = AuthorizedHttp
        _Http = Http
        _HttpLib2Error = HttpLib2Error
        _build = build
        _MediaIoBaseUpload = MediaIoBaseUpload
        _HttpError = HttpError
        _google_imported = True

    except ImportError:
        raise ImportError(
            "Google API libraries not installed. "
            "Run: pip install google-auth google-auth-httplib2 google-api-python-client"
        )


ROOT_FOLDER_ID = 'root'
ANYONE_READER = {'role': 'reader', 'type': 'anyone'}


class GoogleDriveProvider(BaseCloudStorageProvider):
    """
    Google Drive export adapter.

    Drive identifies folders by id, not path. The album folder is created
    in My Drive root and each subgroup becomes a child folder of it.
    Existing folders with the exact same name are reused.

    Token refresh goes through the shared requests-based token client;
    the Drive service only ever receives a ready access token.
    """

    PROVIDER_TYPE = PROVIDER_GOOGLE_DRIVE
    AUTHORIZE_URL = GOOGLE_AUTHORIZE_URL
    TOKEN_URL = GOOGLE_TOKEN_URL
    SCOPES = GOOGLE_DRIVE_SCOPES
    EXTRA_AUTH_PARAMS = {'access_type': 'offline', 'prompt': 'consent'}
    SUPPORTS_ARCHIVE_UPLOAD = True
    HOME_URL = GOOGLE_DRIVE_HOME_URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._local = threading.local()

    # =========================================================================
    # DRIVE SERVICE
    # =========================================================================

    def _build_service(self, token: str):
        """Build a Drive v3 service authorized with a bearer token."""
        _import_google_libs()
        credentials = _Credentials(token=token)
        http = _AuthorizedHttp(credentials, http=_Http(timeout=UPLOAD_TIMEOUT))
        return _build('drive', 'v3', http=http, cache_discovery=False)

    def _service(self, token: str):
        """Drive service for the current thread, rebuilt when the token changes."""
        if getattr(self._local, 'token', None) != token:
            self._local.service = self._build_service(token)
            self._local.token = token
        return self._local.service

    def _execute(self, request, on_error: Callable[[str], CloudStorageError]) -> Dict[str, Any]:
        """Execute a Drive API request, translating client errors."""
        _import_google_libs()
        try:
            return request.execute()
        except _HttpError as e:
            raise on_error(f"HTTP {e.resp.status}: {e}")
        except (_HttpLib2Error, OSError) as e:
            raise on_error(f"{type(e).__name__}: {e}")

    # =========================================================================
    # FOLDERS
    # =========================================================================

    def _find_or_create_folder(self, token: str, name: str, parent_id: str) -> str:
        """Return the id of folder ``name`` under ``parent_id``, creating it if absent."""
        service = self._service(token)
        on_error = self._folder_error(name)

        escaped = name.replace('\\', '\\\\').replace("'", "\\'")
        query = (
            f"name = '{escaped}' and mimeType = '{GOOGLE_DRIVE_FOLDER_MIME}' "
            f"and '{parent_id}' in parents and trashed = false"
        )
        found = self._execute(
            service.files().list(q=query, spaces='drive', fields='files(id, name)', pageSize=1),
            on_error,
        )
        existing = found.get('files', [])
        if existing:
            logger.info("Reusing Google Drive folder '%s' (ID: %s)", name, existing[0]['id'])
            return existing[0]['id']

        created = self._execute(
            service.files().create(
                body={'name': name, 'mimeType': GOOGLE_DRIVE_FOLDER_MIME, 'parents': [parent_id]},
                fields='id',
            ),
            on_error,
        )
        folder_id = created.get('id')
        if not folder_id:
            raise on_error("Folder create response has no id")

        logger.info("Created Google Drive folder '%s' (ID: %s)", name, folder_id)
        return folder_id

    def _share(self, token: str, item_id: str, on_error: Callable[[str], CloudStorageError]) -> None:
        """Grant 'anyone with the link' read access."""
        service = self._service(token)
        self._execute(
            service.permissions().create(fileId=item_id, body=dict(ANYONE_READER), fields='id'),
            on_error,
        )

    # =========================================================================
    # PROVIDER HOOKS
    # =========================================================================

    def _resolve_upload_folder(self, token: str, folder_name: Optional[str]) -> str:
        if not folder_name:
            return ROOT_FOLDER_ID
        return self._find_or_create_folder(token, folder_name, ROOT_FOLDER_ID)

    def _open_export(self, token: str, album_name: str) -> str:
        return self._find_or_create_folder(token, album_name, ROOT_FOLDER_ID)

    def _resolve_subgroup(self, root: str, subgroup: str, token: str) -> str:
        return self._find_or_create_folder(token, subgroup, root)

    def _upload_into(self, container: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        _import_google_libs()
        service = self._service(token)
        on_error = self._upload_error(descriptor.name)

        media = _MediaIoBaseUpload(
            io.BytesIO(content),
            mimetype=descriptor.content_type(),
            resumable=False,
        )
        created = self._execute(
            service.files().create(
                body={'name': descriptor.name, 'parents': [container]},
                media_body=media,
                fields='id',
            ),
            on_error,
        )
        file_id = created.get('id')
        if not file_id:
            raise on_error("Upload response has no file id")
        return file_id

    def _item_url(self, token: str, ref: str) -> str:
        self._share(token, ref, self._upload_error(ref))
        return GOOGLE_DRIVE_FILE_URL.format(file_id=ref)

    def _upload_single(self, container: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        url = super()._upload_single(container, descriptor, content, token)
        if container != ROOT_FOLDER_ID:
            try:
                self._share(token, container, self._folder_error(container))
            except CloudStorageError as e:
                logger.warning("Could not share Google Drive folder %s: %s", container, e)
        return url

    def _container_url(self, root: str, token: str) -> str:
        try:
            self._share(token, root, self._folder_error(root))
        except CloudStorageError as e:
            logger.warning("Could not share Google Drive folder %s: %s", root, e)
        return GOOGLE_DRIVE_FOLDER_URL.format(folder_id=root)
