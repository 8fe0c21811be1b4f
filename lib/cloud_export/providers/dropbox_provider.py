"""
Cloud Export Core - Dropbox Provider
====================================
Dropbox export adapter built on the official Dropbox SDK.

Features:
- OAuth2 code flow with offline access (refresh tokens)
- Path-based folders: /<app folder>/<album>/<subgroup>/<file>
- Add-mode uploads with autorename (never overwrites)
- Chunked upload sessions for large files
- Public shared links, falling back to existing links
"""

import logging
import threading
from typing import Optional

import requests

import dropbox
from dropbox.exceptions import ApiError, DropboxException
from dropbox.files import CommitInfo, UploadSessionCursor, WriteMode
from dropbox.sharing import RequestedVisibility, SharedLinkSettings

from .base import BaseCloudStorageProvider
from ..config.constants import (
    DROPBOX_AUTHORIZE_URL,
    DROPBOX_HOME_URL,
    DROPBOX_TOKEN_URL,
    PROVIDER_DROPBOX,
    UPLOAD_CHUNK_SIZE,
    UPLOAD_TIMEOUT,
)
from ..errors import CloudStorageError, UploadError
from ..models import FileDescriptor
from ..utils.file_utils import join_remote_path

logger = logging.getLogger(__name__)


class DropboxProvider(BaseCloudStorageProvider):
    """
    Dropbox export adapter.

    Folders are implicit in upload paths, so resolving the album and its
    subgroups never issues a remote call. Uploads use mode 'add' with
    autorename so an existing file is never replaced.
    """

    PROVIDER_TYPE = PROVIDER_DROPBOX
    AUTHORIZE_URL = DROPBOX_AUTHORIZE_URL
    TOKEN_URL = DROPBOX_TOKEN_URL
    EXTRA_AUTH_PARAMS = {'token_access_type': 'offline'}
    TOKEN_AUTH = "basic"
    SUPPORTS_ARCHIVE_UPLOAD = True
    HOME_URL = DROPBOX_HOME_URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._local = threading.local()

    def _create_client(self, token: str) -> dropbox.Dropbox:
        """Create an SDK client for an access token."""
        return dropbox.Dropbox(oauth2_access_token=token, timeout=UPLOAD_TIMEOUT)

    def _client(self, token: str) -> dropbox.Dropbox:
        """SDK client for the current thread, recreated when the token changes."""
        if getattr(self._local, 'token', None) != token:
            self._local.client = self._create_client(token)
            self._local.token = token
        return self._local.client

    # =========================================================================
    # UPLOADS
    # =========================================================================

    def _chunked_upload(self, client: dropbox.Dropbox, content: bytes, remote_path: str, mode: WriteMode):
        """Upload large file using chunked session."""
        file_size = len(content)

        # Start upload session
        session = client.files_upload_session_start(content[:UPLOAD_CHUNK_SIZE])
        offset = UPLOAD_CHUNK_SIZE

        cursor = UploadSessionCursor(session_id=session.session_id, offset=offset)
        commit = CommitInfo(path=remote_path, mode=mode, autorename=True)

        # Upload chunks
        while True:
            chunk_end = min(offset + UPLOAD_CHUNK_SIZE, file_size)
            chunk = content[offset:chunk_end]

            if chunk_end < file_size:
                client.files_upload_session_append_v2(chunk, cursor)
                offset = chunk_end
                cursor.offset = offset
            else:
                # Final chunk
                return client.files_upload_session_finish(chunk, cursor, commit)

    def _shared_link(self, token: str, path: str) -> str:
        """Create a public shared link for a path, or return an existing one."""
        client = self._client(token)
        on_error = self._upload_error(path)

        try:
            settings = SharedLinkSettings(requested_visibility=RequestedVisibility.public)
            return client.sharing_create_shared_link_with_settings(path, settings).url
        except ApiError as e:
            logger.info("Dropbox shared link not created for %s (%s), looking for an existing one", path, e)
        except (DropboxException, requests.RequestException) as e:
            raise on_error(f"Shared link creation failed: {e}")

        try:
            links = client.sharing_list_shared_links(path=path, direct_only=True).links
        except (DropboxException, requests.RequestException) as e:
            raise on_error(f"Shared link lookup failed: {e}")

        if not links:
            raise on_error("No shared link available")
        return links[0].url

    # =========================================================================
    # PROVIDER HOOKS
    # =========================================================================

    def _resolve_upload_folder(self, token: str, folder_name: Optional[str]) -> str:
        return join_remote_path(self.app_folder, folder_name or "")

    def _open_export(self, token: str, album_name: str) -> str:
        return join_remote_path(self.app_folder, album_name)

    def _resolve_subgroup(self, root: str, subgroup: str, token: str) -> str:
        return join_remote_path(root, subgroup)

    def _upload_into(self, container: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        client = self._client(token)
        remote_path = join_remote_path(container, descriptor.name)
        mode = WriteMode('add')

        try:
            if len(content) <= UPLOAD_CHUNK_SIZE:
                metadata = client.files_upload(content, remote_path, mode=mode, autorename=True)
            else:
                metadata = self._chunked_upload(client, content, remote_path, mode)
        except (DropboxException, requests.RequestException) as e:
            raise UploadError(self.get_provider_name(), descriptor.name, str(e))

        logger.debug("Uploaded: %s", remote_path)
        return getattr(metadata, 'path_display', None) or remote_path

    def _item_url(self, token: str, ref: str) -> str:
        return self._shared_link(token, ref)

    def _container_url(self, root: str, token: str) -> str:
        try:
            return self._shared_link(token, root)
        except CloudStorageError as e:
            logger.warning("Could not share Dropbox folder %s: %s", root, e)
            return f"{DROPBOX_HOME_URL}{root}"
