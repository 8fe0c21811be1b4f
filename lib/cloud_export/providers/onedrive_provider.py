"""
Cloud Export Core - OneDrive Provider
=====================================
OneDrive export adapter on the Microsoft Graph REST API.

Files up to 4 MiB go up in a single PUT to a path-addressed endpoint.
Larger files use an upload session: sequential PUTs of contiguous byte
ranges, each a multiple of 320 KiB except the last.
"""

import logging
from typing import Optional
from urllib.parse import quote

from .base import BaseCloudStorageProvider
from ..config.constants import (
    GRAPH_BASE_URL,
    ONEDRIVE_AUTHORIZE_URL,
    ONEDRIVE_CHUNK_SIZE,
    ONEDRIVE_CHUNK_UNIT,
    ONEDRIVE_HOME_URL,
    ONEDRIVE_SCOPES,
    ONEDRIVE_SIMPLE_UPLOAD_LIMIT,
    ONEDRIVE_TOKEN_URL,
    PROVIDER_ONEDRIVE,
    UPLOAD_TIMEOUT,
)
from ..errors import CloudStorageError
from ..models import FileDescriptor
from ..utils.file_utils import chunk_ranges, join_remote_path

logger = logging.getLogger(__name__)

CONFLICT_RENAME = {'@microsoft.graph.conflictBehavior': 'rename'}
ANONYMOUS_VIEW_LINK = {'type': 'view', 'scope': 'anonymous'}


class OneDriveProvider(BaseCloudStorageProvider):
    """
    OneDrive export adapter.

    Folders are implicit in the upload path (Graph creates missing
    parents), so album and subgroup resolution issue no remote calls.
    Name conflicts are resolved by renaming the new file.
    """

    PROVIDER_TYPE = PROVIDER_ONEDRIVE
    AUTHORIZE_URL = ONEDRIVE_AUTHORIZE_URL
    TOKEN_URL = ONEDRIVE_TOKEN_URL
    SCOPES = ONEDRIVE_SCOPES
    EXTRA_AUTH_PARAMS = {'response_mode': 'query'}
    SUPPORTS_ARCHIVE_UPLOAD = True
    HOME_URL = ONEDRIVE_HOME_URL

    def __init__(
        self,
        *args,
        chunk_size: int = ONEDRIVE_CHUNK_SIZE,
        simple_upload_limit: int = ONEDRIVE_SIMPLE_UPLOAD_LIMIT,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        if chunk_size <= 0 or chunk_size % ONEDRIVE_CHUNK_UNIT:
            raise ValueError(f"chunk_size must be a positive multiple of {ONEDRIVE_CHUNK_UNIT} bytes")
        self.chunk_size = chunk_size
        self.simple_upload_limit = simple_upload_limit

    @staticmethod
    def _path_url(path: str, action: Optional[str] = None) -> str:
        url = f"{GRAPH_BASE_URL}/me/drive/root:{quote(path, safe='/')}"
        return f"{url}:/{action}" if action else url

    # =========================================================================
    # UPLOADS
    # =========================================================================

    def _simple_upload(self, remote_path: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        on_error = self._upload_error(descriptor.name)
        response = self._call(
            'PUT', self._path_url(remote_path, 'content'), token, on_error,
            params=CONFLICT_RENAME,
            headers={'Content-Type': 'application/octet-stream'},
            data=content,
            timeout=UPLOAD_TIMEOUT,
        )
        item_id = self._json(response, on_error).get('id')
        if not item_id:
            raise on_error("Upload response has no item id")
        return item_id

    def _session_upload(self, remote_path: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        """Upload through an upload session, one byte range at a time, in order."""
        on_error = self._upload_error(descriptor.name)
        response = self._call(
            'POST', self._path_url(remote_path, 'createUploadSession'), token, on_error,
            json={'item': dict(CONFLICT_RENAME)},
        )
        upload_url = self._json(response, on_error).get('uploadUrl')
        if not upload_url:
            raise on_error("Upload session response has no uploadUrl")

        total_size = len(content)
        ranges = chunk_ranges(total_size, self.chunk_size)
        logger.debug("Uploading %s in %d chunks", descriptor.name, len(ranges))

        for start, end in ranges:
            # The upload URL is pre-authorized; no bearer token is sent
            response = self._call(
                'PUT', upload_url, None, on_error,
                headers={
                    'Content-Length': str(end - start + 1),
                    'Content-Range': f"bytes {start}-{end}/{total_size}",
                },
                data=content[start:end + 1],
                timeout=UPLOAD_TIMEOUT,
            )
            if response.status_code in (200, 201):
                item_id = self._json(response, on_error).get('id')
                if not item_id:
                    raise on_error("Upload session completed without an item id")
                return item_id

        raise on_error("Upload session did not complete after the final chunk")

    def _share_item(self, token: str, item_id: str) -> str:
        """Anonymous view link for an item, falling back to its webUrl."""
        on_error = self._upload_error(item_id)
        try:
            response = self._call(
                'POST', f"{GRAPH_BASE_URL}/me/drive/items/{item_id}/createLink", token, on_error,
                json=dict(ANONYMOUS_VIEW_LINK),
            )
            link = self._json(response, on_error).get('link')
            web_url = link.get('webUrl') if isinstance(link, dict) else None
            if web_url:
                return web_url
        except CloudStorageError as e:
            logger.warning("OneDrive sharing link failed for %s: %s", item_id, e)

        response = self._call('GET', f"{GRAPH_BASE_URL}/me/drive/items/{item_id}", token, on_error)
        web_url = self._json(response, on_error).get('webUrl')
        if not web_url:
            raise on_error("Item has no webUrl")
        return web_url

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
        remote_path = join_remote_path(container, descriptor.name)
        if len(content) <= self.simple_upload_limit:
            return self._simple_upload(remote_path, descriptor, content, token)
        return self._session_upload(remote_path, descriptor, content, token)

    def _item_url(self, token: str, ref: str) -> str:
        return self._share_item(token, ref)

    def _container_url(self, root: str, token: str) -> Optional[str]:
        on_error = self._folder_error(root)
        response = self._call('GET', self._path_url(root), token, on_error)
        folder_id = self._json(response, on_error).get('id')
        if not folder_id:
            return None
        return self._share_item(token, folder_id)
