"""
Cloud Export Core - Adobe Creative Cloud Provider
=================================================
Creative Cloud Files export adapter.

Files are raw-binary PUTs to a path-like key under the account's file
namespace; the key prefix doubles as the folder. Every call carries the
OAuth client id as ``x-api-key`` in addition to the bearer token.
"""

import logging
from typing import Dict, Optional
from urllib.parse import quote

from .base import BaseCloudStorageProvider
from ..config.constants import (
    ADOBE_AUTHORIZE_URL,
    ADOBE_FILES_URL,
    ADOBE_HOME_URL,
    ADOBE_SCOPES,
    ADOBE_TOKEN_URL,
    PROVIDER_ADOBE,
    UPLOAD_TIMEOUT,
)
from ..errors import CloudStorageError
from ..models import FileDescriptor
from ..utils.file_utils import join_remote_path

logger = logging.getLogger(__name__)


class AdobeProvider(BaseCloudStorageProvider):
    """Adobe Creative Cloud export adapter (path-keyed, no folder objects)."""

    PROVIDER_TYPE = PROVIDER_ADOBE
    AUTHORIZE_URL = ADOBE_AUTHORIZE_URL
    TOKEN_URL = ADOBE_TOKEN_URL
    SCOPES = ADOBE_SCOPES
    SUPPORTS_ARCHIVE_UPLOAD = True
    HOME_URL = ADOBE_HOME_URL

    def _api_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {'x-api-key': self.client_id}
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _file_url(path: str) -> str:
        return f"{ADOBE_FILES_URL}{quote(path, safe='/')}"

    def _resolve_upload_folder(self, token: str, folder_name: Optional[str]) -> str:
        return join_remote_path(self.app_folder, folder_name or "")

    def _open_export(self, token: str, album_name: str) -> str:
        return join_remote_path(self.app_folder, album_name)

    def _resolve_subgroup(self, root: str, subgroup: str, token: str) -> str:
        return join_remote_path(root, subgroup)

    def _upload_into(self, container: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        remote_path = join_remote_path(container, descriptor.name)
        self._call(
            'PUT', self._file_url(remote_path), token, self._upload_error(descriptor.name),
            headers=self._api_headers({'Content-Type': 'application/octet-stream'}),
            data=content,
            timeout=UPLOAD_TIMEOUT,
        )
        return remote_path

    def _item_url(self, token: str, ref: str) -> str:
        """The file's ``link`` field, or the Creative Cloud home page."""
        on_error = self._upload_error(ref)
        try:
            response = self._call('GET', self._file_url(ref), token, on_error, headers=self._api_headers())
            link = self._json(response, on_error).get('link')
        except CloudStorageError as e:
            logger.warning("Could not fetch Creative Cloud link for %s: %s", ref, e)
            return ADOBE_HOME_URL

        return link or ADOBE_HOME_URL
