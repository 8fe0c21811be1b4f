"""
Cloud Export Core - Box Provider
================================
Box export adapter on the Box Content API.

Folder layout: <app folder>/<album>/<subgroup>, each level looked up by
name among its parent's children and created when absent. Uploads are
multipart/form-data with a JSON "attributes" part followed by the file.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

from .base import BaseCloudStorageProvider
from ..config.constants import (
    BOX_API_URL,
    BOX_AUTHORIZE_URL,
    BOX_FOLDER_URL,
    BOX_PAGE_LIMIT,
    BOX_ROOT_FOLDER_ID,
    BOX_TOKEN_URL,
    BOX_UPLOAD_URL,
    PROVIDER_BOX,
    UPLOAD_TIMEOUT,
)
from ..models import FileDescriptor

logger = logging.getLogger(__name__)

BOX_UPLOAD_BASE_URL = BOX_UPLOAD_URL.rsplit('/', 1)[0]


def _conflict_id(response: requests.Response) -> Optional[str]:
    """Id of the existing item named in a 409 item_name_in_use response."""
    try:
        payload = response.json()
    except ValueError:
        return None
    context = payload.get('context_info') if isinstance(payload, dict) else None
    conflicts = context.get('conflicts') if isinstance(context, dict) else None
    if isinstance(conflicts, list):
        conflicts = conflicts[0] if conflicts else None
    if isinstance(conflicts, dict):
        return conflicts.get('id')
    return None


class BoxProvider(BaseCloudStorageProvider):
    """
    Box export adapter.

    Name conflicts are not failures: a folder create that hits an
    existing folder reuses it, and a file upload that hits an existing
    file uploads a new version of it.
    """

    PROVIDER_TYPE = PROVIDER_BOX
    AUTHORIZE_URL = BOX_AUTHORIZE_URL
    TOKEN_URL = BOX_TOKEN_URL
    TOKEN_AUTH = "basic"
    SUPPORTS_ARCHIVE_UPLOAD = True
    HOME_URL = BOX_FOLDER_URL.format(folder_id=BOX_ROOT_FOLDER_ID)

    # =========================================================================
    # FOLDERS
    # =========================================================================

    def _find_child_folder(self, token: str, parent_id: str, name: str) -> Optional[str]:
        on_error = self._folder_error(name)
        offset = 0

        while True:
            response = self._call(
                'GET', f"{BOX_API_URL}/folders/{parent_id}/items", token, on_error,
                params={'limit': BOX_PAGE_LIMIT, 'offset': offset, 'fields': 'id,type,name'},
            )
            payload = self._json(response, on_error)
            entries = payload.get('entries', [])

            for item in entries:
                if item.get('type') == 'folder' and item.get('name') == name:
                    return item.get('id')

            offset += len(entries)
            if not entries or offset >= payload.get('total_count', 0):
                return None

    def _find_or_create_folder(self, token: str, name: str, parent_id: str) -> str:
        existing = self._find_child_folder(token, parent_id, name)
        if existing:
            logger.info("Reusing Box folder '%s' (ID: %s)", name, existing)
            return existing

        on_error = self._folder_error(name)
        try:
            response = self._send(
                'POST', f"{BOX_API_URL}/folders", token,
                json={'name': name, 'parent': {'id': parent_id}},
            )
        except requests.RequestException as e:
            raise on_error(f"{type(e).__name__}: {e}")

        if response.status_code == 409:
            conflict = _conflict_id(response)
            if conflict:
                logger.info("Box folder '%s' already exists (ID: %s)", name, conflict)
                return conflict
        if not response.ok:
            raise on_error(f"HTTP {response.status_code}: {response.text}")

        folder_id = self._json(response, on_error).get('id')
        if not folder_id:
            raise on_error("Folder create response has no id")

        logger.info("Created Box folder '%s' (ID: %s)", name, folder_id)
        return folder_id

    def _app_folder_id(self, token: str) -> str:
        # '/' never appears in sanitized folder names, so this key cannot collide
        return self._folder_cache(token).resolve(
            f"/{self.app_folder}",
            lambda: self._find_or_create_folder(token, self.app_folder, BOX_ROOT_FOLDER_ID),
        )

    # =========================================================================
    # FILES
    # =========================================================================

    def _multipart(self, attributes: Dict[str, Any], descriptor: FileDescriptor, content: bytes):
        return [
            ('attributes', (None, json.dumps(attributes), 'application/json')),
            ('file', (descriptor.name, content, descriptor.content_type())),
        ]

    def _upload_new_version(self, file_id: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        on_error = self._upload_error(descriptor.name)
        response = self._call(
            'POST', f"{BOX_UPLOAD_BASE_URL}/{file_id}/content", token, on_error,
            files=self._multipart({'name': descriptor.name}, descriptor, content),
            timeout=UPLOAD_TIMEOUT,
        )
        self._json(response, on_error)
        logger.info("Uploaded new version of Box file %s (ID: %s)", descriptor.name, file_id)
        return file_id

    # =========================================================================
    # PROVIDER HOOKS
    # =========================================================================

    def _resolve_upload_folder(self, token: str, folder_name: Optional[str]) -> str:
        app_folder_id = self._app_folder_id(token)
        if not folder_name:
            return app_folder_id
        return self._find_or_create_folder(token, folder_name, app_folder_id)

    def _open_export(self, token: str, album_name: str) -> str:
        return self._find_or_create_folder(token, album_name, self._app_folder_id(token))

    def _resolve_subgroup(self, root: str, subgroup: str, token: str) -> str:
        return self._find_or_create_folder(token, subgroup, root)

    def _upload_into(self, container: str, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        on_error = self._upload_error(descriptor.name)
        attributes = {'name': descriptor.name, 'parent': {'id': container}}

        try:
            response = self._send(
                'POST', BOX_UPLOAD_URL, token,
                files=self._multipart(attributes, descriptor, content),
                timeout=UPLOAD_TIMEOUT,
            )
        except requests.RequestException as e:
            raise on_error(f"{type(e).__name__}: {e}")

        if response.status_code == 409:
            existing = _conflict_id(response)
            if existing:
                return self._upload_new_version(existing, descriptor, content, token)
        if not response.ok:
            raise on_error(f"HTTP {response.status_code}: {response.text}")

        entries = self._json(response, on_error).get('entries') or []
        if not entries or not entries[0].get('id'):
            raise on_error("Upload response has no file entry")
        return entries[0]['id']

    def _item_url(self, token: str, ref: str) -> str:
        on_error = self._upload_error(ref)
        response = self._call(
            'PUT', f"{BOX_API_URL}/files/{ref}", token, on_error,
            params={'fields': 'shared_link'},
            json={'shared_link': {'access': 'open'}},
        )
        url = (self._json(response, on_error).get('shared_link') or {}).get('url')
        if not url:
            raise on_error("Response has no shared link URL")
        return url

    def _container_url(self, root: str, token: str) -> str:
        return BOX_FOLDER_URL.format(folder_id=root)
