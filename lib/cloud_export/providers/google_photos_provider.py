"""
Cloud Export Core - Google Photos Provider
==========================================
Google Photos Library API export adapter.

Photos has no folders, only flat albums: the album name becomes one
album and subgroups are flattened into it. Uploads are two-phase:
raw bytes go to /uploads and return an upload token, then
mediaItems:batchCreate turns up to 50 tokens into media items.
"""

import logging
from typing import List, Optional, Tuple

import requests

from .base import BaseCloudStorageProvider, UploadedItem
from ..config.constants import (
    GOOGLE_AUTHORIZE_URL,
    GOOGLE_PHOTOS_SCOPES,
    GOOGLE_TOKEN_URL,
    PHOTOS_ALBUM_URL,
    PHOTOS_ALBUMS_URL,
    PHOTOS_BATCH_CREATE_URL,
    PHOTOS_BATCH_SIZE,
    PHOTOS_HOME_URL,
    PHOTOS_UPLOAD_URL,
    PROVIDER_GOOGLE_PHOTOS,
    UPLOAD_TIMEOUT,
)
from ..errors import FolderResolutionError, UploadError
from ..models import FileDescriptor
from ..utils.file_utils import is_photos_media

logger = logging.getLogger(__name__)

# Status codes meaning success in a newMediaItemResults entry
_OK_CODES = (None, 0, 'OK')

# (product URL, error) per media item
MediaItemOutcome = Tuple[Optional[str], Optional[str]]


class GooglePhotosProvider(BaseCloudStorageProvider):
    """
    Google Photos export adapter.

    Albums are looked up by exact title (paginating the album list) and
    only created when no match exists. If listing is not permitted the
    album is created directly; if the album cannot be created at all the
    media items are still uploaded to the library without an album.
    """

    PROVIDER_TYPE = PROVIDER_GOOGLE_PHOTOS
    AUTHORIZE_URL = GOOGLE_AUTHORIZE_URL
    TOKEN_URL = GOOGLE_TOKEN_URL
    SCOPES = GOOGLE_PHOTOS_SCOPES
    EXTRA_AUTH_PARAMS = {'access_type': 'offline', 'prompt': 'consent'}
    SUPPORTS_ARCHIVE_UPLOAD = False
    HOME_URL = PHOTOS_HOME_URL

    def _rejection_reason(self, descriptor: FileDescriptor) -> Optional[str]:
        content_type = descriptor.content_type()
        if not is_photos_media(content_type):
            return f"Google Photos only accepts images and videos (got {content_type})"
        return None

    # =========================================================================
    # ALBUMS
    # =========================================================================

    def _find_album(self, token: str, title: str) -> Optional[str]:
        """Album id with exactly this title, or None (also when listing fails)."""
        page_token = None

        while True:
            params = {'pageSize': 50}
            if page_token:
                params['pageToken'] = page_token

            try:
                response = self._send('GET', PHOTOS_ALBUMS_URL, token, params=params)
            except requests.RequestException as e:
                logger.warning("Google Photos album listing failed: %s", e)
                return None

            if response.status_code == 403:
                logger.info(
                    "Google Photos album listing not permitted (photoslibrary.readonly scope missing), "
                    "creating album '%s'", title,
                )
                return None
            if not response.ok:
                logger.warning(
                    "Google Photos album listing returned HTTP %s: %s",
                    response.status_code, response.text,
                )
                return None

            try:
                payload = response.json()
            except ValueError:
                payload = None
            if not isinstance(payload, dict):
                logger.warning("Google Photos album listing returned malformed JSON")
                return None

            for album in payload.get('albums', []):
                if album.get('title') == title and album.get('id'):
                    logger.info("Reusing Google Photos album '%s' (ID: %s)", title, album['id'])
                    return album['id']

            page_token = payload.get('nextPageToken')
            if not page_token:
                return None

    def _create_album(self, token: str, title: str) -> str:
        on_error = self._folder_error(title)
        response = self._call('POST', PHOTOS_ALBUMS_URL, token, on_error, json={'album': {'title': title}})
        album_id = self._json(response, on_error).get('id')
        if not album_id:
            raise on_error("Album create response has no id")

        logger.info("Created Google Photos album '%s' (ID: %s)", title, album_id)
        return album_id

    def _album_or_none(self, token: str, title: str) -> Optional[str]:
        try:
            return self._find_album(token, title) or self._create_album(token, title)
        except FolderResolutionError as e:
            logger.warning("%s; uploading without an album", e)
            return None

    # =========================================================================
    # MEDIA ITEMS
    # =========================================================================

    def _batch_create(
        self,
        token: str,
        album_id: Optional[str],
        items: List[Tuple[FileDescriptor, str]],
    ) -> List[MediaItemOutcome]:
        """Create media items for upload tokens; one outcome per item, in order."""
        body = {
            'newMediaItems': [
                {
                    'description': descriptor.name,
                    'simpleMediaItem': {'uploadToken': upload_token, 'fileName': descriptor.name},
                }
                for descriptor, upload_token in items
            ],
        }
        if album_id:
            body['albumId'] = album_id

        try:
            response = self._send('POST', PHOTOS_BATCH_CREATE_URL, token, json=body)
        except requests.RequestException as e:
            return [(None, f"Media item creation failed: {e}")] * len(items)

        if not response.ok:
            cause = f"Media item creation failed (HTTP {response.status_code}): {response.text}"
            return [(None, cause)] * len(items)

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            return [(None, "Media item creation returned malformed JSON")] * len(items)
        results = [result for result in payload.get('newMediaItemResults') or [] if isinstance(result, dict)]

        by_token = {result.get('uploadToken'): result for result in results}
        outcomes = []
        for position, (descriptor, upload_token) in enumerate(items):
            result = by_token.get(upload_token)
            if result is None and position < len(results):
                result = results[position]
            if result is None:
                outcomes.append((None, "Google Photos returned no media item result"))
                continue

            status = result.get('status') or {}
            if status.get('code') not in _OK_CODES:
                outcomes.append((None, f"Media item rejected: {status.get('message', 'Unknown error')}"))
                continue

            media_item = result.get('mediaItem')
            if not media_item:
                outcomes.append((None, f"Google Photos response missing mediaItem (status: {status})"))
                continue

            outcomes.append((media_item.get('productUrl') or media_item.get('baseUrl') or PHOTOS_HOME_URL, None))

        return outcomes

    # =========================================================================
    # PROVIDER HOOKS
    # =========================================================================

    def _resolve_upload_folder(self, token: str, folder_name: Optional[str]) -> Optional[str]:
        if not folder_name:
            return None
        return self._album_or_none(token, folder_name)

    def _open_export(self, token: str, album_name: str) -> Optional[str]:
        return self._album_or_none(token, album_name)

    def _resolve_subgroup(self, root: Optional[str], subgroup: str, token: str) -> Optional[str]:
        # Albums are flat
        return root

    def _upload_into(self, container: Optional[str], descriptor: FileDescriptor, content: bytes, token: str) -> str:
        on_error = self._upload_error(descriptor.name)
        response = self._call(
            'POST', PHOTOS_UPLOAD_URL, token, on_error,
            headers={
                'Content-Type': 'application/octet-stream',
                'X-Goog-Upload-Content-Type': descriptor.content_type(),
                'X-Goog-Upload-File-Name': descriptor.name,
                'X-Goog-Upload-Protocol': 'raw',
            },
            data=content,
            timeout=UPLOAD_TIMEOUT,
        )
        upload_token = response.text.strip()
        if not upload_token:
            raise on_error("Empty upload token")
        return upload_token

    def _finalize_uploads(self, root: Optional[str], uploaded: List[UploadedItem], token: str):
        finalized = []
        for start in range(0, len(uploaded), PHOTOS_BATCH_SIZE):
            batch = uploaded[start:start + PHOTOS_BATCH_SIZE]
            outcomes = self._batch_create(token, root, [(descriptor, ref) for _, descriptor, ref in batch])
            for (index, descriptor, _), (url, error) in zip(batch, outcomes):
                finalized.append((index, descriptor, url, error))
        return finalized

    def _item_url(self, token: str, ref: str) -> str:
        # After finalizing, the reference is the media item's product URL
        return ref

    def _status_url(self, ref: str) -> str:
        return ref

    def _upload_single(self, container: Optional[str], descriptor: FileDescriptor, content: bytes, token: str) -> str:
        upload_token = self._upload_into(container, descriptor, content, token)
        url, error = self._batch_create(token, container, [(descriptor, upload_token)])[0]
        if error:
            raise UploadError(self.get_provider_name(), descriptor.name, error)
        return url

    def _container_url(self, root: Optional[str], token: str) -> Optional[str]:
        if not root:
            return None

        try:
            response = self._send('GET', f"{PHOTOS_ALBUMS_URL}/{root}", token)
            if response.ok:
                payload = response.json()
                if isinstance(payload, dict) and payload.get('productUrl'):
                    return payload['productUrl']
        except (requests.RequestException, ValueError) as e:
            logger.warning("Could not fetch Google Photos album %s: %s", root, e)

        return PHOTOS_ALBUM_URL.format(album_id=root)
