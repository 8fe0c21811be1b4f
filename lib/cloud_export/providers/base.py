"""
Cloud Export Core - Base Cloud Storage Provider
===============================================
Abstract base class for all export adapters.

Every adapter talks to one third-party storage API and must:
- Build the OAuth authorization URL, exchange codes and refresh tokens
- Upload a single file and return a shareable URL
- Export a batch of files into an album container with one subfolder
  per subgroup, tolerating per-file failures

The batch algorithm lives here. Adapters only supply the provider
mechanics (container lookup/creation, upload, share links).
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

import requests

from ..config.constants import (
    DEFAULT_ALBUM_NAME,
    DEFAULT_APP_FOLDER,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SUBGROUP,
    MAX_WORKERS_LIMIT,
    METADATA_TIMEOUT,
    PROVIDER_DISPLAY_NAMES,
)
from ..errors import (
    AuthExchangeError,
    AuthRefreshError,
    CloudStorageError,
    ExportError,
    FolderResolutionError,
    UploadError,
)
from ..models import Capability, ExportResult, FileDescriptor, FileStatus, ProviderCredentials
from ..utils.file_utils import group_by_subgroup, sanitize_folder_name

logger = logging.getLogger(__name__)

TokenRefreshCallback = Callable[[ProviderCredentials], None]

# (request index, descriptor, provider reference returned by the upload)
UploadedItem = Tuple[int, FileDescriptor, Any]


def _account_key(credentials: ProviderCredentials) -> str:
    # The refresh token outlives access token rotation
    return credentials.refresh_token or credentials.access_token


class FolderCache:
    """
    Name -> container id map guarded by a lock.

    The first caller for a name runs the resolver; later callers get the
    memoized id without any remote call.
    """

    def __init__(self):
        self._ids: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def resolve(self, name: str, resolver: Callable[[], Any]) -> Any:
        with self._lock:
            if name not in self._ids:
                self._ids[name] = resolver()
            return self._ids[name]

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)


class BaseCloudStorageProvider(ABC):
    """
    Abstract base class for cloud storage export adapters.

    Subclasses declare their OAuth endpoints as class attributes and
    implement the container and upload hooks. All HTTP calls go through
    ``self.session`` (a requests.Session unless one is injected).

    Token handling:
    - Expired credentials are refreshed before any API call
    - Rotated credentials are handed to ``token_refresh_callback``
    - Refresh failures are terminal (AuthRefreshError)
    """

    PROVIDER_TYPE: str = ""
    AUTHORIZE_URL: str = ""
    TOKEN_URL: str = ""
    SCOPES: Tuple[str, ...] = ()
    EXTRA_AUTH_PARAMS: Dict[str, str] = {}
    # 'body' sends client id/secret as form fields, 'basic' as HTTP basic auth
    TOKEN_AUTH: str = "body"
    SUPPORTS_ARCHIVE_UPLOAD: bool = True
    HOME_URL: str = ""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        session: Optional[requests.Session] = None,
        app_folder: str = DEFAULT_APP_FOLDER,
        token_refresh_callback: Optional[TokenRefreshCallback] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        if not client_id:
            raise ValueError(f"Missing required credential: client_id ({self.PROVIDER_TYPE})")
        if not client_secret:
            raise ValueError(f"Missing required credential: client_secret ({self.PROVIDER_TYPE})")

        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or requests.Session()
        self.app_folder = sanitize_folder_name(app_folder, DEFAULT_APP_FOLDER)
        self.max_workers = max_workers
        self._token_refresh_callback = token_refresh_callback

        # Folder ids resolved by upload_file, one cache per account
        self._account_caches: Dict[str, FolderCache] = {}
        self._account_caches_lock = threading.Lock()

    # =========================================================================
    # IDENTITY
    # =========================================================================

    def get_provider_type(self) -> str:
        """Provider identifier string (e.g. 'googledrive', 'dropbox')."""
        return self.PROVIDER_TYPE

    def get_provider_name(self) -> str:
        """Human-readable provider name (e.g. 'Google Drive')."""
        return PROVIDER_DISPLAY_NAMES.get(self.PROVIDER_TYPE, self.PROVIDER_TYPE)

    def supports_archive_upload(self) -> bool:
        """Whether a zip archive can be uploaded as a single file."""
        return self.SUPPORTS_ARCHIVE_UPLOAD

    def get_capability(self) -> Capability:
        return Capability(
            provider_name=self.PROVIDER_TYPE,
            supports_archive_upload=self.SUPPORTS_ARCHIVE_UPLOAD,
        )

    def set_token_refresh_callback(self, callback: Optional[TokenRefreshCallback]) -> None:
        self._token_refresh_callback = callback

    # =========================================================================
    # TOKEN LIFECYCLE
    # =========================================================================

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        """
        Build the provider consent URL. Pure, no network access.

        Args:
            state: Anti-forgery nonce echoed back on the callback
            redirect_uri: Registered OAuth callback URL

        Returns:
            Authorization URL string
        """
        params = {
            'client_id': self.client_id,
            'redirect_uri': redirect_uri,
            'response_type': 'code',
        }
        if self.SCOPES:
            params['scope'] = ' '.join(self.SCOPES)
        params.update(self.EXTRA_AUTH_PARAMS)
        params['state'] = state
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str) -> ProviderCredentials:
        """
        Exchange an authorization code for tokens.

        Raises:
            AuthExchangeError: On transport failure or non-2xx response
        """
        data = {
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': redirect_uri,
        }
        payload = self._token_request(data, AuthExchangeError)
        logger.info("Obtained %s tokens from authorization code", self.get_provider_name())
        return ProviderCredentials.from_token_response(payload)

    def refresh_token(self, refresh_token: str) -> ProviderCredentials:
        """
        Exchange a refresh token for a new access token.

        The previous refresh token is kept when the provider does not
        rotate it.

        Raises:
            AuthRefreshError: On transport failure or non-2xx response
        """
        data = {
            'grant_type': 'refresh_token',
            'refresh_token': refresh_token,
        }
        payload = self._token_request(data, AuthRefreshError)
        logger.info("Refreshed %s access token", self.get_provider_name())
        return ProviderCredentials.from_token_response(payload, previous_refresh_token=refresh_token)

    def _token_request(self, data: Dict[str, str], error_class: type) -> Dict[str, Any]:
        """POST a form to the token endpoint and return the decoded JSON."""
        provider_name = self.get_provider_name()
        auth = None
        if self.TOKEN_AUTH == "basic":
            auth = (self.client_id, self.client_secret)
        else:
            data['client_id'] = self.client_id
            data['client_secret'] = self.client_secret

        try:
            response = self.session.post(
                self.TOKEN_URL,
                data=data,
                auth=auth,
                headers={'Accept': 'application/json'},
                timeout=METADATA_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error("%s token endpoint unreachable: %s", provider_name, e)
            raise error_class(provider_name, None, str(e))
        finally:
            data.clear()  # Clear secrets from memory

        if not response.ok:
            logger.error(
                "%s token endpoint returned HTTP %s: %s",
                provider_name, response.status_code, response.text,
            )
            raise error_class(provider_name, response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError:
            raise error_class(provider_name, response.status_code, response.text)

        if not isinstance(payload, dict) or not payload.get('access_token'):
            raise error_class(provider_name, response.status_code, response.text)

        return payload

    def ensure_fresh(self, credentials: ProviderCredentials) -> ProviderCredentials:
        """
        Return credentials safe to use right now, refreshing if expired.

        Raises:
            AuthRefreshError: If expired without a refresh token, or the refresh fails
        """
        if not credentials.is_expired():
            return credentials

        if not credentials.refresh_token:
            raise AuthRefreshError(
                self.get_provider_name(), None,
                "Access token expired and no refresh token is available",
            )

        logger.info("%s access token expired, refreshing...", self.get_provider_name())
        refreshed = self.refresh_token(credentials.refresh_token)

        if self._token_refresh_callback:
            try:
                self._token_refresh_callback(refreshed)
            except Exception:
                logger.exception("%s token refresh callback failed", self.get_provider_name())

        return refreshed

    # =========================================================================
    # HTTP HELPERS
    # =========================================================================

    def _send(
        self,
        method: str,
        url: str,
        token: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: int = METADATA_TIMEOUT,
        **kwargs,
    ) -> requests.Response:
        """Issue one request with bearer auth. Transport errors propagate."""
        merged = {}
        if token:
            merged['Authorization'] = f"Bearer {token}"
        if headers:
            merged.update(headers)
        return self.session.request(method, url, headers=merged, timeout=timeout, **kwargs)

    def _call(
        self,
        method: str,
        url: str,
        token: Optional[str],
        on_error: Callable[[str], CloudStorageError],
        **kwargs,
    ) -> requests.Response:
        """
        Issue one request and require a 2xx response.

        Args:
            on_error: Builds the typed error from a cause string

        Raises:
            CloudStorageError: Whatever on_error builds
        """
        try:
            response = self._send(method, url, token, **kwargs)
        except requests.RequestException as e:
            raise on_error(f"{type(e).__name__}: {e}")
        if not response.ok:
            raise on_error(f"HTTP {response.status_code}: {response.text}")
        return response

    @staticmethod
    def _json(response: requests.Response, on_error: Callable[[str], CloudStorageError]) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            raise on_error(f"Malformed JSON response: {response.text[:200]}")
        if not isinstance(payload, dict):
            raise on_error(f"Unexpected response: {response.text[:200]}")
        return payload

    def _upload_error(self, file_name: str) -> Callable[[str], UploadError]:
        return partial(UploadError, self.get_provider_name(), file_name)

    def _folder_cache(self, account: str) -> FolderCache:
        """Folder ids resolved for one account (keyed by a token it owns)."""
        with self._account_caches_lock:
            cache = self._account_caches.get(account)
            if cache is None:
                cache = self._account_caches[account] = FolderCache()
            return cache

    def _folder_error(self, folder_name: str) -> Callable[[str], FolderResolutionError]:
        return partial(FolderResolutionError, self.get_provider_name(), folder_name)

    def _read_content(self, descriptor: FileDescriptor) -> bytes:
        try:
            return descriptor.read_bytes()
        except (OSError, ValueError) as e:
            raise UploadError(self.get_provider_name(), descriptor.name, f"Could not read file: {e}")

    # =========================================================================
    # SINGLE-FILE UPLOAD
    # =========================================================================

    def upload_file(
        self,
        content: bytes,
        name: str,
        credentials: ProviderCredentials,
        folder_name: Optional[str] = None,
    ) -> str:
        """
        Upload one file and return a shareable URL.

        Args:
            content: File bytes (sent as-is)
            name: Target file name
            credentials: OAuth credentials (refreshed if expired)
            folder_name: Optional folder (album on Google Photos)

        Returns:
            Shareable URL for the uploaded file

        Raises:
            UploadError: If the file, its folder, or its share link fails
            AuthRefreshError: If expired credentials cannot be refreshed
        """
        descriptor = FileDescriptor(name=name, content=content)
        rejection = self._rejection_reason(descriptor)
        if rejection:
            raise UploadError(self.get_provider_name(), name, rejection)

        credentials = self.ensure_fresh(credentials)
        token = credentials.access_token
        folder = sanitize_folder_name(folder_name) if folder_name else ""

        try:
            container = self._folder_cache(_account_key(credentials)).resolve(
                folder, partial(self._resolve_upload_folder, token, folder or None),
            )
        except FolderResolutionError as e:
            raise UploadError(self.get_provider_name(), name, str(e))

        url = self._upload_single(container, descriptor, content, token)
        logger.info("Uploaded %s to %s: %s", name, self.get_provider_name(), url)
        return url

    def _upload_single(self, container: Any, descriptor: FileDescriptor, content: bytes, token: str) -> str:
        """Upload into a resolved folder and return the file's shareable URL."""
        ref = self._upload_into(container, descriptor, content, token)
        return self._item_url(token, ref)

    # =========================================================================
    # BATCH EXPORT
    # =========================================================================

    def export_files(
        self,
        files: Sequence[FileDescriptor],
        credentials: ProviderCredentials,
        album_name: str = DEFAULT_ALBUM_NAME,
        max_workers: Optional[int] = None,
    ) -> ExportResult:
        """
        Export files into an album with one subfolder per subgroup.

        Per-file failures are recorded in the result and never stop the
        batch. Each subgroup folder is resolved once, before any upload
        into it is scheduled.

        Args:
            files: Files to export, each tagged with its subgroup
            credentials: OAuth credentials (refreshed if expired)
            album_name: Root container name
            max_workers: Upload pool size (defaults to the adapter's setting)

        Returns:
            ExportResult with a best-effort URL and per-file statuses

        Raises:
            ExportError: If no file could be uploaded (or none was acceptable)
            AuthRefreshError: If expired credentials cannot be refreshed
        """
        provider_name = self.get_provider_name()
        if not files:
            raise ExportError(provider_name, 0, [], f"{provider_name} export failed: no files to export")

        album = sanitize_folder_name(album_name, DEFAULT_ALBUM_NAME)
        statuses: Dict[int, FileStatus] = {}
        accepted: List[Tuple[int, FileDescriptor]] = []

        for index, descriptor in enumerate(files):
            rejection = self._rejection_reason(descriptor)
            if rejection:
                logger.warning("Skipping %s for %s: %s", descriptor.name, provider_name, rejection)
                statuses[index] = FileStatus(name=descriptor.name, ok=False, error=rejection)
            else:
                accepted.append((index, descriptor))

        if not accepted:
            raise ExportError(provider_name, 0, self._ordered(statuses))

        credentials = self.ensure_fresh(credentials)
        token = credentials.access_token

        logger.info("Exporting %d files to %s album '%s'", len(accepted), provider_name, album)

        try:
            root = self._open_export(token, album)
        except CloudStorageError as e:
            failed = [FileStatus(name=d.name, ok=False, error=str(e)) for d in files]
            raise ExportError(provider_name, 0, failed, f"{provider_name} export failed: {e}")

        groups = group_by_subgroup(accepted, DEFAULT_SUBGROUP, key=lambda item: item[1].subgroup)
        folders = FolderCache()
        workers = max(1, min(max_workers or self.max_workers, MAX_WORKERS_LIMIT))
        uploaded: List[UploadedItem] = []

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {}
            for subgroup, members in groups.items():
                folder_name = sanitize_folder_name(subgroup, DEFAULT_SUBGROUP)
                try:
                    container = folders.resolve(
                        folder_name, partial(self._resolve_subgroup, root, folder_name, token),
                    )
                except CloudStorageError as e:
                    logger.warning("%s subgroup '%s' unavailable: %s", provider_name, folder_name, e)
                    for index, descriptor in members:
                        statuses[index] = FileStatus(name=descriptor.name, ok=False, error=str(e))
                    continue

                for index, descriptor in members:
                    future = pool.submit(self._upload_one, container, descriptor, token)
                    futures[future] = (index, descriptor)

            for future in as_completed(futures):
                index, descriptor = futures[future]
                try:
                    uploaded.append((index, descriptor, future.result()))
                except CloudStorageError as e:
                    logger.warning("Failed to upload %s to %s: %s", descriptor.name, provider_name, e)
                    statuses[index] = FileStatus(name=descriptor.name, ok=False, error=str(e))

        uploaded.sort(key=lambda item: item[0])
        first_ref = None
        for index, descriptor, ref, error in self._finalize_uploads(root, uploaded, token):
            if error:
                logger.warning("Failed to finalize %s on %s: %s", descriptor.name, provider_name, error)
                statuses[index] = FileStatus(name=descriptor.name, ok=False, error=error)
            else:
                statuses[index] = FileStatus(name=descriptor.name, ok=True, url=self._status_url(ref))
                if first_ref is None:
                    first_ref = ref

        per_file = self._ordered(statuses)
        succeeded = sum(1 for status in per_file if status.ok)
        if succeeded == 0:
            raise ExportError(provider_name, 0, per_file)

        url = self._best_effort_url(root, first_ref, token)
        logger.info(
            "%s export complete: %d/%d files uploaded, url=%s",
            provider_name, succeeded, len(per_file), url,
        )
        return ExportResult(url=url, per_file_status=per_file)

    def _upload_one(self, container: Any, descriptor: FileDescriptor, token: str) -> Any:
        content = self._read_content(descriptor)
        return self._upload_into(container, descriptor, content, token)

    def _best_effort_url(self, root: Any, first_ref: Any, token: str) -> str:
        """Container URL, else first file's URL, else the provider home page."""
        try:
            url = self._container_url(root, token)
            if url:
                return url
        except CloudStorageError as e:
            logger.warning("Could not get %s container URL: %s", self.get_provider_name(), e)

        if first_ref is not None:
            try:
                url = self._item_url(token, first_ref)
                if url:
                    return url
            except CloudStorageError as e:
                logger.warning("Could not get %s file URL: %s", self.get_provider_name(), e)

        return self.HOME_URL

    @staticmethod
    def _ordered(statuses: Dict[int, FileStatus]) -> List[FileStatus]:
        return [statuses[index] for index in sorted(statuses)]

    # =========================================================================
    # PROVIDER HOOKS
    # =========================================================================

    def _rejection_reason(self, descriptor: FileDescriptor) -> Optional[str]:
        """Reason this provider cannot take the file, or None."""
        return None

    @abstractmethod
    def _resolve_upload_folder(self, token: str, folder_name: Optional[str]) -> Any:
        """Find or create the container for a single-file upload."""
        pass

    @abstractmethod
    def _open_export(self, token: str, album_name: str) -> Any:
        """
        Find or create the album container for a batch export.

        Raises:
            FolderResolutionError: If the export cannot proceed
        """
        pass

    @abstractmethod
    def _resolve_subgroup(self, root: Any, subgroup: str, token: str) -> Any:
        """
        Find or create the subgroup container under the album.

        Raises:
            FolderResolutionError: Marks every file of the subgroup failed
        """
        pass

    @abstractmethod
    def _upload_into(self, container: Any, descriptor: FileDescriptor, content: bytes, token: str) -> Any:
        """
        Upload one file into a resolved container.

        Returns:
            Provider reference for the uploaded item (id, path, ...)

        Raises:
            UploadError: On any failure
        """
        pass

    @abstractmethod
    def _item_url(self, token: str, ref: Any) -> str:
        """Shareable URL for an uploaded item."""
        pass

    def _container_url(self, root: Any, token: str) -> Optional[str]:
        """URL of the album container, if the provider has one."""
        return None

    def _status_url(self, ref: Any) -> Optional[str]:
        """Per-file URL already known after upload; share links are not created per file."""
        return None

    def _finalize_uploads(
        self,
        root: Any,
        uploaded: List[UploadedItem],
        token: str,
    ) -> List[Tuple[int, FileDescriptor, Any, Optional[str]]]:
        """
        Post-process uploaded items.

        Returns:
            (index, descriptor, ref, error) per item; a non-empty error
            marks the item failed
        """
        return [(index, descriptor, ref, None) for index, descriptor, ref in uploaded]
