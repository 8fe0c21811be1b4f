"""
Cloud Export Core - Error Taxonomy
==================================
Every failure leaving an adapter is one of these. Third-party SDK and
transport exceptions are translated at the adapter boundary.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import FileStatus


class CloudStorageError(Exception):
    """Base class for all cloud export failures."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class AuthExchangeError(CloudStorageError):
    """Authorization code could not be exchanged for tokens."""

    def __init__(self, provider: str, status_code: Optional[int], response_body: str):
        super().__init__(
            f"{provider} token exchange failed (HTTP {status_code}): {response_body}",
            provider,
        )
        self.status_code = status_code
        self.response_body = response_body


class AuthRefreshError(CloudStorageError):
    """
    Access token could not be refreshed.

    Terminal: the user has to re-authorize the provider.
    """

    def __init__(self, provider: str, status_code: Optional[int], response_body: str):
        super().__init__(
            f"{provider} token refresh failed (HTTP {status_code}): {response_body}",
            provider,
        )
        self.status_code = status_code
        self.response_body = response_body


class UploadError(CloudStorageError):
    """A file upload (or its share-link step) failed."""

    def __init__(self, provider: str, file_name: str, cause: str):
        super().__init__(f"{provider} upload of '{file_name}' failed: {cause}", provider)
        self.file_name = file_name
        self.cause = cause


class FolderResolutionError(CloudStorageError):
    """A folder or album could not be found or created."""

    def __init__(self, provider: str, folder_name: str, cause: str):
        super().__init__(f"{provider} folder '{folder_name}' could not be resolved: {cause}", provider)
        self.folder_name = folder_name
        self.cause = cause


class ExportError(CloudStorageError):
    """Raised when a batch export produced zero successful files."""

    def __init__(self, provider: str, succeeded: int, failed: List["FileStatus"], message: Optional[str] = None):
        if message is None:
            first_cause = next((status.error for status in failed if status.error), None)
            message = f"{provider} export failed: no files were uploaded"
            if first_cause:
                message = f"{message} (first error: {first_cause})"
        super().__init__(message, provider)
        self.succeeded = succeeded
        self.failed = failed


class MissingCredentialsError(CloudStorageError):
    """No stored OAuth token exists for the requested (user, provider)."""
