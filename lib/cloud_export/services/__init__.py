"""
Services module - Export orchestration and user-facing messages.
"""

from .export_service import CloudExportService, CredentialStore, InMemoryCredentialStore
from .oauth_messages import describe_export_error, describe_oauth_error

__all__ = [
    "CloudExportService",
    "CredentialStore",
    "InMemoryCredentialStore",
    "describe_export_error",
    "describe_oauth_error",
]
