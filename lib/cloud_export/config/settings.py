"""
Provider Settings
=================
OAuth application credentials and export tuning read from environment
variables.

Google Drive and Google Photos share one OAuth client:
    GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET

Other providers use their own prefix:
    DROPBOX_CLIENT_ID / DROPBOX_CLIENT_SECRET
    ONEDRIVE_CLIENT_ID / ONEDRIVE_CLIENT_SECRET
    BOX_CLIENT_ID / BOX_CLIENT_SECRET
    ADOBE_CLIENT_ID / ADOBE_CLIENT_SECRET
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from .constants import (
    DEFAULT_APP_FOLDER,
    DEFAULT_MAX_WORKERS,
    MAX_WORKERS_LIMIT,
    PROVIDER_ADOBE,
    PROVIDER_BOX,
    PROVIDER_DROPBOX,
    PROVIDER_GOOGLE_DRIVE,
    PROVIDER_GOOGLE_PHOTOS,
    PROVIDER_ONEDRIVE,
)

# Environment variable prefix per provider
ENV_PREFIXES: Dict[str, str] = {
    PROVIDER_GOOGLE_DRIVE: 'GOOGLE',
    PROVIDER_GOOGLE_PHOTOS: 'GOOGLE',
    PROVIDER_DROPBOX: 'DROPBOX',
    PROVIDER_ONEDRIVE: 'ONEDRIVE',
    PROVIDER_BOX: 'BOX',
    PROVIDER_ADOBE: 'ADOBE',
}


@dataclass(frozen=True)
class ProviderSettings:
    """OAuth client registration for one provider."""
    client_id: str
    client_secret: str


def load_provider_settings(provider_type: str, environ: Optional[Dict[str, str]] = None) -> ProviderSettings:
    """
    Load OAuth client settings for a provider from the environment.

    Args:
        provider_type: Canonical provider identifier (e.g. 'dropbox')
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        ProviderSettings for the provider

    Raises:
        ValueError: If the provider is unknown or its variables are unset
    """
    env = os.environ if environ is None else environ
    prefix = ENV_PREFIXES.get(provider_type)
    if prefix is None:
        raise ValueError(f"No settings defined for provider '{provider_type}'")

    client_id = env.get(f"{prefix}_CLIENT_ID")
    client_secret = env.get(f"{prefix}_CLIENT_SECRET")

    if not client_id or not client_secret:
        configured = sorted(
            provider for provider, other_prefix in ENV_PREFIXES.items()
            if env.get(f"{other_prefix}_CLIENT_ID") and env.get(f"{other_prefix}_CLIENT_SECRET")
        )
        raise ValueError(
            f"Missing {prefix}_CLIENT_ID / {prefix}_CLIENT_SECRET for provider '{provider_type}'. "
            f"Configured providers: {configured}"
        )

    return ProviderSettings(client_id=client_id, client_secret=client_secret)


def get_app_folder(environ: Optional[Dict[str, str]] = None) -> str:
    """Root folder name used on path-based providers."""
    env = os.environ if environ is None else environ
    return env.get('CLOUD_EXPORT_APP_FOLDER') or DEFAULT_APP_FOLDER


def get_max_workers(environ: Optional[Dict[str, str]] = None) -> int:
    """
    Upload pool size for batch exports, clamped to [1, MAX_WORKERS_LIMIT].

    Raises:
        ValueError: If CLOUD_EXPORT_MAX_WORKERS is not an integer
    """
    env = os.environ if environ is None else environ
    raw = env.get('CLOUD_EXPORT_MAX_WORKERS')
    if not raw:
        return DEFAULT_MAX_WORKERS
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"CLOUD_EXPORT_MAX_WORKERS must be an integer, got '{raw}'")
    return max(1, min(value, MAX_WORKERS_LIMIT))
