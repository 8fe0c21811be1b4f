"""
User-facing messages for OAuth callback errors and failed exports.
"""

from typing import Optional

from ..config.constants import PROVIDER_ALIASES, PROVIDER_DISPLAY_NAMES

OAUTH_ERROR_MESSAGES = {
    'access_denied': (
        "Access denied. Please ensure the app is properly configured in {service} and your "
        "account has been added as a test user if the app is in testing mode."
    ),
    'invalid_client': "Invalid client configuration. Please check your {service} OAuth credentials.",
    'invalid_grant': "Invalid authorization code. Please try again.",
    'invalid_request': "Invalid request. Please check your OAuth configuration.",
    'invalid_scope': "Invalid scope requested. Please check your {service} OAuth scopes configuration.",
    'server_error': "{service} server error. Please try again later.",
    'temporarily_unavailable': "{service} is temporarily unavailable. Please try again later.",
}

PHOTOS_API_DISABLED_MESSAGE = (
    "Google Photos API is not enabled. "
    "Please enable the Google Photos Library API in Google Cloud Console."
)

# Markers Google puts in responses when the Photos Library API is disabled
_API_DISABLED_MARKERS = ('not activated', 'code": 16', 'SERVICE_DISABLED')


def display_name(provider_type: str) -> str:
    key = (provider_type or "").lower().strip()
    key = PROVIDER_ALIASES.get(key, key)
    return PROVIDER_DISPLAY_NAMES.get(key, key.capitalize())


def describe_oauth_error(provider_type: str, error: str, description: Optional[str] = None) -> str:
    """Map an OAuth callback ``error`` code to a message naming the provider."""
    template = OAUTH_ERROR_MESSAGES.get(error)
    if template:
        return template.format(service=display_name(provider_type))
    return description or f"OAuth error: {error}. Please contact support if this persists."


def describe_export_error(exc: Exception) -> str:
    """Message to show for a failed export; disabled-API errors become actionable."""
    message = str(exc)
    if any(marker in message for marker in _API_DISABLED_MARKERS):
        return PHOTOS_API_DISABLED_MESSAGE
    return message
