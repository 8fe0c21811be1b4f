"""
Credentials Sealing
===================
Fernet encryption of stored OAuth tokens for the caller's persistence layer.

The export adapters never persist tokens themselves. Callers that store
ProviderCredentials seal them with a key from CLOUD_EXPORT_ENCRYPTION_KEY.

To generate a new key:
    from cryptography.fernet import Fernet
    print(Fernet.generate_key().decode())

Or use: generate_fernet_key() from this module.
"""

import json
import os
from typing import Any, Dict, Optional, TYPE_CHECKING

from cryptography.fernet import Fernet, InvalidToken

if TYPE_CHECKING:
    from ..models import ProviderCredentials

ENCRYPTION_KEY_ENV_VAR = "CLOUD_EXPORT_ENCRYPTION_KEY"

SENSITIVE_FIELDS = (
    'access_token',
    'refresh_token',
    'client_id',
    'client_secret',
    'code',
)


def generate_fernet_key() -> str:
    """
    Generate a new Fernet encryption key.

    Returns:
        Base64-encoded Fernet key string
    """
    return Fernet.generate_key().decode()


def get_encryption_key(environ: Optional[Dict[str, str]] = None) -> str:
    """
    Read the token sealing key from the environment.

    Raises:
        ValueError: If CLOUD_EXPORT_ENCRYPTION_KEY is not set
    """
    env = os.environ if environ is None else environ
    encryption_key = env.get(ENCRYPTION_KEY_ENV_VAR)
    if not encryption_key:
        raise ValueError(f"No encryption key found. Set {ENCRYPTION_KEY_ENV_VAR}.")
    return encryption_key


def _fernet(encryption_key: str) -> Fernet:
    try:
        return Fernet(encryption_key.encode())
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid encryption key format: {e}")


def seal_credentials(credentials: "ProviderCredentials", encryption_key: str) -> str:
    """
    Encrypt credentials into an opaque token for storage.

    Args:
        credentials: Token pair to seal
        encryption_key: Fernet key string

    Returns:
        Fernet token string
    """
    payload = json.dumps(credentials.to_dict()).encode()
    return _fernet(encryption_key).encrypt(payload).decode()


def open_credentials(sealed: str, encryption_key: str) -> "ProviderCredentials":
    """
    Decrypt a value produced by seal_credentials.

    Raises:
        ValueError: If the key is wrong or the value was tampered with
    """
    # models imports config, so resolve it at call time
    from ..models import ProviderCredentials

    try:
        payload = _fernet(encryption_key).decrypt(sealed.encode())
    except InvalidToken:
        raise ValueError("Failed to decrypt credentials: invalid key or corrupted value")
    return ProviderCredentials.from_dict(json.loads(payload))


def mask_credentials(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a masked copy of data for safe logging.

    Args:
        data: Dictionary potentially containing sensitive values

    Returns:
        Dictionary with sensitive values masked
    """
    if not isinstance(data, dict):
        return data

    masked = data.copy()
    for field in SENSITIVE_FIELDS:
        if field in masked and masked[field]:
            value = masked[field]
            if isinstance(value, str) and len(value) > 8:
                masked[field] = f"{value[:4]}...{value[-4:]}"
            else:
                masked[field] = "***"

    for key, value in masked.items():
        if isinstance(value, dict):
            masked[key] = mask_credentials(value)

    return masked
