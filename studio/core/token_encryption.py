"""Encrypt connected-account credentials at rest with a Fernet key derived from secret_key."""

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from studio.config import get_settings

_FERNET: Optional[Fernet] = None


def _get_fernet() -> Fernet:
    global _FERNET
    if _FERNET is not None:
        return _FERNET
    settings = get_settings()
    key_material = hashlib.sha256(settings.secret_key.encode()).digest()
    derived = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"content_studio_account_credentials",
        iterations=100000,
    ).derive(key_material)
    _FERNET = Fernet(base64.urlsafe_b64encode(derived))
    return _FERNET


def encrypt_token(plain: Optional[str]) -> str:
    if not plain:
        return ""
    return _get_fernet().encrypt(plain.encode()).decode()


def decrypt_token(encrypted: Optional[str]) -> str:
    """Return the plaintext credential, or "" when absent or unreadable (e.g. rotated secret_key)."""
    if not encrypted:
        return ""
    try:
        return _get_fernet().decrypt(encrypted.encode()).decode()
    except InvalidToken:
        return ""


def decrypt_credentials(access_token: Optional[str], access_secret: Optional[str]) -> tuple[str, str]:
    """Decrypt an OAuth 1.0a token/secret pair; either may come back empty."""
    return decrypt_token(access_token), decrypt_token(access_secret)
