"""
Passphrase Encryption Utilities

Room passphrases are stored encrypted at rest (Fernet, AES-128-CBC).
"""

import os
import base64
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

# Fixed salt is fine here since the key itself is secret
SALT = b"advent_sphere_room_passphrase_salt_v1"


def _get_fernet() -> Fernet:
    """
    Get Fernet cipher instance.

    Raises:
        RuntimeError: If ENCRYPTION_KEY is not set
    """
    if not ENCRYPTION_KEY:
        raise RuntimeError(
            "ENCRYPTION_KEY environment variable must be set for passphrase encryption. "
            "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=SALT,
        iterations=100000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(ENCRYPTION_KEY.encode()))
    return Fernet(key)


def encrypt_secret(plaintext: str) -> str:
    """
    Encrypt a passphrase for storage.

    Empty values are returned unchanged so "no passphrase" stays falsy.
    """
    if not plaintext:
        return plaintext

    fernet = _get_fernet()
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str) -> str:
    """
    Decrypt a stored passphrase.

    Raises:
        RuntimeError: If ENCRYPTION_KEY is not configured
        cryptography.fernet.InvalidToken: If decryption fails
    """
    if not ciphertext:
        return ciphertext

    fernet = _get_fernet()
    return fernet.decrypt(ciphertext.encode()).decode()
