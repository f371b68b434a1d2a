"""
Token encryption — encrypt / decrypt OAuth tokens stored in pipe configs.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The encryption key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).

If no key is configured, encryption is **disabled** and tokens are stored
as plaintext (with a warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_initialised = False


def _init_fernet() -> None:
    """Lazy-initialise the Fernet cipher once."""
    global _fernet, _initialised

    _initialised = True
    key = config.token_encryption_key
    if not key:
        logger.warning("TOKEN_ENCRYPTION_KEY not set — OAuth tokens will be stored in pipes as plaintext.")
        _fernet = None
        return

    try:
        _fernet = Fernet(key.encode())
        logger.info("Token encryption enabled (Fernet)")
    except ValueError as exc:
        logger.error("Failed to initialise Fernet with provided key: %s", exc)
        _fernet = None


def _cipher() -> Optional[Fernet]:
    if not _initialised:
        _init_fernet()
    return _fernet


def encrypt_token(plaintext: str) -> str:
    """
    Encrypt a token string before it is written into a pipe config.
    If encryption is disabled, returns the plaintext unchanged.
    """
    cipher = _cipher()
    if cipher is None:
        return plaintext
    return cipher.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: str) -> str:
    """
    Decrypt a token string read from a pipe config.

    Tokens stored before encryption was enabled are not valid Fernet
    tokens and are returned as-is.
    """
    cipher = _cipher()
    if cipher is None:
        return ciphertext
    try:
        return cipher.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        return ciphertext


def reset() -> None:
    """Forget the cached cipher so the key is re-read — only useful in tests."""
    global _fernet, _initialised
    _fernet = None
    _initialised = False
