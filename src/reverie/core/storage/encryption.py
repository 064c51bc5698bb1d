"""At-rest encryption for values in the local store.

The session record carries the bearer credential, so with a key configured
every stored document is written as a Fernet token. Several keys may be
given, comma separated: the first encrypts, all of them decrypt, which lets
an old key be rotated out without losing the journal.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Bad key material, or a value that cannot be decrypted."""


def _parse_keys(key: str) -> list[str]:
    return [part.strip() for part in (key or "").split(",") if part.strip()]


class FieldEncryptor:
    """Symmetric encryption of stored strings.

    Usage::

        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        token = encryptor.encrypt('{"email": "a@x.com"}')
        encryptor.decrypt(token)  # '{"email": "a@x.com"}'

        rotated = FieldEncryptor(f"{new_key},{old_key}")
        rotated.decrypt(token_written_with_old_key)
    """

    def __init__(self, key: str) -> None:
        """
        Raises:
            EncryptionError: If no key is given or any key is malformed.
        """
        keys = _parse_keys(key)
        if not keys:
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = MultiFernet([Fernet(k.encode()) for k in keys])
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        self._key_count = len(keys)
        if self._key_count > 1:
            logger.info("Encryption configured with %d keys (rotation)", self._key_count)

    @property
    def key_count(self) -> int:
        return self._key_count

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        """Decrypt with whichever configured key wrote ``token``.

        Raises:
            EncryptionError: If no configured key can read it.
        """
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        except (ValueError, UnicodeDecodeError) as exc:
            raise EncryptionError(f"Decryption failed: {exc}") from exc

    def rotate(self, token: str) -> str:
        """Re-encrypt ``token`` under the primary key."""
        try:
            return self._fernet.rotate(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Rotation failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")
