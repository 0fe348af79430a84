"""Encryption of webhook signing secrets at rest.

Secrets are encrypted with Fernet (AES-128-CBC + HMAC) before they are
written to storage and decrypted only when the dispatcher signs a payload.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from cryptography.fernet import Fernet, InvalidToken

from courier.exceptions import ConfigurationError, StorageError

if TYPE_CHECKING:
    from courier.config import Settings


def generate_webhook_secret() -> str:
    """Generate a 32-byte hex signing secret for a new receiver."""
    return secrets.token_hex(32)


class SecretCipher:
    """Symmetric cipher for secrets stored alongside integrations.

    Example:
        ```python
        cipher = SecretCipher(Fernet.generate_key().decode())
        token = cipher.encrypt("whsec")
        assert cipher.decrypt(token) == "whsec"
        ```
    """

    def __init__(self, key: str | bytes) -> None:
        try:
            self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        except ValueError as e:
            raise ConfigurationError(f"Invalid encryption key: {e}") from e

    @classmethod
    def from_settings(cls, settings: Settings) -> SecretCipher:
        """Build a cipher from configuration.

        Raises:
            ConfigurationError: If no encryption key is configured.
        """
        if not settings.encryption_key:
            raise ConfigurationError("COURIER_ENCRYPTION_KEY is not configured")
        return cls(settings.encryption_key)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt a stored secret.

        Raises:
            StorageError: If the token was not produced with this key.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise StorageError("Stored secret could not be decrypted with the current key") from e
