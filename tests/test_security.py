"""Tests for secret generation and encryption at rest."""

import pytest
from cryptography.fernet import Fernet

from courier.config import Settings
from courier.exceptions import ConfigurationError, StorageError
from courier.security import SecretCipher, generate_webhook_secret


class TestGenerateWebhookSecret:
    def test_is_32_bytes_hex(self):
        secret = generate_webhook_secret()
        assert len(secret) == 64
        assert bytes.fromhex(secret)

    def test_unique(self):
        assert generate_webhook_secret() != generate_webhook_secret()


class TestSecretCipher:
    """Tests for SecretCipher."""

    def test_round_trip(self, cipher: SecretCipher):
        token = cipher.encrypt("whsec")
        assert token != "whsec"
        assert cipher.decrypt(token) == "whsec"

    def test_accepts_bytes_key(self):
        cipher = SecretCipher(Fernet.generate_key())
        assert cipher.decrypt(cipher.encrypt("x")) == "x"

    def test_invalid_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            SecretCipher("not-a-fernet-key")

    def test_wrong_key_is_storage_error(self, cipher: SecretCipher):
        token = SecretCipher(Fernet.generate_key()).encrypt("whsec")
        with pytest.raises(StorageError):
            cipher.decrypt(token)

    def test_from_settings(self, test_settings: Settings):
        cipher = SecretCipher.from_settings(test_settings)
        assert cipher.decrypt(cipher.encrypt("x")) == "x"

    def test_from_settings_without_key(self):
        with pytest.raises(ConfigurationError, match="COURIER_ENCRYPTION_KEY"):
            SecretCipher.from_settings(Settings(_env_file=None, encryption_key=None))
