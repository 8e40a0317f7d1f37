import base64

import pytest

from kamleen.core import crypto
from kamleen.core.config import settings
from kamleen.core.exceptions import ConfigurationError


@pytest.mark.unit
class TestSecretSealing:
    def test_round_trip(self):
        packed = crypto.encrypt_string("smtp-password")
        assert packed != "smtp-password"
        assert crypto.decrypt_string(packed) == "smtp-password"

    def test_packed_layout_is_iv_tag_ciphertext(self):
        raw = base64.b64decode(crypto.encrypt_string("abc"))
        assert len(raw) == crypto.IV_LENGTH + crypto.TAG_LENGTH + 3

    def test_fresh_iv_per_encryption(self):
        assert crypto.encrypt_string("same") != crypto.encrypt_string("same")

    def test_seal_is_prefixed_and_idempotent(self):
        sealed = crypto.seal("sk_live_123")
        assert sealed.startswith(crypto.ENCRYPTED_PREFIX)
        assert crypto.seal(sealed) == sealed
        assert crypto.unseal(sealed) == "sk_live_123"

    def test_unseal_passes_plain_values_through(self):
        assert crypto.unseal("not-a-secret") == "not-a-secret"

    def test_tampered_value_is_rejected(self):
        raw = bytearray(base64.b64decode(crypto.encrypt_string("secret")))
        raw[-1] ^= 0x01
        with pytest.raises(ConfigurationError):
            crypto.decrypt_string(base64.b64encode(bytes(raw)).decode("ascii"))

    def test_truncated_value_is_rejected(self):
        with pytest.raises(ConfigurationError):
            crypto.decrypt_string(base64.b64encode(b"short").decode("ascii"))

    def test_missing_key_is_a_configuration_error(self, monkeypatch):
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", "")
        with pytest.raises(ConfigurationError):
            crypto.encrypt_string("anything")

    def test_wrong_key_cannot_decrypt(self, monkeypatch):
        packed = crypto.encrypt_string("secret")
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", "another-key")
        with pytest.raises(ConfigurationError):
            crypto.decrypt_string(packed)
