import pytest

from wa_hub.core.errors import FailedPreconditionError
from wa_hub.utils.encryption import DEV_PREFIX, decrypt_token, encrypt_token


def test_stored_format_and_decrypt():
    stored = encrypt_token("EAAG-secret", "k1")
    iv, tag, cipher = stored.split(":")
    assert len(bytes.fromhex(iv)) == 12
    assert len(bytes.fromhex(tag)) == 16
    assert decrypt_token(stored, "k1") == "EAAG-secret"
    assert encrypt_token("EAAG-secret", "k1") != stored


def test_wrong_key_or_garbage_fails():
    stored = encrypt_token("EAAG-secret", "k1")
    with pytest.raises(FailedPreconditionError):
        decrypt_token(stored, "k2")
    with pytest.raises(FailedPreconditionError):
        decrypt_token("zz:yy:xx", "k1")
    with pytest.raises(FailedPreconditionError):
        decrypt_token("plain-token", "k1")


def test_dev_prefix_needs_no_key():
    assert decrypt_token(f"{DEV_PREFIX}abc") == "abc"


def test_missing_key_is_precondition(monkeypatch):
    from wa_hub.utils import encryption
    monkeypatch.setattr(encryption.settings, "WHATSAPP_TOKEN_ENCRYPTION_KEY", None)
    with pytest.raises(FailedPreconditionError):
        encrypt_token("x")
