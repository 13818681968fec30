"""
WhatsApp access_token 落库加解密（AES-256-GCM）。
存储格式：iv_hex:tag_hex:cipher_hex
本地开发可直接存 "DEV_UNENCRYPTED:<token>"，读取时原样剥离前缀。
"""

from __future__ import annotations
import hashlib
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wa_hub.core.config import settings
from wa_hub.core.errors import FailedPreconditionError


DEV_PREFIX = "DEV_UNENCRYPTED:"
IV_BYTES = 12
TAG_BYTES = 16


def _key(secret: Optional[str] = None) -> bytes:
    if secret is None:
        configured = settings.WHATSAPP_TOKEN_ENCRYPTION_KEY
        secret = configured.get_secret_value() if configured else None
    if not secret:
        raise FailedPreconditionError("WHATSAPP_TOKEN_ENCRYPTION_KEY is not configured")
    # 任意长度口令 → 32 字节 key
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt_token(plain: str, secret: Optional[str] = None) -> str:
    iv = os.urandom(IV_BYTES)
    sealed = AESGCM(_key(secret)).encrypt(iv, plain.encode("utf-8"), None)
    cipher, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return f"{iv.hex()}:{tag.hex()}:{cipher.hex()}"


def decrypt_token(stored: str, secret: Optional[str] = None) -> str:
    if stored.startswith(DEV_PREFIX):
        return stored[len(DEV_PREFIX):]

    parts = stored.split(":")
    if len(parts) != 3:
        raise FailedPreconditionError("stored access token has an unknown format")
    try:
        iv, tag, cipher = (bytes.fromhex(p) for p in parts)
        plain = AESGCM(_key(secret)).decrypt(iv, cipher + tag, None)
    except (ValueError, InvalidTag) as e:
        raise FailedPreconditionError("stored access token cannot be decrypted") from e
    return plain.decode("utf-8")
