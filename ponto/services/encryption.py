from __future__ import annotations

import base64

from cryptography.fernet import Fernet, InvalidToken

from ponto.core.config import get_settings


class EmbeddingCrypto:
    """Encrypts serialised embeddings at rest."""

    def __init__(self, key_material: str):
        padded = key_material.encode("utf-8")
        key = base64.urlsafe_b64encode(padded.ljust(32, b"0")[:32])
        self._fernet = Fernet(key)

    def encrypt(self, serialized: str) -> str:
        return self._fernet.encrypt(serialized.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str | None:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except (InvalidToken, UnicodeDecodeError):
            return None


embedding_crypto = EmbeddingCrypto(get_settings().embedding_cipher_key)
