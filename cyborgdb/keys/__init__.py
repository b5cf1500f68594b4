"""Encryption key module."""

from cyborgdb.keys.codec import (
    KEY_SIZE,
    EncryptionKey,
    coerce_key,
    decode_key,
    encode_key,
    generate_key,
)

__all__ = [
    "KEY_SIZE",
    "EncryptionKey",
    "coerce_key",
    "decode_key",
    "encode_key",
    "generate_key",
]
