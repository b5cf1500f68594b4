"""Encryption key representation and hex codec.

Index keys are 32 raw bytes on the client and a 64-character
lowercase hex string on the wire.
"""

import binascii
import secrets
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cyborgdb.exceptions import InvalidKeyFormatError, InvalidKeyLengthError

KEY_SIZE = 32


class EncryptionKey(BaseModel):
    """A 32-byte index encryption key.

    The raw value is excluded from ``repr`` so keys do not end up in logs.

    Attributes:
        raw: The key bytes.
    """

    model_config = ConfigDict(frozen=True)

    raw: bytes = Field(repr=False, description="Raw key bytes")

    @field_validator("raw", mode="before")
    @classmethod
    def _check_raw(cls, value: Any) -> bytes:
        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)
        if not isinstance(value, bytes):
            raise InvalidKeyFormatError(f"expected bytes, got {type(value).__name__}")
        if len(value) != KEY_SIZE:
            raise InvalidKeyLengthError(len(value), KEY_SIZE)
        return value

    @classmethod
    def from_bytes(cls, raw: bytes) -> "EncryptionKey":
        """Wrap raw key bytes, validating the length."""
        return cls(raw=raw)

    @classmethod
    def from_hex(cls, value: str) -> "EncryptionKey":
        """Parse the hex wire form."""
        return decode_key(value)

    @classmethod
    def generate(cls) -> "EncryptionKey":
        """Create a new random key."""
        return generate_key()

    def to_hex(self) -> str:
        """Return the 64-character lowercase hex wire form."""
        return encode_key(self)


def generate_key() -> EncryptionKey:
    """Generate a cryptographically secure index key.

    The caller must store the key; the Service cannot recover it.

    Returns:
        A new EncryptionKey.
    """
    return EncryptionKey(raw=secrets.token_bytes(KEY_SIZE))


def encode_key(key: EncryptionKey | bytes) -> str:
    """Encode a key to its hex wire form.

    Args:
        key: EncryptionKey or raw 32-byte value.

    Returns:
        Lowercase hex string of length 64.

    Raises:
        InvalidKeyLengthError: If raw bytes are not 32 bytes long.
    """
    if not isinstance(key, EncryptionKey):
        key = EncryptionKey(raw=key)
    return key.raw.hex()


def decode_key(value: str) -> EncryptionKey:
    """Decode the hex wire form into a key.

    Args:
        value: Hex string, upper or lower case.

    Returns:
        The decoded EncryptionKey.

    Raises:
        InvalidKeyFormatError: If the string is not hex.
        InvalidKeyLengthError: If it does not decode to 32 bytes.
    """
    if not isinstance(value, str):
        raise InvalidKeyFormatError(f"expected str, got {type(value).__name__}")
    try:
        raw = binascii.unhexlify(value)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyFormatError(str(e)) from e
    return EncryptionKey(raw=raw)


def coerce_key(key: EncryptionKey | bytes | str) -> EncryptionKey:
    """Accept a key in any supported form."""
    if isinstance(key, EncryptionKey):
        return key
    if isinstance(key, str):
        return decode_key(key)
    return EncryptionKey(raw=key)
