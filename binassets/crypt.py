"""Per-blob authenticated encryption.

Each blob is sealed as ``IV(16) || AES-CBC(PKCS#7(plaintext)) || HMAC-SHA256(32)``.
The MAC covers the IV and the ciphertext and is keyed with the same key as
the block cipher; the layout is fixed so that previously packed modules keep
decrypting. AES comes from PyCryptodomex, the MAC from the standard library.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import os
from typing import Optional

from Cryptodome.Cipher import AES
from Cryptodome.Util.Padding import pad
from argon2.low_level import Type as _ArgonType, hash_secret_raw as _argon_hash

from .constants import (
    BLOCK_SIZE,
    IV_SIZE,
    MAC_SIZE,
    KEY_SIZES,
    MIN_CIPHERTEXT_SIZE,
    SALT_SIZE,
    DERIVED_KEY_SIZE,
    ARGON_TIME_COST,
    ARGON_MEMORY_COST_KIB,
    ARGON_PARALLELISM,
    KEY_ENV_VAR,
)
from .errors import (
    InvalidKeyLength,
    InvalidKeyMaterial,
    InvalidCiphertextLength,
    AuthenticationFailed,
    MalformedPadding,
)


def _check_key(key: bytes) -> None:
    if len(key) not in KEY_SIZES:
        raise InvalidKeyLength(f"Key must be 16, 24 or 32 bytes (got {len(key)})")


def _mac(key: bytes, data: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha256).digest()


def encrypt(key: bytes, data: bytes) -> bytes:
    """Encrypt and authenticate ``data`` under ``key``.

    A fresh random IV is drawn for every call, so encrypting the same
    plaintext twice yields different outputs.
    """
    _check_key(key)
    iv = os.urandom(IV_SIZE)
    cipher = AES.new(key, AES.MODE_CBC, iv=iv)
    body = iv + cipher.encrypt(pad(data, BLOCK_SIZE, style="pkcs7"))
    return body + _mac(key, body)


def decrypt(key: bytes, data: bytes) -> bytes:
    """Verify and decrypt a blob produced by :func:`encrypt`.

    The length is validated before any cryptographic work, and the MAC is
    checked (in constant time) before the ciphertext is touched.
    """
    if len(data) < MIN_CIPHERTEXT_SIZE or (len(data) - MAC_SIZE) % BLOCK_SIZE != 0:
        raise InvalidCiphertextLength(f"Invalid data length: {len(data)}")
    _check_key(key)
    body, tag = data[:-MAC_SIZE], data[-MAC_SIZE:]
    if not hmac.compare_digest(_mac(key, body), tag):
        raise AuthenticationFailed("Invalid HMAC")
    cipher = AES.new(key, AES.MODE_CBC, iv=body[:IV_SIZE])
    padded = cipher.decrypt(body[IV_SIZE:])
    # the last byte alone decides how much is stripped
    pad_len = padded[-1]
    if pad_len == 0 or pad_len > BLOCK_SIZE:
        raise MalformedPadding(f"Malformed padding (last byte {pad_len})")
    return padded[:-pad_len]


def generate_key(bits: int = 256) -> bytes:
    size = bits // 8
    _check_key(b"\x00" * size)
    return os.urandom(size)


def parse_hex_key(text: str) -> bytes:
    """Decode a hex-encoded key as given on the command line."""
    try:
        key = binascii.unhexlify(text.strip())
    except (binascii.Error, ValueError) as exc:
        raise InvalidKeyMaterial("Invalid encryption key: not a hex string") from exc
    if len(key) not in KEY_SIZES:
        raise InvalidKeyMaterial(
            f"Invalid encryption key: {len(key)} bytes decoded, expected 16, 24 or 32"
        )
    return key


def new_salt() -> bytes:
    return os.urandom(SALT_SIZE)


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 256-bit key from ``password`` with Argon2id."""
    if len(salt) != SALT_SIZE:
        raise InvalidKeyMaterial(f"Salt must be {SALT_SIZE} bytes")
    return _argon_hash(
        password.encode("utf-8"),
        salt,
        time_cost=ARGON_TIME_COST,
        memory_cost=ARGON_MEMORY_COST_KIB,
        parallelism=ARGON_PARALLELISM,
        hash_len=DERIVED_KEY_SIZE,
        type=_ArgonType.ID,
    )


def resolve_key(
    hex_key: Optional[str] = None,
    password: Optional[str] = None,
    kdf_salt: Optional[bytes] = None,
) -> bytes:
    """Pick the decryption key for a packed module.

    A hex key wins over a password; without either, ``BINASSETS_KEY`` from
    the environment is used.
    """
    if not hex_key and not password:
        hex_key = os.environ.get(KEY_ENV_VAR)
    if hex_key:
        return parse_hex_key(hex_key)
    if password:
        if kdf_salt is None:
            raise InvalidKeyMaterial("Assets were not packed with a password; provide a hex key")
        return derive_key(password, kdf_salt)
    raise InvalidKeyMaterial("Assets are encrypted; a key or password is required")
