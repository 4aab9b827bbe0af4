"""
binassets — pack a tree of files into a Python module and browse it as a
read-only virtual filesystem.

Features:

- AssetCollection: a mapping of full path to bytes whose directories are
  synthesised from the paths nested beneath them; ``open``/``stat`` return
  cursor handles with read/seek and paginated ``readdir``.
- Optional per-asset authenticated encryption: AES-CBC with PKCS#7 padding
  and an HMAC-SHA256 tag over IV and ciphertext (PyCryptodomex), keyed
  directly or via an Argon2id password-derived key.
- A packer that walks a directory and writes a self-contained module,
  optionally runnable as a threaded HTTP file server.
- A CLI to pack, list, cat, unpack and serve packed modules.

Encrypted collections must be decrypted once, before they are shared
between threads; after that the collection is treated as immutable.
"""

__version__ = "0.1"

from .asset import Asset, AssetInfo
from .collection import AssetCollection
from .crypt import decrypt, encrypt
from .errors import (
    BinAssetsError,
    InvalidKeyLength,
    InvalidKeyMaterial,
    InvalidCiphertextLength,
    AuthenticationFailed,
    MalformedPadding,
    NotFound,
    EndOfFile,
    EndOfListing,
    InvalidOutputPath,
)

__all__ = [
    "Asset",
    "AssetInfo",
    "AssetCollection",
    "encrypt",
    "decrypt",
    "BinAssetsError",
    "InvalidKeyLength",
    "InvalidKeyMaterial",
    "InvalidCiphertextLength",
    "AuthenticationFailed",
    "MalformedPadding",
    "NotFound",
    "EndOfFile",
    "EndOfListing",
    "InvalidOutputPath",
]
