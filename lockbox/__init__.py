"""
Lockbox — Typed Payloads for Encrypted Storage
Turns any supported value into bytes + metadata, and back.

Lockbox provides two layers:
1. Codec — a lossless, metadata-driven encoder/decoder (the payload)
2. Vault — AES-256-GCM sealed storage of encoded values (the lock)

The codec never encrypts, stores or sends anything. The metadata record it
produces is the only schema: keep it next to the bytes and decode() hands
back the original value with its original type.

Usage:
    from lockbox import encode, decode
    data, metadata = encode({"a": 1}, "settings")
    assert decode(data, metadata) == {"a": 1}
"""

from lockbox.blob import BigInt, FileBlob
from lockbox.codec import Encoded, encode, decode, pre_process, post_process
from lockbox.errors import (
    LockboxError,
    CodecError,
    UnsupportedInputType,
    UnsupportedMetadataType,
    VaultError,
)
from lockbox.metadata import DataMetadata, DataType, Subtype, ArrayType, GENERIC_NAME
from lockbox.vault import Vault, VaultConfig

__version__ = "0.1.0"
__all__ = [
    "encode",
    "decode",
    "pre_process",
    "post_process",
    "Encoded",
    "BigInt",
    "FileBlob",
    "DataMetadata",
    "DataType",
    "Subtype",
    "ArrayType",
    "GENERIC_NAME",
    "Vault",
    "VaultConfig",
    "LockboxError",
    "CodecError",
    "UnsupportedInputType",
    "UnsupportedMetadataType",
    "VaultError",
]
