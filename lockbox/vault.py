"""
Vault — Local Sealed Store
Runs the codec on both sides of AES-256-GCM encryption.

Flow for storing a value:
1. Encode the value (canonical bytes + metadata)
2. Seal the bytes with the vault key, binding the metadata as associated data
3. Write one record file: identifier, metadata, sealed payload

Flow for loading a value:
1. Read the record
2. Unseal the bytes (fails if the key is wrong or anything was tampered with)
3. Decode the bytes with the stored metadata

Metadata is stored in the clear next to the ciphertext, so records can be
listed and searched by name without decrypting anything.

Key derivation:
  Passphrase + per-directory salt → Vault Key (via PBKDF2-HMAC-SHA256)
"""

import base64
import json
import logging
import os
import string
import time
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from lockbox.codec import Encoded, decode, encode
from lockbox.errors import VaultError
from lockbox.metadata import DataMetadata


logger = logging.getLogger("lockbox.vault")


# Key derivation parameters
PBKDF2_ITERATIONS = 600_000  # OWASP recommended minimum
SALT_SIZE = 16
NONCE_SIZE = 12  # AES-256-GCM standard
KEY_SIZE = 32    # 256 bits
IDENTIFIER_SIZE = 16

RECORD_SUFFIX = ".lockbox"
SALT_FILE = ".lockbox-salt"


@dataclass
class VaultConfig:
    """Settings for a local vault."""
    vault_dir: str | Path = "./lockbox-vault"
    pbkdf2_iterations: int = PBKDF2_ITERATIONS
    debug: bool = False


def derive_key(passphrase: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """Derive the vault key from a passphrase using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def seal(data: bytes, key: bytes, associated_data: bytes = None) -> dict:
    """Encrypt data with AES-256-GCM. Returns nonce + ciphertext."""
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ciphertext = aesgcm.encrypt(nonce, data, associated_data)
    return {
        "nonce": base64.b64encode(nonce).decode(),
        "ciphertext": base64.b64encode(ciphertext).decode(),
    }


def unseal(sealed: dict, key: bytes, associated_data: bytes = None) -> bytes:
    """
    Decrypt AES-256-GCM sealed data.

    Raises:
        VaultError: If the key is wrong, the ciphertext, nonce or
            associated data were altered, or the sealed dict is malformed.
    """
    aesgcm = AESGCM(key)
    try:
        nonce = base64.b64decode(sealed["nonce"], validate=True)
        ciphertext = base64.b64decode(sealed["ciphertext"], validate=True)
        return aesgcm.decrypt(nonce, ciphertext, associated_data)
    except InvalidTag as e:
        raise VaultError("Record failed authentication: wrong passphrase or tampered data") from e
    except (ValueError, KeyError, TypeError) as e:
        # Bad base64, wrong nonce length, missing fields
        raise VaultError(f"Malformed sealed payload: {e}") from e


def _associated_data(data_identifier: str, metadata_json: str) -> bytes:
    # Binds a payload to its identifier and metadata so neither can be swapped
    return f"{data_identifier}:{metadata_json}".encode("utf-8")


class Vault:
    """
    Encrypted value store backed by a directory of record files.

    Any value the codec accepts can be stored. Each record gets a random
    data identifier; names are labels only and need not be unique.

    Args:
        passphrase: Secret the vault key is derived from.
        config: Vault settings. Defaults to VaultConfig().
    """

    def __init__(self, passphrase: str, config: VaultConfig = None):
        if not passphrase:
            raise ValueError("Vault requires a non-empty passphrase.")

        self.config = config or VaultConfig()
        self.vault_dir = Path(self.config.vault_dir)
        self.vault_dir.mkdir(parents=True, exist_ok=True)

        # Load or create salt
        salt_file = self.vault_dir / SALT_FILE
        if salt_file.exists():
            salt = base64.b64decode(salt_file.read_text())
        else:
            salt = os.urandom(SALT_SIZE)
            salt_file.write_text(base64.b64encode(salt).decode())

        self._key = derive_key(passphrase, salt, self.config.pbkdf2_iterations)

    def _record_file(self, data_identifier: str) -> Path:
        if (
            not isinstance(data_identifier, str)
            or len(data_identifier) != IDENTIFIER_SIZE * 2
            or not all(c in string.hexdigits for c in data_identifier)
        ):
            raise VaultError(f"Malformed data identifier: {data_identifier!r}")
        return self.vault_dir / f"{data_identifier}{RECORD_SUFFIX}"

    def _read_record(self, data_identifier: str) -> dict:
        record_file = self._record_file(data_identifier)
        if not record_file.exists():
            raise VaultError(f"No record for data identifier {data_identifier}")
        try:
            record = json.loads(record_file.read_text())
            metadata = json.loads(record["metadata"])
            sealed = record["sealed"]
        except (ValueError, KeyError, TypeError) as e:
            raise VaultError(f"Corrupted record for data identifier {data_identifier}: {e}") from e
        if not isinstance(metadata, dict) or not isinstance(sealed, dict):
            raise VaultError(f"Corrupted record for data identifier {data_identifier}")
        return record

    def store(self, value, name: str, user_metadata=None) -> dict:
        """
        Encode, encrypt and store a value.

        Args:
            value: Any value the codec accepts.
            name: Human-readable label.
            user_metadata: JSON-serializable data stored with the metadata.

        Returns:
            Receipt describing what was stored.

        Raises:
            UnsupportedInputType: If the codec cannot encode the value.
            VaultError: If user_metadata cannot be written as JSON.
        """
        data, metadata = encode(value, name, self.config.debug, user_metadata)
        try:
            metadata_json = metadata.to_json()
        except (TypeError, ValueError) as e:
            raise VaultError(f"user_metadata must be JSON-serializable: {e}") from e

        data_identifier = os.urandom(IDENTIFIER_SIZE).hex()
        sealed = seal(data, self._key, _associated_data(data_identifier, metadata_json))

        record = {
            "data_identifier": data_identifier,
            "metadata": metadata_json,
            "sealed": sealed,
            "stored_at": int(time.time()),
        }
        record_file = self._record_file(data_identifier)
        record_file.write_text(json.dumps(record, indent=2))

        if self.config.debug:
            logger.debug("stored %s as %s (%d bytes)", metadata.name, data_identifier, len(data))

        return {
            "data_identifier": data_identifier,
            "name": metadata.name,
            "type": metadata.type.value,
            "plaintext_bytes": len(data),
            "record_file": str(record_file),
        }

    def load_raw(self, data_identifier: str) -> Encoded:
        """Decrypt a record without decoding it."""
        record = self._read_record(data_identifier)
        metadata_json = record["metadata"]
        data = unseal(
            record["sealed"],
            self._key,
            _associated_data(data_identifier, metadata_json),
        )
        return Encoded(data, DataMetadata.from_json(metadata_json))

    def load(self, data_identifier: str):
        """
        Decrypt and decode a stored value.

        Raises:
            VaultError: If the record is missing, the passphrase is wrong or
                the record was tampered with.
            UnsupportedMetadataType: If the stored metadata is not decodable.
        """
        data, metadata = self.load_raw(data_identifier)
        return decode(data, metadata, self.config.debug)

    def info(self, data_identifier: str) -> dict | None:
        """Metadata for a record, without decrypting. None if not found.

        Raises:
            VaultError: If the record file is corrupted.
        """
        record_file = self._record_file(data_identifier)
        if not record_file.exists():
            return None
        record = self._read_record(data_identifier)
        return {
            "data_identifier": data_identifier,
            "data_metadata": json.loads(record["metadata"]),
            "stored_at": record.get("stored_at"),
            "record_file": str(record_file),
        }

    def identifiers(self) -> list[str]:
        """List all stored data identifiers."""
        return sorted(f.name[:-len(RECORD_SUFFIX)] for f in self.vault_dir.glob(f"*{RECORD_SUFFIX}"))

    def list(self) -> dict[str, dict]:
        """Info for every stored record, keyed by data identifier."""
        return {ident: self.info(ident) for ident in self.identifiers()}

    def search(self, term: str) -> dict[str, dict]:
        """Records whose name contains *term*, ignoring case."""
        term = term.lower()
        matches = {}
        for ident, info in self.list().items():
            name = (info["data_metadata"].get("name") or "").lower()
            if term in name:
                matches[ident] = info
        if self.config.debug:
            logger.debug("search %r matched %d of the stored records", term, len(matches))
        return matches

    def delete(self, data_identifier: str) -> bool:
        """Remove a record. Returns False if it did not exist."""
        record_file = self._record_file(data_identifier)
        if not record_file.exists():
            return False
        record_file.unlink()
        if self.config.debug:
            logger.debug("deleted %s", data_identifier)
        return True

    def stats(self) -> dict:
        """Get vault statistics."""
        total_bytes = 0
        records = 0
        for f in self.vault_dir.glob(f"*{RECORD_SUFFIX}"):
            total_bytes += f.stat().st_size
            records += 1
        return {
            "vault_dir": str(self.vault_dir),
            "total_records": records,
            "total_bytes_on_disk": total_bytes,
        }
