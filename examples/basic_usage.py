"""
Lockbox — Basic Usage Example

Encodes values of different types, shows the metadata that describes
them, then stores and reloads them through an encrypted local vault.
"""

import shutil
import sys
from collections import OrderedDict
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np

from lockbox import BigInt, FileBlob, Vault, VaultConfig, VaultError, decode, encode
from lockbox.utils import setup_logging


def main():
    setup_logging("INFO")

    print("=" * 50)
    print("  Lockbox — Typed Payloads for Encrypted Storage")
    print("=" * 50)

    values = {
        "answer": 42,
        "big": BigInt(9007199254740991),
        "settings": OrderedDict([("theme", "dark"), ("language", "en")]),
        "samples": np.array([9, 8, 7, 6, 5], dtype=np.uint8),
        "note": FileBlob(b"Had a breakthrough idea today.", "text/plain", "journal.txt"),
        "tags": {"python", "crypto"},
    }

    print("\nCodec:")
    for name, value in values.items():
        data, metadata = encode(value, name)
        restored = decode(data, metadata)
        print(f"  {name}: {len(data)}B  {metadata.to_json()}")
        print(f"    -> {restored!r}")

    vault_dir = Path("./example-vault")
    vault = Vault("my-secret-passphrase-change-this", VaultConfig(vault_dir=vault_dir))

    print("\nVault:")
    receipts = [vault.store(value, name) for name, value in values.items()]
    for receipt in receipts:
        print(f"  {receipt['name']}: {receipt['type']} -> {receipt['data_identifier']}")

    print(f"\nSearch 'journal': {[i['data_metadata']['name'] for i in vault.search('journal').values()]}")

    first = receipts[0]["data_identifier"]
    print(f"Reloaded {first}: {vault.load(first)!r}")

    # Try loading with wrong passphrase
    print("\nAttempting load with wrong passphrase...")
    bad_vault = Vault("wrong-passphrase", VaultConfig(vault_dir=vault_dir))
    try:
        bad_vault.load(first)
        print("  ERROR: Should have failed!")
    except VaultError:
        print("  Correctly rejected: wrong passphrase, wrong key, can't decrypt")

    shutil.rmtree(vault_dir, ignore_errors=True)
    print("\nCleaned up example files.")


if __name__ == "__main__":
    main()
