"""Tests for the metadata record and file helpers."""

import dataclasses
import json
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lockbox import (
    ArrayType,
    DataMetadata,
    DataType,
    FileBlob,
    GENERIC_NAME,
    Subtype,
    UnsupportedMetadataType,
    encode,
)


def test_to_dict_uses_wire_keys():
    """Wire form uses camelCase keys and omits unset optional fields."""
    metadata = DataMetadata(
        name="photo.png",
        type=DataType.FILE,
        mime_type="image/png",
        user_metadata={"album": "holiday"},
    )
    assert metadata.to_dict() == {
        "name": "photo.png",
        "type": "file",
        "mimeType": "image/png",
        "userMetaData": {"album": "holiday"},
    }

    arr = DataMetadata(name="a", type=DataType.FIXED_ARRAY, array_type=ArrayType.F64)
    assert arr.to_dict() == {
        "name": "a",
        "type": "fixed-array",
        "arrayType": "f64",
        "userMetaData": None,
    }
    print("  [PASS] to_dict wire keys")


def test_from_dict():
    """from_dict parses every field and ignores keys it does not know."""
    metadata = DataMetadata.from_dict({
        "name": "m",
        "type": "object",
        "subtype": "map",
        "userMetaData": [1, 2],
        "encryptedData": {"ipfsHash": "Qm...", "dataIdentifier": "abc"},
    })
    assert metadata.name == "m"
    assert metadata.type == DataType.OBJECT
    assert metadata.subtype == Subtype.MAP
    assert metadata.user_metadata == [1, 2]
    assert metadata.mime_type is None
    assert metadata.array_type is None
    print("  [PASS] from_dict")


def test_missing_name_defaults():
    """A record without a name gets the generic label."""
    assert DataMetadata.from_dict({"type": "null"}).name == GENERIC_NAME
    assert DataMetadata.from_dict({"type": "null", "name": ""}).name == GENERIC_NAME
    print("  [PASS] missing name default")


def test_json_roundtrip():
    """to_json / from_json preserve every field."""
    _, metadata = encode(b"\x00", "bin", user_metadata={"k": [1, "v"]})
    text = metadata.to_json()
    assert json.loads(text)["type"] == "binary"
    assert DataMetadata.from_json(text) == metadata
    print("  [PASS] json roundtrip")


def test_invalid_json_raises():
    """Unparseable metadata is an UnsupportedMetadataType."""
    for text in ["{not json", "[]", "42"]:
        try:
            DataMetadata.from_json(text)
            assert False, f"{text!r} should not parse"
        except UnsupportedMetadataType:
            pass
    print("  [PASS] invalid json")


def test_unknown_tags_raise():
    """Unknown type, subtype or arrayType strings are rejected on parse."""
    for data in [
        {"type": "date"},
        {"type": "string", "subtype": "hex"},
        {"type": "fixed-array", "arrayType": "Float64Array"},
        {"type": "typedarray"},
    ]:
        try:
            DataMetadata.from_dict(data)
            assert False, f"{data!r} should not parse"
        except UnsupportedMetadataType as e:
            assert e.metadata is data
    print("  [PASS] unknown tags")


def test_legacy_tags():
    """Old buffer / typedarray tags map onto binary / fixed-array."""
    buffer = DataMetadata.from_dict({"name": "b", "type": "buffer", "arrayType": "Uint8Array"})
    assert buffer.type == DataType.BINARY
    assert buffer.array_type is None

    clamped = DataMetadata.from_dict({"name": "t", "type": "typedarray", "arrayType": "Uint8ClampedArray"})
    assert clamped.type == DataType.FIXED_ARRAY
    assert clamped.array_type == ArrayType.U8

    big = DataMetadata.from_dict({"name": "t", "type": "typedarray", "arrayType": "BigInt64Array"})
    assert big.array_type == ArrayType.I64
    print("  [PASS] legacy tags")


def test_metadata_is_immutable():
    """Metadata records cannot be changed once produced."""
    _, metadata = encode("x", "frozen")
    try:
        metadata.name = "changed"
        assert False, "metadata should be frozen"
    except dataclasses.FrozenInstanceError:
        pass
    print("  [PASS] immutable metadata")


def test_file_blob_from_path():
    """FileBlob.from_path reads content and guesses the media type."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "notes.txt"
        path.write_bytes(b"remember the milk")

        blob = FileBlob.from_path(path)
        assert blob.content == b"remember the milk"
        assert blob.mime_type == "text/plain"
        assert blob.filename == "notes.txt"
        assert blob.name == "notes.txt"
        assert blob.size == 17

        forced = FileBlob.from_path(path, mime_type="application/x-notes")
        assert forced.mime_type == "application/x-notes"

        unknown = Path(tmpdir) / "data.lockboxunknown"
        unknown.write_bytes(b"\x00")
        assert FileBlob.from_path(unknown).mime_type == "application/octet-stream"
    print("  [PASS] FileBlob.from_path")


def test_file_blob_defaults():
    """FileBlob coerces content to bytes and defaults its name."""
    blob = FileBlob(bytearray(b"abc"))
    assert blob.content == b"abc"
    assert isinstance(blob.content, bytes)
    assert blob.mime_type == "application/octet-stream"
    assert blob.filename is None
    assert blob.name == GENERIC_NAME
    print("  [PASS] FileBlob defaults")


if __name__ == "__main__":
    print("Testing metadata...\n")
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_")]
    for test in tests:
        test()
    print(f"\n{'='*50}")
    print(f"All {len(tests)} metadata tests passed!")
