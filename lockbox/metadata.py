"""
Metadata Record
The side-channel object that travels next to every encoded byte sequence.

The canonical bytes are untyped: b"42" could be the string "42" or the
number 42. The metadata record is the schema that says which one. It is
produced at encode time, consumed at decode time, and shipped in between
as a small JSON object (the wire keys are camelCase, matching the
JavaScript SDK that shares this format).
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lockbox.errors import UnsupportedMetadataType


# Label used when a record carries no name
GENERIC_NAME = "unnamed"

DEFAULT_MIME_TYPE = "application/octet-stream"


class DataType(str, Enum):
    """Primary tag of an encoded value."""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    OBJECT = "object"
    BINARY = "binary"
    FIXED_ARRAY = "fixed-array"
    FILE = "file"


class Subtype(str, Enum):
    """Secondary tag disambiguating numbers, strings and containers."""
    BIGINT = "bigint"
    BASE64 = "base64"
    JSON = "json"
    MAP = "map"
    SET = "set"


class ArrayType(str, Enum):
    """Element kind of a fixed-width numeric array."""
    I8 = "i8"
    U8 = "u8"
    I16 = "i16"
    U16 = "u16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"


# Tags written by the JavaScript SDK before binary data had its own tag
LEGACY_TYPES = {
    "buffer": DataType.BINARY,
    "arraybuffer": DataType.BINARY,
    "typedarray": DataType.FIXED_ARRAY,
}

# JavaScript typed array constructor names -> element kind
LEGACY_ARRAY_TYPES = {
    "Int8Array": ArrayType.I8,
    "Uint8Array": ArrayType.U8,
    "Uint8ClampedArray": ArrayType.U8,
    "Int16Array": ArrayType.I16,
    "Uint16Array": ArrayType.U16,
    "Int32Array": ArrayType.I32,
    "Uint32Array": ArrayType.U32,
    "BigInt64Array": ArrayType.I64,
    "BigUint64Array": ArrayType.U64,
    "Float32Array": ArrayType.F32,
    "Float64Array": ArrayType.F64,
}


@dataclass(frozen=True)
class DataMetadata:
    """
    Describes how to turn a canonical byte sequence back into a value.

    A value type: two records with the same fields are interchangeable.
    ``user_metadata`` is caller data carried along untouched; the codec
    never looks inside it.
    """
    name: str
    type: DataType
    subtype: Subtype | None = None
    mime_type: str | None = None
    array_type: ArrayType | None = None
    user_metadata: Any = None

    def to_dict(self) -> dict:
        """Wire form, with the camelCase keys other clients expect."""
        data = {"name": self.name, "type": _wire(self.type)}
        if self.subtype is not None:
            data["subtype"] = _wire(self.subtype)
        if self.mime_type is not None:
            data["mimeType"] = self.mime_type
        if self.array_type is not None:
            data["arrayType"] = _wire(self.array_type)
        data["userMetaData"] = self.user_metadata
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DataMetadata":
        """
        Parse a wire dict.

        Unknown keys are ignored (the remote service adds its own, such as
        ``encryptedData``). A missing name falls back to GENERIC_NAME.

        Raises:
            UnsupportedMetadataType: If type, subtype or arrayType is not
                one this codec understands.
        """
        if not isinstance(data, dict):
            raise UnsupportedMetadataType(
                data, f"Metadata must be a mapping, got {type(data).__name__}"
            )

        raw_type = data.get("type")
        raw_array_type = data.get("arrayType")

        if isinstance(raw_type, str) and raw_type in LEGACY_TYPES:
            data_type = LEGACY_TYPES[raw_type]
            if raw_type == "typedarray":
                if not isinstance(raw_array_type, str) or raw_array_type not in LEGACY_ARRAY_TYPES:
                    raise UnsupportedMetadataType(
                        data, f"Unsupported TypedArray type: {raw_array_type}"
                    )
                raw_array_type = LEGACY_ARRAY_TYPES[raw_array_type].value
            else:
                raw_array_type = None
        else:
            data_type = _parse(DataType, raw_type, data, "type")

        subtype = data.get("subtype")

        return cls(
            name=data.get("name") or GENERIC_NAME,
            type=data_type,
            subtype=None if subtype is None else _parse(Subtype, subtype, data, "subtype"),
            mime_type=data.get("mimeType"),
            array_type=None if raw_array_type is None else _parse(ArrayType, raw_array_type, data, "arrayType"),
            user_metadata=data.get("userMetaData"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str | bytes) -> "DataMetadata":
        try:
            data = json.loads(text)
        except ValueError as e:
            raise UnsupportedMetadataType(text, f"Metadata is not valid JSON: {e}") from e
        return cls.from_dict(data)


def _wire(tag) -> str:
    # Accept both enum members and their raw string values
    return tag.value if isinstance(tag, Enum) else tag


def _parse(enum_cls, raw, data: dict, field: str):
    try:
        return enum_cls(raw)
    except ValueError:
        raise UnsupportedMetadataType(
            data, f"Unsupported metadata {field}: {raw!r}"
        ) from None
