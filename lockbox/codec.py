"""
Codec — Values to Canonical Bytes and Back
The pipeline stage that runs before encryption and after decryption.

encode() reduces a value to a flat byte sequence plus a DataMetadata
record. decode() takes the pair and rebuilds the original value and its
type. No schema is shared in advance: the metadata record IS the schema.

Encoding dispatches over CATEGORIES, an ordered table of input categories.
First match wins, so more specific categories come first (bool before int,
BigInt before int, OrderedDict before dict).

Decoding is a closed match over (type, subtype) in DECODERS. An unknown
combination is a hard failure; guessing would silently corrupt data.

Both directions are pure and synchronous. They touch no network, no disk
and no shared state, so they are safe to call from any thread.
"""

import base64
import json
import logging
from collections import OrderedDict
from typing import Any, Callable, NamedTuple

import numpy as np

from lockbox.blob import BigInt, FileBlob
from lockbox.errors import UnsupportedInputType, UnsupportedMetadataType
from lockbox.metadata import (
    DEFAULT_MIME_TYPE,
    GENERIC_NAME,
    ArrayType,
    DataMetadata,
    DataType,
    Subtype,
)


logger = logging.getLogger("lockbox.codec")


# Fixed-width element kinds. Bytes are always little-endian on the wire.
ARRAY_DTYPES = {
    ArrayType.I8: np.dtype("<i1"),
    ArrayType.U8: np.dtype("<u1"),
    ArrayType.I16: np.dtype("<i2"),
    ArrayType.U16: np.dtype("<u2"),
    ArrayType.I32: np.dtype("<i4"),
    ArrayType.U32: np.dtype("<u4"),
    ArrayType.I64: np.dtype("<i8"),
    ArrayType.U64: np.dtype("<u8"),
    ArrayType.F32: np.dtype("<f4"),
    ArrayType.F64: np.dtype("<f8"),
}

# Compact separators, no ASCII escaping: matches JSON.stringify output
_JSON_OPTIONS = {"separators": (",", ":"), "ensure_ascii": False, "allow_nan": False}

_JSON_SCALARS = (str, int, float, bool, type(None))


class Encoded(NamedTuple):
    """Output of encode(): the canonical bytes and how to read them."""
    data: bytes
    metadata: DataMetadata


class Category(NamedTuple):
    """One input category: a predicate and a function producing
    ``(bytes, metadata fields)``."""
    name: str
    match: Callable[[Any], bool]
    dump: Callable[[Any], tuple]


# --- Encoders ---------------------------------------------------------------

def dump_null(value):
    return b"", {"type": DataType.NULL}


def dump_boolean(value):
    return (b"true" if value else b"false"), {"type": DataType.BOOLEAN}


def dump_bigint(value):
    return str(int(value)).encode("ascii"), {
        "type": DataType.NUMBER,
        "subtype": Subtype.BIGINT,
    }


def dump_number(value):
    # repr keeps floats exact and spells out inf / nan
    text = str(int(value)) if isinstance(value, int) else repr(float(value))
    return text.encode("ascii"), {"type": DataType.NUMBER}


def dump_string(value):
    fields = {"type": DataType.STRING}
    if is_base64(value):
        fields["subtype"] = Subtype.BASE64
    return value.encode("utf-8"), fields


def dump_fixed_array(value):
    if value.ndim != 1:
        raise UnsupportedInputType(
            value, f"fixed-width arrays must be one-dimensional, got {value.ndim} dimensions"
        )
    array_type = array_type_of(value.dtype)
    if array_type is None:
        raise UnsupportedInputType(value, f"unsupported array element type {value.dtype}")
    data = value.astype(ARRAY_DTYPES[array_type], copy=False).tobytes()
    return data, {"type": DataType.FIXED_ARRAY, "array_type": array_type}


def dump_binary(value):
    return bytes(value), {"type": DataType.BINARY}


def dump_file(value):
    fields = {"type": DataType.FILE, "mime_type": value.mime_type or DEFAULT_MIME_TYPE}
    if value.filename:
        fields["name"] = value.filename
    return value.content, fields


def dump_map(value):
    for key, item in value.items():
        if not isinstance(key, str):
            raise UnsupportedInputType(
                value, f"map keys must be strings, got {type(key).__name__}"
            )
        _check_json_tree(item, value)
    return _dump_json(value), {"type": DataType.OBJECT, "subtype": Subtype.MAP}


def dump_set(value):
    for element in value:
        if not isinstance(element, _JSON_SCALARS):
            raise UnsupportedInputType(
                value, f"set elements must be JSON scalars, got {type(element).__name__}"
            )
    # Set iteration order depends on hashing; sort so equal sets encode equally
    elements = sorted(value, key=_set_sort_key)
    return _dump_json(elements), {"type": DataType.OBJECT, "subtype": Subtype.SET}


def dump_json(value):
    _check_json_tree(value, value)
    return _dump_json(value), {"type": DataType.OBJECT, "subtype": Subtype.JSON}


def _dump_json(value) -> bytes:
    try:
        return json.dumps(value, **_JSON_OPTIONS).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise UnsupportedInputType(value, str(e)) from e


def _set_sort_key(element):
    return type(element).__name__, json.dumps(element)


def _check_json_tree(node, root):
    """Reject values JSON would silently change (tuples, non-string keys)."""
    if isinstance(node, dict):
        for key, item in node.items():
            if not isinstance(key, str):
                raise UnsupportedInputType(
                    root, f"object keys must be strings, got {type(key).__name__}"
                )
            _check_json_tree(item, root)
    elif isinstance(node, list):
        for item in node:
            _check_json_tree(item, root)
    elif not isinstance(node, _JSON_SCALARS):
        raise UnsupportedInputType(
            root, f"{type(node).__name__} cannot be represented in JSON"
        )


def is_base64(text: str) -> bool:
    """True for non-empty, correctly padded standard Base64 text."""
    if not text:
        return False
    try:
        base64.b64decode(text, validate=True)
    except ValueError:
        return False
    return True


def array_type_of(dtype) -> ArrayType | None:
    dtype = np.dtype(dtype)
    for array_type, wire_dtype in ARRAY_DTYPES.items():
        if dtype.kind == wire_dtype.kind and dtype.itemsize == wire_dtype.itemsize:
            return array_type
    return None


CATEGORIES = [
    Category("null", lambda v: v is None, dump_null),
    Category("boolean", lambda v: isinstance(v, bool), dump_boolean),
    Category("bigint", lambda v: isinstance(v, BigInt), dump_bigint),
    Category("number", lambda v: isinstance(v, (int, float)), dump_number),
    Category("string", lambda v: isinstance(v, str), dump_string),
    Category("fixed-array", lambda v: isinstance(v, np.ndarray), dump_fixed_array),
    Category("binary", lambda v: isinstance(v, (bytes, bytearray, memoryview)), dump_binary),
    Category("file", lambda v: isinstance(v, FileBlob), dump_file),
    Category("map", lambda v: isinstance(v, OrderedDict), dump_map),
    Category("set", lambda v: isinstance(v, (set, frozenset)), dump_set),
    Category("json", lambda v: isinstance(v, (dict, list)), dump_json),
]


def categorize(value) -> Category:
    """Find the first category matching *value*."""
    for category in CATEGORIES:
        if category.match(value):
            return category
    raise UnsupportedInputType(value)


def encode(value, name: str, debug: bool = False, user_metadata: Any = None) -> Encoded:
    """
    Reduce a value to canonical bytes plus the metadata needed to undo it.

    Args:
        value: The value to encode. See CATEGORIES for what is accepted.
        name: Human-readable label for the value. Not required to be unique.
            Replaced by the filename for a FileBlob that has one. A FileBlob
            without a filename decodes with this label as its filename
            unless the label is GENERIC_NAME.
        debug: Log inputs and outputs at DEBUG level.
        user_metadata: Opaque caller data, carried in the metadata as is.

    Plain ints are always tagged as numbers, whatever their size. They
    round-trip exactly here, but JavaScript peers read numbers as doubles,
    so ints beyond +/-(2**53 - 1) lose precision there. Wrap such values in
    BigInt to share them.

    Returns:
        Encoded(data, metadata).

    Raises:
        UnsupportedInputType: If the value matches no category.
    """
    category = categorize(value)
    if debug:
        logger.debug(
            "encode input: name=%s category=%s python_type=%s",
            name, category.name, type(value).__name__,
        )

    data, fields = category.dump(value)
    fields.setdefault("name", name)
    metadata = DataMetadata(user_metadata=user_metadata, **fields)

    if debug:
        logger.debug("encode output: bytes=%d metadata=%s", len(data), metadata.to_dict())
    return Encoded(data, metadata)


# --- Decoders ---------------------------------------------------------------

def _text(data: bytes) -> str:
    return bytes(data).decode("utf-8")


def load_null(data, metadata):
    return None


def load_boolean(data, metadata):
    return _text(data) == "true"


def load_bigint(data, metadata):
    return BigInt(int(_text(data)))


def load_number(data, metadata):
    text = _text(data)
    try:
        return int(text)
    except ValueError:
        return float(text)


def load_string(data, metadata):
    # A base64 subtype is informational; the text comes back unchanged
    return _text(data)


def load_fixed_array(data, metadata):
    wire_dtype = ARRAY_DTYPES.get(metadata.array_type)
    if wire_dtype is None:
        raise UnsupportedMetadataType(
            metadata, f"Unsupported metadata arrayType: {metadata.array_type!r}"
        )
    return np.frombuffer(bytes(data), dtype=wire_dtype).astype(wire_dtype.newbyteorder("="))


def load_binary(data, metadata):
    return bytes(data)


def load_file(data, metadata):
    # Any non-generic name becomes the filename, including the label a
    # nameless blob was encoded under
    filename = metadata.name if metadata.name and metadata.name != GENERIC_NAME else None
    return FileBlob(
        content=bytes(data),
        mime_type=metadata.mime_type or DEFAULT_MIME_TYPE,
        filename=filename,
    )


def load_map(data, metadata):
    # Accepts both the object form and an array of [key, value] entries
    return OrderedDict(json.loads(_text(data)))


def load_set(data, metadata):
    return set(json.loads(_text(data)))


def load_json(data, metadata):
    return json.loads(_text(data))


DECODERS = {
    (DataType.NULL, None): load_null,
    (DataType.BOOLEAN, None): load_boolean,
    (DataType.NUMBER, None): load_number,
    (DataType.NUMBER, Subtype.BIGINT): load_bigint,
    (DataType.STRING, None): load_string,
    (DataType.STRING, Subtype.BASE64): load_string,
    (DataType.FIXED_ARRAY, None): load_fixed_array,
    (DataType.BINARY, None): load_binary,
    (DataType.FILE, None): load_file,
    (DataType.OBJECT, None): load_json,
    (DataType.OBJECT, Subtype.JSON): load_json,
    (DataType.OBJECT, Subtype.MAP): load_map,
    (DataType.OBJECT, Subtype.SET): load_set,
}


def decode(data: bytes, metadata: DataMetadata | dict, debug: bool = False):
    """
    Rebuild a value from canonical bytes and its metadata record.

    The result is determined by the metadata alone. Callers that expect a
    particular type must check it themselves.

    Args:
        data: The canonical bytes produced by encode().
        metadata: The DataMetadata produced alongside, or its wire dict.
        debug: Log inputs and outputs at DEBUG level.

    Raises:
        UnsupportedMetadataType: If the metadata names a type/subtype (or
            arrayType) this codec does not know.
    """
    if not isinstance(metadata, DataMetadata):
        metadata = DataMetadata.from_dict(metadata)
    if debug:
        logger.debug("decode input: bytes=%d metadata=%s", len(data), metadata.to_dict())

    try:
        loader = DECODERS.get((metadata.type, metadata.subtype))
    except TypeError:
        loader = None
    if loader is None:
        raise UnsupportedMetadataType(
            metadata,
            f"Unsupported metadata type: {metadata.type!r} (subtype {metadata.subtype!r})",
        )

    value = loader(data, metadata)
    if debug:
        logger.debug("decode output: python_type=%s", type(value).__name__)
    return value


# Names used by the JavaScript SDK
pre_process = encode
post_process = decode
