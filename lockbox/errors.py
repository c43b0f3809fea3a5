"""
Errors raised by lockbox.

Every error raised on purpose derives from LockboxError. Codec errors are
also TypeError / ValueError subclasses so callers catching the builtins
keep working.
"""


class LockboxError(Exception):
    """Base class for all lockbox errors."""


class CodecError(LockboxError):
    """Base class for encode/decode errors."""


class UnsupportedInputType(CodecError, TypeError):
    """The value handed to the encoder matches no known category.

    Not retryable: the caller has to turn the value into a supported
    shape first.
    """

    def __init__(self, value, reason: str = ""):
        self.value = value
        message = f"Unsupported data type: {type(value).__name__}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnsupportedMetadataType(CodecError, ValueError):
    """The metadata names a type/subtype the decoder does not know.

    Signals corrupted metadata or version skew between codecs. The bytes
    cannot be interpreted, so this is never downgraded to a guess.
    """

    def __init__(self, metadata, reason: str = ""):
        self.metadata = metadata
        message = reason or f"Unsupported metadata type: {metadata!r}"
        super().__init__(message)


class VaultError(LockboxError):
    """A sealed record could not be found, read or authenticated."""
