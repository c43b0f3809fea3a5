"""
Value types the codec understands that Python has no builtin for.

FileBlob is the file/blob-like binary object: content bytes annotated with
a media type and an optional filename. BigInt marks an integer that must be
treated as arbitrary precision (Python ints already are; the marker keeps
the distinction other clients make between numbers and big integers).
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path

from lockbox.metadata import DEFAULT_MIME_TYPE, GENERIC_NAME


class BigInt(int):
    """An integer tagged as arbitrary precision."""

    def __repr__(self):
        return f"BigInt({int(self)})"


@dataclass(frozen=True)
class FileBlob:
    """
    Binary content with a media type and an optional filename.

    Args:
        content: The raw bytes.
        mime_type: Media type of the content.
        filename: Original filename. None for a nameless blob.
    """
    content: bytes
    mime_type: str = DEFAULT_MIME_TYPE
    filename: str | None = None

    def __post_init__(self):
        if not isinstance(self.content, bytes):
            object.__setattr__(self, "content", bytes(self.content))

    @property
    def name(self) -> str:
        return self.filename or GENERIC_NAME

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str = None) -> "FileBlob":
        """
        Read a file from disk.

        The media type is guessed from the file extension when not given.
        """
        path = Path(path)
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            content=path.read_bytes(),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            filename=path.name,
        )
