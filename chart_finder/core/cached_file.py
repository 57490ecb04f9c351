"""
Size-adaptive file cache for chart-finder.

A CachedFile wraps one file reference and decides once, at construction,
how its bytes are held:

    Buffered  - files strictly smaller than the memory threshold
                (2048 MiB by default) are read fully into memory.
                Streams are rebuilt from the buffer, so the file can be
                read any number of times without touching the filesystem.
    Streamed  - larger files are never materialized. Each read_stream()
                call reopens the underlying file reference, so every
                consumer gets an independent handle.

The digest (MD5, hex encoded) is computed by feeding a fresh read stream
chunk by chunk into the hash, so even the buffered case never needs a
second full copy of the file.

Usage:
    from chart_finder.core.cached_file import CachedFile

    cached = CachedFile.build(Path("~/Songs/song.sng").expanduser())
    print(cached.digest())

    with cached.read_stream() as stream:
        header = stream.read(16)

    if cached.is_buffered:
        raw = cached.data
"""

import hashlib
import io
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol, Union, runtime_checkable

from chart_finder.core.config import DEFAULT_MEMORY_THRESHOLD_MIB
from chart_finder.core.exceptions import BufferTooLargeError, NotAFileError
from chart_finder.core.logger import get_logger


logger = get_logger(__name__)


# Files strictly smaller than this are buffered in memory
MEMORY_THRESHOLD_BYTES = DEFAULT_MEMORY_THRESHOLD_MIB * 1024 * 1024

# Read size used when hashing a stream
DIGEST_CHUNK_SIZE = 1024 * 1024

FILE_KIND = "file"
DIRECTORY_KIND = "directory"
MISSING_KIND = "missing"


@runtime_checkable
class FileRef(Protocol):
    """
    Opaque handle to a file, as supplied by a file-access collaborator.

    Attributes:
        name: Display name of the file.
        kind: "file" for regular files; anything else is rejected by
              CachedFile.build().
    """

    name: str

    @property
    def kind(self) -> str: ...

    def size(self) -> int: ...

    def open_for_read(self) -> BinaryIO: ...


class LocalFileRef:
    """
    FileRef backed by a path on the local filesystem.

    Every open_for_read() call opens a new handle, so a stream-backed
    CachedFile built on a LocalFileRef can be read more than once.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.name = self.path.name

    @property
    def kind(self) -> str:
        if self.path.is_file():
            return FILE_KIND
        if self.path.is_dir():
            return DIRECTORY_KIND
        return MISSING_KIND

    def size(self) -> int:
        return self.path.stat().st_size

    def open_for_read(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:
        return f"LocalFileRef({str(self.path)!r})"


# =============================================================================
# Representations
# =============================================================================

@dataclass(frozen=True)
class Buffered:
    """The whole file held in memory."""

    content: bytes

    def open_stream(self) -> BinaryIO:
        return io.BytesIO(self.content)


@dataclass(frozen=True)
class Streamed:
    """The file left on its reference; bytes are read on demand."""

    file_ref: FileRef

    def open_stream(self) -> BinaryIO:
        return self.file_ref.open_for_read()


Representation = Union[Buffered, Streamed]


class CachedFile:
    """
    A file whose bytes are either buffered in memory or streamed on demand.

    Instances are created with CachedFile.build(). The representation is
    chosen once from the file size and never changes.

    Attributes:
        name: Display name of the file.
        file_ref: The file reference the instance was built from.
        size: File size in bytes, as reported at construction.

    Thread Safety:
        Buffered instances are read-only after construction and can be
        read and hashed from several threads at once. Streamed instances
        reopen the file reference for every stream, so concurrent readers
        are supported only when the reference itself can be opened more
        than once (LocalFileRef can).
    """

    def __init__(
        self,
        file_ref: FileRef,
        representation: Representation,
        size: int,
        name: str | None = None,
    ) -> None:
        self.file_ref = file_ref
        self.name = name if name is not None else file_ref.name
        self.size = size
        self._representation = representation
        self._digest: str | None = None
        self._digest_lock = threading.Lock()

    @classmethod
    def build(
        cls,
        file_ref: FileRef | Path | str,
        memory_threshold: int = MEMORY_THRESHOLD_BYTES,
    ) -> "CachedFile":
        """
        Create a CachedFile from a file reference or a local path.

        Args:
            file_ref: A FileRef, or a path that is wrapped in LocalFileRef.
            memory_threshold: Size in bytes at or above which the file is
                              streamed instead of buffered.

        Returns:
            CachedFile with a Buffered or Streamed representation.

        Raises:
            NotAFileError: If the reference is not a regular file.
            OSError: If the file cannot be read while buffering.
        """
        if isinstance(file_ref, (str, Path)):
            file_ref = LocalFileRef(file_ref)

        if file_ref.kind != FILE_KIND:
            raise NotAFileError(
                f"Can't read file at {file_ref.name}; not a file",
                details={"file_ref": repr(file_ref), "kind": file_ref.kind}
            )

        size = file_ref.size()
        if size < memory_threshold:
            with file_ref.open_for_read() as stream:
                content = stream.read()
            representation: Representation = Buffered(content)
        else:
            logger.debug(
                f"{file_ref.name} is {size} bytes; streaming instead of buffering"
            )
            representation = Streamed(file_ref)

        return cls(file_ref, representation, size)

    @property
    def is_buffered(self) -> bool:
        """True if the file content is held in memory."""
        return isinstance(self._representation, Buffered)

    @property
    def data(self) -> bytes:
        """
        The full file content.

        Raises:
            BufferTooLargeError: If the file is stream-backed. Callers
                                 must use read_stream() for large files.
        """
        if isinstance(self._representation, Buffered):
            return self._representation.content
        raise BufferTooLargeError(
            f"Can't store {self.name} in a buffer; "
            f"{self.size} bytes is over the memory threshold",
            details={"name": self.name, "size": self.size}
        )

    def read_stream(self) -> BinaryIO:
        """
        Open a new, independently consumable byte stream of the content.

        Buffered files are served from memory. Streamed files reopen the
        file reference. The caller owns the returned stream and should
        close it (it supports the context manager protocol).
        """
        return self._representation.open_stream()

    def digest(self) -> str:
        """
        Compute the MD5 digest of the file content.

        The content is consumed from a fresh read stream in chunks of
        DIGEST_CHUNK_SIZE bytes. The result is remembered, so later calls
        return the same value without reading again.

        Returns:
            Lowercase hex-encoded MD5 digest.
        """
        with self._digest_lock:
            if self._digest is None:
                self._digest = _hash_stream(self.read_stream())
            return self._digest

    def __repr__(self) -> str:
        kind = "buffered" if self.is_buffered else "streamed"
        return f"CachedFile({self.name!r}, {self.size} bytes, {kind})"


def _hash_stream(stream: BinaryIO) -> str:
    hash_obj = hashlib.md5()
    with stream:
        for chunk in iter(lambda: stream.read(DIGEST_CHUNK_SIZE), b""):
            hash_obj.update(chunk)
    return hash_obj.hexdigest()
