# unistore/file_access/base.py
"""
Base interface for storage backends.

All storage backends (filesystem, object store, ...) must implement
StorageBackend. Callers never talk to a concrete backend directly; they hold
a Storage facade (see storage.py) bound to exactly one backend.
"""
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, AsyncIterator, BinaryIO, Dict, List, Optional, Tuple, Union

from unistore.file_access.config import StorageConfig

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class SignedURLOperation(str, Enum):
    """Operation a signed access token is scoped to."""
    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass
class FileInfo:
    """Information about a stored file or directory, read at call time."""
    path: str
    name: str
    size: int
    content_type: str = DEFAULT_CONTENT_TYPE
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    is_directory: bool = False
    metadata: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "content_type": self.content_type,
            "is_directory": self.is_directory,
        }
        if self.etag:
            data["etag"] = self.etag
        if self.last_modified is not None:
            data["last_modified"] = self.last_modified.isoformat()
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass
class FileMetadata:
    """Write-time hints for an upload. Backends fill the gaps."""
    content_type: Optional[str] = None
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    custom_metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadedFileResult:
    """Result of storing one staged upload."""
    field_name: str
    original_name: str
    filename: str
    path: str
    size: int
    content_type: str
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "field_name": self.field_name,
            "original_name": self.original_name,
            "filename": self.filename,
            "path": self.path,
            "size": self.size,
            "content_type": self.content_type,
        }
        if self.etag:
            data["etag"] = self.etag
        if self.last_modified is not None:
            data["last_modified"] = self.last_modified.isoformat()
        return data


UploadSource = Union[bytes, bytearray, memoryview, BinaryIO, AsyncIterator[bytes], Any]


class FileStream:
    """
    Async byte stream returned by download().

    Iterate with ``async for chunk in stream`` or call ``read()``. The
    underlying handle is closed at EOF, on ``aclose()``, or when leaving an
    ``async with`` block.
    """

    def __init__(self, handle: Any, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._handle = handle
        self.chunk_size = chunk_size
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "FileStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        chunk = await self._handle.read(self.chunk_size)
        if not chunk:
            await self.aclose()
            raise StopAsyncIteration
        return chunk

    async def read(self, size: int = -1) -> bytes:
        if self._closed:
            return b""
        return await self._handle.read(size)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._handle, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "FileStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False


async def iter_source_chunks(source: UploadSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Yield byte chunks from any supported upload source.

    Supports bytes-like objects, file objects with a sync or async ``read``,
    and sync or async iterables of bytes.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        for i in range(0, len(data), chunk_size):
            yield data[i:i + chunk_size]
        return

    read = getattr(source, "read", None)
    if read is not None:
        while True:
            chunk = read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield bytes(chunk)

    if hasattr(source, "__aiter__"):
        async for chunk in source:
            if chunk:
                yield bytes(chunk)
        return

    if hasattr(source, "__iter__"):
        for chunk in source:
            if chunk:
                yield bytes(chunk)
        return

    raise TypeError(f"Unsupported upload source: {type(source).__name__}")


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    All methods are async. Every method takes a logical path: forward-slash
    separated, relative to the backend root, without ``..`` segments.
    Cancelling the calling task cancels the operation.
    """

    provider_name: str = "unknown"

    def __init__(self, config: StorageConfig):
        """
        Initialize backend with configuration.

        Args:
            config: Validated storage configuration
        """
        self.config = config
        self.storage_name = config.name

    @abstractmethod
    async def upload(
        self,
        path: str,
        source: UploadSource,
        metadata: Optional[FileMetadata] = None
    ) -> FileInfo:
        """
        Store the full contents of ``source`` at ``path``.

        Partially written data is removed if the write fails or is cancelled.

        Raises:
            StorageError: INVALID_PATH, UPLOAD_FAILED, PERMISSION_DENIED
        """

    @abstractmethod
    async def download(self, path: str) -> Tuple[FileStream, FileInfo]:
        """
        Open a stored file for reading.

        Raises:
            StorageError: FILE_NOT_FOUND if absent, INVALID_PATH for directories
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a file. Raises FILE_NOT_FOUND if absent."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if a file or directory exists."""

    @abstractmethod
    async def get_info(self, path: str) -> FileInfo:
        """Get information about a file or directory. Raises FILE_NOT_FOUND."""

    @abstractmethod
    async def list(self, path: str) -> List[FileInfo]:
        """
        List one level of a directory.

        Raises:
            StorageError: DIRECTORY_NOT_FOUND if missing, INVALID_PATH if not a directory
        """

    @abstractmethod
    async def delete_directory(self, path: str) -> None:
        """Delete a directory and everything below it."""

    @abstractmethod
    async def copy(self, src_path: str, dst_path: str) -> None:
        """Copy a file. The source is left unchanged."""

    @abstractmethod
    async def move(self, src_path: str, dst_path: str) -> None:
        """Move a file. The source is absent afterwards."""

    @abstractmethod
    async def generate_signed_url(
        self,
        path: str,
        operation: SignedURLOperation,
        expires_in: Optional[timedelta] = None
    ) -> str:
        """
        Issue a time-limited access token (or URL) for one operation on one path.

        Raises:
            StorageError: SIGNED_URL_FAILED when signed URLs are disabled
        """

    async def health_check(self) -> Dict[str, Any]:
        """Check backend health. Backends should override with real checks."""
        return {
            "healthy": True,
            "provider": self.provider_name,
            "message": f"{self.provider_name} backend has no health check",
            "details": {},
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} storage={self.storage_name}>"


class SignedTokenValidator(ABC):
    """
    Capability of backends that mint their own tokens and can check them.

    The access dispatcher checks for this capability with isinstance() before
    serving a token-authorized read.
    """

    @abstractmethod
    def validate_signed_token(self, token: str, path: str, operation: SignedURLOperation) -> Dict[str, Any]:
        """
        Validate a token for ``(path, operation)`` and return its claims.

        Raises:
            StorageError: INVALID_TOKEN, TOKEN_EXPIRED
        """
