# unistore/file_access/storage.py
"""
Storage facade.

The single entry point callers hold. A Storage binds exactly one backend for
its lifetime and forwards every operation to it without adding logic or
translating errors.
"""
from datetime import timedelta
from typing import Any, List, Mapping, Optional, Tuple, Union

from unistore.file_access.base import (
    FileInfo,
    FileMetadata,
    FileStream,
    SignedURLOperation,
    StorageBackend,
    UploadSource,
)
from unistore.file_access.config import StorageConfig, load_storage_config
from unistore.file_access.registry import get_backend


class Storage:
    """
    Facade over one storage backend.

    Example:
        storage = Storage({"name": "docs", "provider": "filesystem",
                           "filesystem": {"base_path": "/srv/docs", "create_dirs": True}})
        info = await storage.upload("/reports/q1.pdf", data)
        stream, info = await storage.download("/reports/q1.pdf")
    """

    def __init__(self, config: Union[StorageConfig, Mapping[str, Any]]):
        """
        Validate configuration and bind the backend it selects.

        Raises:
            StorageError: INVALID_CONFIG / INVALID_PROVIDER; no facade is
                returned for invalid configuration
        """
        self._config = load_storage_config(config)
        self._backend = get_backend(self._config)

    @classmethod
    def from_settings(cls, settings: Any = None) -> "Storage":
        """Build a facade from environment settings."""
        if settings is None:
            from unistore.config import settings
        return cls(settings.to_storage_config())

    @property
    def backend(self) -> StorageBackend:
        """The bound backend, for capability checks."""
        return self._backend

    @property
    def name(self) -> str:
        return self._config.name

    def get_config(self) -> StorageConfig:
        """Return the bound (immutable) configuration."""
        return self._config

    async def upload(self, path: str, source: UploadSource, metadata: Optional[FileMetadata] = None) -> FileInfo:
        return await self._backend.upload(path, source, metadata)

    async def download(self, path: str) -> Tuple[FileStream, FileInfo]:
        return await self._backend.download(path)

    async def delete(self, path: str) -> None:
        await self._backend.delete(path)

    async def exists(self, path: str) -> bool:
        return await self._backend.exists(path)

    async def get_info(self, path: str) -> FileInfo:
        return await self._backend.get_info(path)

    async def list(self, path: str) -> List[FileInfo]:
        return await self._backend.list(path)

    async def delete_directory(self, path: str) -> None:
        await self._backend.delete_directory(path)

    async def copy(self, src_path: str, dst_path: str) -> None:
        await self._backend.copy(src_path, dst_path)

    async def move(self, src_path: str, dst_path: str) -> None:
        await self._backend.move(src_path, dst_path)

    async def generate_signed_url(
        self,
        path: str,
        operation: SignedURLOperation,
        expires_in: Optional[timedelta] = None
    ) -> str:
        return await self._backend.generate_signed_url(path, operation, expires_in)

    async def health_check(self) -> dict:
        return await self._backend.health_check()

    def __repr__(self) -> str:
        return f"<Storage name={self._config.name} backend={self._backend!r}>"
