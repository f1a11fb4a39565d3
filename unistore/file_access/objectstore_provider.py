# unistore/file_access/objectstore_provider.py
"""
Object store backend (S3-compatible).

NOT YET IMPLEMENTED - every operation fails with PROVIDER_ERROR.

The class already satisfies the full StorageBackend contract, so a real
implementation can replace the method bodies without any change to the
Storage facade, the upload pipeline or the access dispatcher.

Configuration schema (StorageConfig.objectstore):
{
    "region": "eu-west-1",
    "endpoint": "https://minio.local:9000",   # optional, for MinIO etc.
    "bucket": "documents",
    "access_key": "...",
    "secret_key": "...",
    "session_token": "...",                   # optional
    "use_tls": true,
    "force_path_style": false,
    "max_retries": 3,
    "default_upload_params": {}                # optional
}
"""
from datetime import timedelta
from typing import Any, Dict, List, NoReturn, Optional, Tuple

import structlog

from unistore.file_access.base import (
    FileInfo,
    FileMetadata,
    FileStream,
    SignedURLOperation,
    StorageBackend,
    UploadSource,
)
from unistore.file_access.config import StorageConfig
from unistore.file_access.errors import ErrorKind, StorageError

logger = structlog.get_logger()

PROVIDER = "objectstore"


class ObjectStoreBackend(StorageBackend):
    """
    Object store backend.

    NOT YET IMPLEMENTED.
    """

    provider_name = PROVIDER

    def __init__(self, config: StorageConfig):
        super().__init__(config)

        if config.objectstore is None:
            raise StorageError(ErrorKind.INVALID_CONFIG, "objectstore configuration is required")

        self.store_config = config.objectstore
        logger.info(
            "objectstore_backend_initialized",
            storage=self.storage_name,
            bucket=self.store_config.bucket,
            region=self.store_config.region,
            implemented=False,
        )

    def _not_implemented(self, operation: str, path: Optional[str] = None) -> NoReturn:
        logger.warning("objectstore_operation_unavailable", operation=operation, path=path)
        raise StorageError(
            ErrorKind.PROVIDER_ERROR,
            "objectstore provider not yet implemented",
            backend=PROVIDER,
            path=path,
        )

    async def upload(
        self,
        path: str,
        source: UploadSource,
        metadata: Optional[FileMetadata] = None
    ) -> FileInfo:
        self._not_implemented("upload", path)

    async def download(self, path: str) -> Tuple[FileStream, FileInfo]:
        self._not_implemented("download", path)

    async def delete(self, path: str) -> None:
        self._not_implemented("delete", path)

    async def exists(self, path: str) -> bool:
        self._not_implemented("exists", path)

    async def get_info(self, path: str) -> FileInfo:
        self._not_implemented("get_info", path)

    async def list(self, path: str) -> List[FileInfo]:
        self._not_implemented("list", path)

    async def delete_directory(self, path: str) -> None:
        self._not_implemented("delete_directory", path)

    async def copy(self, src_path: str, dst_path: str) -> None:
        self._not_implemented("copy", src_path)

    async def move(self, src_path: str, dst_path: str) -> None:
        self._not_implemented("move", src_path)

    async def generate_signed_url(
        self,
        path: str,
        operation: SignedURLOperation,
        expires_in: Optional[timedelta] = None
    ) -> str:
        self._not_implemented("generate_signed_url", path)

    async def health_check(self) -> Dict[str, Any]:
        return {
            "healthy": False,
            "provider": PROVIDER,
            "message": "objectstore provider not yet implemented",
            "details": {
                "bucket": self.store_config.bucket,
                "region": self.store_config.region,
                "endpoint": self.store_config.endpoint,
            },
        }
