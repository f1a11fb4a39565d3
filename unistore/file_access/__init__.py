"""
Unified storage layer.

One API surface (Storage) over interchangeable backends:
- Local filesystem
- Object store (S3-compatible, not yet implemented)
"""

from unistore.file_access.base import (
    FileInfo,
    FileMetadata,
    FileStream,
    SignedURLOperation,
    StorageBackend,
    UploadedFileResult,
)
from unistore.file_access.config import StorageConfig, StorageProvider, load_storage_config
from unistore.file_access.errors import ErrorKind, StorageError
from unistore.file_access.storage import Storage
from unistore.file_access.uploads import StagedUpload, UploadPipeline
from unistore.file_access.access import AccessDecision, AccessDispatcher

__all__ = [
    "AccessDecision",
    "AccessDispatcher",
    "ErrorKind",
    "FileInfo",
    "FileMetadata",
    "FileStream",
    "SignedURLOperation",
    "StagedUpload",
    "Storage",
    "StorageBackend",
    "StorageConfig",
    "StorageError",
    "StorageProvider",
    "UploadPipeline",
    "UploadedFileResult",
    "load_storage_config",
]
