# unistore/file_access/localfs_provider.py
"""
Local filesystem backend.

Stores files under a configured base directory. Works with local directories
and with any network share mounted at a local path (NFS, SMB/CIFS, ...).
"""
import asyncio
import hashlib
import mimetypes
import os
import posixpath
import shutil
import stat as stat_module
import traceback
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiofiles
import aiofiles.os

from unistore.file_access.base import (
    DEFAULT_CONTENT_TYPE,
    FileInfo,
    FileMetadata,
    FileStream,
    SignedTokenValidator,
    SignedURLOperation,
    StorageBackend,
    UploadSource,
    iter_source_chunks,
)
from unistore.file_access.config import StorageConfig
from unistore.file_access.errors import (
    ErrorKind,
    StorageError,
    backend_error,
    directory_not_found,
    file_not_found,
    invalid_path,
    permission_denied,
)
from unistore.file_access.tokens import SignedTokenSigner
from unistore.monitoring.logger import log

PROVIDER = "filesystem"


class FilesystemBackend(StorageBackend, SignedTokenValidator):
    """
    Local filesystem backend.

    Config schema (StorageConfig.filesystem):
    {
        "base_path": "/path/to/storage",  # Required
        "create_dirs": true,              # Optional, create base_path if missing
        "permissions": "0644"             # Optional, applied to uploaded files
    }

    No in-process locking: concurrent writers to the same path race at the
    OS level and the last writer wins.
    """

    provider_name = PROVIDER

    def __init__(self, config: StorageConfig):
        super().__init__(config)

        if config.filesystem is None:
            raise StorageError(ErrorKind.INVALID_CONFIG, "filesystem configuration is required")

        self.fs_config = config.filesystem
        self.base_path = Path(self.fs_config.base_path)
        self._signer = SignedTokenSigner(config.signed_url)

        if self.fs_config.create_dirs:
            try:
                self.base_path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(
                    ErrorKind.INTERNAL_ERROR, "failed to create base directory",
                    backend=PROVIDER, path=str(self.base_path), cause=exc
                ) from exc
        elif not self.base_path.is_dir():
            log("WARNING", f"Base path {self.base_path} does not exist and create_dirs is off",
                module="localfs_provider", storage=self.storage_name)

        log("INFO", f"FilesystemBackend initialized with base_path={self.base_path}",
            module="localfs_provider", storage=self.storage_name)

    # -- path handling -----------------------------------------------------

    def _clean_path(self, path: str) -> str:
        """
        Clean a logical path into its backend-relative form.

        Redundant separators and ``.`` segments are removed. A path that still
        contains a ``..`` segment after cleaning is rejected before any
        filesystem access.
        """
        if path is None:
            raise invalid_path("", "path is required")
        raw = str(path).replace("\\", "/")
        if "\x00" in raw:
            raise invalid_path(path)
        cleaned = posixpath.normpath(raw) if raw else "."
        if ".." in cleaned.split("/"):
            raise invalid_path(path)
        relative = cleaned.lstrip("/")
        return "" if relative == "." else relative

    def _full_path(self, relative: str) -> Path:
        if not relative:
            return self.base_path
        return self.base_path.joinpath(*relative.split("/"))

    def _resolve(self, path: str) -> Tuple[str, Path]:
        relative = self._clean_path(path)
        return relative, self._full_path(relative)

    # -- helpers -----------------------------------------------------------

    def _error(self, kind: ErrorKind, message: str, exc: BaseException, path: str) -> StorageError:
        if isinstance(exc, PermissionError):
            return permission_denied(path, cause=exc, backend=PROVIDER)
        return backend_error(PROVIDER, kind, message, cause=exc, path=path)

    async def _stat(self, full: Path) -> Optional[os.stat_result]:
        try:
            return await aiofiles.os.stat(full)
        except FileNotFoundError:
            return None
        except NotADirectoryError:
            # A parent component is a regular file
            return None

    @staticmethod
    def _remove_partial(full: Path) -> None:
        # Synchronous on purpose: must complete even while a cancellation unwinds
        try:
            os.remove(full)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log("WARNING", f"Failed to remove partial file {full}: {exc}", module="localfs_provider")

    @staticmethod
    def _guess_mime_type(name: str) -> str:
        """Guess MIME type from file extension."""
        mime_type, _ = mimetypes.guess_type(name)
        return mime_type or DEFAULT_CONTENT_TYPE

    def _content_type(self, path: str, metadata: Optional[FileMetadata]) -> str:
        if metadata is not None and metadata.content_type:
            return metadata.content_type
        return self._guess_mime_type(path)

    @staticmethod
    def _metadata_hints(metadata: Optional[FileMetadata]) -> Optional[Dict[str, str]]:
        if metadata is None:
            return None
        hints: Dict[str, str] = dict(metadata.custom_metadata or {})
        if metadata.cache_control:
            hints["cache_control"] = metadata.cache_control
        if metadata.content_encoding:
            hints["content_encoding"] = metadata.content_encoding
        return hints or None

    def _file_info(self, path: str, name: str, st: os.stat_result) -> FileInfo:
        is_directory = stat_module.S_ISDIR(st.st_mode)
        return FileInfo(
            path=path,
            name=name,
            size=st.st_size,
            content_type=DEFAULT_CONTENT_TYPE if is_directory else self._guess_mime_type(name),
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            is_directory=is_directory,
        )

    async def _write_stream(self, full: Path, source: UploadSource) -> Tuple[int, str]:
        """Write ``source`` to ``full`` while hashing it. Returns (size, md5 hex)."""
        hasher = hashlib.md5(usedforsecurity=False)
        size = 0
        async with aiofiles.open(full, "wb") as out:
            async for chunk in iter_source_chunks(source):
                hasher.update(chunk)
                await out.write(chunk)
                size += len(chunk)
        return size, hasher.hexdigest()

    # -- file operations ---------------------------------------------------

    async def upload(
        self,
        path: str,
        source: UploadSource,
        metadata: Optional[FileMetadata] = None
    ) -> FileInfo:
        """Upload a file, computing its MD5 etag in the same pass."""
        relative, full = self._resolve(path)
        if not relative:
            raise invalid_path(path, "path is a directory")

        existing = await self._stat(full)
        if existing is not None and stat_module.S_ISDIR(existing.st_mode):
            raise invalid_path(path, "path is a directory")

        try:
            await aiofiles.os.makedirs(full.parent, exist_ok=True)
        except OSError as exc:
            raise self._error(ErrorKind.UPLOAD_FAILED, "failed to create directory", exc, path) from exc

        try:
            size, etag = await self._write_stream(full, source)
            permission_bits = self.fs_config.permission_bits
            if permission_bits is not None:
                os.chmod(full, permission_bits)
            st = await aiofiles.os.stat(full)
        except asyncio.CancelledError:
            self._remove_partial(full)
            log("WARNING", f"Upload cancelled, removed partial file: {path}", module="localfs_provider")
            raise
        except Exception as exc:
            self._remove_partial(full)
            log("ERROR", f"Write file error: {exc}", module="localfs_provider",
                path=path, traceback=traceback.format_exc())
            raise self._error(ErrorKind.UPLOAD_FAILED, "failed to write file", exc, path) from exc

        log("INFO", f"Uploaded {path} ({size} bytes)", module="localfs_provider", operation="upload")

        return FileInfo(
            path=path,
            name=posixpath.basename(relative),
            size=size,
            content_type=self._content_type(path, metadata),
            etag=etag,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            is_directory=False,
            metadata=self._metadata_hints(metadata),
        )

    async def download(self, path: str) -> Tuple[FileStream, FileInfo]:
        """Open a file for streaming."""
        relative, full = self._resolve(path)

        try:
            st = await self._stat(full)
        except OSError as exc:
            raise self._error(ErrorKind.DOWNLOAD_FAILED, "failed to stat file", exc, path) from exc
        if st is None:
            raise file_not_found(path)
        if stat_module.S_ISDIR(st.st_mode):
            raise invalid_path(path, "path is a directory")

        try:
            handle = await aiofiles.open(full, "rb")
        except FileNotFoundError:
            raise file_not_found(path)
        except OSError as exc:
            raise self._error(ErrorKind.DOWNLOAD_FAILED, "failed to open file", exc, path) from exc

        return FileStream(handle), self._file_info(path, posixpath.basename(relative), st)

    async def delete(self, path: str) -> None:
        """Delete a file."""
        relative, full = self._resolve(path)

        try:
            st = await self._stat(full)
        except OSError as exc:
            raise self._error(ErrorKind.DELETE_FAILED, "failed to stat file", exc, path) from exc
        if st is None:
            raise file_not_found(path)
        if stat_module.S_ISDIR(st.st_mode):
            raise invalid_path(path, "path is a directory")

        try:
            await aiofiles.os.remove(full)
        except FileNotFoundError:
            raise file_not_found(path)
        except OSError as exc:
            log("ERROR", f"Delete file error: {exc}", module="localfs_provider", path=path)
            raise self._error(ErrorKind.DELETE_FAILED, "failed to delete file", exc, path) from exc

        log("INFO", f"Deleted {path}", module="localfs_provider", operation="delete")

    async def exists(self, path: str) -> bool:
        """Check if a file or directory exists."""
        _, full = self._resolve(path)
        try:
            return await self._stat(full) is not None
        except OSError as exc:
            raise self._error(ErrorKind.INTERNAL_ERROR, "failed to check file existence", exc, path) from exc

    async def get_info(self, path: str) -> FileInfo:
        """Get file or directory information."""
        relative, full = self._resolve(path)
        try:
            st = await self._stat(full)
        except OSError as exc:
            raise self._error(ErrorKind.INTERNAL_ERROR, "failed to get file info", exc, path) from exc
        if st is None:
            raise file_not_found(path)
        return self._file_info(path, posixpath.basename(relative), st)

    # -- directory operations ----------------------------------------------

    async def list(self, path: str) -> List[FileInfo]:
        """List one level of a directory, sorted by name."""
        relative, full = self._resolve(path)
        # Entries keep the caller's rooted or relative form
        prefix = "/" if str(path).replace("\\", "/").startswith("/") else ""

        try:
            st = await self._stat(full)
        except OSError as exc:
            raise self._error(ErrorKind.LIST_FAILED, "failed to stat directory", exc, path) from exc
        if st is None:
            raise directory_not_found(path)
        if not stat_module.S_ISDIR(st.st_mode):
            raise invalid_path(path, "path is not a directory")

        try:
            names = await aiofiles.os.listdir(full)
        except OSError as exc:
            raise self._error(ErrorKind.LIST_FAILED, "failed to read directory", exc, path) from exc

        files = []
        for name in sorted(names):
            try:
                entry_stat = await aiofiles.os.stat(full / name)
            except OSError as exc:
                log("WARNING", f"Failed to get metadata for {name}: {exc}",
                    module="localfs_provider", path=path)
                continue
            entry_path = prefix + (posixpath.join(relative, name) if relative else name)
            files.append(self._file_info(entry_path, name, entry_stat))

        return files

    async def delete_directory(self, path: str) -> None:
        """Delete a directory and all its contents recursively."""
        relative, full = self._resolve(path)
        if not relative:
            raise invalid_path(path, "refusing to delete the storage root")

        try:
            st = await self._stat(full)
        except OSError as exc:
            raise self._error(ErrorKind.DELETE_FAILED, "failed to stat directory", exc, path) from exc
        if st is None:
            raise directory_not_found(path)
        if not stat_module.S_ISDIR(st.st_mode):
            raise invalid_path(path, "path is not a directory")

        try:
            await asyncio.to_thread(shutil.rmtree, full)
        except OSError as exc:
            log("ERROR", f"Delete directory error: {exc}", module="localfs_provider", path=path)
            raise self._error(ErrorKind.DELETE_FAILED, "failed to delete directory", exc, path) from exc

        log("INFO", f"Deleted directory {path}", module="localfs_provider", operation="delete_directory")

    # -- advanced operations -----------------------------------------------

    async def _check_source_file(self, src_path: str, full: Path) -> None:
        st = await self._stat(full)
        if st is None:
            raise file_not_found(src_path)
        if stat_module.S_ISDIR(st.st_mode):
            raise invalid_path(src_path, "source is a directory")

    async def _check_destination(self, dst_path: str, full: Path) -> None:
        st = await self._stat(full)
        if st is not None and stat_module.S_ISDIR(st.st_mode):
            raise invalid_path(dst_path, "destination is a directory")

    async def copy(self, src_path: str, dst_path: str) -> None:
        """Copy a file, creating destination directories as needed."""
        src_relative, src_full = self._resolve(src_path)
        dst_relative, dst_full = self._resolve(dst_path)

        try:
            await self._check_source_file(src_path, src_full)
            await self._check_destination(dst_path, dst_full)
        except OSError as exc:
            raise self._error(ErrorKind.COPY_FAILED, "failed to stat file", exc, src_path) from exc
        if src_relative == dst_relative:
            return

        try:
            src = await aiofiles.open(src_full, "rb")
        except FileNotFoundError:
            raise file_not_found(src_path)
        except OSError as exc:
            raise self._error(ErrorKind.COPY_FAILED, "failed to open source file", exc, src_path) from exc

        try:
            try:
                await aiofiles.os.makedirs(dst_full.parent, exist_ok=True)
            except OSError as exc:
                raise self._error(ErrorKind.COPY_FAILED, "failed to create destination directory",
                                  exc, dst_path) from exc

            try:
                await self._write_stream(dst_full, src)
            except asyncio.CancelledError:
                self._remove_partial(dst_full)
                raise
            except Exception as exc:
                self._remove_partial(dst_full)
                log("ERROR", f"Copy file error: {exc}", module="localfs_provider",
                    path=src_path, destination=dst_path)
                raise self._error(ErrorKind.COPY_FAILED, "failed to copy file data", exc, dst_path) from exc
        finally:
            await src.close()

        log("INFO", f"Copied {src_path} -> {dst_path}", module="localfs_provider", operation="copy")

    async def move(self, src_path: str, dst_path: str) -> None:
        """
        Move a file.

        Tries an atomic rename first; on any rename failure falls back to
        copy + delete. If deleting the source fails, the destination copy is
        removed again and the delete error is raised.
        """
        src_relative, src_full = self._resolve(src_path)
        dst_relative, dst_full = self._resolve(dst_path)

        try:
            await self._check_source_file(src_path, src_full)
            await self._check_destination(dst_path, dst_full)
        except OSError as exc:
            raise self._error(ErrorKind.MOVE_FAILED, "failed to stat file", exc, src_path) from exc
        if src_relative == dst_relative:
            return

        try:
            await aiofiles.os.makedirs(dst_full.parent, exist_ok=True)
        except OSError as exc:
            raise self._error(ErrorKind.MOVE_FAILED, "failed to create destination directory",
                              exc, dst_path) from exc

        try:
            await aiofiles.os.rename(src_full, dst_full)
        except OSError as rename_exc:
            # TODO: only fall back on EXDEV and surface other rename errors directly
            log("WARNING", f"Rename failed ({rename_exc}), falling back to copy + delete",
                module="localfs_provider", path=src_path, destination=dst_path)
            await self.copy(src_path, dst_path)
            try:
                await self.delete(src_path)
            except StorageError as delete_exc:
                try:
                    await self.delete(dst_path)
                except StorageError as cleanup_exc:
                    log("ERROR", f"Failed to remove orphaned copy {dst_path}: {cleanup_exc}",
                        module="localfs_provider")
                raise delete_exc

        log("INFO", f"Moved {src_path} -> {dst_path}", module="localfs_provider", operation="move")

    # -- signed access -----------------------------------------------------

    async def generate_signed_url(
        self,
        path: str,
        operation: SignedURLOperation,
        expires_in: Optional[timedelta] = None
    ) -> str:
        """
        Mint a signed token for ``(path, operation)``.

        Only the token is returned; building the URL around it is up to the
        HTTP adapter.
        """
        relative = self._clean_path(path)
        token = self._signer.issue(relative, operation, expires_in)
        log("INFO", f"Issued signed token for {path}", module="localfs_provider",
            operation="generate_signed_url", op=SignedURLOperation(operation).value)
        return token

    def validate_signed_token(self, token: str, path: str, operation: SignedURLOperation) -> Dict[str, Any]:
        """Validate a token minted by this backend for ``(path, operation)``."""
        relative = self._clean_path(path)
        return self._signer.validate(token, relative, operation)

    # -- health ------------------------------------------------------------

    async def health_check(self) -> Dict[str, Any]:
        """
        Check backend health.

        Verifies:
        - Base path exists
        - Read permissions
        - Write permissions
        """
        checks = {
            "base_path_exists": False,
            "base_path_readable": False,
            "base_path_writable": False,
            "disk_space_available": None
        }

        if self.base_path.is_dir():
            checks["base_path_exists"] = True
            checks["base_path_readable"] = os.access(self.base_path, os.R_OK)
            checks["base_path_writable"] = os.access(self.base_path, os.W_OK)
            try:
                usage = shutil.disk_usage(self.base_path)
                checks["disk_space_available"] = f"{usage.free / (1024**3):.2f} GB"
            except OSError:
                pass

        healthy = (
            checks["base_path_exists"] and
            checks["base_path_readable"] and
            checks["base_path_writable"]
        )

        if healthy:
            message = "Filesystem backend healthy"
        else:
            issues = []
            if not checks["base_path_exists"]:
                issues.append("base path doesn't exist")
            else:
                if not checks["base_path_readable"]:
                    issues.append("no read access")
                if not checks["base_path_writable"]:
                    issues.append("no write access")
            message = "Filesystem backend unhealthy: " + ", ".join(issues)

        return {
            "healthy": healthy,
            "provider": PROVIDER,
            "message": message,
            "details": {
                "base_path": str(self.base_path),
                "checks": checks,
                "config": {
                    "create_dirs": self.fs_config.create_dirs,
                    "permissions": self.fs_config.permissions,
                    "signed_urls_enabled": self.config.signed_url.enabled,
                }
            }
        }
