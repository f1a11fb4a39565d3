# unistore/file_access/uploads.py
"""
Upload pipeline.

Turns uploads staged by the HTTP layer (temporary files or open file
objects) into stored objects under a destination directory, giving each a
collision-free name.
"""
import os
import posixpath
import secrets
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Sequence, Union

import aiofiles

from unistore.file_access.base import FileMetadata, UploadedFileResult
from unistore.file_access.errors import ErrorKind, StorageError
from unistore.file_access.storage import Storage
from unistore.monitoring.logger import log


@dataclass
class StagedUpload:
    """One uploaded file as handed over by the HTTP layer."""
    field_name: str
    original_filename: str
    mime_type: Optional[str]
    source: Union[str, "os.PathLike[str]", BinaryIO]


def _split_name(filename: str):
    """Split at the last dot; a leading dot starts the extension (``.bashrc``)."""
    base = posixpath.basename((filename or "").replace("\\", "/"))
    dot = base.rfind(".")
    if dot == -1:
        return base, ""
    return base[:dot], base[dot:]


def generate_unique_filename(original_filename: str) -> str:
    """
    Build ``<name>_<8 hex chars><ext>`` from an original filename.

    The suffix comes from a cryptographically strong source, so two uploads
    of the same name collide with probability 1/2**32.
    """
    stem, ext = _split_name(original_filename)
    suffix = secrets.token_hex(4)
    return f"{stem}_{suffix}{ext}"


def build_filename(original_filename: str, destination_filename: Optional[str] = None) -> str:
    """Stored name: explicit base plus original extension, else a unique name."""
    if destination_filename:
        _, ext = _split_name(original_filename)
        return f"{destination_filename}{ext}"
    return generate_unique_filename(original_filename)


def join_destination(destination_dir: str, filename: str) -> str:
    """``/docs``, ``/docs/`` and ``/docs//`` all give ``/docs/<filename>``."""
    return f"{(destination_dir or '').rstrip('/')}/{filename}"


class UploadPipeline:
    """Store staged uploads through a Storage facade."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def upload_one(
        self,
        staged: StagedUpload,
        destination_dir: str,
        destination_filename: Optional[str] = None
    ) -> UploadedFileResult:
        """Store one staged upload and describe the result."""
        filename = build_filename(staged.original_filename, destination_filename)
        file_path = join_destination(destination_dir, filename)
        metadata = FileMetadata(content_type=staged.mime_type or None)

        if isinstance(staged.source, (str, os.PathLike)):
            try:
                handle = await aiofiles.open(staged.source, "rb")
            except OSError as exc:
                raise StorageError(
                    ErrorKind.UPLOAD_FAILED, "failed to open uploaded file",
                    path=file_path, cause=exc
                ) from exc
            try:
                info = await self.storage.upload(file_path, handle, metadata)
            finally:
                await handle.close()
        else:
            info = await self.storage.upload(file_path, staged.source, metadata)

        log("INFO", f"Stored upload {staged.original_filename!r} as {info.path}",
            module="uploads", field_name=staged.field_name)

        return UploadedFileResult(
            field_name=staged.field_name,
            original_name=staged.original_filename,
            filename=filename,
            path=info.path,
            size=info.size,
            content_type=info.content_type,
            etag=info.etag,
            last_modified=info.last_modified,
        )

    async def upload_staged(
        self,
        staged_uploads: Sequence[StagedUpload],
        destination_dir: str,
        destination_filename: Optional[str] = None
    ) -> List[UploadedFileResult]:
        """
        Store every staged upload, in order.

        Fails fast: the first error is raised and no partial result list is
        returned.

        Raises:
            StorageError: UPLOAD_FAILED when nothing was staged, or the first
                backend error
        """
        if not staged_uploads:
            raise StorageError(ErrorKind.UPLOAD_FAILED, "No files uploaded")

        results = []
        for staged in staged_uploads:
            results.append(await self.upload_one(staged, destination_dir, destination_filename))
        return results
