# unistore/api/files.py
"""
HTTP routes for file upload, download, listing, info and deletion.

Thin adapter: extracts request fields, calls the storage core and shapes JSON
responses. Storage errors are turned into HTTP responses by the handler
registered in unistore.main.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse, StreamingResponse
from starlette.datastructures import UploadFile
from starlette.status import HTTP_307_TEMPORARY_REDIRECT, HTTP_400_BAD_REQUEST

from unistore.api.dependencies import get_storage
from unistore.config import settings
from unistore.file_access.access import AccessDispatcher
from unistore.file_access.base import FileStream
from unistore.file_access.storage import Storage
from unistore.file_access.uploads import StagedUpload, UploadPipeline
from unistore.monitoring.context import set_request_context

router = APIRouter(prefix="/files", tags=["files"])


def _require_path(path: Optional[str]) -> str:
    if not path:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="File path is required")
    return path


async def _stream_body(stream: FileStream):
    try:
        async for chunk in stream:
            yield chunk
    finally:
        await stream.aclose()


@router.post("/upload")
async def upload_files(
    request: Request,
    destination: Optional[str] = Query(None, alias="dir", description="Destination directory"),
    filename: Optional[str] = Query(None, description="Explicit base name for the stored file"),
    storage: Storage = Depends(get_storage),
) -> dict:
    """Store every file part of a multipart request under ``dir``."""
    set_request_context(storage=storage.name, operation="upload")
    form = await request.form()
    try:
        staged = [
            StagedUpload(
                field_name=field_name,
                original_filename=value.filename or field_name,
                mime_type=value.content_type,
                source=value,
            )
            for field_name, value in form.multi_items()
            if isinstance(value, UploadFile)
        ]
        results = await UploadPipeline(storage).upload_staged(
            staged,
            destination if destination is not None else settings.UPLOAD_DESTINATION_DIR,
            filename,
        )
    finally:
        await form.close()

    return {
        "message": "Files uploaded successfully",
        "files": [result.to_dict() for result in results],
    }


async def _serve(
    request: Request,
    storage: Storage,
    logical_path: str,
    token: Optional[str],
    signed_url: Optional[str],
    expires_in: Optional[str],
    path_in_query: bool,
):
    set_request_context(storage=storage.name, operation="download")

    decision = await AccessDispatcher(storage).dispatch(
        logical_path,
        token=token,
        signed_url=(signed_url or "").lower() == "true",
        expires_in=expires_in,
    )

    if decision.is_redirect:
        if path_in_query:
            url = request.url.replace_query_params(path=logical_path, token=decision.token)
        else:
            url = request.url.replace_query_params(token=decision.token)
        return RedirectResponse(str(url), status_code=HTTP_307_TEMPORARY_REDIRECT)

    return StreamingResponse(
        _stream_body(decision.stream),
        media_type=decision.info.content_type,
        headers=decision.headers,
    )


@router.get("/download")
async def download_file(
    request: Request,
    path: Optional[str] = Query(None),
    token: Optional[str] = Query(None),
    signed_url: Optional[str] = Query(None),
    expires_in: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
):
    """
    Stream a file, or redirect to a signed URL.

    ``?token=`` serves a token-authorized read, ``?signed_url=true`` answers
    with a redirect carrying a fresh token, anything else streams directly.
    """
    return await _serve(request, storage, _require_path(path), token, signed_url, expires_in,
                        path_in_query=True)


@router.get("/download/{file_path:path}")
async def download_file_by_path(
    request: Request,
    file_path: str,
    token: Optional[str] = Query(None),
    signed_url: Optional[str] = Query(None),
    expires_in: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
):
    """Same as ``/download`` with the logical path in the URL."""
    return await _serve(request, storage, _require_path(file_path), token, signed_url, expires_in,
                        path_in_query=False)


@router.delete("")
async def delete_file(
    path: Optional[str] = Query(None),
    recursive: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
) -> dict:
    """Delete a file, or a whole directory with ``recursive=true``."""
    path = _require_path(path)
    if (recursive or "").lower() == "true":
        set_request_context(storage=storage.name, operation="delete_directory")
        await storage.delete_directory(path)
        return {"message": "Directory deleted successfully", "path": path}

    set_request_context(storage=storage.name, operation="delete")
    await storage.delete(path)
    return {"message": "File deleted successfully", "path": path}


@router.get("/list")
async def list_files(
    path: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
) -> dict:
    """List one level of a directory (defaults to the root)."""
    path = path or "/"
    set_request_context(storage=storage.name, operation="list")
    files = await storage.list(path)
    return {
        "path": path,
        "files": [info.to_dict() for info in files],
        "count": len(files),
    }


@router.get("/info")
async def file_info(
    path: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
) -> dict:
    """Get information about a file or directory."""
    path = _require_path(path)
    set_request_context(storage=storage.name, operation="get_info")
    info = await storage.get_info(path)
    return info.to_dict()
