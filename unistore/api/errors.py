# unistore/api/errors.py
"""
Mapping of storage error kinds to HTTP responses.

This is the only place where error kinds become caller-facing outcomes.
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from unistore.file_access.errors import ErrorKind, StorageError
from unistore.monitoring.logger import log

STATUS_BY_KIND = {
    ErrorKind.FILE_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorKind.DIRECTORY_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_PATH: HTTP_400_BAD_REQUEST,
    ErrorKind.UPLOAD_FAILED: HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TOKEN: HTTP_401_UNAUTHORIZED,
    ErrorKind.TOKEN_EXPIRED: HTTP_401_UNAUTHORIZED,
    ErrorKind.PERMISSION_DENIED: HTTP_403_FORBIDDEN,
    ErrorKind.FILE_ALREADY_EXISTS: HTTP_409_CONFLICT,
}


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, HTTP_500_INTERNAL_SERVER_ERROR)


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    status_code = status_for(exc.kind)
    log(
        "ERROR" if status_code >= 500 else "WARNING",
        f"Storage error: {exc}",
        module="api",
        request_id=request_id,
        kind=exc.kind.value,
    )
    content = {"error": exc.kind.value, "message": exc.message, "request_id": request_id}
    if exc.path:
        content["path"] = exc.path
    return JSONResponse(status_code=status_code, content=content)
