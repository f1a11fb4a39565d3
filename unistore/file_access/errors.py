# unistore/file_access/errors.py
"""
Error taxonomy for storage operations.

Every failure raised by a backend, the facade, the upload pipeline or the
access dispatcher is a StorageError carrying one ErrorKind. Only the HTTP
adapter maps kinds to caller-facing status codes.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of storage error kinds."""
    INVALID_PROVIDER = "INVALID_PROVIDER"
    INVALID_CONFIG = "INVALID_CONFIG"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    DIRECTORY_NOT_FOUND = "DIRECTORY_NOT_FOUND"
    FILE_ALREADY_EXISTS = "FILE_ALREADY_EXISTS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_PATH = "INVALID_PATH"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    COPY_FAILED = "COPY_FAILED"
    MOVE_FAILED = "MOVE_FAILED"
    LIST_FAILED = "LIST_FAILED"
    SIGNED_URL_FAILED = "SIGNED_URL_FAILED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class StorageError(Exception):
    """
    Structured storage error.

    Args:
        kind: Error kind from the closed taxonomy
        message: Human readable message
        backend: Name of the backend that raised it (e.g. "filesystem")
        path: Logical path involved, if any
        cause: Underlying exception; also exposed as ``__cause__``
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        backend: Optional[str] = None,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.kind = ErrorKind(kind)
        self.message = message
        self.backend = backend
        self.path = path
        self.cause = cause
        super().__init__(str(self))
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.backend and self.path:
            return f"[{self.backend}:{self.kind.value}] {self.path}: {self.message}"
        if self.backend:
            return f"[{self.backend}:{self.kind.value}] {self.message}"
        if self.path:
            return f"[{self.kind.value}] {self.path}: {self.message}"
        return f"[{self.kind.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"StorageError(kind={self.kind.value!r}, message={self.message!r}, "
            f"backend={self.backend!r}, path={self.path!r})"
        )

    def is_kind(self, *kinds: ErrorKind) -> bool:
        """Return True if this error is one of the given kinds."""
        return self.kind in kinds

    def to_dict(self) -> dict:
        data = {"error": self.kind.value, "message": self.message}
        if self.backend:
            data["backend"] = self.backend
        if self.path:
            data["path"] = self.path
        return data


def backend_error(
    backend: str,
    kind: ErrorKind,
    message: str,
    cause: Optional[BaseException] = None,
    path: Optional[str] = None,
) -> StorageError:
    """Error raised from inside a concrete backend."""
    return StorageError(kind, message, backend=backend, path=path, cause=cause)


def file_not_found(path: str) -> StorageError:
    return StorageError(ErrorKind.FILE_NOT_FOUND, "file not found", path=path)


def directory_not_found(path: str) -> StorageError:
    return StorageError(ErrorKind.DIRECTORY_NOT_FOUND, "directory not found", path=path)


def file_already_exists(path: str) -> StorageError:
    return StorageError(ErrorKind.FILE_ALREADY_EXISTS, "file already exists", path=path)


def permission_denied(path: str, cause: Optional[BaseException] = None, backend: Optional[str] = None) -> StorageError:
    return StorageError(ErrorKind.PERMISSION_DENIED, "permission denied", backend=backend, path=path, cause=cause)


def invalid_path(path: str, message: str = "invalid path") -> StorageError:
    return StorageError(ErrorKind.INVALID_PATH, message, path=path)


def invalid_token(message: str, cause: Optional[BaseException] = None) -> StorageError:
    return StorageError(ErrorKind.INVALID_TOKEN, message, cause=cause)


def token_expired() -> StorageError:
    return StorageError(ErrorKind.TOKEN_EXPIRED, "token has expired")
