# unistore/file_access/access.py
"""
Read-path dispatcher.

Decides how an inbound read of a logical path is served:

1. a ``token`` is present: validate it for (path, GET), then stream;
2. ``signed_url`` is requested: mint a token and answer with a redirect;
3. otherwise: stream directly, without an access check.

A rejected token never results in any byte being streamed.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from email.utils import format_datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

import structlog

from unistore.file_access.base import FileInfo, FileStream, SignedTokenValidator, SignedURLOperation
from unistore.file_access.errors import file_not_found, invalid_token
from unistore.file_access.storage import Storage

logger = structlog.get_logger()

MODE_STREAM = "stream"
MODE_REDIRECT = "redirect"


@dataclass
class AccessDecision:
    """How the adapter should answer a read request."""
    mode: str
    path: str
    stream: Optional[FileStream] = None
    info: Optional[FileInfo] = None
    headers: Dict[str, str] = field(default_factory=dict)
    token: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.mode == MODE_REDIRECT


def parse_expires_in(value: Any) -> Optional[timedelta]:
    """
    Parse an ``expires_in`` override in seconds.

    Missing, malformed or non-positive values yield None so the configured
    default applies.
    """
    if value is None or value == "":
        return None
    if isinstance(value, timedelta):
        return value if value > timedelta(0) else None
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        return None


def content_disposition(name: str) -> str:
    fallback = name.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "")
    if fallback == name:
        return f'attachment; filename="{fallback}"'
    return f"attachment; filename=\"{fallback or 'download'}\"; filename*=UTF-8''{quote(name)}"


def build_headers(info: FileInfo) -> Dict[str, str]:
    """Transport headers describing a file about to be streamed."""
    headers = {
        "Content-Type": info.content_type,
        "Content-Length": str(info.size),
        "Content-Disposition": content_disposition(info.name),
    }
    if info.etag:
        headers["ETag"] = f'"{info.etag}"'
    if info.last_modified is not None:
        headers["Last-Modified"] = format_datetime(info.last_modified, usegmt=True)
    return headers


class AccessDispatcher:
    """Serve reads through a Storage facade."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def dispatch(
        self,
        path: str,
        token: Optional[str] = None,
        signed_url: bool = False,
        expires_in: Any = None
    ) -> AccessDecision:
        """
        Decide how to serve a read of ``path``.

        Raises:
            StorageError: INVALID_TOKEN / TOKEN_EXPIRED for a rejected token,
                FILE_NOT_FOUND when the file is absent, SIGNED_URL_FAILED when a
                signed URL is requested but signing is disabled
        """
        if token:
            self.validate_token(path, token)
            return await self.open_direct(path)

        if signed_url:
            return await self.issue(path, parse_expires_in(expires_in))

        return await self.open_direct(path)

    def validate_token(
        self,
        path: str,
        token: str,
        operation: SignedURLOperation = SignedURLOperation.GET
    ) -> Dict[str, Any]:
        """Check ``token`` with the backend's own validator."""
        backend = self.storage.backend
        if not isinstance(backend, SignedTokenValidator):
            logger.warning("token_validation_unsupported", path=path, backend=backend.provider_name)
            raise invalid_token(f"{backend.provider_name} backend cannot validate signed tokens")

        try:
            claims = backend.validate_signed_token(token, path, operation)
        except Exception as exc:
            logger.info("token_rejected", path=path, reason=str(exc))
            raise
        logger.debug("token_accepted", path=path, operation=claims.get("op"))
        return claims

    async def issue(self, path: str, expires_in: Optional[timedelta] = None) -> AccessDecision:
        """Mint a read token for ``path``; the adapter turns it into a redirect."""
        token = await self.storage.generate_signed_url(path, SignedURLOperation.GET, expires_in)
        logger.info("signed_url_issued", path=path,
                    expires_in=int(expires_in.total_seconds()) if expires_in else None)
        return AccessDecision(mode=MODE_REDIRECT, path=path, token=token)

    async def open_direct(self, path: str) -> AccessDecision:
        """Open ``path`` for streaming and compute its transport headers."""
        if not await self.storage.exists(path):
            raise file_not_found(path)

        stream, info = await self.storage.download(path)
        return AccessDecision(
            mode=MODE_STREAM,
            path=path,
            stream=stream,
            info=info,
            headers=build_headers(info),
        )
