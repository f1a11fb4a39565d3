# tests/test_access_dispatcher.py
"""
Tests for the read-path dispatcher.
"""
from datetime import datetime, timedelta, timezone

import pytest

from unistore.file_access.access import (
    AccessDispatcher,
    build_headers,
    content_disposition,
    parse_expires_in,
)
from unistore.file_access.base import FileInfo, SignedURLOperation
from unistore.file_access.config import SignedURLConfig
from unistore.file_access.errors import ErrorKind, StorageError
from unistore.file_access.storage import Storage
from unistore.file_access.tokens import SignedTokenSigner


async def read_all(stream):
    async with stream:
        return b"".join([chunk async for chunk in stream])


@pytest.fixture
def dispatcher(storage):
    return AccessDispatcher(storage)


class TestDispatch:

    @pytest.mark.asyncio
    async def test_direct_stream(self, storage, dispatcher):
        await storage.upload("docs/a.txt", b"direct")
        decision = await dispatcher.dispatch("docs/a.txt")

        assert decision.is_redirect is False
        assert decision.info.size == 6
        assert decision.headers["Content-Length"] == "6"
        assert await read_all(decision.stream) == b"direct"

    @pytest.mark.asyncio
    async def test_direct_missing_file(self, dispatcher):
        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("missing.txt")
        assert exc_info.value.kind == ErrorKind.FILE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_signed_url_redirect_then_token_read(self, storage, dispatcher):
        await storage.upload("docs/a.txt", b"signed read")

        redirect = await dispatcher.dispatch("/docs/a.txt", signed_url=True)
        assert redirect.is_redirect is True
        assert redirect.stream is None
        assert redirect.token

        decision = await dispatcher.dispatch("/docs/a.txt", token=redirect.token)
        assert await read_all(decision.stream) == b"signed read"

    @pytest.mark.asyncio
    async def test_signed_url_custom_expiry(self, storage, dispatcher):
        redirect = await dispatcher.dispatch("a.txt", signed_url=True, expires_in="60")
        claims = storage.backend.validate_signed_token(redirect.token, "a.txt", SignedURLOperation.GET)
        assert claims["exp"] - claims["iat"] == 60

    @pytest.mark.asyncio
    async def test_signed_url_oversized_expiry_uses_default(self, storage, dispatcher):
        redirect = await dispatcher.dispatch("/docs/a.txt", signed_url=True, expires_in="100000000000000000")
        claims = storage.backend.validate_signed_token(redirect.token, "docs/a.txt", SignedURLOperation.GET)
        assert claims["exp"] - claims["iat"] == 1800

    @pytest.mark.asyncio
    async def test_token_read_with_signing_disabled(self, storage, storage_config):
        await storage.upload("a.txt", b"a")
        token = await storage.generate_signed_url("a.txt", SignedURLOperation.GET)

        storage_config["signed_url"] = {"enabled": False}
        dispatcher = AccessDispatcher(Storage(storage_config))
        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("a.txt", token=token)
        assert exc_info.value.kind == ErrorKind.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_signed_url_disabled(self, storage_config):
        storage_config["signed_url"] = {"enabled": False}
        dispatcher = AccessDispatcher(Storage(storage_config))
        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("a.txt", signed_url=True)
        assert exc_info.value.kind == ErrorKind.SIGNED_URL_FAILED

    @pytest.mark.asyncio
    async def test_token_takes_precedence_over_signed_url(self, storage, dispatcher):
        await storage.upload("a.txt", b"a")
        token = await storage.generate_signed_url("a.txt", SignedURLOperation.GET)
        decision = await dispatcher.dispatch("a.txt", token=token, signed_url=True)
        assert decision.is_redirect is False
        await decision.stream.aclose()

    @pytest.mark.asyncio
    async def test_token_for_other_path(self, storage, dispatcher):
        await storage.upload("a.txt", b"a")
        await storage.upload("b.txt", b"b")
        token = await storage.generate_signed_url("a.txt", SignedURLOperation.GET)

        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("b.txt", token=token)
        assert exc_info.value.kind == ErrorKind.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_token_for_other_operation(self, storage, dispatcher):
        await storage.upload("a.txt", b"a")
        token = await storage.generate_signed_url("a.txt", SignedURLOperation.DELETE)

        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("a.txt", token=token)
        assert exc_info.value.kind == ErrorKind.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_expired_token(self, storage, dispatcher, secret):
        await storage.upload("a.txt", b"a")
        past = SignedTokenSigner(SignedURLConfig(enabled=True, secret_key=secret), clock=lambda: 1_000_000)
        token = past.issue("a.txt", SignedURLOperation.GET)

        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("a.txt", token=token)
        assert exc_info.value.kind == ErrorKind.TOKEN_EXPIRED

    @pytest.mark.asyncio
    async def test_garbage_token(self, storage, dispatcher):
        await storage.upload("a.txt", b"a")
        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("a.txt", token="garbage")
        assert exc_info.value.kind == ErrorKind.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_backend_without_token_validation(self, objectstore_config):
        dispatcher = AccessDispatcher(Storage(objectstore_config))
        with pytest.raises(StorageError) as exc_info:
            await dispatcher.dispatch("a.txt", token="anything")
        assert exc_info.value.kind == ErrorKind.INVALID_TOKEN


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [
        (None, None),
        ("", None),
        ("abc", None),
        ("0", None),
        ("-5", None),
        ("100000000000000000", None),
        ("120", timedelta(seconds=120)),
        (30, timedelta(seconds=30)),
        (timedelta(minutes=2), timedelta(minutes=2)),
    ])
    def test_parse_expires_in(self, value, expected):
        assert parse_expires_in(value) == expected

    def test_content_disposition_ascii(self):
        assert content_disposition("report.pdf") == 'attachment; filename="report.pdf"'

    def test_content_disposition_non_ascii(self):
        value = content_disposition("résumé.pdf")
        assert 'filename="rsum.pdf"' in value
        assert "filename*=UTF-8''r%C3%A9sum%C3%A9.pdf" in value

    def test_build_headers(self):
        info = FileInfo(
            path="/docs/a.txt",
            name="a.txt",
            size=42,
            content_type="text/plain",
            etag="abc123",
            last_modified=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )
        headers = build_headers(info)

        assert headers["Content-Type"] == "text/plain"
        assert headers["Content-Length"] == "42"
        assert headers["Content-Disposition"] == 'attachment; filename="a.txt"'
        assert headers["ETag"] == '"abc123"'
        assert headers["Last-Modified"] == "Tue, 02 Jan 2024 03:04:05 GMT"

    def test_build_headers_without_etag(self):
        headers = build_headers(FileInfo(path="a", name="a", size=0))
        assert "ETag" not in headers
        assert "Last-Modified" not in headers
