# tests/test_api_files.py
"""
Tests for the HTTP file routes and health endpoints.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from unistore.api.dependencies import get_storage
from unistore.file_access.storage import Storage
from unistore.main import app


@pytest_asyncio.fixture
async def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


async def upload(client, name, data, directory="/docs", **params):
    if directory is not None:
        params["dir"] = directory
    response = await client.post(
        "/files/upload",
        params=params,
        files=[("file", (name, data, "text/plain"))],
    )
    assert response.status_code == 200, response.text
    return response.json()["files"][0]


class TestUploadRoute:

    @pytest.mark.asyncio
    async def test_upload_multiple_files(self, client):
        response = await client.post(
            "/files/upload",
            params={"dir": "/docs"},
            files=[
                ("file", ("duplicate.txt", b"first", "text/plain")),
                ("file", ("duplicate.txt", b"second", "text/plain")),
            ],
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Files uploaded successfully"
        assert len(body["files"]) == 2
        first, second = body["files"]
        assert first["path"] != second["path"]
        assert first["original_name"] == "duplicate.txt"
        assert first["path"].startswith("/docs/duplicate_")

        for item, expected in ((first, b"first"), (second, b"second")):
            download = await client.get("/files/download", params={"path": item["path"]})
            assert download.content == expected

    @pytest.mark.asyncio
    async def test_upload_with_explicit_filename(self, client):
        item = await upload(client, "scan.txt", b"scan", filename="invoice")
        assert item["path"] == "/docs/invoice.txt"

    @pytest.mark.asyncio
    async def test_upload_default_directory(self, client):
        item = await upload(client, "a.txt", b"a", directory=None)
        assert item["path"].startswith("/uploads/a_")

    @pytest.mark.asyncio
    async def test_upload_without_files(self, client):
        response = await client.post("/files/upload", data={"note": "no files here"})
        assert response.status_code == 400
        assert response.json()["error"] == "UPLOAD_FAILED"
        assert response.json()["message"] == "No files uploaded"

    @pytest.mark.asyncio
    async def test_upload_traversal(self, client):
        response = await client.post(
            "/files/upload",
            params={"dir": "../escape"},
            files=[("file", ("a.txt", b"a", "text/plain"))],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PATH"


class TestDownloadRoute:

    @pytest.mark.asyncio
    async def test_download_headers(self, client):
        item = await upload(client, "report.txt", b"quarterly numbers")
        response = await client.get("/files/download", params={"path": item["path"]})

        assert response.status_code == 200
        assert response.content == b"quarterly numbers"
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["content-length"] == str(len(b"quarterly numbers"))
        assert response.headers["content-disposition"] == f'attachment; filename="{item["filename"]}"'
        assert "last-modified" in response.headers
        assert response.headers["x-request-id"]

    @pytest.mark.asyncio
    async def test_download_by_url_path(self, client):
        item = await upload(client, "a.txt", b"by path")
        response = await client.get(f"/files/download{item['path']}")
        assert response.status_code == 200
        assert response.content == b"by path"

    @pytest.mark.asyncio
    async def test_download_missing(self, client):
        response = await client.get("/files/download", params={"path": "/docs/missing.txt"})
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "FILE_NOT_FOUND"
        assert body["path"] == "/docs/missing.txt"

    @pytest.mark.asyncio
    async def test_download_requires_path(self, client):
        response = await client.get("/files/download")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_download_traversal(self, client):
        response = await client.get("/files/download", params={"path": "../../etc/passwd"})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PATH"

    @pytest.mark.asyncio
    async def test_signed_url_redirect_and_token_read(self, client):
        item = await upload(client, "a.txt", b"via token")
        response = await client.get(
            "/files/download",
            params={"path": item["path"], "signed_url": "true", "expires_in": "120"},
        )

        assert response.status_code == 307
        location = response.headers["location"]
        assert "token=" in location
        assert "signed_url" not in location

        followed = await client.get(location)
        assert followed.status_code == 200
        assert followed.content == b"via token"

    @pytest.mark.asyncio
    async def test_signed_url_redirect_by_url_path(self, client):
        item = await upload(client, "a.txt", b"via token")
        response = await client.get(f"/files/download{item['path']}", params={"signed_url": "true"})

        assert response.status_code == 307
        followed = await client.get(response.headers["location"])
        assert followed.content == b"via token"

    @pytest.mark.asyncio
    async def test_token_for_other_file_rejected(self, client, storage):
        first = await upload(client, "a.txt", b"a")
        second = await upload(client, "b.txt", b"b")
        token = await storage.generate_signed_url(first["path"], "GET")

        response = await client.get("/files/download", params={"path": second["path"], "token": token})
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_token_read_with_signing_disabled(self, client, storage, storage_config):
        item = await upload(client, "a.txt", b"a")
        token = await storage.generate_signed_url(item["path"], "GET")

        storage_config["signed_url"] = {"enabled": False}
        app.dependency_overrides[get_storage] = lambda: Storage(storage_config)

        response = await client.get("/files/download", params={"path": item["path"], "token": token})
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_signed_url_disabled(self, client, storage_config):
        storage_config["signed_url"] = {"enabled": False}
        app.dependency_overrides[get_storage] = lambda: Storage(storage_config)

        response = await client.get("/files/download", params={"path": "/a.txt", "signed_url": "true"})
        assert response.status_code == 500
        assert response.json()["error"] == "SIGNED_URL_FAILED"


class TestManagementRoutes:

    @pytest.mark.asyncio
    async def test_delete_file(self, client):
        item = await upload(client, "a.txt", b"a")
        response = await client.delete("/files", params={"path": item["path"]})
        assert response.status_code == 200
        assert response.json()["message"] == "File deleted successfully"

        response = await client.delete("/files", params={"path": item["path"]})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_directory(self, client):
        await upload(client, "a.txt", b"a", directory="/tree/sub")
        response = await client.delete("/files", params={"path": "/tree", "recursive": "true"})
        assert response.status_code == 200
        assert response.json()["message"] == "Directory deleted successfully"

        response = await client.get("/files/info", params={"path": "/tree"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_directory_without_recursive(self, client):
        await upload(client, "a.txt", b"a", directory="/tree")
        response = await client.delete("/files", params={"path": "/tree"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list(self, client):
        await upload(client, "a.txt", b"a", directory="/listing")
        await upload(client, "b.txt", b"b", directory="/listing/nested")

        response = await client.get("/files/list", params={"path": "/listing"})
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [f["is_directory"] for f in body["files"]] == [False, True]

    @pytest.mark.asyncio
    async def test_list_missing_directory(self, client):
        response = await client.get("/files/list", params={"path": "/nowhere"})
        assert response.status_code == 404
        assert response.json()["error"] == "DIRECTORY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_info(self, client):
        item = await upload(client, "a.txt", b"info")
        response = await client.get("/files/info", params={"path": item["path"]})
        assert response.status_code == 200
        assert response.json()["size"] == 4
        assert response.json()["is_directory"] is False


class TestHealthRoutes:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/admin/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "version" in response.json()

    @pytest.mark.asyncio
    async def test_health_deep(self, client):
        response = await client.get("/admin/health/deep")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["storage"]["provider"] == "filesystem"

    @pytest.mark.asyncio
    async def test_health_deep_objectstore_degraded(self, client, objectstore_config):
        app.dependency_overrides[get_storage] = lambda: Storage(objectstore_config)
        response = await client.get("/admin/health/deep")
        body = response.json()
        assert body["status"] == "degraded"
        assert body["warnings"]

    @pytest.mark.asyncio
    async def test_objectstore_operations_map_to_500(self, client, objectstore_config):
        app.dependency_overrides[get_storage] = lambda: Storage(objectstore_config)
        response = await client.get("/files/info", params={"path": "/a.txt"})
        assert response.status_code == 500
        assert response.json()["error"] == "PROVIDER_ERROR"
