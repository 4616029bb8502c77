"""
API tests for the admin console endpoints.
"""

import uuid
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from filevault.core.config import settings
from filevault.core.security import AdminTokenManager
from models import FileRecord
from tests.factories import create_file_record, create_file_records

ADMIN_ROUTES = [
    ("GET", "/api/admin/files"),
    ("GET", "/api/admin/stats"),
    ("DELETE", f"/api/admin/files/{uuid.uuid4()}"),
    ("POST", "/api/admin/files/bulk-delete"),
]


class TestAdminLogin:
    """POST /api/admin/login"""

    @pytest.mark.asyncio
    async def test_login(self, client):
        response = await client.post(
            "/api/admin/login", json={"username": "admin", "password": "admin-password"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["token"]
        assert body["expiresAt"]
        assert AdminTokenManager().verify_token(body["token"]) is not None

    @pytest.mark.asyncio
    async def test_wrong_credentials(self, client):
        response = await client.post(
            "/api/admin/login", json={"username": "admin", "password": "guess"}
        )

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid credentials"
        assert "token" not in body

    @pytest.mark.asyncio
    async def test_empty_body(self, client):
        response = await client.post("/api/admin/login", json={})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_issued_token_opens_admin_routes(self, client):
        login = await client.post(
            "/api/admin/login", json={"username": "admin", "password": "admin-password"}
        )
        token = login.json()["token"]

        response = await client.get(
            "/api/admin/stats", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200


class TestAdminAuthorization:
    """Every failing token is answered with 403."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("method", "path"), ADMIN_ROUTES)
    async def test_missing_token(self, client, method, path):
        response = await client.request(method, path)

        assert response.status_code == 403
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("method", "path"), ADMIN_ROUTES)
    async def test_garbage_token(self, client, method, path):
        response = await client.request(method, path, headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_scheme(self, client, admin_token):
        response = await client.get("/api/admin/stats", headers={"Authorization": f"Basic {admin_token}"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_expired_token(self, client):
        token, _ = AdminTokenManager().issue_token(now=datetime.now(UTC) - timedelta(days=1))

        response = await client.get("/api/admin/stats", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_forged_token(self, client):
        now = datetime.now(UTC)
        forged = jwt.encode(
            {"sub": "admin", "scope": "admin", "iat": now, "exp": now + timedelta(hours=1)},
            "not-the-server-secret-0123456789abcdef",
            algorithm=settings.algorithm,
        )

        response = await client.get("/api/admin/stats", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == 403


class TestAdminFiles:
    """GET /api/admin/files"""

    @pytest.mark.asyncio
    async def test_list(self, admin_client, test_db):
        await create_file_records(test_db, 12)

        response = await admin_client.get("/api/admin/files", params={"page": 2, "limit": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["files"]) == 5
        assert body["pagination"] == {
            "totalFiles": 12,
            "currentPage": 2,
            "totalPages": 3,
            "pageSize": 5,
        }
        first = body["files"][0]
        assert {"id", "originalName", "storedName", "filePath", "fileType", "fileSize"} <= set(first)
        assert "passwordHash" not in first

    @pytest.mark.asyncio
    async def test_default_paging(self, admin_client, test_db):
        await create_file_records(test_db, 3)

        body = (await admin_client.get("/api/admin/files")).json()

        assert body["pagination"]["currentPage"] == 1
        assert body["pagination"]["pageSize"] == 10

    @pytest.mark.asyncio
    async def test_search_and_type(self, admin_client, test_db):
        await create_file_record(test_db, original_name="Invoice-March.pdf", file_type="application/pdf")
        await create_file_record(test_db, original_name="invoice-scan.png", file_type="image/png")
        await create_file_record(test_db, original_name="cat.png", file_type="image/png")

        by_name = (await admin_client.get("/api/admin/files", params={"search": "INVOICE"})).json()
        by_both = (
            await admin_client.get("/api/admin/files", params={"search": "invoice", "type": "image/"})
        ).json()

        assert by_name["pagination"]["totalFiles"] == 2
        assert [f["originalName"] for f in by_both["files"]] == ["invoice-scan.png"]

    @pytest.mark.asyncio
    async def test_invalid_limit(self, admin_client):
        response = await admin_client.get("/api/admin/files", params={"limit": 0})
        assert response.status_code == 422


class TestAdminDelete:
    @pytest.mark.asyncio
    async def test_delete(self, admin_client, test_db):
        record = await create_file_record(test_db)

        response = await admin_client.delete(f"/api/admin/files/{record.id}")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert await test_db.get(FileRecord, record.id, populate_existing=True) is None

    @pytest.mark.asyncio
    async def test_delete_unknown(self, admin_client):
        response = await admin_client.delete(f"/api/admin/files/{uuid.uuid4()}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bulk_delete(self, admin_client, test_db):
        records = await create_file_records(test_db, 3)
        ids = [str(records[0].id), str(records[1].id), str(uuid.uuid4())]

        response = await admin_client.post("/api/admin/files/bulk-delete", json={"ids": ids})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["deleted"] == 2
        assert await test_db.get(FileRecord, records[2].id, populate_existing=True) is not None

    @pytest.mark.asyncio
    async def test_bulk_delete_empty(self, admin_client):
        response = await admin_client.post("/api/admin/files/bulk-delete", json={"ids": []})
        assert response.status_code == 400


class TestAdminStats:
    @pytest.mark.asyncio
    async def test_stats(self, admin_client, test_db):
        await create_file_record(test_db, file_size=3 * 1024 * 1024, views=4, downloads=2)
        await create_file_record(test_db, file_size=1024 * 1024, views=1, downloads=0)

        response = await admin_client.get("/api/admin/stats")

        assert response.status_code == 200
        assert response.json()["stats"] == {
            "totalFiles": 2,
            "totalSizeBytes": 4 * 1024 * 1024,
            "totalSizeInMB": 4.0,
            "totalViews": 5,
            "totalDownloads": 2,
        }
