"""
Roomly Backend - Application Tests
===================================

What:  Cross-cutting behaviour of the assembled app: health check, uploads,
       error bodies for unknown routes, request IDs and rate limiting.
"""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from roomly.middleware.rate_limit import RateLimitMiddleware
from roomly.middleware.request_id import RequestIDMiddleware
from roomly.services.file_service import file_service


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthcheck(self, test_client):
        response = await test_client.get("/healthcheck")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert body["version"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/v1/nothing-here")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, test_client):
        response = await test_client.put("/v1/listings/")
        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"

    @pytest.mark.asyncio
    async def test_malformed_json(self, test_client):
        response = await test_client.post(
            "/v1/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"


class TestErrorsForLoggedInCallers:
    @pytest.mark.asyncio
    async def test_domain_errors_keep_their_status(self, served_client, create_user):
        _, headers = await create_user("errors@example.com")

        response = await served_client.patch(
            "/v1/user/password",
            headers=headers,
            json={"oldPassword": "wrong-password", "newPassword": "n3w-password"},
        )
        assert response.status_code == 401
        assert response.json()["error"] != "internal_server_error"

        response = await served_client.patch("/v1/user/", headers=headers, json={"name": "Al", "image": ""})
        assert response.status_code == 422

        response = await served_client.get("/v1/bookings/424242", headers=headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_access_log_records_caller_id(self, served_client, create_user, caplog):
        user, headers = await create_user("logged@example.com")

        with caplog.at_level("INFO", logger="roomly.access"):
            response = await served_client.get("/v1/bookings/424242", headers=headers)

        assert response.status_code == 404
        record = next(r for r in caplog.records if r.name == "roomly.access")
        assert record.user_id == user.id


class TestRequestID:
    @pytest.mark.asyncio
    async def test_generated(self, test_client):
        response = await test_client.get("/healthcheck")
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_client_id_is_echoed(self, test_client):
        response = await test_client.get("/healthcheck", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_unsafe_client_id_is_replaced(self, test_client):
        response = await test_client.get("/healthcheck", headers={"X-Request-ID": "bad id with spaces"})
        assert response.headers["X-Request-ID"] != "bad id with spaces"


class TestUploads:
    @pytest.mark.asyncio
    async def test_upload_image(self, test_client, create_user, sample_image_bytes):
        _, headers = await create_user("uploader@example.com")

        with patch.object(file_service, "_sniff_mime", return_value="image/jpeg"):
            response = await test_client.post(
                "/v1/upload/image",
                headers=headers,
                files={"file": ("avatar.jpg", sample_image_bytes, "image/jpeg")},
            )

        assert response.status_code == 201
        url = response.json()["url"]
        assert url.startswith("/v1/files/")
        assert (await test_client.get(url)).content == sample_image_bytes

    @pytest.mark.asyncio
    async def test_upload_requires_login(self, test_client, sample_image_bytes):
        response = await test_client.post(
            "/v1/upload/image",
            files={"file": ("avatar.jpg", sample_image_bytes, "image/jpeg")},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client):
        response = await test_client.get("/v1/files/2020/01/01/missing.png")
        assert response.status_code == 404


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_limit_and_exemptions(self):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60, enabled=True)
        app.add_middleware(RequestIDMiddleware)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/healthcheck")
        async def healthcheck():
            return {"status": "ok"}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200

            response = await client.get("/ping")
            assert response.status_code == 429
            assert int(response.headers["Retry-After"]) > 0
            body = response.json()
            assert body["error"] == "rate_limit_exceeded"
            assert body["request_id"] == response.headers["X-Request-ID"]

            assert (await client.get("/healthcheck")).status_code == 200
