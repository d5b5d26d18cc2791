"""
Roomly Backend - User Account Route Tests
==========================================

What:  /v1/user endpoints: profile, password reset, password and email change,
       and account deletion.
"""

import pytest
from sqlalchemy import select

from roomly.models.user import User
from roomly.security import verify_password

PASSWORD = "pa55word!"


async def _reload(session_factory, user_id: int) -> User:
    async with session_factory() as session:
        result = await session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


class TestProfile:
    @pytest.mark.asyncio
    async def test_update_profile(self, test_client, create_user):
        _, headers = await create_user("me@example.com", name="Morgan")

        response = await test_client.patch(
            "/v1/user/",
            headers=headers,
            json={"name": "Morgan Lee", "image": "https://cdn.example.com/me.png"},
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["name"] == "Morgan Lee"
        assert user["image"] == "https://cdn.example.com/me.png"

    @pytest.mark.asyncio
    async def test_update_profile_short_name(self, test_client, create_user):
        _, headers = await create_user("short@example.com")
        response = await test_client.patch("/v1/user/", headers=headers, json={"name": "Jo"})
        assert response.status_code == 422
        assert response.json()["details"] == {"name": "must be at least 3 bytes long"}

    @pytest.mark.asyncio
    async def test_delete_account(self, test_client, create_user, session_factory):
        user, headers = await create_user("leaving@example.com")

        response = await test_client.delete("/v1/user/", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"message": "success"}
        assert await _reload(session_factory, user.id) is None

        # Sessions went with the account
        response = await test_client.get("/v1/user/", headers=headers)
        assert response.status_code == 401


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_reset_flow(self, test_client, create_user, session_factory):
        user, _ = await create_user("forgot@example.com")

        response = await test_client.post("/v1/user/reset-password", json={"email": "forgot@example.com"})
        assert response.status_code == 200
        assert response.json() == {"email": "forgot@example.com"}

        code = (await _reload(session_factory, user.id)).reset_token
        assert code

        response = await test_client.post(
            "/v1/user/new-password/forgot@example.com",
            json={"resetToken": "zzz-zzz", "newPassword": "n3w-password"},
        )
        assert response.status_code == 401

        response = await test_client.post(
            "/v1/user/new-password/forgot@example.com",
            json={"resetToken": code, "newPassword": "n3w-password"},
        )
        assert response.status_code == 200
        assert response.json() == {"message": "success"}

        response = await test_client.post(
            "/v1/auth/login", json={"email": "forgot@example.com", "password": "n3w-password"}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_reset_unknown_email(self, test_client):
        response = await test_client.post("/v1/user/reset-password", json={"email": "who@example.com"})
        assert response.status_code == 404


class TestCredentialChanges:
    @pytest.mark.asyncio
    async def test_change_password(self, test_client, create_user, session_factory):
        user, headers = await create_user("pw@example.com")

        response = await test_client.patch(
            "/v1/user/password",
            headers=headers,
            json={"oldPassword": "not-my-password", "newPassword": "n3w-password"},
        )
        assert response.status_code == 401

        response = await test_client.patch(
            "/v1/user/password",
            headers=headers,
            json={"oldPassword": PASSWORD, "newPassword": "n3w-password"},
        )
        assert response.status_code == 200
        assert verify_password("n3w-password", (await _reload(session_factory, user.id)).password_hash)

    @pytest.mark.asyncio
    async def test_change_email(self, test_client, create_user, session_factory):
        user, headers = await create_user("old@example.com")

        response = await test_client.post("/v1/user/change-email/request", headers=headers)
        assert response.status_code == 200
        code = (await _reload(session_factory, user.id)).update_email_token

        response = await test_client.post(
            "/v1/user/change-email",
            headers=headers,
            json={"resetToken": code, "newEmail": "Fresh@Example.com"},
        )
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "fresh@example.com"

    @pytest.mark.asyncio
    async def test_change_email_without_request(self, test_client, create_user):
        _, headers = await create_user("nocode@example.com")
        response = await test_client.post(
            "/v1/user/change-email",
            headers=headers,
            json={"resetToken": "", "newEmail": "x@example.com"},
        )
        assert response.status_code == 401
