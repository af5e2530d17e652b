"""Tests for bearer JWT auth."""

import pytest
from fastapi import HTTPException
from httpx import AsyncClient
from jose import jwt

from mountgate.api.deps import get_current_user
from mountgate.config import settings


def make_token(username: str, uid: int | None = None, secret: str = settings.secret_key) -> str:
    """Create a JWT token for testing."""
    claims: dict = {"sub": username}
    if uid is not None:
        claims["uid"] = uid
    return jwt.encode(claims, secret, algorithm=settings.token_algorithm)


@pytest.mark.asyncio
async def test_valid_token():
    user = await get_current_user(make_token("alice", uid=7))
    assert user.username == "alice"
    assert user.id == 7


@pytest.mark.asyncio
async def test_token_without_uid():
    user = await get_current_user(make_token("bob", uid=None))
    assert user.username == "bob"
    assert user.id is None


@pytest.mark.asyncio
async def test_missing_token():
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(None)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_wrong_secret():
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(make_token("mallory", secret="wrong-secret-key"))
    assert exc_info.value.status_code == 401
    assert "Invalid or expired" in exc_info.value.detail


@pytest.mark.asyncio
async def test_file_routes_require_auth(client: AsyncClient, mount):
    resp = await client.get(f"/api/machines/files/{mount.id}/read-dir")
    assert resp.status_code == 401
