import uuid

from app.core.security import create_access_token
from app.models.enums import Role
from helpers import auth_headers


async def test_health(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


async def test_missing_token(client):
    response = await client.get("/api/v1/credits/")
    assert response.status_code == 401
    assert response.json() == {"message": "Not authenticated", "code": "unauthorized"}


async def test_garbage_token(client):
    response = await client.get("/api/v1/credits/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_token_without_role(client, factory):
    user = await factory.user()
    token = create_access_token({"sub": str(user.id)})
    response = await client.get("/api/v1/credits/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_unknown_accounts(client):
    for role in (Role.user, Role.admin, Role.provider):
        response = await client.get("/api/v1/credits/", headers=auth_headers(uuid.uuid4(), role))
        assert response.status_code == 401


async def test_non_uuid_subject(client):
    response = await client.get("/api/v1/credits/", headers=auth_headers("alice"))
    assert response.status_code == 401


async def test_provider_token_must_match_a_provider(client, factory):
    user = await factory.user()
    response = await client.get("/api/v1/credits/", headers=auth_headers(user.id, Role.provider))
    assert response.status_code == 401


async def test_admin_claim_requires_admin_account(client, factory):
    user = await factory.user()
    response = await client.get("/api/v1/rentals/all", headers=auth_headers(user.id, Role.admin))
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


async def test_admin_account(client, factory):
    admin = await factory.admin()
    response = await client.get("/api/v1/rentals/all", headers=auth_headers(admin.id, Role.admin))
    assert response.status_code == 200
    assert response.json() == {"items": [], "total": 0}
