from sqlalchemy import select, func

from journal_api.entries.models import JournalEntry
from journal_api.users import service as user_service
from journal_api.users.models import User
from tests.conftest import auth_headers


async def test_store_user_creates_free_account(client):
    response = await client.post(
        "/api/users/store", json={"email": "alice@example.com"}, headers=auth_headers("alice")
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == "alice"
    assert body["email"] == "alice@example.com"
    assert body["subscription_status"] == "free"


async def test_store_user_is_idempotent(client, session_factory):
    for _ in range(2):
        await client.post("/api/users/store", json={"email": "alice@example.com"}, headers=auth_headers("alice"))

    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 1


async def test_me_for_unknown_user_is_404(client):
    response = await client.get("/api/users/me", headers=auth_headers("ghost"))
    assert response.status_code == 404


async def test_delete_account(client, session_factory, monkeypatch):
    deleted = []

    async def fake_delete_auth_user(user_id, client=None):
        deleted.append(user_id)
        return True

    monkeypatch.setattr(user_service, "delete_auth_user", fake_delete_auth_user)

    headers = auth_headers("alice")
    await client.post("/api/users/store", json={}, headers=headers)
    await client.post("/api/entries", json={"content": "secret"}, headers=headers)

    response = await client.delete("/api/users/delete-account", headers=headers)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert deleted == ["alice"]

    async with session_factory() as session:
        user = await session.get(User, "alice")
        entries = await session.scalar(select(func.count(JournalEntry.id)))
    assert user.is_deleted is True
    assert entries == 0
    assert (await client.get("/api/users/me", headers=headers)).status_code == 404


async def test_delete_account_survives_auth_provider_failure(client, monkeypatch):
    async def failing_delete(user_id, client=None):
        raise RuntimeError("Clerk deletion failed")

    monkeypatch.setattr(user_service, "delete_auth_user", failing_delete)

    headers = auth_headers("alice")
    await client.post("/api/users/store", json={}, headers=headers)

    response = await client.delete("/api/users/delete-account", headers=headers)
    assert response.status_code == 200


async def test_store_reactivates_deleted_user(client, monkeypatch):
    async def fake_delete_auth_user(user_id, client=None):
        return True

    monkeypatch.setattr(user_service, "delete_auth_user", fake_delete_auth_user)

    headers = auth_headers("alice")
    await client.post("/api/users/store", json={}, headers=headers)
    await client.delete("/api/users/delete-account", headers=headers)

    response = await client.post("/api/users/store", json={}, headers=headers)
    assert response.status_code == 200
    assert (await client.get("/api/users/me", headers=headers)).status_code == 200


async def test_create_user_if_missing_returns_existing_row(db, make_user, session_factory):
    await make_user("alice", email="alice@example.com")

    user = await user_service.create_user_if_missing(db, "alice", "other@example.com")

    assert user.user_id == "alice"
    assert user.email == "alice@example.com"
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 1


async def test_ensure_user_creates_missing_row(db):
    user = await user_service.ensure_user(db, "newcomer")

    assert user.user_id == "newcomer"
    assert user.subscription_status.value == "free"
    assert not user.is_deleted
