from fastapi.testclient import TestClient
import pytest

from main import app
import api.dependencies as dependencies
from services.models import UserRole


client = TestClient(app)

ITEM = {"id": "item-1", "visibleToClient": True, "project": {"client": {"email": "owner@acme.test"}}}


def _fake_fetch(user):
    async def _fetch(access_token: str):
        assert access_token == "good-token"
        return user

    return _fetch


def test_missing_header_returns_401():
    response = client.post("/api/action-items/access", json={"item": ITEM})
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "unauthorized"


def test_non_bearer_header_returns_401():
    response = client.post(
        "/api/action-items/access",
        json={"item": ITEM},
        headers={"Authorization": "Basic abc"},
    )
    assert response.status_code == 401


def test_role_from_app_metadata(monkeypatch):
    monkeypatch.setattr(
        dependencies,
        "_fetch_user",
        _fake_fetch({"id": "user-1", "email": "pm@agency.test", "app_metadata": {"role": "manager"}}),
    )
    response = client.post(
        "/api/action-items/access",
        json={"item": ITEM},
        headers={"Authorization": "Bearer good-token"},
    )
    assert response.status_code == 200
    assert response.json()["can_staff_mutate"] is True


def test_user_without_role_is_client(monkeypatch):
    monkeypatch.setattr(
        dependencies,
        "_fetch_user",
        _fake_fetch({"id": "user-2", "email": "Owner@Acme.test"}),
    )
    response = client.post(
        "/api/action-items/access",
        json={"item": ITEM},
        headers={"Authorization": "Bearer good-token"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["can_view"] is True
    assert data["can_staff_mutate"] is False


def test_unknown_role_is_forbidden(monkeypatch):
    monkeypatch.setattr(
        dependencies,
        "_fetch_user",
        _fake_fetch({"id": "user-3", "user_metadata": {"role": "superuser"}}),
    )
    response = client.post(
        "/api/action-items/access",
        json={"item": ITEM},
        headers={"Authorization": "Bearer good-token"},
    )
    assert response.status_code == 403


@pytest.mark.parametrize(
    "user,expected",
    [
        ({"id": "a", "app_metadata": {"role": "ADMIN"}}, UserRole.ADMIN),
        ({"id": "b", "user_metadata": {"role": "Manager"}}, UserRole.MANAGER),
        ({"id": "c", "app_metadata": {}, "user_metadata": {}}, UserRole.CLIENT),
    ],
)
def test_resolve_role(user, expected):
    assert dependencies.resolve_role(user) == expected


def test_auth_context_to_actor():
    ctx = dependencies.AuthContext(user_id="u", access_token="t", role=UserRole.MANAGER, email="m@x.test")
    actor = ctx.to_actor()
    assert actor.id == "u"
    assert actor.role == UserRole.MANAGER
    assert actor.email == "m@x.test"
