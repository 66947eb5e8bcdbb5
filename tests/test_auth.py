"""Authentication endpoint tests."""

from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.db import session as db_session
from app.db.base import AuditBase, Base
from app.main import app
from app.models import RefreshToken, User


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _setup_db(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = _build_test_engine(tmp_path / "auth.db")
    audit_engine = _build_test_engine(tmp_path / "audit.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    AuditBase.metadata.create_all(bind=audit_engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(db_session, "audit_engine", audit_engine)
    monkeypatch.setattr(
        db_session, "AuditSessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=audit_engine)
    )
    return testing_session_local


def _register(client: TestClient, email: str = "user@example.com", password: str = "secret123") -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "first_name": "Ada", "last_name": "Lovelace"},
    )
    assert response.status_code == 200
    return response.json()


def _login(client: TestClient, email: str, password: str) -> dict:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()


def _auth(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def test_register_returns_token_pair_and_default_role(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        body = _register(client, email="New.User@Example.com")

    assert body["token_type"] == "bearer"
    assert isinstance(body["access_token"], str)
    assert isinstance(body["refresh_token"], str)
    assert body["user"]["email"] == "new.user@example.com"
    assert body["user"]["full_name"] == "Ada Lovelace"
    assert body["user"]["roles"] == ["User"]
    assert body["user"]["claims"] == []

    with session_local() as db:
        user = db.scalar(select(User).where(User.email == "new.user@example.com"))
        assert user is not None
        assert user.password_hash != "secret123"
        tokens = db.scalars(select(RefreshToken).where(RefreshToken.user_id == user.id)).all()
        assert [token.token for token in tokens] == [body["refresh_token"]]


def test_register_rejects_duplicate_email(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _register(client)
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "user@example.com", "password": "another1"},
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "User with this email already exists"


def test_login_rejects_wrong_password(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _register(client)
        response = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_seeded_super_admin_can_login(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        body = _login(client, settings.seed_admin_email, settings.seed_admin_password)
        me = client.get("/api/v1/auth/me", headers=_auth(body["access_token"]))

    assert me.status_code == 200
    assert me.json()["roles"] == ["Admin", "SuperAdmin"]
    assert "CanViewAuditLogs" in me.json()["claims"]
    assert "CanManageSystem" in me.json()["claims"]


def test_me_requires_valid_bearer_token(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        body = _register(client)
        missing = client.get("/api/v1/auth/me")
        tampered = client.get("/api/v1/auth/me", headers=_auth(body["access_token"] + "x"))
        valid = client.get("/api/v1/auth/me", headers=_auth(body["access_token"]))

    assert missing.status_code == 401
    assert missing.headers["WWW-Authenticate"] == "Bearer"
    assert tampered.status_code == 401
    assert valid.status_code == 200
    assert valid.json()["email"] == "user@example.com"


def test_refresh_rotates_and_rejects_reuse(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        t0 = _register(client)["refresh_token"]
        first = client.post("/api/v1/auth/refresh", json={"refresh_token": t0})
        assert first.status_code == 200
        t1 = first.json()["refresh_token"]

        reuse = client.post("/api/v1/auth/refresh", json={"refresh_token": t0})
        second = client.post("/api/v1/auth/refresh", json={"refresh_token": t1})
        unknown = client.post("/api/v1/auth/refresh", json={"refresh_token": "not-a-token"})

    assert t1 != t0
    assert reuse.status_code == 401
    assert reuse.json()["detail"] == "Invalid refresh token"
    assert second.status_code == 200
    assert second.json()["refresh_token"] not in {t0, t1}
    assert unknown.status_code == 401


def test_logout_revokes_refresh_token(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        body = _register(client)
        logout = client.post(
            "/api/v1/auth/logout",
            json={"refresh_token": body["refresh_token"]},
            headers=_auth(body["access_token"]),
        )
        again = client.post(
            "/api/v1/auth/logout",
            json={"refresh_token": body["refresh_token"]},
            headers=_auth(body["access_token"]),
        )
        refresh = client.post("/api/v1/auth/refresh", json={"refresh_token": body["refresh_token"]})

    assert logout.status_code == 200
    assert again.status_code == 200
    assert refresh.status_code == 401


def test_change_password_ends_every_session(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        first = _register(client)
        second = _login(client, "user@example.com", "secret123")

        wrong = client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "nope", "new_password": "changed1"},
            headers=_auth(first["access_token"]),
        )
        changed = client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "secret123", "new_password": "changed1"},
            headers=_auth(first["access_token"]),
        )
        stale = [
            client.post("/api/v1/auth/refresh", json={"refresh_token": pair["refresh_token"]})
            for pair in (first, second)
        ]
        old_login = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "secret123"})
        new_login = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "changed1"})

    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"
    assert changed.status_code == 200
    assert [response.status_code for response in stale] == [401, 401]
    assert old_login.status_code == 401
    assert new_login.status_code == 200


def test_update_profile_changes_full_name(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        body = _register(client)
        response = client.put(
            "/api/v1/auth/profile",
            json={"first_name": "Grace", "last_name": "Hopper"},
            headers=_auth(body["access_token"]),
        )
        me = client.get("/api/v1/auth/me", headers=_auth(body["access_token"]))

    assert response.status_code == 200
    assert me.json()["full_name"] == "Grace Hopper"


def test_deactivated_user_loses_sessions_and_login(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        admin = _login(client, settings.seed_admin_email, settings.seed_admin_password)
        user = _register(client)
        user_id = user["user"]["id"]

        forbidden = client.post(
            f"/api/v1/users/{user_id}/active",
            json={"is_active": False},
            headers=_auth(user["access_token"]),
        )
        deactivated = client.post(
            f"/api/v1/users/{user_id}/active",
            json={"is_active": False},
            headers=_auth(admin["access_token"]),
        )
        refresh = client.post("/api/v1/auth/refresh", json={"refresh_token": user["refresh_token"]})
        login = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "secret123"})

    assert forbidden.status_code == 403
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False
    assert refresh.status_code == 401
    assert login.status_code == 401


def test_role_assignment_is_reflected_in_new_tokens(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        admin = _login(client, settings.seed_admin_email, settings.seed_admin_password)
        user = _register(client)
        user_id = user["user"]["id"]

        unknown = client.post(
            f"/api/v1/users/{user_id}/roles",
            json={"roles": ["Pilot"]},
            headers=_auth(admin["access_token"]),
        )
        assigned = client.post(
            f"/api/v1/users/{user_id}/roles",
            json={"roles": ["Admin"]},
            headers=_auth(admin["access_token"]),
        )
        refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": user["refresh_token"]})
        listing = client.get("/api/v1/users", headers=_auth(refreshed.json()["access_token"]))

    assert unknown.status_code == 400
    assert assigned.status_code == 200
    assert assigned.json()["role_names"] == ["Admin"]
    assert refreshed.json()["user"]["roles"] == ["Admin"]
    assert refreshed.json()["user"]["claims"] == ["CanManageCars", "CanManageUsers"]
    assert listing.status_code == 200
    assert {row["email"] for row in listing.json()} == {settings.seed_admin_email, "user@example.com"}
