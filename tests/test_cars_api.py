"""Car management and audit trail endpoint tests."""

from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.db import session as db_session
from app.db.base import AuditBase, Base
from app.main import app
from app.models import Car

VIN = "1HGCM82633A004352"


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _setup_db(tmp_path: Path, monkeypatch, audit_file: Path | None = None) -> sessionmaker:
    engine = _build_test_engine(tmp_path / "cars.db")
    audit_engine = _build_test_engine(audit_file or tmp_path / "audit.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    if audit_file is None:
        AuditBase.metadata.create_all(bind=audit_engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(db_session, "audit_engine", audit_engine)
    monkeypatch.setattr(
        db_session, "AuditSessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=audit_engine)
    )
    return testing_session_local


def _admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post(
        "/api/v1/auth/login",
        json={"email": settings.seed_admin_email, "password": settings.seed_admin_password},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _user_session(client: TestClient, email: str = "driver@example.com") -> tuple[int, dict[str, str]]:
    response = client.post("/api/v1/auth/register", json={"email": email, "password": "secret123"})
    assert response.status_code == 200
    body = response.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


def _create_car(client: TestClient, headers: dict[str, str], vin: str = VIN, **extra) -> dict:
    payload = {"make": "Toyota", "model": "Corolla", "year": 2020, "vin": vin}
    payload.update(extra)
    response = client.post("/api/v1/cars", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


def test_car_lifecycle_builds_audit_trail(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _admin_headers(client)
        car = _create_car(client, headers)
        updated = client.put(
            f"/api/v1/cars/{car['id']}",
            json={"make": "Honda"},
            headers={**headers, "X-Request-ID": "req-update-1"},
        )
        deleted = client.delete(f"/api/v1/cars/{car['id']}", headers=headers)
        trail = client.get(f"/api/v1/audit/cars/{car['id']}", headers=headers)

    assert updated.status_code == 200
    assert updated.json()["make"] == "Honda"
    assert updated.headers["X-Request-ID"] == "req-update-1"
    assert deleted.status_code == 204
    assert trail.status_code == 200

    records = trail.json()
    assert [record["action"] for record in records] == ["Delete", "Update", "Create"]
    delete_record, update_record, create_record = records

    assert create_record["before"] is None
    assert create_record["after"]["vin"] == VIN
    assert update_record["correlation_id"] == "req-update-1"
    assert update_record["changes"] == [{"field": "make", "old_value": "Toyota", "new_value": "Honda"}]
    assert update_record["before"]["make"] == "Toyota"
    assert update_record["after"]["make"] == "Honda"
    assert delete_record["after"] is None
    assert delete_record["before"]["make"] == "Honda"
    assert {record["user_id"] for record in records} == {str(create_record["after"]["created_by"])}


def test_soft_deleted_car_disappears_from_reads(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _admin_headers(client)
        kept = _create_car(client, headers)
        removed = _create_car(client, headers, vin="JH4KA8260MC012345", make="Acura")
        client.delete(f"/api/v1/cars/{removed['id']}", headers=headers)

        listing = client.get("/api/v1/cars", headers=headers)
        detail = client.get(f"/api/v1/cars/{removed['id']}", headers=headers)
        update = client.put(f"/api/v1/cars/{removed['id']}", json={"year": 2001}, headers=headers)
        second_delete = client.delete(f"/api/v1/cars/{removed['id']}", headers=headers)

    assert [car["id"] for car in listing.json()] == [kept["id"]]
    assert detail.status_code == 404
    assert update.status_code == 404
    assert second_delete.status_code == 404

    with session_local() as db:
        row = db.scalar(select(Car).where(Car.id == removed["id"]))
        assert row is not None
        assert row.is_deleted is True
        assert row.deleted_by is not None


def test_duplicate_vin_is_rejected(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _admin_headers(client)
        _create_car(client, headers)
        response = client.post(
            "/api/v1/cars",
            json={"make": "Toyota", "model": "Yaris", "year": 2021, "vin": VIN.lower()},
            headers=headers,
        )

    assert response.status_code == 409


def test_car_management_requires_permission(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _, user_headers = _user_session(client)
        create = client.post(
            "/api/v1/cars",
            json={"make": "Toyota", "model": "Corolla", "year": 2020, "vin": VIN},
            headers=user_headers,
        )
        trail = client.get("/api/v1/audit/cars/1", headers=user_headers)
        listing = client.get("/api/v1/cars", headers=user_headers)
        anonymous = client.get("/api/v1/cars")

    assert create.status_code == 403
    assert trail.status_code == 403
    assert listing.status_code == 200
    assert anonymous.status_code == 401


def test_owner_assignment_flow(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _admin_headers(client)
        driver_id, driver_headers = _user_session(client)
        car = _create_car(client, headers)

        assigned = client.post(
            f"/api/v1/cars/{car['id']}/owners/{driver_id}",
            json={"ownership_type": "Lessee"},
            headers=headers,
        )
        duplicate = client.post(f"/api/v1/cars/{car['id']}/owners/{driver_id}", json={}, headers=headers)
        missing_user = client.post(f"/api/v1/cars/{car['id']}/owners/9999", json={}, headers=headers)
        my_cars = client.get("/api/v1/cars/my-cars", headers=driver_headers)
        by_owner = client.get(f"/api/v1/cars/by-owner/{driver_id}", headers=headers)
        detail = client.get(f"/api/v1/cars/{car['id']}", headers=headers)

        unassigned = client.delete(f"/api/v1/cars/{car['id']}/owners/{driver_id}", headers=headers)
        unassigned_again = client.delete(f"/api/v1/cars/{car['id']}/owners/{driver_id}", headers=headers)
        my_cars_after = client.get("/api/v1/cars/my-cars", headers=driver_headers)

    assert assigned.status_code == 200
    assert duplicate.status_code == 400
    assert missing_user.status_code == 404
    assert [row["id"] for row in my_cars.json()] == [car["id"]]
    assert [row["id"] for row in by_owner.json()] == [car["id"]]
    assert detail.json()["owners"][0]["owner_id"] == driver_id
    assert detail.json()["owners"][0]["ownership_type"] == "Lessee"
    assert unassigned.status_code == 200
    assert unassigned_again.status_code == 404
    assert my_cars_after.json() == []


def test_car_writes_succeed_when_audit_store_is_down(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch, audit_file=tmp_path / "missing" / "audit.db")

    with TestClient(app) as client:
        headers = _admin_headers(client)
        car = _create_car(client, headers)
        health = client.get("/health")

    with session_local() as db:
        assert db.get(Car, car["id"]) is not None
    assert health.status_code == 200
    assert health.json()["status"] == "Degraded"
    assert health.json()["checks"]["database"]["status"] == "Healthy"


def test_audit_store_recovers_once_its_database_appears(tmp_path: Path, monkeypatch) -> None:
    audit_dir = tmp_path / "late"
    _setup_db(tmp_path, monkeypatch, audit_file=audit_dir / "audit.db")

    with TestClient(app) as client:
        headers = _admin_headers(client)
        _create_car(client, headers)
        health_down = client.get("/health")

        audit_dir.mkdir()
        car = _create_car(client, headers, vin="JH4KA8260MC012345")
        trail = client.get(f"/api/v1/audit/cars/{car['id']}", headers=headers)
        health_up = client.get("/health")

    assert health_down.json()["checks"]["audit_store"]["status"] == "Unhealthy"
    assert trail.status_code == 200
    assert [record["action"] for record in trail.json()] == ["Create"]
    assert health_up.json()["status"] == "Healthy"
    assert health_up.json()["checks"]["audit_store"]["status"] == "Healthy"
