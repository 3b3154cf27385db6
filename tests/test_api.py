# tests/test_api.py
"""End-to-end API scenarios over an in-memory SQLite database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.websockets import WebSocketDisconnect

from wastetrack.database import create_tables, get_db
from wastetrack.main import app
from wastetrack.models.audit_log import AuditLog
from wastetrack.models.center import RecyclingCenter
from wastetrack.models.container import Container
from wastetrack.models.container_type import ContainerType
from wastetrack.models.status_event import StatusEvent
from wastetrack.models.user import User
from wastetrack.services.auth_service import create_access_token, hash_password
from wastetrack.services.container_service import HistoryFilter, get_status_history
from wastetrack.services.throttle_service import ThrottleStore, get_throttle_store

API = "/api/v1"


class FakeRedis:
    """Just enough of the redis client for the throttle store."""

    def __init__(self):
        self.keys = {}

    def exists(self, key):
        return int(key in self.keys)

    def ttl(self, key):
        return self.keys.get(key, -2)

    def set(self, key, value, ex=None):
        self.keys[key] = ex or -1

    def ping(self):
        return True


class BrokenRedis:
    """Every call fails the way an unreachable Redis does."""

    def _down(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    exists = ttl = set = ping = _down


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_tables(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    store = ThrottleStore(FakeRedis(), ttl_seconds=60)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_throttle_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def add_user(db, email, role, center_ids=None):
    now = datetime.utcnow()
    user = User(email=email, password_hash=hash_password("password123"), role=role,
                center_ids=center_ids or [], created_at=now, updated_at=now)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def world(db):
    now = datetime.utcnow()
    center = RecyclingCenter(name="Centrale", address="1 rue du Tri", lat=48.85, lng=2.35,
                             public_visibility=True, opening_hours=[], active=True,
                             created_at=now, updated_at=now)
    other = RecyclingCenter(name="Nord", address="2 rue du Tri", lat=48.9, lng=2.3,
                            public_visibility=False, opening_hours=[], active=True,
                            created_at=now, updated_at=now)
    glass = ContainerType(label="Verre", icon="🍾", color="#2E7D32", created_at=now)
    db.add_all([center, other, glass])
    db.commit()
    containers = [Container(center_id=center.id, type_id=glass.id, label=f"Verre #{n}", state="empty",
                            active=True, created_at=now, updated_at=now) for n in (1, 2)]
    db.add_all(containers)
    db.commit()
    return {
        "center": center.id,
        "other": other.id,
        "type": glass.id,
        "containers": [c.id for c in containers],
        "user": add_user(db, "user@example.org", "user"),
        "visitor": add_user(db, "visitor@example.org", "visitor"),
        "agent": add_user(db, "agent@example.org", "agent"),
        "manager": add_user(db, "manager@example.org", "manager", [center.id]),
        "admin": add_user(db, "admin@example.org", "superadmin"),
    }


class TestAuthApi:
    def test_register_login_me(self, client):
        resp = client.post(f"{API}/auth/register", json={"email": "new@example.org", "password": "password123"})
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "user"

        resp = client.post(f"{API}/auth/login", json={"email": "new@example.org", "password": "password123"})
        assert resp.status_code == 200
        tokens = resp.json()
        me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"})
        assert me.json()["email"] == "new@example.org"
        assert me.json()["lastLoginAt"] is not None

        refreshed = client.post(f"{API}/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert refreshed.status_code == 200
        assert refreshed.json()["accessToken"]

    def test_bad_credentials(self, client, world):
        resp = client.post(f"{API}/auth/login", json={"email": "user@example.org", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid email or password"}

    def test_missing_token(self, client):
        assert client.get(f"{API}/auth/me").status_code == 401

    def test_request_validation_is_400(self, client):
        resp = client.post(f"{API}/auth/register", json={"email": "bad", "password": "x"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation error"


class TestDeclarationApi:
    def test_declare_then_throttled(self, client, world, db):
        cid = world["containers"][0]
        headers = auth(world["user"])

        resp = client.post(f"{API}/containers/{cid}/status", json={"newState": "full"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["container"]["state"] == "full"

        again = client.post(f"{API}/containers/{cid}/status", json={"newState": "empty"}, headers=headers)
        assert again.status_code == 409
        assert again.json()["retryAfter"] == 60
        assert again.headers["Retry-After"] == "60"

        # a different actor is not throttled by someone else's key
        other = client.post(f"{API}/containers/{cid}/status", json={"newState": "empty"},
                            headers=auth(world["agent"]))
        assert other.status_code == 200

        assert db.query(StatusEvent).filter(StatusEvent.container_id == cid).count() == 2
        actions = [a.action for a in db.query(AuditLog).order_by(AuditLog.id).all()]
        assert actions == ["CONTAINER_SET_FULL", "CONTAINER_SET_EMPTY"]

    def test_visitor_forbidden(self, client, world):
        cid = world["containers"][0]
        resp = client.post(f"{API}/containers/{cid}/status", json={"newState": "full"},
                           headers=auth(world["visitor"]))
        assert resp.status_code == 403

    def test_invalid_state(self, client, world):
        cid = world["containers"][0]
        resp = client.post(f"{API}/containers/{cid}/status", json={"newState": "maintenance"},
                           headers=auth(world["user"]))
        assert resp.status_code == 400

    def test_unknown_container(self, client, world):
        resp = client.post(f"{API}/containers/9999/status", json={"newState": "full"},
                           headers=auth(world["user"]))
        assert resp.status_code == 404

    def test_maintenance_lock(self, client, world):
        cid = world["containers"][0]
        resp = client.post(f"{API}/containers/{cid}/maintenance", json={"maintenance": True},
                           headers=auth(world["manager"]))
        assert resp.json()["state"] == "maintenance"

        blocked = client.post(f"{API}/containers/{cid}/status", json={"newState": "full"},
                              headers=auth(world["user"]))
        assert blocked.status_code == 422

        resp = client.post(f"{API}/containers/{cid}/maintenance", json={"maintenance": False},
                           headers=auth(world["manager"]))
        assert resp.json()["state"] == "empty"

    def test_history_newest_first(self, client, world):
        cid = world["containers"][0]
        for user, state in ((world["user"], "full"), (world["agent"], "empty"), (world["manager"], "full")):
            client.post(f"{API}/containers/{cid}/status", json={"newState": state}, headers=auth(user))

        resp = client.get(f"{API}/containers/{cid}/events", params={"limit": 2}, headers=auth(world["user"]))
        body = resp.json()
        assert body["count"] == 2
        assert [e["newState"] for e in body["events"]] == ["full", "empty"]
        assert body["events"][0]["author"]["email"] == "manager@example.org"
        assert body["events"][0]["source"] == "manager"

        assert client.get(f"{API}/containers/{cid}/events", params={"limit": 0},
                          headers=auth(world["user"])).status_code == 400


    def test_history_accepts_mixed_timezone_bounds(self, client, world):
        cid = world["containers"][0]
        client.post(f"{API}/containers/{cid}/status", json={"newState": "full"}, headers=auth(world["user"]))

        resp = client.get(f"{API}/containers/{cid}/events",
                          params={"from": "2024-01-01T00:00:00Z", "to": "2030-01-02T00:00:00"},
                          headers=auth(world["user"]))
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

        resp = client.get(f"{API}/containers/{cid}/events",
                          params={"from": "2030-01-01T00:00:00+02:00", "to": "2024-01-01T00:00:00Z"},
                          headers=auth(world["user"]))
        assert resp.status_code == 400

    def test_history_reads_are_repeatable(self, client, world, db):
        cid = world["containers"][0]
        for user, state in ((world["user"], "full"), (world["agent"], "empty")):
            client.post(f"{API}/containers/{cid}/status", json={"newState": state}, headers=auth(user))

        first = [e.id for e in get_status_history(db, cid, HistoryFilter())]
        second = [e.id for e in get_status_history(db, cid, HistoryFilter())]
        assert first == second
        assert len(first) == 2


class TestThrottleOutage:
    def test_declaration_succeeds_when_redis_is_down(self, session_factory, world, db):
        def override_get_db():
            session = session_factory()
            try:
                yield session
            finally:
                session.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_throttle_store] = lambda: ThrottleStore(BrokenRedis(), ttl_seconds=60)
        cid = world["containers"][0]
        try:
            with TestClient(app) as client:
                resp = client.post(f"{API}/containers/{cid}/status", json={"newState": "full"},
                                   headers=auth(world["user"]))
                health = client.get(f"{API}/health").json()
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 200
        assert resp.json()["container"]["state"] == "full"
        assert db.query(StatusEvent).filter(StatusEvent.container_id == cid).count() == 1
        db.expire_all()
        assert db.query(Container).filter(Container.id == cid).first().state == "full"
        assert health["throttleStore"] == "unavailable"


class TestBulkApi:
    def test_bulk_maintenance_partial_failure(self, client, world):
        cid = world["containers"][0]
        resp = client.post(f"{API}/containers/bulk/maintenance",
                           json={"containerIds": [cid, 9999], "maintenance": True},
                           headers=auth(world["manager"]))
        assert resp.status_code == 200
        assert resp.json()["success"] == 1
        assert resp.json()["failed"] == 1

    def test_bulk_requires_management(self, client, world):
        resp = client.post(f"{API}/containers/bulk/delete", json={"containerIds": world["containers"]},
                           headers=auth(world["agent"]))
        assert resp.status_code == 403

    def test_bulk_delete_hides_containers(self, client, world):
        resp = client.post(f"{API}/containers/bulk/delete", json={"containerIds": world["containers"]},
                           headers=auth(world["admin"]))
        assert resp.json()["success"] == 2
        listing = client.get(f"{API}/containers/center/{world['center']}", headers=auth(world["user"]))
        assert listing.json()["count"] == 0

    def test_empty_id_list(self, client, world):
        resp = client.post(f"{API}/containers/bulk/delete", json={"containerIds": []},
                           headers=auth(world["admin"]))
        assert resp.status_code == 400


class TestContainerCrudApi:
    def test_create_update_list(self, client, world):
        headers = auth(world["manager"])
        resp = client.post(f"{API}/containers", headers=headers,
                           json={"centerId": world["center"], "typeId": world["type"], "label": "Verre #3"})
        assert resp.status_code == 201
        created = resp.json()
        assert created["state"] == "empty"
        assert created["type"]["label"] == "Verre"

        resp = client.put(f"{API}/containers/{created['id']}", headers=headers, json={"locationHint": "Quai B"})
        assert resp.json()["locationHint"] == "Quai B"

        page = client.get(f"{API}/containers", params={"search": "verre", "limit": 2}, headers=headers).json()
        assert page["total"] == 3
        assert page["pages"] == 2
        assert [c["label"] for c in page["containers"]] == ["Verre #1", "Verre #2"]

    def test_null_for_required_field_is_rejected(self, client, world):
        cid = world["containers"][0]
        headers = auth(world["manager"])
        assert client.put(f"{API}/containers/{cid}", headers=headers, json={"label": None}).status_code == 400
        assert client.put(f"{API}/containers/{cid}", headers=headers, json={"centerId": None}).status_code == 400
        # nullable metadata can still be cleared
        assert client.put(f"{API}/containers/{cid}", headers=headers, json={"locationHint": None}).status_code == 200

    def test_manager_listing_scoped_to_assigned_centers(self, client, world, db):
        now = datetime.utcnow()
        db.add(Container(center_id=world["other"], type_id=world["type"], label="Hors zone",
                         state="empty", active=True, created_at=now, updated_at=now))
        db.commit()
        manager_page = client.get(f"{API}/containers", headers=auth(world["manager"])).json()
        admin_page = client.get(f"{API}/containers", headers=auth(world["admin"])).json()
        assert manager_page["total"] == 2
        assert admin_page["total"] == 3

    def test_create_with_unknown_center(self, client, world):
        resp = client.post(f"{API}/containers", headers=auth(world["admin"]),
                           json={"centerId": 9999, "typeId": world["type"], "label": "X"})
        assert resp.status_code == 404

    def test_type_in_use_cannot_be_deleted(self, client, world):
        resp = client.delete(f"{API}/types/{world['type']}", headers=auth(world["admin"]))
        assert resp.status_code == 409

    def test_private_center_hidden_from_users(self, client, world):
        names = [c["name"] for c in client.get(f"{API}/centers", headers=auth(world["user"])).json()["centers"]]
        assert names == ["Centrale"]
        assert client.get(f"{API}/centers/{world['other']}", headers=auth(world["user"])).status_code == 403


class TestDashboardApi:
    def test_stats(self, client, world):
        cid = world["containers"][0]
        client.post(f"{API}/containers/{cid}/status", json={"newState": "full"}, headers=auth(world["user"]))

        stats = client.get(f"{API}/dashboard/centers/{world['center']}/stats", headers=auth(world["manager"])).json()
        assert stats["summary"]["totalContainers"] == 2
        assert stats["summary"]["fullContainers"] == 1
        assert stats["summary"]["fillRate"] == 50.0
        assert stats["activity"]["today"] == 1
        assert stats["byType"][0]["full"] == 1

    def test_alert_severity(self, client, world, db):
        now = datetime.utcnow()
        first, second = world["containers"]
        for cid, hours in ((first, 60), (second, 30)):
            db.query(Container).filter(Container.id == cid).update({"state": "full"})
            db.add(StatusEvent(container_id=cid, new_state="full", author_id=world["user"].id,
                               source="user", confidence=1.0, created_at=now - timedelta(hours=hours)))
        db.commit()

        body = client.get(f"{API}/dashboard/centers/{world['center']}/alerts",
                          headers=auth(world["admin"])).json()
        assert body["totalAlerts"] == 2
        assert [a["severity"] for a in body["alerts"]] == ["critical", "warning"]
        assert body["alerts"][0]["declaredBy"]["email"] == "user@example.org"

        fewer = client.get(f"{API}/dashboard/centers/{world['center']}/alerts",
                           params={"alertThresholdHours": 48}, headers=auth(world["admin"])).json()
        assert fewer["totalAlerts"] == 1

    def test_rotation_metrics(self, client, world, db):
        now = datetime.utcnow()
        cid = world["containers"][0]
        for hours_ago, state in ((10, "empty"), (6, "full"), (4, "full"), (1, "empty")):
            db.add(StatusEvent(container_id=cid, new_state=state, source="user", confidence=1.0,
                               created_at=now - timedelta(hours=hours_ago)))
        db.commit()

        body = client.get(f"{API}/dashboard/centers/{world['center']}/rotation-metrics",
                          headers=auth(world["manager"])).json()
        assert body["overall"]["fillTransitions"] == 1
        assert body["overall"]["emptyTransitions"] == 1
        assert body["overall"]["avgFillTimeHours"] == 4.0
        assert body["overall"]["avgEmptyTimeHours"] == 3.0
        assert body["byContainer"][0]["containerId"] == cid

    def test_manager_denied_on_unassigned_center(self, client, world):
        resp = client.get(f"{API}/dashboard/centers/{world['other']}/stats", headers=auth(world["manager"]))
        assert resp.status_code == 403

    def test_unknown_center(self, client, world):
        resp = client.get(f"{API}/dashboard/centers/9999/stats", headers=auth(world["admin"]))
        assert resp.status_code == 404


class TestRealtime:
    def test_declaration_is_pushed_to_center_room(self, client, world):
        cid = world["containers"][0]
        token = create_access_token(world["agent"])
        with client.websocket_connect(f"/ws?token={token}") as ws:
            ws.send_json({"event": "join:center", "centerId": world["center"]})
            assert ws.receive_json() == {"event": "join:center:ok", "room": f"center:{world['center']}"}

            ws.send_json({"event": "dance"})
            assert ws.receive_json()["event"] == "error"

            client.post(f"{API}/containers/{cid}/status", json={"newState": "full"}, headers=auth(world["user"]))
            message = ws.receive_json()

        assert message["event"] == "container.status.updated"
        assert message["data"]["containerId"] == cid
        assert message["data"]["centerId"] == world["center"]
        assert message["data"]["state"] == "full"

    def test_unauthenticated_socket_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/ws"):
                pass
        assert exc.value.code == 1008


def test_health(client):
    body = client.get(f"{API}/health").json()
    assert body["database"] == "ok"
    assert body["throttleStore"] == "ok"
