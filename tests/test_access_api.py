"""HTTP surface for access state, active selection and logout."""

from app.core.dependencies import get_preference_store
from app.database.supabase_client import get_admin_supabase
from app.main import app
from app.modules.access.preferences import ACTIVE_LOCATION_KEY, MemoryPreferenceStore

from .conftest import bearer


def test_me_returns_profile_lists_and_initial_selection(client):
    response = client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["role"] == "employee"
    assert [loc["id"] for loc in data["locations"]] == ["loc-42"]
    assert [b["id"] for b in data["brands"]] == ["b-1", "b-3"]
    assert data["active_location_id"] == "loc-42"
    assert data["active_brand_id"] == "b-1"


def test_set_active_location_member(client, prefs):
    response = client.put(
        "/api/v1/access/active-location",
        json={"location_id": "loc-7"},
        headers=bearer("tok-admin"),
    )
    assert response.status_code == 200
    assert response.json()["changed"] is True
    assert response.json()["active_location_id"] == "loc-7"
    assert prefs.get(f"u-admin:{ACTIVE_LOCATION_KEY}") == "loc-7"

    again = client.get("/api/v1/access/me", headers=bearer("tok-admin"))
    assert again.json()["active_location_id"] == "loc-7"


def test_set_active_location_outside_grants_keeps_previous(client):
    response = client.put(
        "/api/v1/access/active-location",
        json={"location_id": "loc-1"},
        headers=bearer("tok-u1"),
    )
    assert response.status_code == 200
    assert response.json() == {
        "changed": False,
        "active_location_id": "loc-42",
        "active_brand_id": "b-1",
    }


def test_set_active_brand(client):
    response = client.put(
        "/api/v1/access/active-brand",
        json={"brand_id": "b-3"},
        headers=bearer("tok-u1"),
    )
    assert response.json()["changed"] is True
    assert response.json()["active_brand_id"] == "b-3"


def test_selections_are_kept_per_user(client):
    client.put(
        "/api/v1/access/active-location",
        json={"location_id": "loc-7"},
        headers=bearer("tok-admin"),
    )
    response = client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    assert response.json()["active_location_id"] == "loc-42"


def test_logout_clears_persisted_selection(client, prefs):
    client.put(
        "/api/v1/access/active-location",
        json={"location_id": "loc-7"},
        headers=bearer("tok-admin"),
    )
    response = client.post("/api/v1/auth/logout", headers=bearer("tok-admin"))
    assert response.status_code == 200
    assert prefs.get(f"u-admin:{ACTIVE_LOCATION_KEY}") is None


def test_clear_active_selection(client, prefs):
    client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    assert prefs.get(f"u1:{ACTIVE_LOCATION_KEY}") == "loc-42"
    response = client.delete("/api/v1/access/active", headers=bearer("tok-u1"))
    assert response.status_code == 204
    assert prefs.get(f"u1:{ACTIVE_LOCATION_KEY}") is None


def test_intro_flag_round_trip(client):
    assert client.get("/api/v1/access/intro", headers=bearer("tok-u1")).json() == {"has_seen_intro": False}
    client.put("/api/v1/access/intro", json={"has_seen_intro": True}, headers=bearer("tok-u1"))
    assert client.get("/api/v1/access/intro", headers=bearer("tok-u1")).json() == {"has_seen_intro": True}


def test_me_without_profile_is_unauthorized(client):
    response = client.get("/api/v1/access/me", headers=bearer("tok-ghost"))
    assert response.status_code == 401


def test_auth_me_reports_home_path(client):
    response = client.get("/api/v1/auth/me", headers=bearer("tok-partner"))
    assert response.status_code == 200
    assert response.json()["home"] == "/partner"
    assert response.json()["profile"]["brand_id"] == "b-2"


def test_login_returns_access_token(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "line@caspergroup.com", "password": "pw"},
    )
    assert response.status_code == 200
    assert response.json()["access_token"] == "tok-u1"
    assert response.json()["user_id"] == "u1"


def test_login_with_bad_password(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "line@caspergroup.com", "password": "wrong"},
    )
    assert response.status_code == 401


def test_logins_never_sign_in_the_shared_client(client, db, sign_in_clients):
    for email in ("line@caspergroup.com", "ops@caspergroup.com"):
        response = client.post("/api/v1/auth/login", json={"email": email, "password": "pw"})
        assert response.status_code == 200

    assert len(sign_in_clients) == 2
    assert db.auth.session is None

    line = client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    assert line.status_code == 200
    assert line.json()["profile"]["id"] == "u1"
    assert [b["id"] for b in line.json()["brands"]] == ["b-1", "b-3"]

    admin = client.get("/api/v1/access/me", headers=bearer("tok-admin"))
    assert admin.json()["profile"]["role"] == "admin"


def test_logout_revokes_only_the_callers_session(client, db):
    response = client.post("/api/v1/auth/logout", headers=bearer("tok-u1"))
    assert response.status_code == 200
    assert db.auth.admin.revoked == ["tok-u1"]
    assert db.auth.sign_out_calls == 0
    assert client.get("/api/v1/access/me", headers=bearer("tok-admin")).status_code == 200


def test_logout_without_service_role_still_forgets_selection(client, db, prefs):
    client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    app.dependency_overrides[get_admin_supabase] = lambda: None

    response = client.post("/api/v1/auth/logout", headers=bearer("tok-u1"))

    assert response.status_code == 200
    assert prefs.get(f"u1:{ACTIVE_LOCATION_KEY}") is None
    assert db.auth.admin.revoked == []


class CountingStore(MemoryPreferenceStore):
    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)

    def delete(self, key):
        self.writes += 1
        super().delete(key)


def test_repeat_reads_do_not_rewrite_preferences(client):
    store = CountingStore()
    app.dependency_overrides[get_preference_store] = lambda: store

    client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    after_first = store.writes
    client.get("/api/v1/access/me", headers=bearer("tok-u1"))
    client.get("/api/v1/portals/employee", headers=bearer("tok-u1"))

    assert after_first == 2
    assert store.writes == after_first
