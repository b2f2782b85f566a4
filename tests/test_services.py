from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

SERVICE = {"name": "Wedding Stage", "description": "Full stage setup", "category": "wedding", "price": 1200}


def test_list_services_is_public(client, db):
    db.services.insert_many([{"name": "A", "price": 1}, {"name": "B", "price": 2}])
    resp = client.get("/services")
    assert resp.status_code == 200
    assert sorted(s["name"] for s in resp.json()) == ["A", "B"]


def test_get_service_by_id(client, db):
    sid = db.services.insert_one(dict(SERVICE)).inserted_id
    resp = client.get(f"/services/{sid}")
    assert resp.status_code == 200
    assert resp.json()["_id"] == str(sid)
    assert resp.json()["name"] == "Wedding Stage"


def test_missing_service_is_empty(client):
    resp = client.get(f"/services/{ObjectId()}")
    assert resp.status_code == 200
    assert resp.json() is None


def test_malformed_id_is_handled(client):
    resp = client.get("/services/not-an-id")
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid id"}


def test_admin_creates_service(client, db, admin_headers):
    resp = client.post("/admin/services", json=SERVICE, headers=admin_headers)
    assert resp.status_code == 200
    inserted = ObjectId(resp.json()["insertedId"])
    stored = db.services.find_one({"_id": inserted})
    assert stored["name"] == "Wedding Stage"
    assert stored["price"] == 1200


def test_create_service_requires_token(client):
    assert client.post("/admin/services", json=SERVICE).status_code == 401


def test_create_service_requires_admin_role(client, user_headers, decorator_headers):
    assert client.post("/admin/services", json=SERVICE, headers=user_headers).status_code == 403
    assert client.post("/admin/services", json=SERVICE, headers=decorator_headers).status_code == 403


def test_any_token_manages_services_by_default(monkeypatch, db, gateway, make_headers):
    monkeypatch.delenv("ENFORCE_ROLES", raising=False)
    app = create_app(Settings(access_token_secret="test-secret"), database=db, gateway=gateway)
    headers = make_headers("nobody@x.com")
    bid = db.bookings.insert_one({"userEmail": "a@x.com", "status": "Assigned"}).inserted_id
    with TestClient(app) as c:
        created = c.post("/admin/services", json=SERVICE, headers=headers)
        assert created.status_code == 200
        sid = created.json()["insertedId"]
        updated = c.put(f"/admin/services/{sid}", json={"price": 900}, headers=headers)
        assert updated.json()["modifiedCount"] == 1
        patched = c.patch(f"/decorator/status/{bid}", json={"status": "Completed"}, headers=headers)
        assert patched.json()["modifiedCount"] == 1
        deleted = c.delete(f"/admin/services/{sid}", headers=headers)
        assert deleted.json()["deletedCount"] == 1
    assert db.bookings.find_one({"_id": bid})["status"] == "Completed"


def test_create_service_validates_body(client, admin_headers):
    resp = client.post("/admin/services", json={"name": "X", "price": "cheap"}, headers=admin_headers)
    assert resp.status_code == 422
    resp = client.post("/admin/services", json={**SERVICE, "owner": "me"}, headers=admin_headers)
    assert resp.status_code == 422


def test_update_merges_supplied_fields(client, db, admin_headers):
    sid = db.services.insert_one(dict(SERVICE)).inserted_id
    resp = client.put(f"/admin/services/{sid}", json={"price": 1500}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["matchedCount"] == 1
    assert resp.json()["modifiedCount"] == 1
    stored = db.services.find_one({"_id": sid})
    assert stored["price"] == 1500
    assert stored["name"] == "Wedding Stage"
    assert stored["category"] == "wedding"


def test_update_with_no_fields(client, db, admin_headers):
    sid = db.services.insert_one(dict(SERVICE)).inserted_id
    resp = client.put(f"/admin/services/{sid}", json={}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "No fields to update"}


def test_update_unknown_service_matches_nothing(client, admin_headers):
    resp = client.put(f"/admin/services/{ObjectId()}", json={"price": 10}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["matchedCount"] == 0


def test_delete_service(client, db, admin_headers):
    sid = db.services.insert_one(dict(SERVICE)).inserted_id
    resp = client.delete(f"/admin/services/{sid}", headers=admin_headers)
    assert resp.json() == {"acknowledged": True, "deletedCount": 1}
    assert db.services.count_documents({}) == 0


def test_delete_malformed_id(client, admin_headers):
    resp = client.delete("/admin/services/123", headers=admin_headers)
    assert resp.status_code == 400
