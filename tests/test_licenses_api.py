import re
import uuid
from datetime import datetime, timedelta, timezone

import pytest

import utils.license_keys as license_keys
from models import storage
from models.audit_log import AuditLog
from models.license import License

KEY_PATTERN = re.compile(r"^SQLBots(30|90)-[A-Z0-9]{4}-[A-Z0-9]{4}$")


def _license_count(app):
    with app.app_context():
        return storage.get_session().query(License).count()


def _list(client, headers):
    response = client.get("/api/licenses", headers=headers)
    assert response.status_code == 200
    return response.get_json()["licenses"]


@pytest.mark.parametrize("plan_type,days", [("30d", 30), ("90d", 90)])
def test_create_licenses(app, client, csrf_headers, plan_type, days):
    response = client.post("/api/licenses", json={"planType": plan_type, "count": 5}, headers=csrf_headers)

    assert response.status_code == 201
    data = response.get_json()
    assert data["success"] is True
    assert data["count"] == 5
    keys = [lic["licenseKey"] for lic in data["licenses"]]
    assert len(set(keys)) == 5
    assert all(KEY_PATTERN.match(key) for key in keys)
    assert all(lic["planType"] == plan_type for lic in data["licenses"])

    expires_at = datetime.fromisoformat(data["licenses"][0]["expiresAt"])
    expected = datetime.now(timezone.utc) + timedelta(days=days)
    assert abs(expires_at - expected) < timedelta(minutes=1)

    assert _license_count(app) == 5
    with app.app_context():
        entry = storage.get_session().query(AuditLog).filter(AuditLog.action == "license_create").one()
        assert entry.details == {"planType": plan_type, "count": 5}


@pytest.mark.parametrize(
    "body,message",
    [
        ({"planType": "30d", "count": 0}, "Count must be at least 1"),
        ({"planType": "30d", "count": 101}, "Count cannot exceed 100"),
        ({"planType": "365d", "count": 1}, 'Plan type must be "30d" or "90d"'),
        ({"count": 1}, 'Plan type must be "30d" or "90d"'),
        ({"planType": "30d", "count": "5"}, "Count must be an integer"),
    ],
)
def test_create_validation(app, client, csrf_headers, body, message):
    response = client.post("/api/licenses", json=body, headers=csrf_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "VALIDATION_ERROR"
    assert response.get_json()["message"] == message
    assert _license_count(app) == 0


def test_create_fails_whole_batch_when_keys_run_out(app, client, csrf_headers, monkeypatch):
    # the first key is fresh, every draw for the second collides with it
    monkeypatch.setattr(license_keys, "generate_license_key", lambda plan_type: "SQLBots30-BBBB-BBBB")

    response = client.post("/api/licenses", json={"planType": "30d", "count": 2}, headers=csrf_headers)

    assert response.status_code == 500
    body = response.get_json()
    assert body["error"] == "LICENSE_KEY_GENERATION_FAILED"
    assert body["message"] == "Failed to generate unique license key (attempt 2)"
    assert _license_count(app) == 0


def test_create_avoids_existing_keys(app, client, csrf_headers, make_license, monkeypatch):
    make_license(key="SQLBots30-AAAA-AAAA")
    draws = iter(["SQLBots30-AAAA-AAAA", "SQLBots30-CCCC-CCCC"])
    monkeypatch.setattr(license_keys, "generate_license_key", lambda plan_type: next(draws))

    response = client.post("/api/licenses", json={"planType": "30d", "count": 1}, headers=csrf_headers)

    assert response.status_code == 201
    assert response.get_json()["licenses"][0]["licenseKey"] == "SQLBots30-CCCC-CCCC"


def test_list_licenses_joins_user(client, auth_headers, make_license, make_user):
    make_license("90d")
    _, used_id = make_user(username="jane", email="jane@example.com")

    licenses = {lic["id"]: lic for lic in _list(client, auth_headers)}

    assert len(licenses) == 2
    used = licenses.pop(used_id)
    assert used["isUsed"] is True
    assert used["userName"] == "jane"
    assert used["userEmail"] == "jane@example.com"
    (free,) = licenses.values()
    assert free["isUsed"] is False
    assert free["userId"] is None
    assert free["userName"] is None


def test_list_is_newest_first(app, client, auth_headers, make_license):
    first = make_license()
    second = make_license()
    with app.app_context():
        older = storage.get(License, first)
        older.created_at = older.created_at - timedelta(hours=1)
        storage.save()

    ids = [lic["id"] for lic in _list(client, auth_headers)]
    assert ids == [second, first]


def test_delete_available_license(app, client, csrf_headers, make_license):
    license_id = make_license()

    response = client.delete(f"/api/licenses/{license_id}", headers=csrf_headers)

    assert response.status_code == 200
    assert response.get_json()["success"] is True
    assert _license_count(app) == 0


def test_delete_license_in_use_is_rejected(app, client, csrf_headers, make_user):
    _, license_id = make_user()

    response = client.delete(f"/api/licenses/{license_id}", headers=csrf_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Cannot delete license that is in use. Please release it first."
    assert _license_count(app) == 1


def test_delete_missing_license(client, csrf_headers):
    response = client.delete(f"/api/licenses/{uuid.uuid4()}", headers=csrf_headers)
    assert response.status_code == 404
    assert response.get_json()["message"] == "License not found"


def test_batch_delete_available(app, client, csrf_headers, make_license):
    ids = [make_license() for _ in range(3)]

    response = client.delete("/api/licenses", json={"ids": ids}, headers=csrf_headers)

    assert response.status_code == 200
    assert response.get_json()["deletedCount"] == 3
    assert _license_count(app) == 0


def test_batch_delete_with_license_in_use_deletes_nothing(app, client, csrf_headers, make_license, make_user):
    free_id = make_license()
    _, used_id = make_user()

    response = client.delete("/api/licenses", json={"ids": [free_id, used_id]}, headers=csrf_headers)

    assert response.status_code == 400
    body = response.get_json()
    assert body["inUseCount"] == 1
    assert body["skipped"] == [used_id]
    assert _license_count(app) == 2


def test_batch_delete_unknown_ids(client, csrf_headers):
    response = client.delete("/api/licenses", json={"ids": [str(uuid.uuid4())]}, headers=csrf_headers)
    assert response.status_code == 404
    assert response.get_json()["message"] == "No licenses found"


@pytest.mark.parametrize(
    "body,message",
    [
        ({"ids": []}, "At least one ID is required"),
        ({}, "At least one ID is required"),
        ({"ids": ["not-a-uuid"]}, "Invalid UUID format"),
        ({"ids": [str(uuid.uuid4()) for _ in range(101)]}, "Cannot delete more than 100 items at once"),
    ],
)
def test_batch_delete_validation(client, csrf_headers, body, message):
    response = client.delete("/api/licenses", json=body, headers=csrf_headers)
    assert response.status_code == 400
    assert response.get_json()["message"] == message
