"""
Tests for entry and tag endpoints.
"""
from datetime import timedelta
import pytest
from app.core.exceptions import StoreError, TagResolutionError
from app.core.security import create_access_token
from app.core.time_window import COOLDOWN_DURATION, parse_timestamp, utcnow
from app.services import entry_service


def test_create_entry(client, auth_headers):
    """Test entry creation with new tags."""
    response = client.post(
        "/api/entries",
        json={"mood": 4, "task": "Write design doc", "tags": ["Writing", "focus"]},
        headers=auth_headers
    )
    
    assert response.status_code == 201
    body = response.json()
    assert body["mood"] == 4
    assert body["task"] == "Write design doc"
    assert body["notes"] is None
    assert sorted(tag["name"] for tag in body["tags"]) == ["focus", "writing"]
    assert body["created_at"].endswith("Z")
    assert response.headers["Location"] == f"/api/entries/{body['id']}"


def test_create_entry_requires_auth(client):
    response = client.post("/api/entries", json={"mood": 4, "task": "Write design doc"})
    assert response.status_code == 401


def test_second_entry_within_cooldown_is_rejected(client, auth_headers):
    first = client.post("/api/entries", json={"mood": 4, "task": "Write design doc"}, headers=auth_headers)
    created_at = first.json()["created_at"]
    
    response = client.post("/api/entries", json={"mood": 3, "task": "Review PRs"}, headers=auth_headers)
    
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "ANTI_SPAM_VIOLATION"
    assert body["details"]["current_entry_created_at"] == created_at
    assert parse_timestamp(body["retry_after"]) - parse_timestamp(created_at) == COOLDOWN_DURATION
    assert 0 < int(response.headers["Retry-After"]) <= COOLDOWN_DURATION.total_seconds()


def test_entry_allowed_after_cooldown(client, auth_headers, monkeypatch):
    client.post("/api/entries", json={"mood": 4, "task": "Write design doc"}, headers=auth_headers)
    
    later = utcnow() + COOLDOWN_DURATION + timedelta(seconds=1)
    monkeypatch.setattr(entry_service, "utcnow", lambda: later)
    
    response = client.post("/api/entries", json={"mood": 5, "task": "Ship release"}, headers=auth_headers)
    assert response.status_code == 201


def test_create_entry_validation_errors(client, auth_headers):
    response = client.post(
        "/api/entries",
        json={"mood": 6, "task": " ab ", "tags": ["bad tag!"]},
        headers=auth_headers
    )
    
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["mood"] == "Mood must be between 1 and 5"
    assert body["details"]["task"] == "Task must be at least 3 characters"
    assert "tags" in body["details"]


def test_create_entry_too_many_tags(client, auth_headers):
    tags = [f"tag{i}" for i in range(11)]
    response = client.post(
        "/api/entries",
        json={"mood": 3, "task": "Plan week", "tags": tags},
        headers=auth_headers
    )
    
    assert response.status_code == 400
    assert response.json()["details"]["tags"] == "Maximum 10 tags allowed"


def test_get_update_delete_entry(client, auth_headers):
    created = client.post(
        "/api/entries",
        json={"mood": 4, "task": "Write design doc", "tags": ["work"]},
        headers=auth_headers
    ).json()
    entry_url = f"/api/entries/{created['id']}"
    
    fetched = client.get(entry_url, headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["tags"][0]["name"] == "work"
    
    updated = client.patch(
        entry_url,
        json={"notes": "Finished section 2", "tags": ["writing"]},
        headers=auth_headers
    )
    assert updated.status_code == 200
    assert updated.json()["notes"] == "Finished section 2"
    assert [tag["name"] for tag in updated.json()["tags"]] == ["writing"]
    
    empty_patch = client.patch(entry_url, json={}, headers=auth_headers)
    assert empty_patch.status_code == 400
    
    deleted = client.delete(entry_url, headers=auth_headers)
    assert deleted.status_code == 200
    
    missing = client.get(entry_url, headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


def test_entry_not_visible_to_other_users(client, auth_headers, make_user):
    created = client.post(
        "/api/entries", json={"mood": 4, "task": "Write design doc"}, headers=auth_headers
    ).json()
    other = make_user(email="bob@focusjournal.io")
    other_headers = {"Authorization": f"Bearer {create_access_token(other.id)}"}
    
    assert client.get(f"/api/entries/{created['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/entries/{created['id']}", headers=other_headers).status_code == 404


def test_list_entries(client, auth_headers):
    client.post(
        "/api/entries",
        json={"mood": 4, "task": "Write design doc", "tags": ["writing"]},
        headers=auth_headers
    )
    
    response = client.get("/api/entries", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1
    
    filtered = client.get("/api/entries", params={"tag": ["focus"]}, headers=auth_headers)
    assert filtered.json()["total"] == 0
    
    filtered = client.get("/api/entries", params={"mood": 4, "tag": ["writing"]}, headers=auth_headers)
    assert filtered.json()["total"] == 1


def test_cooldown_status_endpoint(client, auth_headers):
    before = client.get("/api/entries/cooldown", headers=auth_headers).json()
    assert before["can_create"] is True
    
    client.post("/api/entries", json={"mood": 4, "task": "Write design doc"}, headers=auth_headers)
    
    after = client.get("/api/entries/cooldown", headers=auth_headers).json()
    assert after["can_create"] is False
    assert 1 <= after["minutes_until_retry"] <= 5
    assert after["retry_after"] is not None


def test_deleting_entry_reopens_gate(client, auth_headers):
    created = client.post(
        "/api/entries", json={"mood": 4, "task": "Write design doc"}, headers=auth_headers
    ).json()
    client.delete(f"/api/entries/{created['id']}", headers=auth_headers)
    
    response = client.post("/api/entries", json={"mood": 4, "task": "Rewrite design doc"}, headers=auth_headers)
    assert response.status_code == 201


def test_same_tag_from_two_entries_creates_one_tag(client, auth_headers, monkeypatch):
    first = client.post(
        "/api/entries", json={"mood": 3, "task": "Morning planning", "tags": ["work"]}, headers=auth_headers
    ).json()
    
    later = utcnow() + COOLDOWN_DURATION
    monkeypatch.setattr(entry_service, "utcnow", lambda: later)
    second = client.post(
        "/api/entries", json={"mood": 3, "task": "Afternoon planning", "tags": ["work"]}, headers=auth_headers
    ).json()
    
    assert first["tags"][0]["id"] == second["tags"][0]["id"]
    tags = client.get("/api/tags", headers=auth_headers).json()
    assert tags["total"] == 1
    assert tags["data"][0]["name"] == "work"


def test_list_tags_search(client, auth_headers):
    client.post(
        "/api/entries",
        json={"mood": 3, "task": "Plan week", "tags": ["work", "workout", "focus"]},
        headers=auth_headers
    )
    
    response = client.get("/api/tags", params={"search": "work", "limit": 1}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [tag["name"] for tag in body["data"]] == ["work"]


@pytest.mark.parametrize("error", [
    StoreError("Failed to fetch tags: connection lost"),
    TagResolutionError("Failed to resolve tag: work"),
])
def test_internal_errors_return_generic_500(client, auth_headers, monkeypatch, error):
    def failing_resolve(tag_names, session):
        raise error
    
    monkeypatch.setattr(entry_service, "resolve_tag_ids", failing_resolve)
    
    response = client.post(
        "/api/entries",
        json={"mood": 4, "task": "Write design doc", "tags": ["work"]},
        headers=auth_headers
    )
    
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}


@pytest.mark.parametrize("field, message", [
    ("task", "Task cannot be null"),
    ("mood", "Mood cannot be null"),
])
def test_update_rejects_explicit_null(client, auth_headers, field, message):
    created = client.post(
        "/api/entries", json={"mood": 4, "task": "Write design doc"}, headers=auth_headers
    ).json()
    
    response = client.patch(f"/api/entries/{created['id']}", json={field: None}, headers=auth_headers)
    
    assert response.status_code == 400
    assert response.json()["details"][field] == message
    unchanged = client.get(f"/api/entries/{created['id']}", headers=auth_headers).json()
    assert unchanged["updated_at"] == created["updated_at"]
