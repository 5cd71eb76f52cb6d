import uuid

import pytest


@pytest.fixture
async def created(client, auth_headers, owner_id, course):
    response = await client.post(
        "/collaborations/",
        json={"content_id": str(course["id"]), "content_type": "Course"},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 201
    return response.json()


async def invite_and_accept(client, auth_headers, collaboration_id, owner_id, user_id, role="editor"):
    response = await client.post(
        f"/collaborations/{collaboration_id}/members",
        json={"user_id": str(user_id), "role": role},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 201
    response = await client.put(
        f"/collaborations/{collaboration_id}/members/{user_id}/accept",
        headers=auth_headers(user_id)
    )
    assert response.status_code == 200


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_requires_authentication(client):
    response = await client.get("/collaborations/")
    assert response.status_code == 401


async def test_requires_tenant(client, owner_id):
    from app.core.security import create_access_token

    token = create_access_token(owner_id)
    response = await client.get("/collaborations/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Tenant ID is required"


async def test_create_with_initial_version(created, owner_id, course):
    assert created["owner_id"] == str(owner_id)
    assert created["revision"] == 1
    assert len(created["versions"]) == 1

    version = created["versions"][0]
    assert version["version_number"] == 1
    assert version["is_current"] is True
    assert version["changes"] == "Initial version"
    assert version["snapshot"]["title"] == course["title"]


async def test_create_checks_content(client, auth_headers, owner_id, member_id, course):
    response = await client.post(
        "/collaborations/",
        json={"content_id": str(uuid.uuid4()), "content_type": "Course"},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 404

    response = await client.post(
        "/collaborations/",
        json={"content_id": str(course["id"]), "content_type": "Course"},
        headers=auth_headers(member_id)
    )
    assert response.status_code == 403


async def test_duplicate_collaboration(client, auth_headers, owner_id, course, created):
    response = await client.post(
        "/collaborations/",
        json={"content_id": str(course["id"]), "content_type": "Course"},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 409


async def test_invalid_content_type(client, auth_headers, owner_id, course):
    response = await client.post(
        "/collaborations/",
        json={"content_id": str(course["id"]), "content_type": "Podcast"},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 422


async def test_membership_flow(client, auth_headers, created, owner_id, member_id):
    collaboration_id = created["uuid"]

    response = await client.get(f"/collaborations/{collaboration_id}", headers=auth_headers(member_id))
    assert response.status_code == 403

    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id)

    response = await client.get(f"/collaborations/{collaboration_id}", headers=auth_headers(member_id))
    assert response.status_code == 200
    body = response.json()
    assert body["members"][0]["status"] == "accepted"
    assert body["participants"][str(member_id)]["first_name"] == "Mark"

    response = await client.get("/collaborations/", headers=auth_headers(member_id))
    assert [c["uuid"] for c in response.json()] == [collaboration_id]


async def test_only_invitee_can_respond(client, auth_headers, created, owner_id, member_id):
    collaboration_id = created["uuid"]
    await client.post(
        f"/collaborations/{collaboration_id}/members",
        json={"user_id": str(member_id)},
        headers=auth_headers(owner_id)
    )

    response = await client.put(
        f"/collaborations/{collaboration_id}/members/{member_id}/accept",
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 403

    response = await client.put(
        f"/collaborations/{collaboration_id}/members/{member_id}/decline",
        headers=auth_headers(member_id)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "declined"

    response = await client.put(
        f"/collaborations/{collaboration_id}/members/{member_id}/accept",
        headers=auth_headers(member_id)
    )
    assert response.status_code == 400


async def test_member_cannot_invite(client, auth_headers, created, owner_id, member_id, other_id):
    collaboration_id = created["uuid"]
    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id)

    response = await client.post(
        f"/collaborations/{collaboration_id}/members",
        json={"user_id": str(other_id)},
        headers=auth_headers(member_id)
    )
    assert response.status_code == 403


async def test_remove_member(client, auth_headers, created, owner_id, member_id, other_id):
    collaboration_id = created["uuid"]
    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id)

    response = await client.delete(
        f"/collaborations/{collaboration_id}/members/{other_id}", headers=auth_headers(owner_id)
    )
    assert response.status_code == 404

    response = await client.delete(
        f"/collaborations/{collaboration_id}/members/{member_id}", headers=auth_headers(owner_id)
    )
    assert response.status_code == 204

    response = await client.get(f"/collaborations/{collaboration_id}", headers=auth_headers(member_id))
    assert response.status_code == 403


async def test_discussion(client, auth_headers, created, owner_id, member_id):
    collaboration_id = created["uuid"]
    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id, role="commenter")

    response = await client.post(
        f"/collaborations/{collaboration_id}/comments",
        json={"text": "Slide 2 needs an example", "position": {"slide": 2}},
        headers=auth_headers(member_id)
    )
    assert response.status_code == 201
    comment_id = response.json()["uuid"]

    response = await client.post(
        f"/collaborations/{collaboration_id}/comments/{comment_id}/replies",
        json={"text": "Added one"},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 201

    response = await client.put(
        f"/collaborations/{collaboration_id}/comments/0/resolve", headers=auth_headers(owner_id)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["resolved"] is True
    assert body["resolved_by"] == str(owner_id)
    assert len(body["replies"]) == 1

    response = await client.put(
        f"/collaborations/{collaboration_id}/comments/7/resolve", headers=auth_headers(owner_id)
    )
    assert response.status_code == 404


async def test_stranger_cannot_comment(client, auth_headers, created, other_id):
    response = await client.post(
        f"/collaborations/{created['uuid']}/comments",
        json={"text": "hi"},
        headers=auth_headers(other_id)
    )
    assert response.status_code == 403


async def test_tasks(client, auth_headers, created, owner_id, member_id):
    collaboration_id = created["uuid"]
    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id)

    response = await client.post(
        f"/collaborations/{collaboration_id}/tasks",
        json={"title": "Write quiz questions", "assigned_to": str(member_id), "priority": "high"},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 201
    task = response.json()
    assert task["status"] == "todo"

    response = await client.put(
        f"/collaborations/{collaboration_id}/tasks/{task['uuid']}",
        json={"status": "completed"},
        headers=auth_headers(member_id)
    )
    assert response.status_code == 200
    assert response.json()["completed_at"] is not None

    response = await client.put(
        f"/collaborations/{collaboration_id}/tasks/{task['uuid']}",
        json={"assigned_to": str(owner_id)},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 422

    response = await client.get(f"/collaborations/{collaboration_id}/timeline", headers=auth_headers(owner_id))
    assert response.json()[0]["action"] == "task_updated"
    assert response.json()[0]["details"]["old_status"] == "todo"


async def test_task_for_non_member(client, auth_headers, created, owner_id, other_id):
    response = await client.post(
        f"/collaborations/{created['uuid']}/tasks",
        json={"title": "Nope", "assigned_to": str(other_id)},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 400


async def test_versions(client, auth_headers, created, owner_id, member_id):
    collaboration_id = created["uuid"]
    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id, role="reviewer")

    response = await client.post(
        f"/collaborations/{collaboration_id}/versions",
        json={"changes": "Reordered modules", "snapshot": {"title": "Intro to Python", "modules": []}},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 201
    assert response.json()["version_number"] == 2

    response = await client.post(
        f"/collaborations/{collaboration_id}/versions",
        json={"changes": "Reviewer edit", "snapshot": {"title": "x"}},
        headers=auth_headers(member_id)
    )
    assert response.status_code == 403

    response = await client.get(f"/collaborations/{collaboration_id}/versions", headers=auth_headers(member_id))
    versions = response.json()
    assert [v["version_number"] for v in versions] == [2, 1]
    assert [v["is_current"] for v in versions] == [True, False]


async def test_update_and_delete(client, auth_headers, created, owner_id, member_id):
    collaboration_id = created["uuid"]
    await invite_and_accept(client, auth_headers, collaboration_id, owner_id, member_id)

    response = await client.put(
        f"/collaborations/{collaboration_id}",
        json={"status": "paused", "settings": {"allow_comments": False}},
        headers=auth_headers(member_id)
    )
    assert response.status_code == 403

    response = await client.put(
        f"/collaborations/{collaboration_id}",
        json={"status": "paused", "settings": {"allow_comments": False}},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "paused"
    assert body["settings"]["allow_comments"] is False
    assert body["settings"]["allow_invites"] is True

    response = await client.delete(f"/collaborations/{collaboration_id}", headers=auth_headers(member_id))
    assert response.status_code == 403

    response = await client.delete(f"/collaborations/{collaboration_id}", headers=auth_headers(owner_id))
    assert response.status_code == 204

    response = await client.get(f"/collaborations/{collaboration_id}", headers=auth_headers(owner_id))
    assert response.status_code == 404


async def test_task_update_with_only_nulls_is_rejected(client, auth_headers, created, owner_id):
    collaboration_id = created["uuid"]
    await client.post(
        f"/collaborations/{collaboration_id}/tasks",
        json={"title": "Record intro video", "assigned_to": str(owner_id)},
        headers=auth_headers(owner_id)
    )
    revision = (await client.get(f"/collaborations/{collaboration_id}", headers=auth_headers(owner_id))).json()["revision"]

    response = await client.put(
        f"/collaborations/{collaboration_id}/tasks/0",
        json={"status": None, "priority": None},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 422

    body = (await client.get(f"/collaborations/{collaboration_id}", headers=auth_headers(owner_id))).json()
    assert body["revision"] == revision
    assert body["timeline"][-1]["action"] != "task_updated"
