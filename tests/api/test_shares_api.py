from datetime import timedelta

import pytest

from app.core.timeutils import utcnow


@pytest.fixture
def share_payload(course):
    return {
        "content_id": str(course["id"]),
        "content_type": "Course",
        "share_type": "link",
        "permissions": {"can_view": True, "can_comment": True}
    }


async def create_share(client, headers, payload):
    response = await client.post("/shares/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_link_share(client, auth_headers, owner_id, share_payload):
    share = await create_share(client, auth_headers(owner_id), share_payload)

    assert len(share["share_token"]) == 16
    assert share["share_token"].isalnum()
    assert share["is_expired"] is False
    assert share["permissions"]["can_download"] is False


async def test_only_content_owner_can_share(client, auth_headers, member_id, share_payload):
    response = await client.post("/shares/", json=share_payload, headers=auth_headers(member_id))
    assert response.status_code == 403


async def test_email_share_validates_recipients(client, auth_headers, owner_id, share_payload):
    payload = {**share_payload, "share_type": "email", "recipients": ["not-an-address"]}
    response = await client.post("/shares/", json=payload, headers=auth_headers(owner_id))
    assert response.status_code == 422

    payload["recipients"] = ["learner@example.com"]
    share = await create_share(client, auth_headers(owner_id), payload)
    assert share["recipients"] == ["learner@example.com"]
    assert share["share_token"] is None


async def test_public_access_records_views(client, auth_headers, owner_id, member_id, share_payload, course):
    share = await create_share(client, auth_headers(owner_id), share_payload)
    token = share["share_token"]

    response = await client.get(f"/shares/token/{token}")
    assert response.status_code == 200
    assert response.json()["content"]["title"] == course["title"]

    response = await client.get(f"/shares/token/{token}", headers=auth_headers(member_id))
    statistics = response.json()["statistics"]
    assert statistics["views"] == 2
    assert statistics["unique_views"] == 1


async def test_unknown_token(client):
    response = await client.get("/shares/token/doesnotexist1234")
    assert response.status_code == 404


async def test_expired_share_is_gone(client, auth_headers, owner_id, share_payload):
    payload = {
        **share_payload,
        "settings": {"expiration_date": (utcnow() - timedelta(hours=1)).isoformat()}
    }
    share = await create_share(client, auth_headers(owner_id), payload)
    assert share["is_expired"] is True

    response = await client.get(f"/shares/token/{share['share_token']}")
    assert response.status_code == 410


async def test_login_required(client, auth_headers, owner_id, member_id, share_payload):
    payload = {**share_payload, "settings": {"require_login": True}}
    share = await create_share(client, auth_headers(owner_id), payload)

    response = await client.get(f"/shares/token/{share['share_token']}")
    assert response.status_code == 401

    response = await client.get(f"/shares/token/{share['share_token']}", headers=auth_headers(member_id))
    assert response.status_code == 200


async def test_password_protected(client, auth_headers, owner_id, share_payload):
    payload = {**share_payload, "settings": {"password": "letmein"}}
    share = await create_share(client, auth_headers(owner_id), payload)
    assert share["settings"]["has_password"] is True
    assert "password_hash" not in share["settings"]

    url = f"/shares/token/{share['share_token']}"
    assert (await client.get(url)).status_code == 401
    assert (await client.get(url, headers={"X-Share-Password": "wrong"})).status_code == 401
    assert (await client.get(url, headers={"X-Share-Password": "letmein"})).status_code == 200


async def test_toggle_hides_token(client, auth_headers, owner_id, member_id, share_payload):
    share = await create_share(client, auth_headers(owner_id), share_payload)

    response = await client.put(f"/shares/{share['uuid']}/toggle", headers=auth_headers(member_id))
    assert response.status_code == 403

    response = await client.put(f"/shares/{share['uuid']}/toggle", headers=auth_headers(owner_id))
    assert response.json()["is_active"] is False

    response = await client.get(f"/shares/token/{share['share_token']}")
    assert response.status_code == 404


async def test_owner_management(client, auth_headers, owner_id, member_id, share_payload):
    share = await create_share(client, auth_headers(owner_id), share_payload)
    share_url = f"/shares/{share['uuid']}"

    assert (await client.get(share_url, headers=auth_headers(member_id))).status_code == 403

    response = await client.put(
        share_url,
        json={"permissions": {"can_download": True}, "settings": {"show_analytics": True}},
        headers=auth_headers(owner_id)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["permissions"]["can_download"] is True
    assert body["permissions"]["can_view"] is True
    assert body["settings"]["show_analytics"] is True

    assert (await client.delete(share_url, headers=auth_headers(owner_id))).status_code == 204
    assert (await client.get(share_url, headers=auth_headers(owner_id))).status_code == 404


async def test_listing(client, auth_headers, owner_id, share_payload):
    for _ in range(3):
        await create_share(client, auth_headers(owner_id), share_payload)

    response = await client.get("/shares/?page=2&limit=2", headers=auth_headers(owner_id))
    body = response.json()
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    assert len(body["shares"]) == 1

    response = await client.get("/shares/?share_type=email", headers=auth_headers(owner_id))
    assert response.json()["pagination"]["total"] == 0


async def test_comments_and_downloads(client, auth_headers, owner_id, member_id, share_payload):
    share = await create_share(client, auth_headers(owner_id), share_payload)
    share_url = f"/shares/{share['uuid']}"

    response = await client.post(f"{share_url}/comments", json={"text": "Very clear"}, headers=auth_headers(member_id))
    assert response.status_code == 201

    response = await client.post(
        f"{share_url}/comments/0/replies", json={"text": "Thank you"}, headers=auth_headers(owner_id)
    )
    assert response.status_code == 201

    response = await client.put(f"{share_url}/download", headers=auth_headers(member_id))
    assert response.status_code == 403

    await client.put(share_url, json={"permissions": {"can_download": True}}, headers=auth_headers(owner_id))
    response = await client.put(f"{share_url}/download", headers=auth_headers(member_id))
    assert response.status_code == 200
    assert response.json()["statistics"]["downloads"] == 1
    assert response.json()["statistics"]["comments"] == 1


async def test_listing_shows_only_own_shares(client, auth_headers, owner_id, other_id, share_payload):
    share = await create_share(client, auth_headers(owner_id), share_payload)

    response = await client.get("/shares/", headers=auth_headers(other_id))
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 0
    assert share["share_token"] not in response.text

    response = await client.get("/shares/", headers=auth_headers(owner_id))
    assert [s["uuid"] for s in response.json()["shares"]] == [share["uuid"]]
