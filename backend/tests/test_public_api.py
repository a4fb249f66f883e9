"""
Excalidraw Organizer Backend — Share Link Integration Tests
============================================================

What we test:
    ✅ Sharing is idempotent and returns a frontend URL
    ✅ Anonymous access to shared drawings, without owner fields
    ✅ Unknown share IDs are 404
    ✅ The public endpoint has its own rate limit
"""

import pytest

from organizer.middleware.rate_limit import public_limiter

from conftest import SCENE, bearer, signup


async def shared_drawing(client, headers, project_id):
    drawing = (await client.post(
        "/api/drawings",
        json={"name": "Shared board", "projectId": project_id, "excalidrawData": SCENE},
        headers=headers,
    )).json()["drawing"]
    response = await client.post(f"/api/drawings/{drawing['id']}/share", headers=headers)
    assert response.status_code == 200, response.text
    return drawing, response.json()


class TestShare:

    @pytest.mark.asyncio
    async def test_share_creates_link(self, test_client, auth_headers, project):
        drawing, share = await shared_drawing(test_client, auth_headers, project["id"])
        assert share["message"] == "Public share link created successfully"
        assert len(share["shareId"]) == 32
        assert share["shareUrl"] == f"http://localhost:5173/public/{share['shareId']}"

        opened = (await test_client.get(f"/api/drawings/{drawing['id']}", headers=auth_headers)).json()
        assert opened["drawing"]["isPublic"] is True
        assert opened["drawing"]["publicShareId"] == share["shareId"]

    @pytest.mark.asyncio
    async def test_share_is_idempotent(self, test_client, auth_headers, project):
        drawing, share = await shared_drawing(test_client, auth_headers, project["id"])
        again = await test_client.post(f"/api/drawings/{drawing['id']}/share", headers=auth_headers)
        assert again.status_code == 200
        assert again.json()["message"] == "Public share link retrieved"
        assert again.json()["shareId"] == share["shareId"]

    @pytest.mark.asyncio
    async def test_only_owner_can_share(self, test_client, auth_headers, project):
        drawing, _ = await shared_drawing(test_client, auth_headers, project["id"])
        other = bearer((await signup(test_client))["token"])
        response = await test_client.post(f"/api/drawings/{drawing['id']}/share", headers=other)
        assert response.status_code == 404


class TestPublicAccess:

    @pytest.mark.asyncio
    async def test_anonymous_viewer_gets_drawing(self, test_client, auth_headers, project):
        drawing, share = await shared_drawing(test_client, auth_headers, project["id"])

        response = await test_client.get(f"/api/public/{share['shareId']}")
        assert response.status_code == 200
        public = response.json()["drawing"]
        assert public["id"] == drawing["id"]
        assert public["name"] == "Shared board"
        assert public["excalidrawData"] == SCENE
        assert "userId" not in public
        assert "projectId" not in public

    @pytest.mark.asyncio
    async def test_unknown_share_id(self, test_client):
        response = await test_client.get("/api/public/0123456789abcdef0123456789abcdef")
        assert response.status_code == 404
        assert response.json()["message"] == "The shared drawing does not exist or is no longer public"

    @pytest.mark.asyncio
    async def test_public_rate_limit(self, test_client):
        for _ in range(public_limiter.max_requests):
            public_limiter.record("127.0.0.1")
        response = await test_client.get("/api/public/anything")
        assert response.status_code == 429
