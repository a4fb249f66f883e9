"""
Excalidraw Organizer Backend — Project API Integration Tests
=============================================================

What we test:
    ✅ CRUD happy paths and response shapes
    ✅ Per-user name uniqueness (create and rename)
    ✅ Ownership: other users' projects are 404, not 403
    ✅ Pagination metadata and X-Total-Count
    ✅ Non-empty projects cannot be deleted
"""

import uuid

import pytest

from conftest import SCENE, bearer, signup


class TestProjectCrud:

    @pytest.mark.asyncio
    async def test_create(self, test_client, auth_headers):
        response = await test_client.post("/api/projects", json={"name": "  Roadmap  "}, headers=auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Project created successfully"
        project = data["project"]
        assert project["name"] == "Roadmap"
        assert project["drawingCount"] == 0
        assert {"id", "userId", "createdAt", "updatedAt"} <= project.keys()

    @pytest.mark.asyncio
    async def test_requires_auth(self, test_client):
        response = await test_client.post("/api/projects", json={"name": "Roadmap"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, test_client, auth_headers):
        response = await test_client.post("/api/projects", json={"name": "   "}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["field"] == "name"

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, test_client, auth_headers, project):
        response = await test_client.post(
            "/api/projects", json={"name": project["name"]}, headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["message"] == "A project with this name already exists"

    @pytest.mark.asyncio
    async def test_same_name_allowed_for_different_users(self, test_client, project):
        other = await signup(test_client)
        response = await test_client.post(
            "/api/projects", json={"name": project["name"]}, headers=bearer(other["token"])
        )
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_get(self, test_client, auth_headers, project):
        response = await test_client.get(f"/api/projects/{project['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["project"]["id"] == project["id"]

    @pytest.mark.asyncio
    async def test_rename(self, test_client, auth_headers, project):
        response = await test_client.put(
            f"/api/projects/{project['id']}", json={"name": "Infra"}, headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Project updated successfully"
        assert data["project"]["name"] == "Infra"

    @pytest.mark.asyncio
    async def test_rename_to_existing_name_conflicts(self, test_client, auth_headers, project):
        await test_client.post("/api/projects", json={"name": "Infra"}, headers=auth_headers)
        response = await test_client.put(
            f"/api/projects/{project['id']}", json={"name": "Infra"}, headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Another project with this name already exists"

    @pytest.mark.asyncio
    async def test_rename_to_own_name_is_allowed(self, test_client, auth_headers, project):
        response = await test_client.put(
            f"/api/projects/{project['id']}", json={"name": project["name"]}, headers=auth_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_empty_project(self, test_client, auth_headers, project):
        response = await test_client.delete(f"/api/projects/{project['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Project deleted successfully", "id": project["id"]}

        response = await test_client.get(f"/api/projects/{project['id']}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_project_with_drawings_rejected(self, test_client, auth_headers, project):
        await test_client.post(
            "/api/drawings",
            json={"name": "Sketch", "projectId": project["id"], "excalidrawData": SCENE},
            headers=auth_headers,
        )
        response = await test_client.delete(f"/api/projects/{project['id']}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == (
            "This project contains 1 drawing(s). "
            "Please move or delete all drawings before deleting the project."
        )


class TestProjectOwnership:

    @pytest.mark.asyncio
    async def test_other_users_project_is_not_found(self, test_client, project):
        intruder = bearer((await signup(test_client))["token"])
        for method in ("get", "delete"):
            response = await getattr(test_client, method)(f"/api/projects/{project['id']}", headers=intruder)
            assert response.status_code == 404
            assert response.json()["message"] == (
                "The specified project does not exist or you do not have access to it"
            )
        response = await test_client.put(
            f"/api/projects/{project['id']}", json={"name": "Mine now"}, headers=intruder
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_id(self, test_client, auth_headers):
        response = await test_client.get(f"/api/projects/{uuid.uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_id(self, test_client, auth_headers):
        response = await test_client.get("/api/projects/not-a-uuid", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestProjectList:

    @pytest.mark.asyncio
    async def test_list_only_own_projects(self, test_client, auth_headers, project):
        other = bearer((await signup(test_client))["token"])
        await test_client.post("/api/projects", json={"name": "Theirs"}, headers=other)

        response = await test_client.get("/api/projects", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["projects"]] == [project["id"]]
        assert data["count"] == 1
        assert data["totalCount"] == 1
        assert data["hasMore"] is False
        assert response.headers["X-Total-Count"] == "1"

    @pytest.mark.asyncio
    async def test_most_recently_updated_first(self, test_client, auth_headers, project):
        await test_client.post("/api/projects", json={"name": "Second"}, headers=auth_headers)
        await test_client.put(f"/api/projects/{project['id']}", json={"name": "Renamed"}, headers=auth_headers)

        response = await test_client.get("/api/projects", headers=auth_headers)
        names = [p["name"] for p in response.json()["projects"]]
        assert names == ["Renamed", "Second"]

    @pytest.mark.asyncio
    async def test_pagination(self, test_client, auth_headers):
        for i in range(3):
            await test_client.post("/api/projects", json={"name": f"P{i}"}, headers=auth_headers)

        first = (await test_client.get("/api/projects?limit=2", headers=auth_headers)).json()
        assert first["count"] == 2
        assert first["totalCount"] == 3
        assert first["hasMore"] is True

        rest = (await test_client.get("/api/projects?limit=2&offset=2", headers=auth_headers)).json()
        assert rest["count"] == 1
        assert rest["hasMore"] is False
        ids = {p["id"] for p in first["projects"]} | {p["id"] for p in rest["projects"]}
        assert len(ids) == 3

    @pytest.mark.asyncio
    async def test_limit_bounds(self, test_client, auth_headers):
        response = await test_client.get("/api/projects?limit=500", headers=auth_headers)
        assert response.status_code == 400
