import math

import pytest
from httpx import AsyncClient

from conftest import make_announcement
from models import Announcement

MISSING_ID = "507f1f77bcf86cd799439011"


@pytest.mark.asyncio
async def test_list_announcements(client: AsyncClient, test_user, auth_headers):
    make_announcement(test_user, title="First one")
    make_announcement(test_user, title="Second one", course="Science", type="urgent")
    make_announcement(test_user, title="Third one", course="Science", priority="low")

    response = await client.get("/api/announcements", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]) == 3
    assert {"title", "content", "type", "author", "_id", "id", "createdAt"} <= set(body["data"][0])
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 3, "pages": 1}


@pytest.mark.asyncio
async def test_list_newest_first(client: AsyncClient, test_user, auth_headers):
    older = make_announcement(test_user, title="Older")
    newer = make_announcement(test_user, title="Newer")
    Announcement.objects(id=older.id).update(set__created_at=newer.created_at.replace(year=2020))

    body = (await client.get("/api/announcements", headers=auth_headers)).json()

    assert [a["title"] for a in body["data"]] == ["Newer", "Older"]


@pytest.mark.asyncio
async def test_list_filters(client: AsyncClient, test_user, auth_headers):
    make_announcement(test_user, course="Mathematics", priority="high")
    make_announcement(test_user, course="Science", priority="high", is_active=False)
    make_announcement(test_user, course="Science", priority="low")

    by_course = (await client.get("/api/announcements?course=Science", headers=auth_headers)).json()
    by_priority = (await client.get("/api/announcements?priority=high", headers=auth_headers)).json()
    inactive = (await client.get("/api/announcements?isActive=false", headers=auth_headers)).json()

    assert by_course["pagination"]["total"] == 2
    assert all(a["course"] == "Science" for a in by_course["data"])
    assert by_priority["pagination"]["total"] == 2
    assert inactive["pagination"]["total"] == 1
    assert inactive["data"][0]["isActive"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("total,limit", [(0, 10), (5, 2), (6, 3), (7, 100)])
async def test_pagination_block(client: AsyncClient, test_user, auth_headers, total, limit):
    for i in range(total):
        make_announcement(test_user, title=f"Announcement {i}")

    body = (await client.get(f"/api/announcements?limit={limit}&page=1", headers=auth_headers)).json()

    assert body["pagination"]["total"] == total
    assert body["pagination"]["pages"] == math.ceil(total / limit)
    assert len(body["data"]) <= limit


@pytest.mark.asyncio
async def test_second_page(client: AsyncClient, test_user, auth_headers):
    for i in range(5):
        make_announcement(test_user, title=f"Announcement {i}")

    body = (await client.get("/api/announcements?limit=2&page=3", headers=auth_headers)).json()

    assert len(body["data"]) == 1
    assert body["pagination"]["page"] == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("query,field", [
    ("page=0", "page"),
    ("page=abc", "page"),
    ("limit=0", "limit"),
    ("limit=101", "limit"),
    ("sortBy=author", "sortBy"),
    ("sortOrder=up", "sortOrder"),
    ("course=%20", "course"),
    ("page=99999999999999999999", "page"),
])
async def test_invalid_list_query(client: AsyncClient, auth_headers, query, field):
    response = await client.get(f"/api/announcements?{query}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"
    assert response.json()["details"][0]["field"] == field


@pytest.mark.asyncio
async def test_sort_by_title(client: AsyncClient, test_user, auth_headers):
    for title in ["Charlie", "Alpha", "Bravo"]:
        make_announcement(test_user, title=title)

    body = (await client.get("/api/announcements?sortBy=title&sortOrder=asc", headers=auth_headers)).json()

    assert [a["title"] for a in body["data"]] == ["Alpha", "Bravo", "Charlie"]


@pytest.mark.asyncio
async def test_get_announcement(client: AsyncClient, test_user, auth_headers):
    announcement = make_announcement(test_user)

    response = await client.get(f"/api/announcements/{announcement.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"]["title"] == announcement.title


@pytest.mark.asyncio
async def test_get_missing_announcement(client: AsyncClient, auth_headers):
    response = await client.get(f"/api/announcements/{MISSING_ID}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Announcement not found"}


@pytest.mark.asyncio
async def test_get_invalid_id(client: AsyncClient, auth_headers):
    response = await client.get("/api/announcements/invalid-id", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"] == [{"field": "announcement_id", "message": "Invalid id format"}]


@pytest.mark.asyncio
async def test_create_announcement(client: AsyncClient, test_user, auth_headers, announcement_payload):
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Announcement created successfully"
    assert body["data"]["createdBy"] == str(test_user.id)
    assert body["data"]["isActive"] is True
    assert body["data"]["author"]["avatar"] == "https://picsum.photos/150"
    assert Announcement.objects.count() == 1


@pytest.mark.asyncio
async def test_create_trims_text(client: AsyncClient, auth_headers, announcement_payload):
    announcement_payload["title"] = "   Padded title   "
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.json()["data"]["title"] == "Padded title"


@pytest.mark.asyncio
async def test_create_defaults_priority(client: AsyncClient, auth_headers, announcement_payload):
    del announcement_payload["priority"]
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.json()["data"]["priority"] == "medium"


@pytest.mark.asyncio
@pytest.mark.parametrize("title,status", [("ab", 400), ("abc", 201), ("x" * 100, 201), ("x" * 101, 400)])
async def test_title_length_bounds(client: AsyncClient, auth_headers, announcement_payload, title, status):
    announcement_payload["title"] = title
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.status_code == status
    if status == 400:
        assert {"field": "title", "message": "Title must be between 3 and 100 characters"} in response.json()["details"]


@pytest.mark.asyncio
async def test_create_requires_fields(client: AsyncClient, auth_headers):
    response = await client.post("/api/announcements", json={}, headers=auth_headers)

    assert response.status_code == 400
    messages = {d["field"]: d["message"] for d in response.json()["details"]}
    assert messages["title"] == "Title is required"
    assert messages["content"] == "Content is required"
    assert messages["course"] == "Course is required"
    assert messages["type"] == "Type must be one of: general, urgent, academic, event"
    assert messages["author"] == "Author is required"


@pytest.mark.asyncio
async def test_create_short_content(client: AsyncClient, auth_headers, announcement_payload):
    announcement_payload["content"] = "Too short"
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"][0]["message"] == "Content must be between 10 and 2000 characters"


@pytest.mark.asyncio
async def test_create_event_type(client: AsyncClient, auth_headers, announcement_payload):
    announcement_payload["type"] = "event"
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["data"]["type"] == "event"


@pytest.mark.asyncio
async def test_create_rejects_unknown_fields(client: AsyncClient, auth_headers, announcement_payload):
    announcement_payload["createdBy"] = "someone-else"
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "createdBy"


@pytest.mark.asyncio
async def test_create_rejects_unknown_author_role(client: AsyncClient, auth_headers, announcement_payload):
    announcement_payload["author"]["role"] = "student"
    response = await client.post("/api/announcements", json=announcement_payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "author.role"


@pytest.mark.asyncio
async def test_update_announcement(client: AsyncClient, test_user, auth_headers):
    announcement = make_announcement(test_user, priority="low")

    response = await client.put(
        f"/api/announcements/{announcement.id}",
        json={"title": "Updated title", "priority": "high"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Updated title"
    assert data["priority"] == "high"
    assert data["content"] == announcement.content
    assert data["course"] == announcement.course


@pytest.mark.asyncio
async def test_update_validates_present_fields(client: AsyncClient, test_user, auth_headers):
    announcement = make_announcement(test_user)

    response = await client.put(
        f"/api/announcements/{announcement.id}",
        json={"title": "  "},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["message"] == "Title cannot be empty"


@pytest.mark.asyncio
async def test_update_ignores_null_optional_fields(client: AsyncClient, test_user, auth_headers):
    announcement = make_announcement(test_user, priority="high", subject="Algebra")

    response = await client.put(
        f"/api/announcements/{announcement.id}",
        json={"priority": None, "subject": None, "isActive": None},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["priority"] == "high"
    assert data["subject"] == "Algebra"
    assert data["isActive"] is True


@pytest.mark.asyncio
async def test_update_missing_announcement(client: AsyncClient, auth_headers):
    response = await client.put(f"/api/announcements/{MISSING_ID}", json={"title": "Whatever"}, headers=auth_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_twice(client: AsyncClient, test_user, auth_headers):
    announcement = make_announcement(test_user)

    first = await client.delete(f"/api/announcements/{announcement.id}", headers=auth_headers)
    second = await client.delete(f"/api/announcements/{announcement.id}", headers=auth_headers)

    assert first.status_code == 200
    assert first.json()["message"] == "Announcement deleted successfully"
    assert second.status_code == 404
