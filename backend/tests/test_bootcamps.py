"""
DevCamper Backend — Bootcamp API Tests
========================================

What we test:
    ✅ Create: 201, geocoded location, slug, one bootcamp per publisher
    ✅ Admins are exempt from the one-bootcamp rule
    ✅ Update/delete only by owner or admin
    ✅ Delete takes the bootcamp's courses and reviews with it
    ✅ List envelope with embedded courses, filters, select
    ✅ Radius search, malformed ids, photo upload
"""

import uuid

import pytest

from devcamper.config import settings
from devcamper.database import async_session_factory
from devcamper.models import Bootcamp
from conftest import BOSTON, auth_headers, bootcamp_payload, course_payload

API = settings.api_prefix


async def create_bootcamp(client, owner, **overrides) -> dict:
    response = await client.post(
        f"{API}/bootcamps", json=bootcamp_payload(**overrides), headers=auth_headers(owner)
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_geocodes_and_slugs(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        data = await create_bootcamp(client, publisher, name="ModernTech Bootcamp!")

        assert data["slug"] == "moderntech-bootcamp"
        assert data["user_id"] == str(publisher.id)
        assert data["latitude"] == BOSTON.latitude
        assert data["zipcode"] == "02215"
        assert data["photo"] == "no-photo.jpg"
        assert data["average_cost"] is None
        geocode_mock.assert_awaited_once_with("233 Bay State Rd Boston MA 02215")

    @pytest.mark.asyncio
    async def test_publisher_limited_to_one(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        await create_bootcamp(client, publisher)

        response = await client.post(
            f"{API}/bootcamps", json=bootcamp_payload(), headers=auth_headers(publisher)
        )
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": f"The user with ID {publisher.id} has already published a bootcamp",
        }

    @pytest.mark.asyncio
    async def test_admin_may_create_several(self, client, create_user, geocode_mock):
        admin = await create_user(role="admin")
        await create_bootcamp(client, admin)
        await create_bootcamp(client, admin)

        listing = (await client.get(f"{API}/bootcamps")).json()
        assert listing["total"] == 2

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client, create_user, geocode_mock):
        first, second = await create_user(role="publisher"), await create_user(role="publisher")
        await create_bootcamp(client, first, name="Codemasters")

        response = await client.post(
            f"{API}/bootcamps",
            json=bootcamp_payload(name="Codemasters"),
            headers=auth_headers(second),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Duplicate field value entered"

    @pytest.mark.asyncio
    async def test_unknown_career_rejected(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        response = await client.post(
            f"{API}/bootcamps",
            json=bootcamp_payload(careers=["Underwater Basket Weaving"]),
            headers=auth_headers(publisher),
        )
        assert response.status_code == 400
        geocode_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_anonymous_create_is_401(self, client, geocode_mock):
        client.cookies.clear()
        response = await client.post(f"{API}/bootcamps", json=bootcamp_payload())
        assert response.status_code == 401


class TestReadAndList:
    @pytest.mark.asyncio
    async def test_get_one(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        created = await create_bootcamp(client, publisher)

        response = await client.get(f"{API}/bootcamps/{created['id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        for key in ("id", "name", "slug", "user_id", "latitude", "careers"):
            assert body["data"][key] == created[key]

    @pytest.mark.asyncio
    async def test_malformed_and_unknown_ids_are_404(self, client):
        malformed = await client.get(f"{API}/bootcamps/not-an-id")
        unknown = await client.get(f"{API}/bootcamps/{uuid.uuid4()}")
        assert malformed.status_code == unknown.status_code == 404
        assert malformed.json() == {
            "success": False,
            "error": "No bootcamp with the id of not-an-id",
        }

    @pytest.mark.asyncio
    async def test_list_envelope_embeds_courses(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, publisher)
        await client.post(
            f"{API}/bootcamps/{bootcamp['id']}/courses",
            json=course_payload(),
            headers=auth_headers(publisher),
        )

        body = (await client.get(f"{API}/bootcamps")).json()
        assert body["success"] is True
        assert body["count"] == body["total"] == 1
        assert body["pagination"] == {}
        assert [c["title"] for c in body["data"][0]["courses"]] == ["Front End Web Development"]

    @pytest.mark.asyncio
    async def test_filter_and_select(self, client, create_user, geocode_mock):
        admin = await create_user(role="admin")
        await create_bootcamp(client, admin, name="Housed", housing=True)
        await create_bootcamp(client, admin, name="Homeless", housing=False)

        body = (await client.get(f"{API}/bootcamps?housing=true&select=name,housing")).json()
        assert body["total"] == 1
        item = body["data"][0]
        assert item["name"] == "Housed"
        assert set(item) == {"id", "name", "housing", "courses"}

    @pytest.mark.asyncio
    async def test_bad_filter_is_400(self, client):
        response = await client.get(f"{API}/bootcamps?careers=Business")
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_unknown_operator_is_400(self, client):
        response = await client.get(f"{API}/bootcamps?average_cost[where]=1")
        assert response.status_code == 400


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_owner_updates_name_and_slug(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, publisher)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}",
            json={"name": "Renamed Camp"},
            headers=auth_headers(publisher),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed Camp"
        assert data["slug"] == "renamed-camp"

    @pytest.mark.asyncio
    async def test_address_change_regeocodes(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, publisher)

        await client.put(
            f"{API}/bootcamps/{bootcamp['id']}",
            json={"address": "1 Main St Boston MA"},
            headers=auth_headers(publisher),
        )
        assert geocode_mock.await_count == 2

    @pytest.mark.asyncio
    async def test_other_publisher_cannot_update(self, client, create_user, geocode_mock):
        owner, intruder = await create_user(role="publisher"), await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, owner)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}",
            json={"name": "Hijacked"},
            headers=auth_headers(intruder),
        )
        assert response.status_code == 403
        assert response.json()["error"] == (
            f"User {intruder.id} is not authorized to update this bootcamp"
        )
        unchanged = (await client.get(f"{API}/bootcamps/{bootcamp['id']}")).json()["data"]
        assert unchanged["name"] == bootcamp["name"]

    @pytest.mark.asyncio
    async def test_admin_can_update_any(self, client, create_user, geocode_mock):
        owner, admin = await create_user(role="publisher"), await create_user(role="admin")
        bootcamp = await create_bootcamp(client, owner)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}",
            json={"housing": False},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["data"]["housing"] is False

    @pytest.mark.asyncio
    async def test_delete_takes_courses_and_reviews(self, client, create_user, geocode_mock):
        publisher, reviewer = await create_user(role="publisher"), await create_user(role="user")
        bootcamp = await create_bootcamp(client, publisher)
        await client.post(
            f"{API}/bootcamps/{bootcamp['id']}/courses",
            json=course_payload(),
            headers=auth_headers(publisher),
        )
        await client.post(
            f"{API}/bootcamps/{bootcamp['id']}/reviews",
            json={"title": "Great", "text": "Learned a lot", "rating": 9},
            headers=auth_headers(reviewer),
        )

        response = await client.delete(
            f"{API}/bootcamps/{bootcamp['id']}", headers=auth_headers(publisher)
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}

        assert (await client.get(f"{API}/bootcamps/{bootcamp['id']}")).status_code == 404
        assert (await client.get(f"{API}/courses")).json()["total"] == 0
        assert (await client.get(f"{API}/reviews")).json()["total"] == 0

    @pytest.mark.asyncio
    async def test_other_publisher_cannot_delete(self, client, create_user, geocode_mock):
        owner, intruder = await create_user(role="publisher"), await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, owner)

        response = await client.delete(
            f"{API}/bootcamps/{bootcamp['id']}", headers=auth_headers(intruder)
        )
        assert response.status_code == 403
        assert (await client.get(f"{API}/bootcamps/{bootcamp['id']}")).status_code == 200


class TestRadius:
    @pytest.mark.asyncio
    async def test_only_nearby_bootcamps(self, client, create_user, geocode_mock):
        publisher = await create_user(role="publisher")
        nearby = await create_bootcamp(client, publisher)

        admin = await create_user(role="admin")
        async with async_session_factory() as session:
            session.add(Bootcamp(
                user_id=admin.id,
                name="Los Angeles Camp",
                slug="los-angeles-camp",
                description="Far away",
                address="Los Angeles CA",
                latitude=34.0522,
                longitude=-118.2437,
                careers=["Business"],
            ))
            await session.commit()

        response = await client.get(f"{API}/bootcamps/radius/02215/50")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert [b["id"] for b in body["data"]] == [nearby["id"]]

        everything = (await client.get(f"{API}/bootcamps/radius/02215/5000")).json()
        assert everything["count"] == 2

    @pytest.mark.asyncio
    async def test_non_positive_distance(self, client, geocode_mock):
        response = await client.get(f"{API}/bootcamps/radius/02215/0")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_non_numeric_distance(self, client, geocode_mock):
        response = await client.get(f"{API}/bootcamps/radius/02215/far")
        assert response.status_code == 400


class TestPhoto:
    @pytest.mark.asyncio
    async def test_upload(self, client, create_user, geocode_mock, upload_dir):
        publisher = await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, publisher)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}/photo",
            files={"file": ("campus.jpg", b"\xff\xd8\xff jpeg bytes", "image/jpeg")},
            headers=auth_headers(publisher),
        )
        assert response.status_code == 200
        name = response.json()["data"]
        assert name == f"photo_{bootcamp['id']}.jpg"
        assert (upload_dir / name).exists()

        stored = (await client.get(f"{API}/bootcamps/{bootcamp['id']}")).json()["data"]
        assert stored["photo"] == name

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, client, create_user, geocode_mock, upload_dir):
        publisher = await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, publisher)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}/photo",
            files={"file": ("notes.txt", b"plain text", "text/plain")},
            headers=auth_headers(publisher),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Please upload an image file"

    @pytest.mark.asyncio
    async def test_missing_file(self, client, create_user, geocode_mock, upload_dir):
        publisher = await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, publisher)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}/photo", headers=auth_headers(publisher)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Please upload a file"

    @pytest.mark.asyncio
    async def test_not_owner(self, client, create_user, geocode_mock, upload_dir):
        owner, intruder = await create_user(role="publisher"), await create_user(role="publisher")
        bootcamp = await create_bootcamp(client, owner)

        response = await client.put(
            f"{API}/bootcamps/{bootcamp['id']}/photo",
            files={"file": ("campus.jpg", b"bytes", "image/jpeg")},
            headers=auth_headers(intruder),
        )
        assert response.status_code == 403
        assert list(upload_dir.glob("*")) == []
