"""
DevCamper Backend — Course API Tests
======================================

What we test:
    ✅ Only the bootcamp owner (or an admin) adds courses
    ✅ average_cost follows every add/update/delete
    ✅ /courses embeds a bootcamp summary and accepts the filter grammar
    ✅ Per-bootcamp listing and 404s
"""

import uuid

import pytest

from devcamper.config import settings
from devcamper.services.course_service import average_cost
from conftest import auth_headers, bootcamp_payload, course_payload

API = settings.api_prefix


@pytest.mark.parametrize("mean, expected", [
    (None, None),
    (8000, 8000),
    (9250.5, 9260),
    (8001, 8010),
    (0, 0),
])
def test_average_cost_rounds_up_to_ten(mean, expected):
    assert average_cost(mean) == expected


async def setup_bootcamp(client, create_user):
    publisher = await create_user(role="publisher")
    response = await client.post(
        f"{API}/bootcamps", json=bootcamp_payload(), headers=auth_headers(publisher)
    )
    return publisher, response.json()["data"]


async def add_course(client, user, bootcamp_id, **overrides):
    return await client.post(
        f"{API}/bootcamps/{bootcamp_id}/courses",
        json=course_payload(**overrides),
        headers=auth_headers(user),
    )


async def bootcamp_average(client, bootcamp_id):
    return (await client.get(f"{API}/bootcamps/{bootcamp_id}")).json()["data"]["average_cost"]


class TestAddCourse:
    @pytest.mark.asyncio
    async def test_owner_adds_course(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)

        response = await add_course(client, publisher, bootcamp["id"])
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["bootcamp_id"] == bootcamp["id"]
        assert data["user_id"] == str(publisher.id)
        assert await bootcamp_average(client, bootcamp["id"]) == 8000

    @pytest.mark.asyncio
    async def test_other_publisher_rejected(self, client, create_user, geocode_mock):
        _, bootcamp = await setup_bootcamp(client, create_user)
        intruder = await create_user(role="publisher")

        response = await add_course(client, intruder, bootcamp["id"])
        assert response.status_code == 403
        assert response.json()["error"] == (
            f"User {intruder.id} is not authorized to add a course to this bootcamp"
        )

    @pytest.mark.asyncio
    async def test_user_role_rejected(self, client, create_user, geocode_mock):
        _, bootcamp = await setup_bootcamp(client, create_user)
        student = await create_user(role="user")

        response = await add_course(client, student, bootcamp["id"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_may_add(self, client, create_user, geocode_mock):
        _, bootcamp = await setup_bootcamp(client, create_user)
        admin = await create_user(role="admin")

        response = await add_course(client, admin, bootcamp["id"])
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_unknown_bootcamp(self, client, create_user):
        publisher = await create_user(role="publisher")
        response = await add_course(client, publisher, uuid.uuid4())
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_skill_level(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        response = await add_course(client, publisher, bootcamp["id"], minimum_skill="guru")
        assert response.status_code == 400
        assert "minimum_skill" in response.json()["error"]


class TestAverageCost:
    @pytest.mark.asyncio
    async def test_follows_add_update_delete(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        first = (await add_course(client, publisher, bootcamp["id"], tuition=8000)).json()["data"]
        second = (await add_course(client, publisher, bootcamp["id"], tuition=10501)).json()["data"]
        assert await bootcamp_average(client, bootcamp["id"]) == 9260

        await client.put(
            f"{API}/courses/{second['id']}",
            json={"tuition": 12000},
            headers=auth_headers(publisher),
        )
        assert await bootcamp_average(client, bootcamp["id"]) == 10000

        await client.delete(f"{API}/courses/{first['id']}", headers=auth_headers(publisher))
        assert await bootcamp_average(client, bootcamp["id"]) == 12000

        await client.delete(f"{API}/courses/{second['id']}", headers=auth_headers(publisher))
        assert await bootcamp_average(client, bootcamp["id"]) is None


class TestReadCourses:
    @pytest.mark.asyncio
    async def test_list_embeds_bootcamp_summary(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        await add_course(client, publisher, bootcamp["id"])

        body = (await client.get(f"{API}/courses")).json()
        assert body["count"] == 1
        assert body["data"][0]["bootcamp"] == {
            "id": bootcamp["id"],
            "name": bootcamp["name"],
            "description": bootcamp["description"],
        }

    @pytest.mark.asyncio
    async def test_filter_select_keeps_bootcamp(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        await add_course(client, publisher, bootcamp["id"], title="Cheap", tuition=1000)
        await add_course(client, publisher, bootcamp["id"], title="Pricey", tuition=20000)

        body = (await client.get(f"{API}/courses?tuition[lte]=5000&select=title")).json()
        assert body["total"] == 1
        assert set(body["data"][0]) == {"id", "title", "bootcamp"}
        assert body["data"][0]["title"] == "Cheap"

    @pytest.mark.asyncio
    async def test_sort_and_paginate(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        for tuition in (3000, 1000, 2000):
            await add_course(client, publisher, bootcamp["id"], tuition=tuition)

        body = (await client.get(f"{API}/courses?sort=tuition&limit=2")).json()
        assert [c["tuition"] for c in body["data"]] == [1000, 2000]
        assert body["pagination"] == {"next": {"page": 2, "limit": 2}}

        page_two = (await client.get(f"{API}/courses?sort=tuition&limit=2&page=2")).json()
        assert [c["tuition"] for c in page_two["data"]] == [3000]
        assert page_two["pagination"] == {"previous": {"page": 1, "limit": 2}}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [
        "page=99999999999999999999",
        "limit=99999999999999999999",
        "page=99999999999999999999&limit=99999999999999999999",
    ])
    async def test_huge_page_and_limit(self, client, create_user, geocode_mock, query):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        await add_course(client, publisher, bootcamp["id"])

        response = await client.get(f"{API}/courses?{query}")
        assert response.status_code == 200
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_oversized_filter_value_is_400(self, client):
        response = await client.get(f"{API}/courses?tuition[gte]=99999999999999999999")
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Value '99999999999999999999' is out of range for field 'tuition'",
        }

    @pytest.mark.asyncio
    async def test_courses_of_one_bootcamp(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        await add_course(client, publisher, bootcamp["id"])
        await add_course(client, publisher, bootcamp["id"], title="Back End")

        body = (await client.get(f"{API}/bootcamps/{bootcamp['id']}/courses")).json()
        assert body["success"] is True
        assert body["count"] == 2
        assert {c["title"] for c in body["data"]} == {"Front End Web Development", "Back End"}

    @pytest.mark.asyncio
    async def test_courses_of_unknown_bootcamp(self, client):
        response = await client.get(f"{API}/bootcamps/{uuid.uuid4()}/courses")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_one(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        course = (await add_course(client, publisher, bootcamp["id"])).json()["data"]

        data = (await client.get(f"{API}/courses/{course['id']}")).json()["data"]
        assert data["title"] == course["title"]
        assert data["bootcamp"]["id"] == bootcamp["id"]

    @pytest.mark.asyncio
    async def test_update_by_non_owner(self, client, create_user, geocode_mock):
        publisher, bootcamp = await setup_bootcamp(client, create_user)
        course = (await add_course(client, publisher, bootcamp["id"])).json()["data"]
        intruder = await create_user(role="publisher")

        response = await client.put(
            f"{API}/courses/{course['id']}",
            json={"tuition": 1},
            headers=auth_headers(intruder),
        )
        assert response.status_code == 403
