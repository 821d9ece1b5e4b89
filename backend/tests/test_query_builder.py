"""
DevCamper Backend — Query Builder Tests
=========================================

What we test:
    ✅ Query-string and nested-mapping grammars parse to the same conditions
    ✅ Values are coerced to column types; bad values are QueryErrors
    ✅ Unknown fields/operators and hidden/JSON columns are rejected
    ✅ page/limit fall back to defaults for junk input
    ✅ Pagination descriptors at the boundaries
    ✅ run_query against SQLite: filter + sort + page + limit
"""

import uuid
from datetime import datetime, timedelta

import pytest

from devcamper.exceptions import QueryError
from devcamper.models import Bootcamp, Course, User
from devcamper.services.course_service import serialize_course
from devcamper.services.query_builder import (
    DEFAULT_LIMIT,
    DEFAULT_SORT,
    MAX_OFFSET,
    FilterCondition,
    Operator,
    QuerySpec,
    apply_select,
    coerce_positive_int,
    pagination_for,
    parse_query,
    query_params_to_dict,
    run_query,
)


class TestParseQuery:
    def test_defaults(self):
        spec = parse_query({}, Course)
        assert spec.conditions == ()
        assert spec.select is None
        assert spec.sort == DEFAULT_SORT
        assert (spec.page, spec.limit, spec.skip) == (1, DEFAULT_LIMIT, 0)

    def test_bracket_operator_is_coerced(self):
        spec = parse_query({"tuition[gte]": "1000"}, Course)
        assert spec.conditions == (FilterCondition("tuition", Operator.GTE, 1000),)

    def test_nested_mapping_matches_bracket_form(self):
        nested = parse_query({"tuition": {"gte": "1000"}}, Course)
        bracket = parse_query({"tuition[gte]": "1000"}, Course)
        assert nested.conditions == bracket.conditions

    def test_plain_key_is_equality(self):
        spec = parse_query({"scholarship_available": "true"}, Course)
        assert spec.conditions == (
            FilterCondition("scholarship_available", Operator.EQ, True),
        )

    def test_in_takes_comma_list(self):
        spec = parse_query({"minimum_skill[in]": "beginner,advanced"}, Course)
        assert spec.conditions[0].operator is Operator.IN
        assert spec.conditions[0].value == ("beginner", "advanced")

    def test_repeated_equality_becomes_in(self):
        raw = query_params_to_dict([("minimum_skill", "beginner"), ("minimum_skill", "advanced")])
        spec = parse_query(raw, Course)
        assert spec.conditions[0].operator is Operator.IN

    def test_uuid_column_coerced(self):
        bootcamp_id = uuid.uuid4()
        spec = parse_query({"bootcamp_id": str(bootcamp_id)}, Course)
        assert spec.conditions[0].value == bootcamp_id

    def test_unknown_operator(self):
        with pytest.raises(QueryError) as exc_info:
            parse_query({"tuition[regex]": "1"}, Course)
        assert exc_info.value.status_code == 400

    def test_unknown_operator_in_nested_mapping(self):
        with pytest.raises(QueryError):
            parse_query({"tuition": {"$where": "1"}}, Course)

    def test_unknown_field(self):
        with pytest.raises(QueryError):
            parse_query({"price[gte]": "1"}, Course)

    def test_uncoercible_value(self):
        with pytest.raises(QueryError):
            parse_query({"tuition[gte]": "cheap"}, Course)

    @pytest.mark.parametrize("raw", [
        {"tuition[gte]": "99999999999999999999"},
        {"tuition": {"lt": 2**31}},
        {"weeks[in]": "4,-3000000000"},
    ])
    def test_integer_out_of_column_range(self, raw):
        with pytest.raises(QueryError) as exc_info:
            parse_query(raw, Course)
        assert exc_info.value.status_code == 400

    def test_trailing_z_is_utc(self):
        spec = parse_query({"created_at[gte]": "2024-01-01T00:00:00Z"}, Course)
        value = spec.conditions[0].value
        assert value.utcoffset() == timedelta(0)
        assert value.replace(tzinfo=None) == datetime(2024, 1, 1)

    def test_hidden_column_not_filterable(self):
        with pytest.raises(QueryError):
            parse_query({"password_hash": "x"}, User, hidden=("password_hash",))

    def test_json_column_not_filterable(self):
        with pytest.raises(QueryError):
            parse_query({"careers": "Business"}, Bootcamp)

    def test_select_and_sort(self):
        spec = parse_query({"select": "title,tuition", "sort": "-tuition,title"}, Course)
        assert spec.select == ("title", "tuition")
        assert spec.sort == (("tuition", True), ("title", False))

    def test_unknown_select_field(self):
        with pytest.raises(QueryError):
            parse_query({"select": "title,secret"}, Course)

    def test_unknown_sort_field(self):
        with pytest.raises(QueryError):
            parse_query({"sort": "-popularity"}, Course)

    def test_reserved_keys_are_not_filters(self):
        spec = parse_query({"page": "2", "limit": "5"}, Course)
        assert spec.conditions == ()
        assert spec.skip == 5

    def test_huge_page_and_limit_keep_offset_in_range(self):
        spec = parse_query({"page": "9" * 30, "limit": "9" * 30}, Course)
        assert spec.limit == MAX_OFFSET
        assert 0 <= spec.skip <= MAX_OFFSET

        spec = parse_query({"page": "9" * 30, "limit": "10"}, Course)
        assert spec.skip <= MAX_OFFSET
        assert spec.skip + 10 > MAX_OFFSET


class TestCoercePositiveInt:
    @pytest.mark.parametrize("raw, expected", [
        ("3", 3),
        (None, 25),
        ("abc", 25),
        ("0", 25),
        ("-4", 25),
        (["1", "7"], 7),
    ])
    def test_fallback_to_default(self, raw, expected):
        assert coerce_positive_int(raw, 25) == expected

    def test_clamped_to_maximum(self):
        assert coerce_positive_int("9" * 30, 25, maximum=100) == 100


class TestPagination:
    def test_total_equal_to_limit_has_no_next(self):
        assert pagination_for(QuerySpec(page=1, limit=10), total=10) == {}

    def test_first_page_has_no_previous(self):
        assert "previous" not in pagination_for(QuerySpec(page=1, limit=10), total=50)

    def test_middle_page_has_both(self):
        pagination = pagination_for(QuerySpec(page=2, limit=10), total=50)
        assert pagination == {
            "next": {"page": 3, "limit": 10},
            "previous": {"page": 1, "limit": 10},
        }

    def test_last_page_has_no_next(self):
        assert "next" not in pagination_for(QuerySpec(page=5, limit=10), total=50)


class TestApplySelect:
    def test_id_and_kept_keys_survive(self):
        data = {"id": 1, "title": "t", "tuition": 5, "bootcamp": {"id": 2}}
        assert apply_select(data, ("title",), keep=("bootcamp",)) == {
            "id": 1,
            "title": "t",
            "bootcamp": {"id": 2},
        }

    def test_no_select_returns_everything(self):
        data = {"id": 1, "title": "t"}
        assert apply_select(data, None) == data


async def _seed_courses(db_session, tuitions):
    owner = User(name="Owner", email="owner@example.com", role="publisher", password_hash="x")
    db_session.add(owner)
    await db_session.flush()
    bootcamp = Bootcamp(
        user_id=owner.id,
        name="Seed Camp",
        slug="seed-camp",
        description="Seed",
        address="Boston",
        careers=["Other"],
    )
    db_session.add(bootcamp)
    await db_session.flush()
    for index, tuition in enumerate(tuitions):
        db_session.add(Course(
            bootcamp_id=bootcamp.id,
            user_id=owner.id,
            title=f"Course {index}",
            description="d",
            weeks=4,
            tuition=tuition,
            minimum_skill="beginner",
        ))
    await db_session.commit()


class TestRunQuery:
    @pytest.mark.asyncio
    async def test_filter_sort_and_second_page(self, db_session):
        await _seed_courses(db_session, [500 * i for i in range(30)])

        spec = parse_query(
            {"tuition": {"gte": 1000}, "sort": "-tuition", "page": "2", "limit": "10"},
            Course,
        )
        page = await run_query(db_session, Course, spec, serialize_course)

        tuitions = [item["tuition"] for item in page.items]
        assert len(tuitions) == 10
        assert all(t >= 1000 for t in tuitions)
        assert tuitions == sorted(tuitions, reverse=True)
        # 28 matches (1000..14500); the second page starts at the 11th highest
        assert tuitions[0] == 14500 - 500 * 10
        assert page.total == 28
        assert page.pagination == {
            "next": {"page": 3, "limit": 10},
            "previous": {"page": 1, "limit": 10},
        }

    @pytest.mark.asyncio
    async def test_envelope_and_select(self, db_session):
        await _seed_courses(db_session, [100, 200, 300])

        spec = parse_query({"select": "title", "limit": "3"}, Course)
        envelope = (await run_query(db_session, Course, spec, serialize_course)).to_envelope()

        assert envelope["success"] is True
        assert envelope["count"] == 3
        assert envelope["total"] == 3
        assert envelope["pagination"] == {}
        assert all(set(item) == {"id", "title"} for item in envelope["data"])
