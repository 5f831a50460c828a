"""
Tests for peopledesk/store/sql.py - the SQLAlchemy entity store.
"""
from datetime import date

import pytest

from peopledesk.core.exceptions import StoreError
from peopledesk.realtime.events import EventType
from peopledesk.store.query import ALL, Collection, QuerySpec


def _employee(**overrides):
    values = {
        "full_name": "Test Person",
        "email": "test.person@example.com",
        "department": "Engineering",
        "position": "Engineer",
        "start_date": "2024-02-01",
        "salary": 1000,
    }
    values.update(overrides)
    return values


class TestReads:

    @pytest.mark.asyncio
    async def test_query_filters_search_and_order(self, runtime, seeded):
        spec = QuerySpec().matching("full_name", "E").where(status="active").order_by("full_name")

        rows = await runtime.store.query(Collection.EMPLOYEES, spec)

        assert [r["full_name"] for r in rows] == ["Eli Two", "Emma One"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self, runtime, seeded):
        rows = await runtime.store.query(Collection.EMPLOYEES, QuerySpec().matching("full_name", "MMA"))

        assert [r["email"] for r in rows] == ["emma@example.com"]

    @pytest.mark.asyncio
    async def test_search_escapes_wildcards(self, runtime, seeded):
        rows = await runtime.store.query(Collection.EMPLOYEES, QuerySpec().matching("full_name", "%"))

        assert rows == []

    @pytest.mark.asyncio
    async def test_sentinel_filter_is_ignored(self, runtime, seeded):
        rows = await runtime.store.query(Collection.DEPARTMENTS, QuerySpec().where(status=ALL))

        assert len(rows) == 3

    @pytest.mark.asyncio
    async def test_limit_and_descending_order(self, runtime, seeded):
        spec = QuerySpec().order_by("salary", descending=True).limited(2)

        rows = await runtime.store.query(Collection.EMPLOYEES, spec)

        assert [r["salary"] for r in rows] == [90000, 60000]

    @pytest.mark.asyncio
    async def test_get_returns_plain_row(self, runtime, seeded):
        row = await runtime.store.get(Collection.EMPLOYEES, seeded["e1"]["id"])

        assert row["full_name"] == "Emma One"
        assert row["start_date"] == date(2023, 1, 9)

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, runtime, seeded):
        assert await runtime.store.get(Collection.EMPLOYEES, "missing") is None

    @pytest.mark.asyncio
    async def test_count_and_count_by(self, runtime, seeded):
        assert await runtime.store.count(Collection.EMPLOYEES) == 3
        assert await runtime.store.count(Collection.DEPARTMENTS, QuerySpec().where(status="inactive")) == 1

        by_department = await runtime.store.count_by(Collection.EMPLOYEES, "department")

        assert by_department == {"Administration": 1, "Engineering": 1, "engineering": 1}

    @pytest.mark.asyncio
    async def test_unknown_collection(self, runtime):
        with pytest.raises(StoreError) as exc_info:
            await runtime.store.query("payslips")

        assert exc_info.value.reason == "unknown_collection"

    @pytest.mark.asyncio
    async def test_unknown_field(self, runtime):
        with pytest.raises(StoreError) as exc_info:
            await runtime.store.query(Collection.EMPLOYEES, QuerySpec().where(shoe_size=42))

        assert exc_info.value.reason == "unknown_field"


class TestMutations:

    @pytest.mark.asyncio
    async def test_insert_applies_defaults_and_coerces_dates(self, runtime):
        row = await runtime.store.insert(Collection.EMPLOYEES, _employee())

        assert row["id"]
        assert row["status"] == "active"
        assert row["role"] == "employee"
        assert row["start_date"] == date(2024, 2, 1)
        assert row["created_at"] is not None

    @pytest.mark.asyncio
    async def test_invalid_date_is_a_validation_error(self, runtime):
        with pytest.raises(StoreError) as exc_info:
            await runtime.store.insert(Collection.EMPLOYEES, _employee(start_date="next tuesday"))

        assert exc_info.value.reason == "validation"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_a_constraint_error(self, runtime):
        await runtime.store.insert(Collection.EMPLOYEES, _employee())

        with pytest.raises(StoreError) as exc_info:
            await runtime.store.insert(Collection.EMPLOYEES, _employee(full_name="Someone Else"))

        assert exc_info.value.reason == "constraint"
        assert await runtime.store.count(Collection.EMPLOYEES) == 1

    @pytest.mark.asyncio
    async def test_leave_date_range_enforced(self, runtime, seeded):
        with pytest.raises(StoreError) as exc_info:
            await runtime.store.insert(
                Collection.LEAVE_REQUESTS,
                {
                    "employee_id": seeded["e1"]["id"],
                    "leave_type": "vacation",
                    "start_date": "2025-03-10",
                    "end_date": "2025-03-01",
                },
            )

        assert exc_info.value.reason == "constraint"

    @pytest.mark.asyncio
    async def test_update_returns_new_row(self, runtime, seeded):
        row = await runtime.store.update(Collection.EMPLOYEES, seeded["e1"]["id"], {"phone": "555-0101", "id": "ignored"})

        assert row["id"] == seeded["e1"]["id"]
        assert row["phone"] == "555-0101"

    @pytest.mark.asyncio
    async def test_update_missing_row(self, runtime):
        with pytest.raises(StoreError) as exc_info:
            await runtime.store.update(Collection.DEPARTMENTS, "missing", {"status": "inactive"})

        assert exc_info.value.reason == "not_found"

    @pytest.mark.asyncio
    async def test_delete_returns_deleted_row(self, runtime, seeded):
        department = seeded["departments"]["Design"]

        row = await runtime.store.delete(Collection.DEPARTMENTS, department["id"])

        assert row["name"] == "Design"
        assert await runtime.store.get(Collection.DEPARTMENTS, department["id"]) is None

    @pytest.mark.asyncio
    async def test_delete_missing_row(self, runtime):
        with pytest.raises(StoreError) as exc_info:
            await runtime.store.delete(Collection.DEPARTMENTS, "missing")

        assert exc_info.value.reason == "not_found"


class TestChangePublication:

    @pytest.mark.asyncio
    async def test_every_committed_mutation_is_published(self, runtime):
        events = []
        await runtime.feed.listen("departments", events.append)

        row = await runtime.store.insert(Collection.DEPARTMENTS, {"name": "Finance"})
        await runtime.store.update(Collection.DEPARTMENTS, row["id"], {"status": "inactive"})
        await runtime.store.delete(Collection.DEPARTMENTS, row["id"])

        assert [e.event_type for e in events] == [EventType.INSERT, EventType.UPDATE, EventType.DELETE]
        assert all(e.row_id == row["id"] for e in events)
        assert events[1].row["status"] == "inactive"

    @pytest.mark.asyncio
    async def test_failed_mutation_is_not_published(self, runtime):
        events = []
        await runtime.feed.listen("departments", events.append)

        with pytest.raises(StoreError):
            await runtime.store.update(Collection.DEPARTMENTS, "missing", {"status": "inactive"})

        assert events == []

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_the_write(self, runtime):
        class BrokenFeed:
            async def publish(self, event):
                raise StoreError("redis down", reason="feed_unavailable")

        from peopledesk.store.sql import SQLAlchemyEntityStore

        store = SQLAlchemyEntityStore(runtime.session_factory, BrokenFeed())

        row = await store.insert(Collection.DEPARTMENTS, {"name": "Legal"})

        assert await store.get(Collection.DEPARTMENTS, row["id"]) is not None
