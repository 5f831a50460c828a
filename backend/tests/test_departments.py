"""
Tests for peopledesk/services/departments.py - department reads with live headcounts.
"""
import pytest

from peopledesk.controllers import views
from peopledesk.controllers.notifier import Notifier
from peopledesk.core.exceptions import AccessDenied, StoreError
from peopledesk.models.enums import DepartmentStatus
from peopledesk.schemas.department import DepartmentCreate, DepartmentUpdate
from peopledesk.services.departments import DepartmentService
from peopledesk.store.query import Collection


def _summary(rows):
    return [(row["name"], row["employee_count"]) for row in rows]


class TestDepartmentList:

    @pytest.mark.asyncio
    async def test_active_departments_with_headcounts(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))

        rows = await service.list(status="active")

        assert _summary(rows) == [("Administration", 1), ("Engineering", 2)]

    @pytest.mark.asyncio
    async def test_inactive_departments(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))

        rows = await service.list(status="inactive")

        assert _summary(rows) == [("Design", 0)]

    @pytest.mark.asyncio
    async def test_all_departments(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))

        rows = await service.list()

        assert _summary(rows) == [("Administration", 1), ("Design", 0), ("Engineering", 2)]

    @pytest.mark.asyncio
    async def test_stored_count_is_ignored(self, runtime, seeded, admin_identity):
        """The persisted employee_count is stale on purpose; reads recompute it."""
        engineering = seeded["departments"]["Engineering"]
        await runtime.store.update(Collection.DEPARTMENTS, engineering["id"], {"employee_count": 99})

        row = await DepartmentService(runtime.scoped(admin_identity)).get(engineering["id"])

        assert row["employee_count"] == 2

    @pytest.mark.asyncio
    async def test_employees_see_company_wide_counts(self, runtime, seeded, e1_identity):
        rows = await DepartmentService(runtime.scoped(e1_identity)).list(status="active")

        assert _summary(rows) == [("Administration", 1), ("Engineering", 2)]

    @pytest.mark.asyncio
    async def test_search(self, runtime, seeded, admin_identity):
        rows = await DepartmentService(runtime.scoped(admin_identity)).list(search="ENG")

        assert _summary(rows) == [("Engineering", 2)]

    @pytest.mark.asyncio
    async def test_missing_department(self, runtime, seeded, admin_identity):
        assert await DepartmentService(runtime.scoped(admin_identity)).get("missing") is None


class TestDepartmentMutations:

    @pytest.mark.asyncio
    async def test_create_starts_active_and_empty(self, runtime, seeded, admin_identity):
        row = await DepartmentService(runtime.scoped(admin_identity)).create(
            DepartmentCreate(name="Finance", description="Money")
        )

        assert row["status"] == "active"
        assert row["employee_count"] == 0
        assert row["description"] == "Money"

    @pytest.mark.asyncio
    async def test_status_filter_follows_deactivation(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))
        research = await service.create(DepartmentCreate(name="Research"))

        assert "Research" in [row["name"] for row in await service.list(status="active")]

        await service.set_status(research["id"], DepartmentStatus.INACTIVE)

        assert "Research" not in [row["name"] for row in await service.list(status="active")]
        assert "Research" in [row["name"] for row in await service.list(status="inactive")]
        assert "Research" in [row["name"] for row in await service.list()]

    @pytest.mark.asyncio
    async def test_update_requires_changes(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))

        with pytest.raises(StoreError) as exc_info:
            await service.update(seeded["departments"]["Design"]["id"], DepartmentUpdate())

        assert exc_info.value.reason == "validation"

    @pytest.mark.asyncio
    async def test_update_and_status(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))
        design = seeded["departments"]["Design"]["id"]

        await service.update(design, DepartmentUpdate(description="Visual"))
        row = await service.set_status(design, DepartmentStatus.ACTIVE)

        assert row["status"] == "active"
        assert row["description"] == "Visual"

    @pytest.mark.asyncio
    async def test_delete(self, runtime, seeded, admin_identity):
        service = DepartmentService(runtime.scoped(admin_identity))
        design = seeded["departments"]["Design"]["id"]

        await service.delete(design)

        assert await service.get(design) is None

    @pytest.mark.asyncio
    async def test_employees_cannot_change_departments(self, runtime, seeded, e1_identity):
        service = DepartmentService(runtime.scoped(e1_identity))
        design = seeded["departments"]["Design"]["id"]

        with pytest.raises(AccessDenied):
            await service.create(DepartmentCreate(name="Shadow IT"))
        with pytest.raises(AccessDenied):
            await service.set_status(design, DepartmentStatus.ACTIVE)
        with pytest.raises(AccessDenied):
            await service.delete(design)


class TestDepartmentGrid:

    @pytest.mark.asyncio
    async def test_grid_counts_follow_status_filter(self, runtime, seeded, admin_identity):
        grid = views.department_grid(runtime.scoped(admin_identity), runtime.subscriptions, Notifier(), status="active")
        await grid.start()
        assert _summary(grid.rows) == [("Administration", 1), ("Engineering", 2)]

        await runtime.store.update(Collection.DEPARTMENTS, seeded["departments"]["Design"]["id"], {"status": "active"})
        await grid.settled()

        assert _summary(grid.rows) == [("Administration", 1), ("Design", 0), ("Engineering", 2)]
        grid.close()

    @pytest.mark.asyncio
    async def test_grid_counts_follow_employee_changes(self, runtime, seeded, admin_identity):
        grid = views.department_grid(runtime.scoped(admin_identity), runtime.subscriptions, Notifier(), status="active")
        await grid.start()
        assert _summary(grid.rows) == [("Administration", 1), ("Engineering", 2)]

        hire = await runtime.store.insert(
            Collection.EMPLOYEES,
            {"email": "new@example.com", "full_name": "New Hire", "department": "Engineering", "position": "Engineer", "start_date": "2025-01-06"},
        )
        await grid.settled()
        assert _summary(grid.rows) == [("Administration", 1), ("Engineering", 3)]

        await runtime.store.update(Collection.EMPLOYEES, hire["id"], {"department": "Administration"})
        await grid.settled()
        assert _summary(grid.rows) == [("Administration", 2), ("Engineering", 2)]
        grid.close()

        assert runtime.subscriptions.active() == []
