"""
Tests for peopledesk/access/policy.py - the row-level access filter.
"""
import pytest

from peopledesk.access.policy import Action, RowLevelAccessFilter
from peopledesk.models.enums import Role
from peopledesk.schemas.identity import Identity
from peopledesk.store.query import Collection, Eq, QuerySpec

ADMIN = Identity(id="admin-1", email="admin@example.com", full_name="Ada Admin", role=Role.ADMIN)
E1 = Identity(id="e1", email="emma@example.com", full_name="Emma One", role=Role.EMPLOYEE)


@pytest.fixture
def policy():
    return RowLevelAccessFilter()


class TestScope:

    def test_admin_query_unchanged(self, policy):
        query = QuerySpec().where(status="pending")

        assert policy.scope(ADMIN, Collection.LEAVE_REQUESTS, query) == query

    def test_employee_leave_requests_narrowed_to_self(self, policy):
        scoped = policy.scope(E1, Collection.LEAVE_REQUESTS, QuerySpec().where(status="pending"))

        assert Eq("employee_id", "e1") in scoped.filters
        assert Eq("status", "pending") in scoped.filters

    def test_employee_documents_narrowed_to_self(self, policy):
        scoped = policy.scope(E1, Collection.EMPLOYEE_DOCUMENTS)

        assert scoped.filters == (Eq("employee_id", "e1"),)

    def test_employee_sees_only_own_employee_row(self, policy):
        scoped = policy.scope(E1, Collection.EMPLOYEES)

        assert scoped.filters == (Eq("id", "e1"),)

    def test_departments_visible_to_everyone(self, policy):
        assert policy.scope(E1, Collection.DEPARTMENTS) == QuerySpec()

    def test_filter_naming_someone_else_matches_nothing(self, policy):
        scoped = policy.scope(E1, Collection.LEAVE_REQUESTS, QuerySpec().where(employee_id="e2"))

        assert not scoped.matches({"employee_id": "e2"})
        assert not scoped.matches({"employee_id": "e1"})

    def test_no_identity_no_query(self, policy):
        assert policy.scope(None, Collection.DEPARTMENTS) is None

    def test_unknown_collection_no_query(self, policy):
        assert policy.scope(ADMIN, "payslips") is None


class TestPermits:

    @pytest.mark.parametrize("action", [Action.INSERT, Action.UPDATE, Action.DELETE])
    def test_admin_may_mutate_employees_and_departments(self, policy, action):
        assert policy.permits(ADMIN, Collection.EMPLOYEES, action, row={"id": "x"})
        assert policy.permits(ADMIN, Collection.DEPARTMENTS, action, row={"id": "x"})

    @pytest.mark.parametrize("action", [Action.INSERT, Action.UPDATE, Action.DELETE])
    def test_employee_may_not_mutate_departments(self, policy, action):
        assert not policy.permits(E1, Collection.DEPARTMENTS, action, row={"id": "d1"})

    def test_employee_may_submit_own_pending_request(self, policy):
        row = {"employee_id": "e1", "status": "pending", "approved_by": None}

        assert policy.permits(E1, Collection.LEAVE_REQUESTS, Action.INSERT, row=row)

    @pytest.mark.parametrize(
        "row",
        [
            {"employee_id": "e2", "status": "pending"},
            {"employee_id": "e1", "status": "approved"},
            {"employee_id": "e1", "status": "pending", "approved_by": "e1"},
            None,
        ],
    )
    def test_employee_may_not_submit_other_requests(self, policy, row):
        assert not policy.permits(E1, Collection.LEAVE_REQUESTS, Action.INSERT, row=row)

    @pytest.mark.parametrize("action", [Action.UPDATE, Action.DELETE])
    def test_only_admin_decides_leave(self, policy, action):
        assert policy.permits(ADMIN, Collection.LEAVE_REQUESTS, action, row={"id": "l1"})
        assert not policy.permits(E1, Collection.LEAVE_REQUESTS, action, row={"id": "l1"})

    def test_self_service_contact_update(self, policy):
        assert policy.permits(
            E1, Collection.EMPLOYEES, Action.UPDATE, row={"id": "e1"}, changes={"phone": "555", "address": "Main St"}
        )

    def test_self_service_excludes_other_fields(self, policy):
        assert not policy.permits(E1, Collection.EMPLOYEES, Action.UPDATE, row={"id": "e1"}, changes={"salary": 1})
        assert not policy.permits(E1, Collection.EMPLOYEES, Action.UPDATE, row={"id": "e1"}, changes={"role": "admin"})

    def test_self_service_only_on_own_row(self, policy):
        assert not policy.permits(E1, Collection.EMPLOYEES, Action.UPDATE, row={"id": "e2"}, changes={"phone": "555"})

    def test_counts(self, policy):
        assert policy.permits(E1, Collection.EMPLOYEES, Action.COUNT)
        assert policy.permits(E1, Collection.DEPARTMENTS, Action.COUNT)
        assert not policy.permits(E1, Collection.LEAVE_REQUESTS, Action.COUNT)
        assert policy.permits(ADMIN, Collection.LEAVE_REQUESTS, Action.COUNT)

    def test_employee_counts_limited_to_public_fields(self, policy):
        assert policy.permits(E1, Collection.EMPLOYEES, Action.COUNT, fields={"department", "status"})
        assert not policy.permits(E1, Collection.EMPLOYEES, Action.COUNT, fields={"salary"})
        assert not policy.permits(E1, Collection.EMPLOYEES, Action.COUNT, fields={"status", "email"})
        assert policy.permits(ADMIN, Collection.EMPLOYEES, Action.COUNT, fields={"salary"})

    def test_unknown_identity_or_collection_never_permitted(self, policy):
        assert not policy.permits(None, Collection.DEPARTMENTS, Action.READ)
        assert not policy.permits(ADMIN, "payslips", Action.READ)
