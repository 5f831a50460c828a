"""
Shared test fixtures and configuration for PeopleDesk backend tests.
"""
import os
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

import pytest
import pytest_asyncio

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-min-32-chars"
os.environ.pop("REDIS_URL", None)

from peopledesk.realtime.feed import InMemoryChangeFeed  # noqa: E402
from peopledesk.runtime import Runtime  # noqa: E402
from peopledesk.schemas.identity import Identity  # noqa: E402
from peopledesk.store.base import CollectionName, EntityStore  # noqa: E402
from peopledesk.store.query import Collection, QuerySpec, Row  # noqa: E402

PASSWORD = "Password123!"


class CountingStore(EntityStore):
    """Delegating store that records every call, for asserting how often views re-query."""

    def __init__(self, inner: EntityStore):
        self.inner = inner
        self.calls: Counter = Counter()
        self.queries: List[str] = []

    def reset(self) -> None:
        self.calls.clear()
        self.queries.clear()

    async def query(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> List[Row]:
        self.calls["query"] += 1
        self.queries.append(Collection(collection).value)
        return await self.inner.query(collection, spec)

    async def get(self, collection: CollectionName, row_id: str) -> Optional[Row]:
        self.calls["get"] += 1
        return await self.inner.get(collection, row_id)

    async def count(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> int:
        self.calls["count"] += 1
        return await self.inner.count(collection, spec)

    async def count_by(self, collection: CollectionName, field: str, spec: Optional[QuerySpec] = None) -> Dict[Any, int]:
        self.calls["count_by"] += 1
        return await self.inner.count_by(collection, field, spec)

    async def insert(self, collection: CollectionName, values: Mapping[str, Any]) -> Row:
        self.calls["insert"] += 1
        return await self.inner.insert(collection, values)

    async def update(self, collection: CollectionName, row_id: str, changes: Mapping[str, Any]) -> Row:
        self.calls["update"] += 1
        return await self.inner.update(collection, row_id, changes)

    async def delete(self, collection: CollectionName, row_id: str) -> Row:
        self.calls["delete"] += 1
        return await self.inner.delete(collection, row_id)

    @property
    def mutations(self) -> int:
        return self.calls["insert"] + self.calls["update"] + self.calls["delete"]


@pytest_asyncio.fixture
async def runtime(tmp_path):
    """Runtime over a fresh in-memory SQLite database and an in-process change feed."""
    rt = await Runtime.create(
        database_url="sqlite+aiosqlite:///:memory:",
        feed=InMemoryChangeFeed(),
        storage_path=str(tmp_path / "storage"),
        create_schema=True,
    )
    yield rt
    await rt.close()


async def _provision(runtime: Runtime, email: str, **employee: Any) -> Row:
    user = await runtime.auth.sign_up(email, PASSWORD)
    values = {
        "email": email,
        "start_date": date(2023, 1, 9),
        "auth_id": user.id,
        **employee,
    }
    return await runtime.store.insert(Collection.EMPLOYEES, values)


@pytest_asyncio.fixture
async def seeded(runtime):
    """
    One admin and two employees, each with a sign-in account, plus three departments.

    E2's department is spelled in lower case to exercise case-insensitive headcounts.
    """
    admin = await _provision(
        runtime, "admin@example.com",
        full_name="Ada Admin", department="Administration", position="HR Manager",
        salary=90000, role="admin",
    )
    e1 = await _provision(
        runtime, "emma@example.com",
        full_name="Emma One", department="Engineering", position="Engineer", salary=60000,
    )
    e2 = await _provision(
        runtime, "eli@example.com",
        full_name="Eli Two", department="engineering", position="Designer", salary=50000,
    )
    departments = {}
    for name, dept_status in (("Engineering", "active"), ("Design", "inactive"), ("Administration", "active")):
        departments[name] = await runtime.store.insert(
            Collection.DEPARTMENTS, {"name": name, "status": dept_status, "employee_count": 0}
        )
    return {"admin": admin, "e1": e1, "e2": e2, "departments": departments}


@pytest.fixture
def admin_identity(seeded) -> Identity:
    return Identity.from_row(seeded["admin"])


@pytest.fixture
def e1_identity(seeded) -> Identity:
    return Identity.from_row(seeded["e1"])


@pytest.fixture
def e2_identity(seeded) -> Identity:
    return Identity.from_row(seeded["e2"])


@pytest.fixture
def counting_store(runtime) -> CountingStore:
    return CountingStore(runtime.store)


@pytest.fixture
def make_counting_store(runtime):
    """Factory for independent spies, one per simulated client."""
    return lambda: CountingStore(runtime.store)
