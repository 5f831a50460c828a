"""
Provision an admin: an auth account plus the employee row that gives it a role.

    python create_user.py --email admin@example.com --password 'Admin123!'
"""

import argparse
import asyncio
from datetime import date

from peopledesk.core.exceptions import AuthError
from peopledesk.core.logging_config import setup_logging
from peopledesk.models.enums import Role
from peopledesk.runtime import Runtime
from peopledesk.store.query import Collection, QuerySpec


async def create_user(email: str, password: str, full_name: str, department: str) -> None:
    runtime = await Runtime.create(create_schema=True)
    try:
        try:
            user = await runtime.auth.sign_up(email, password)
        except AuthError as e:
            print(f"{e}. Leaving the account as is.")
            return

        existing = await runtime.store.query(Collection.EMPLOYEES, QuerySpec().where(email=user.email).limited(1))
        if existing:
            await runtime.store.update(
                Collection.EMPLOYEES, existing[0]["id"], {"auth_id": user.id, "role": Role.ADMIN.value}
            )
            print(f"Linked {user.email} to existing employee {existing[0]['id']} as admin")
            return

        employee = await runtime.store.insert(
            Collection.EMPLOYEES,
            {
                "full_name": full_name,
                "email": user.email,
                "department": department,
                "position": "Administrator",
                "start_date": date.today(),
                "role": Role.ADMIN.value,
                "auth_id": user.id,
            },
        )
        print(f"Created admin {user.email} (employee {employee['id']})")
    finally:
        await runtime.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a PeopleDesk admin account")
    parser.add_argument("--email", default="admin@example.com")
    parser.add_argument("--password", default="Admin123!")
    parser.add_argument("--full-name", default="Admin User")
    parser.add_argument("--department", default="Administration")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(create_user(args.email, args.password, args.full_name, args.department))
