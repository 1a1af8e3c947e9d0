#!/usr/bin/env python3
"""
Grant a role to a registered user.

Usage:
    python scripts/grant_role.py <user-id> admin
    python scripts/grant_role.py <user-id> student --database-url sqlite+aiosqlite:///./dev.db
"""

import argparse
import asyncio
import sys
from uuid import UUID

from complaintdesk.accounts.interfaces import build_account_service
from complaintdesk.config import APP_ROLES, AppRole
from complaintdesk.core import ResourceNotFoundException
from complaintdesk.infrastructure.database import (
    close_database,
    get_session_context,
    init_database,
)
from complaintdesk.shared.infrastructure.logging import setup_logging


async def grant(user_id: UUID, role: AppRole, database_url: str | None) -> int:
    init_database(database_url)
    try:
        async with get_session_context() as session:
            granted = await build_account_service(session).grant_role(user_id, role)
    except ResourceNotFoundException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await close_database()

    if granted:
        print(f"Granted '{role.value}' to {user_id}")
    else:
        print(f"{user_id} already has '{role.value}'")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Grant a role to a registered user")
    parser.add_argument("user_id", type=UUID, help="User id (profiles.id)")
    parser.add_argument("role", choices=APP_ROLES, help="Role to grant")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    args = parser.parse_args()

    setup_logging("WARNING")
    return asyncio.run(grant(args.user_id, AppRole(args.role), args.database_url))


if __name__ == "__main__":
    sys.exit(main())
