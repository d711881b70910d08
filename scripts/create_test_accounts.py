#!/usr/bin/env python3
"""
Create email/password test accounts for local development.

Usage:
    python scripts/create_test_accounts.py

Creates premium1..premium10@test.com, normal1..normal2@test.com and
admin@test.com, all with password "password123". Existing accounts are left
untouched, only their flags are brought in line.
"""

import asyncio
import sys

# Add project root to path
sys.path.insert(0, ".")

from chathub.auth import hash_password
from chathub.db import close_pool, init_pool
from chathub.repos.user_repo import UserRepo

PASSWORD = "password123"

TEST_ACCOUNTS = (
    [{"email": f"premium{i}@test.com", "is_premium": True, "is_admin": False} for i in range(1, 11)]
    + [{"email": f"normal{i}@test.com", "is_premium": False, "is_admin": False} for i in range(1, 3)]
    + [{"email": "admin@test.com", "is_premium": False, "is_admin": True}]
)


async def main() -> None:
    await init_pool()
    repo = UserRepo()
    password_hash = await hash_password(PASSWORD)

    try:
        for account in TEST_ACCOUNTS:
            flags = {"is_premium": account["is_premium"], "is_admin": account["is_admin"]}
            user = await repo.get_by_email(account["email"])
            if user is None:
                user = await repo.create(account["email"], password_hash=password_hash)
                status = "created"
            else:
                status = "exists"
            await repo.update(user.id, flags)

            kind = "Admin" if account["is_admin"] else "Premium" if account["is_premium"] else "Normal"
            print(f"{status:>7}: {account['email']} ({kind})")
    finally:
        await close_pool()

    print(f"\nPassword for all accounts: {PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
