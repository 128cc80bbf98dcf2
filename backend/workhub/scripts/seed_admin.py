"""Create (or reset) the first administrator account.

Usage:
    python -m workhub.scripts.seed_admin --username admin --email admin@example.com

The password is read from ``--password`` or prompted for interactively.
"""

import argparse
import asyncio
import getpass
import sys

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.db.session import async_session_factory
from workhub.models.user import User
from workhub.services.auth import hash_password


async def seed_admin(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    display_name: str | None = None,
) -> tuple[User, bool]:
    """Create the admin account, or reset role and password if the username exists.

    Returns the account and whether it was newly created.
    """
    user = await db.scalar(
        select(User).where(func.lower(User.username) == username.lower())
    )
    created = user is None
    if user is None:
        user = User(
            kind="account",
            username=username,
            email=email,
            display_name=display_name or username,
        )
        db.add(user)

    user.hashed_password = hash_password(password)
    user.role = "admin"
    user.is_active = True
    await db.flush()
    return user, created


async def run(args: argparse.Namespace, password: str) -> None:
    async with async_session_factory() as db:
        user, created = await seed_admin(
            db, args.username, args.email, password, args.display_name
        )
        await db.commit()
    action = "Created" if created else "Updated"
    print(f"{action} admin account '{user.username}' ({user.id})")


def main():
    parser = argparse.ArgumentParser(description="Create the first administrator account")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--display-name", default=None)
    parser.add_argument("--password", default=None, help="Prompted for when omitted")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters", file=sys.stderr)
        sys.exit(1)

    asyncio.run(run(args, password))


if __name__ == "__main__":
    main()
