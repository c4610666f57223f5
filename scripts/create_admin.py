"""Create an administrator, or reset the password and role of an existing one

Usage:
    python scripts/create_admin.py <username> <password> [admin|superadmin]
"""
import asyncio
import sys
from sqlalchemy import select, update
from community_watch.core.database import init_db, session_scope
from community_watch.core.security import get_password_hash
from community_watch.models.user import User, UserRole


async def create_admin(username: str, password: str, role: UserRole):
    await init_db()
    async with session_scope() as db:
        result = await db.execute(
            select(User).where(User.username == username)
        )
        existing = result.scalar_one_or_none()

        hashed = get_password_hash(password)
        if existing:
            # Update password
            await db.execute(
                update(User).where(User.id == existing.id).values(
                    hashed_password=hashed,
                    role=role.value,
                )
            )
            print(f"Updated existing administrator: {username}")
        else:
            db.add(User(username=username, hashed_password=hashed, role=role.value))
            print(f"Created administrator: {username}")

        await db.commit()
        print(f"\nRole: {role.value}")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    try:
        role = UserRole(sys.argv[3]) if len(sys.argv) > 3 else UserRole.ADMIN
    except ValueError:
        print(f"Unknown role: {sys.argv[3]} (expected admin or superadmin)")
        sys.exit(1)

    asyncio.run(create_admin(sys.argv[1], sys.argv[2], role))
