"""
Seed Admin Profile

Creates the profile row for an admin account that already exists at the
auth provider, so the admin can review student verifications.

Usage:
    python scripts/seed_admin_profile.py <auth-user-uuid> <email> "<full name>"
"""

import asyncio
import sys
from pathlib import Path
from uuid import UUID

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seniorhelp.core.database import async_session_maker, close_db
from seniorhelp.modules.users.models import Profile, UserRole


async def seed_admin_profile(user_id: UUID, email: str, full_name: str) -> None:
    """Create the admin profile if it doesn't exist."""
    async with async_session_maker() as db:
        existing = await db.get(Profile, user_id)

        if existing:
            print(f"Profile already exists: {existing.email}")
            print(f"  ID: {existing.id}")
            print(f"  Role: {existing.role.value}")
            return

        admin = Profile(
            id=user_id,
            role=UserRole.ADMIN,
            full_name=full_name,
            email=email.lower(),
        )
        db.add(admin)
        await db.commit()

        print("Admin profile created successfully!")
        print(f"  Email: {admin.email}")
        print(f"  Name: {admin.full_name}")
        print(f"  ID: {admin.id}")

    await close_db()


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)

    asyncio.run(seed_admin_profile(UUID(sys.argv[1]), sys.argv[2], sys.argv[3]))
