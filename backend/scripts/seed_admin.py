"""Seed script for the first portal administrator.

Creates:
- Identity "admin@hess.local" (password provided via env)
- The admin role for that identity

Can be run multiple times safely (skips what exists).
"""
import asyncio
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.database import AsyncSessionLocal
from hess.core.security import PasswordValidationError, hash_password, validate_password
from hess.models.auth_user import AuthUser
from hess.models.enums import AppRole
from hess.services.identity_service import IdentityService, normalize_email


async def ensure_admin(db: AsyncSession, email: str, password: str) -> tuple[AuthUser, bool]:
    """Create the identity if missing and grant it the admin role.

    Returns the identity and whether it was created.

    Raises:
        PasswordValidationError: if a new identity's password is too weak
    """
    identities = IdentityService(db)
    user = await identities.get_by_email(email)
    created = False
    if user is None:
        validate_password(password)
        user = AuthUser(
            email=normalize_email(email),
            encrypted_password=hash_password(password),
            user_metadata={"first_name": "Portal", "last_name": "Admin"},
            email_confirmed_at=datetime.now(UTC),
        )
        db.add(user)
        await db.flush()
        created = True
    await identities.assign_role(user.id, AppRole.ADMIN)
    return user, created


async def seed_admin():
    """Seed the administrator identity."""
    print("Starting admin seeding...")

    admin_email = os.environ.get("SEED_ADMIN_EMAIL", "admin@hess.local")
    admin_password = os.environ.get("SEED_ADMIN_PASSWORD")
    if not admin_password:
        print("Missing SEED_ADMIN_PASSWORD environment variable")
        print("  Example: SEED_ADMIN_PASSWORD='YourStrongPassword123' python scripts/seed_admin.py")
        return

    async with AsyncSessionLocal() as db:
        try:
            user, created = await ensure_admin(db, admin_email, admin_password)
        except PasswordValidationError as e:
            print(f"Password validation failed: {e}")
            return
        await db.commit()

    if created:
        print(f"Created admin identity '{user.email}' (ID: {user.id})")
    else:
        print(f"Admin identity '{user.email}' already exists (ID: {user.id})")
    print("\nYou can now login with:")
    print(f"  Email: {user.email}")


if __name__ == "__main__":
    asyncio.run(seed_admin())
