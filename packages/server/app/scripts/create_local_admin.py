"""
Script to create a verified admin user (and optionally their organization) for local testing.
"""

import argparse
import asyncio

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.database import UnitOfWork, create_engine, create_session_factory, init_db
from app.core.realtime import RealtimeBroadcaster
from app.services.activity_logs import ActivityLogService
from app.services.organizations import OrganizationService
from app.services.users import create_user, get_user_by_email
from prody_shared.schemas.common import Role


async def create_admin(email: str, password: str, first_name: str, org_name: str | None) -> None:
    settings = get_settings()
    engine = create_engine(settings)
    if settings.database_url.startswith("sqlite"):
        await init_db(engine)
    session_factory = create_session_factory(engine)

    async with session_factory() as session:
        user = await get_user_by_email(email, session)
        if user:
            user.password_hash = hash_password(password)
            user.is_email_verified = True
            session.add(user)
            print(f"User {email} already exists; password reset and marked verified.")
        else:
            user = await create_user(
                session,
                email=email,
                first_name=first_name,
                password=password,
                role=Role.ADMIN,
                verified=True,
            )
            print(f"Created user: {email}")
        await session.commit()

        if org_name and user.organization_id is None:
            broadcaster = RealtimeBroadcaster()
            orgs = OrganizationService(ActivityLogService(broadcaster), broadcaster)
            org = await orgs.create(UnitOfWork(session), org_name, user.id)
            print(f"Created organization {org.name} ({org.slug}) with {email} as admin.")

    await engine.dispose()
    print("Done.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--first-name", default="Admin", help="First name (default: Admin)")
    parser.add_argument("--org", default=None, help="Also create this organization")

    args = parser.parse_args()

    asyncio.run(create_admin(args.email, args.password, args.first_name, args.org))


if __name__ == "__main__":
    main()
