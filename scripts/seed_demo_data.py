#!/usr/bin/env python3
"""
Demo Data Seeder - Populates the database with a repository to reflect on

This script creates:
- A dev profile on an active subscription, using GITHUB_TOKEN as credential
- Tracked repositories given on the command line (owner/name)
- A few past reflections so quiet-day history has something to read

Run `jot cron schedule` inside the evening window afterwards.
"""

import asyncio
import os
import sys
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from jot.config.settings import settings
from jot.v1.accounts.models import Profile, Reflection, Repo, SubscriptionStatus

DEV_PROFILE_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


async def seed_demo_data(full_names: list[str]):
    """Seed a profile, repositories and a short reflection history"""
    engine = create_async_engine(settings.database_url)
    async_session = async_sessionmaker(engine, expire_on_commit=False)

    async with async_session() as db:
        try:
            profile = await db.get(Profile, DEV_PROFILE_ID)
            if not profile:
                profile = Profile(
                    id=DEV_PROFILE_ID,
                    email=os.getenv("SEED_EMAIL", "dev@jot.local"),
                    name="Dev",
                    github_access_token=os.getenv("GITHUB_TOKEN"),
                    subscription_status=SubscriptionStatus.ACTIVE.value,
                    timezone=os.getenv("SEED_TIMEZONE", settings.default_timezone),
                )
                db.add(profile)
                print("✅ Created dev profile")
            else:
                print("ℹ️ Dev profile already exists")

            await db.flush()

            today = datetime.now(UTC).date()
            for index, full_name in enumerate(full_names):
                existing = await db.execute(
                    select(Repo).where(
                        Repo.user_id == DEV_PROFILE_ID, Repo.full_name == full_name
                    )
                )
                if existing.scalar_one_or_none():
                    print(f"ℹ️ {full_name} already tracked")
                    continue

                repo = Repo(
                    user_id=DEV_PROFILE_ID,
                    github_repo_id=900_000 + index,
                    name=full_name.split("/")[-1],
                    full_name=full_name,
                    is_active=True,
                )
                db.add(repo)
                await db.flush()

                # Two past days: one busy, one quiet
                for days_ago, commits in ((3, 4), (2, 0)):
                    db.add(
                        Reflection(
                            repo_id=repo.id,
                            date=today - timedelta(days=days_ago),
                            content="Seeded reflection.",
                            summary="Seeded" if commits else "Quiet day",
                            commit_count=commits,
                            commits_data=[],
                        )
                    )
                print(f"✅ Tracking {full_name} ({repo.id})")

            await db.commit()
            print("🎉 Demo data seeded successfully!")
            print("\n🚀 Try: jot cron schedule && jot cron work")

        except Exception as e:
            await db.rollback()
            print(f"❌ Error seeding data: {e}")
            raise
        finally:
            await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_demo_data(sys.argv[1:] or ["octocat/Hello-World"]))
