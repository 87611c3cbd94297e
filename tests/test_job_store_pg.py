"""
Queue and reflection store behavior against a real PostgreSQL database.

Skipped unless DATABASE_URL points at PostgreSQL.
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import update

from jot.v1.accounts.store import NewReflection, RepositoryStore
from jot.v1.jobs.models import JobStatus, ReflectionJob
from jot.v1.jobs.store import JobStore

WORK_DATE = date(2025, 1, 10)


@pytest.fixture
def store(test_settings) -> JobStore:
    return JobStore(test_settings)


async def _claim_in_own_session(pg_sessionmaker, store):
    async with pg_sessionmaker() as session:
        job = await store.claim_next(session)
        return job.id if job else None


async def test_insert_if_absent_is_idempotent(store, db_session, sample_repo):
    first = await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)
    second = await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)

    assert first is not None
    assert second is None

    jobs, total = await store.list_jobs(db_session, repo_id=sample_repo.id)
    assert total == 1
    assert jobs[0].status == JobStatus.PENDING.value
    assert jobs[0].attempts == 0


async def test_has_active_job_ignores_terminal_jobs(store, db_session, sample_repo):
    job_id = await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)
    assert await store.has_active_job(db_session, sample_repo.id, WORK_DATE)

    await db_session.execute(
        update(ReflectionJob)
        .where(ReflectionJob.id == job_id)
        .values(status=JobStatus.COMPLETED.value)
    )
    await db_session.commit()

    assert not await store.has_active_job(db_session, sample_repo.id, WORK_DATE)


async def test_concurrent_claims_receive_distinct_jobs(
    store, db_session, pg_sessionmaker, sample_repo
):
    for offset in range(5):
        await store.insert_if_absent(
            db_session, sample_repo.id, WORK_DATE - timedelta(days=offset)
        )

    claimed = await asyncio.gather(
        *(_claim_in_own_session(pg_sessionmaker, store) for _ in range(8))
    )

    job_ids = [job_id for job_id in claimed if job_id is not None]
    assert len(job_ids) == 5
    assert len(set(job_ids)) == 5


async def test_claim_increments_attempts(store, db_session, sample_repo):
    await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)

    job = await store.claim_next(db_session)

    assert job.status == JobStatus.PROCESSING.value
    assert job.attempts == 1
    assert job.started_at is not None
    assert await store.claim_next(db_session) is None


async def test_stale_job_recovered_exactly_once(store, db_session, sample_repo):
    await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)
    job = await store.claim_next(db_session)

    await db_session.execute(
        update(ReflectionJob)
        .where(ReflectionJob.id == job.id)
        .values(started_at=datetime.now(UTC) - timedelta(minutes=20))
    )
    await db_session.commit()

    assert await store.recover_stale(db_session) == [job.id]
    assert await store.recover_stale(db_session) == []

    reclaimed = await store.claim_next(db_session)
    assert reclaimed.id == job.id
    assert reclaimed.attempts == 2


async def test_finish_after_reclaim_is_rejected(
    store, db_session, pg_sessionmaker, sample_repo
):
    await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)
    original = await store.claim_next(db_session)
    original_attempts = original.attempts

    await db_session.execute(
        update(ReflectionJob)
        .where(ReflectionJob.id == original.id)
        .values(started_at=datetime.now(UTC) - timedelta(minutes=20))
    )
    await db_session.commit()
    await store.recover_stale(db_session)

    async with pg_sessionmaker() as other:
        successor = await store.claim_next(other)
        assert successor.attempts == original_attempts + 1

        # The first worker still holds attempt 1 and tries to record its outcome
        assert await store.mark_completed(db_session, original) is False

        assert await store.mark_completed(other, successor) is True

    stored = await store.get_job(db_session, original.id)
    await db_session.refresh(stored)
    assert stored.status == JobStatus.COMPLETED.value
    assert stored.attempts == 2


async def test_requeue_returns_job_to_pending(store, db_session, sample_repo):
    await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)
    job = await store.claim_next(db_session)

    assert await store.requeue(db_session, job, "rate limited") is True

    await db_session.refresh(job)
    assert job.status == JobStatus.PENDING.value
    assert job.started_at is None
    assert job.attempts == 1
    assert job.last_error == "rate limited"


async def test_stats_count_queue_depth(store, db_session, sample_repo):
    await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE)
    await store.insert_if_absent(db_session, sample_repo.id, WORK_DATE - timedelta(days=1))
    job = await store.claim_next(db_session)
    await store.mark_failed(db_session, job, "boom")

    stats = await store.get_stats(db_session)

    assert stats.total_jobs == 2
    assert stats.queue_depth == 1
    assert stats.failed_last_day == 1
    assert stats.by_status == {"pending": 1, "failed": 1}


async def test_save_reflection_is_insert_if_absent(db_session, sample_repo):
    repo_store = RepositoryStore()
    reflection = NewReflection(
        repo_id=sample_repo.id,
        date=WORK_DATE,
        content="Shipped the parser.",
        summary="Parser day",
        commit_count=3,
        commits_data=[{"sha": "abc"}],
    )

    first = await repo_store.save_reflection(db_session, reflection)
    second = await repo_store.save_reflection(db_session, reflection)

    assert first is not None
    assert second is None
    assert await repo_store.count_reflections(db_session, sample_repo.id) == 1
    assert await repo_store.reflection_exists(db_session, sample_repo.id, WORK_DATE)


async def test_snapshot_and_push_signal(db_session, sample_repo):
    repo_store = RepositoryStore()
    pushed_at = datetime(2025, 1, 10, 23, 0, tzinfo=UTC)

    await repo_store.record_push(db_session, sample_repo.id, pushed_at)
    snapshot = await repo_store.get_snapshot(db_session, sample_repo.id)
    assert snapshot.last_push_at == pushed_at
    assert snapshot.subscription_status == "active"
    assert snapshot.access_token == "gho_test"

    await repo_store.clear_push_signal(db_session, sample_repo.id)
    snapshot = await repo_store.get_snapshot(db_session, sample_repo.id)
    assert snapshot.last_push_at is None
