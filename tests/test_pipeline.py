import uuid
from datetime import UTC, date, datetime, timedelta

import pytest

from jot.v1.core.exceptions import CommitSourceError
from jot.v1.jobs.models import JobStatus, ReflectionJob
from jot.v1.reflections.pipeline import PipelineOutcome, ReflectionPipeline

from tests.fakes import (
    FakeCommitSource,
    FakeContentGenerator,
    FakeImageGenerator,
    FakeNotifier,
    make_commit,
)

WORK_DATE = date(2025, 1, 10)


def claimed_job(repo_id) -> ReflectionJob:
    return ReflectionJob(
        id=uuid.uuid4(),
        repo_id=repo_id,
        work_date=WORK_DATE,
        status=JobStatus.PROCESSING.value,
        attempts=1,
        max_attempts=3,
    )


@pytest.fixture
def collaborators():
    return {
        "commit_source": FakeCommitSource([make_commit(i) for i in range(4)]),
        "content_generator": FakeContentGenerator(),
        "image_generator": FakeImageGenerator(),
        "notifier": FakeNotifier(),
    }


@pytest.fixture
def build(test_settings, repo_store, collaborators):
    def _build(**overrides) -> ReflectionPipeline:
        parts = {**collaborators, **overrides}
        return ReflectionPipeline(settings=test_settings, repo_store=repo_store, **parts)

    return _build


@pytest.fixture
def repo(repo_store, make_snapshot):
    return repo_store.add_repo(
        make_snapshot(webhook_id=9, last_push_at=datetime(2025, 1, 10, 20, tzinfo=UTC))
    )


async def test_writes_reflection_and_notifies(
    build, repo, repo_store, collaborators, fake_session
):
    result = await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.CREATED
    assert result.commit_count == 4
    assert result.notified is True

    saved = repo_store.reflections[repo.repo_id][0]
    assert saved["date"] == WORK_DATE
    assert saved["commit_count"] == 4
    assert saved["summary"] == "Busy day"
    assert saved["comic_url"] == "https://img.example/comic.png"
    assert [c["sha"] for c in saved["commits_data"]] == [
        c.sha for c in collaborators["commit_source"].commits
    ]

    assert repo_store.cleared == [repo.repo_id]
    assert collaborators["notifier"].reflections[0]["to"] == "ada@example.com"


async def test_existing_reflection_is_success_without_work(
    build, repo, repo_store, collaborators, fake_session
):
    repo_store.add_reflection(repo.repo_id, WORK_DATE, commit_count=3)

    result = await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.ALREADY_EXISTS
    assert collaborators["commit_source"].fetch_calls == []
    assert len(repo_store.reflections[repo.repo_id]) == 1
    assert collaborators["notifier"].reflections == []


async def test_fetch_window_starts_at_last_reflection(
    build, repo, repo_store, collaborators, fake_session
):
    last_written = datetime(2025, 1, 9, 22, 10, tzinfo=UTC)
    repo_store.add_reflection(repo.repo_id, date(2025, 1, 9), 2, created_at=last_written)

    await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    assert collaborators["commit_source"].fetch_calls[0][2] == last_written


async def test_fetch_window_defaults_to_lookback(build, repo, collaborators, fake_session):
    before = datetime.now(UTC)
    await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    since = collaborators["commit_source"].fetch_calls[0][2]
    assert before - timedelta(hours=24, seconds=5) <= since <= before - timedelta(hours=23)


async def test_details_capped_at_twenty(build, repo, repo_store, fake_session):
    source = FakeCommitSource([make_commit(i) for i in range(25)])
    generator = FakeContentGenerator()

    await build(commit_source=source, content_generator=generator).execute(
        fake_session, claimed_job(repo.repo_id), repo
    )

    assert len(source.detail_calls) == 20
    assert len(generator.calls[0].commits) == 20
    assert generator.calls[0].commits[0].additions == 10
    assert repo_store.reflections[repo.repo_id][0]["commit_count"] == 25


async def test_first_quiet_day_gets_check_in(build, repo, repo_store, fake_session):
    generator = FakeContentGenerator()
    repo_store.add_reflection(repo.repo_id, date(2025, 1, 9), commit_count=6)

    result = await build(
        commit_source=FakeCommitSource([]), content_generator=generator
    ).execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.CREATED
    assert generator.calls == []
    _, history = generator.quiet_calls[0]
    assert [h.commit_count for h in history] == [6]
    assert repo_store.reflections[repo.repo_id][-1]["commit_count"] == 0


async def test_fourth_quiet_day_goes_silent(
    build, repo, repo_store, collaborators, fake_session
):
    for days_ago in (1, 2, 3):
        repo_store.add_reflection(repo.repo_id, WORK_DATE - timedelta(days=days_ago), 0)
    generator = FakeContentGenerator()

    result = await build(
        commit_source=FakeCommitSource([]), content_generator=generator
    ).execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.SILENCED
    assert generator.quiet_calls == []
    assert len(repo_store.reflections[repo.repo_id]) == 3
    assert collaborators["notifier"].reflections == []


async def test_activity_after_silence_resets_streak(build, repo, repo_store, fake_session):
    for days_ago in (1, 2, 3):
        repo_store.add_reflection(repo.repo_id, WORK_DATE - timedelta(days=days_ago), 0)

    result = await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.CREATED
    assert repo_store.reflections[repo.repo_id][-1]["commit_count"] == 4


async def test_image_failure_is_swallowed(build, repo, repo_store, fake_session):
    result = await build(
        image_generator=FakeImageGenerator(error=TimeoutError("slow"))
    ).execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.CREATED
    assert result.image_url is None
    assert repo_store.reflections[repo.repo_id][0]["comic_url"] is None


async def test_email_failure_is_swallowed(build, repo, repo_store, fake_session):
    result = await build(notifier=FakeNotifier(error=RuntimeError("smtp down"))).execute(
        fake_session, claimed_job(repo.repo_id), repo
    )

    assert result.outcome == PipelineOutcome.CREATED
    assert result.notified is False
    assert len(repo_store.reflections[repo.repo_id]) == 1


async def test_fetch_failure_propagates(build, repo, repo_store, fake_session):
    pipeline = build(commit_source=FakeCommitSource(error=CommitSourceError("boom", 500)))

    with pytest.raises(CommitSourceError):
        await pipeline.execute(fake_session, claimed_job(repo.repo_id), repo)

    assert repo_store.reflections[repo.repo_id] == []


async def test_generation_failure_propagates(build, repo, repo_store, fake_session):
    with pytest.raises(RuntimeError, match="model overloaded"):
        await build(content_generator=FakeContentGenerator(failures=1)).execute(
            fake_session, claimed_job(repo.repo_id), repo
        )
    assert repo_store.cleared == []


async def test_concurrent_write_is_not_duplicated(
    build, repo, repo_store, collaborators, fake_session
):
    original_save = repo_store.save_reflection

    async def racing_save(session, reflection):
        repo_store.add_reflection(reflection.repo_id, reflection.date, 1)
        return await original_save(session, reflection)

    repo_store.save_reflection = racing_save

    result = await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    assert result.outcome == PipelineOutcome.ALREADY_EXISTS
    assert len(repo_store.reflections[repo.repo_id]) == 1
    assert collaborators["notifier"].reflections == []


async def test_tips_email_sent_with_third_reflection(
    build, repo, repo_store, collaborators, fake_session
):
    repo_store.add_reflection(repo.repo_id, date(2025, 1, 8), 2)
    repo_store.add_reflection(repo.repo_id, date(2025, 1, 9), 2)

    await build().execute(fake_session, claimed_job(repo.repo_id), repo)

    assert collaborators["notifier"].tips == ["ada@example.com"]


async def test_no_tips_email_otherwise(build, repo, collaborators, fake_session):
    await build().execute(fake_session, claimed_job(repo.repo_id), repo)
    assert collaborators["notifier"].tips == []
