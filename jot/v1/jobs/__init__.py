"""
Reflection job queue.

- Scheduler: fast pass that enqueues one pending job per eligible repo and day
- Worker: time-bounded loop that claims jobs with SELECT FOR UPDATE SKIP LOCKED
- Retries up to max_attempts, with a staleness sweep for abandoned jobs
"""
