"""jot: nightly reflections on a day's commits."""
