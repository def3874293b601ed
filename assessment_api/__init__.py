"""Assessment API: tests, attempts, grading and statistics."""
