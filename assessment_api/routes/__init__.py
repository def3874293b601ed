"""API route modules."""
from assessment_api.routes import attempts, auth, tests

__all__ = ["attempts", "auth", "tests"]
