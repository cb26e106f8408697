"""API route modules."""

from deaftube.api.routes import auth, comments, health, users, videos

__all__ = ["auth", "comments", "health", "users", "videos"]
