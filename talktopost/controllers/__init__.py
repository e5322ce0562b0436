"""FastAPI routers acting as controllers."""

from . import activity, attachments, auth, drafts, health, posts, recordings

__all__ = ["activity", "attachments", "auth", "drafts", "health", "posts", "recordings"]
