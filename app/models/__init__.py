from app.models.post import ContentSection, Post, Resource

__all__ = ["ContentSection", "Post", "Resource"]
