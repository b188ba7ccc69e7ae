from app.schemas.post import (
    ContentSectionIn,
    ContentSectionOut,
    PostCreate,
    PostPatch,
    PostResponse,
    PostUpdate,
    ResourceIn,
    ResourceOut,
)

__all__ = [
    "ContentSectionIn",
    "ContentSectionOut",
    "PostCreate",
    "PostPatch",
    "PostResponse",
    "PostUpdate",
    "ResourceIn",
    "ResourceOut",
]
