"""Post endpoints: public reads and key-guarded writes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import require_api_key
from app.core.errors import NotFoundAppError
from app.schemas.post import PostCreate, PostResponse, PostUpdate
from app.services.post_store import MAX_PAGE, PostStore

router = APIRouter(prefix="/posts", tags=["Posts"])


def get_post_store(request: Request) -> PostStore:
    return request.app.state.post_store


StoreDep = Annotated[PostStore, Depends(get_post_store)]


@router.get("", response_model=list[PostResponse])
def list_posts(
    store: StoreDep,
    page: Annotated[int, Query(le=MAX_PAGE, description="1-based page number")] = 1,
    page_size: Annotated[
        int | None,
        Query(description="Posts per page, at most 50; values below 1 use the default"),
    ] = None,
) -> list[PostResponse]:
    """List published posts, newest first."""
    posts = store.list(page=page, page_size=page_size)
    return [PostResponse.model_validate(post) for post in posts]


@router.get("/{slug}", response_model=PostResponse)
def get_post(slug: str, store: StoreDep) -> PostResponse:
    post = store.get_by_slug(slug)
    if post is None:
        raise NotFoundAppError(
            code="post_not_found",
            message="Post not found",
            details={"slug": slug},
        )
    return PostResponse.model_validate(post)


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
def create_post(payload: PostCreate, store: StoreDep) -> PostResponse:
    """Create a post.

    The slug is derived from the title unless supplied. Returns 409 when the
    slug is already taken.
    """
    return PostResponse.model_validate(store.create(payload))


@router.put(
    "/{slug}",
    response_model=PostResponse,
    dependencies=[Depends(require_api_key)],
)
def update_post(slug: str, payload: PostUpdate, store: StoreDep) -> PostResponse:
    """Partially update a post; omitted fields keep their stored values."""
    return PostResponse.model_validate(store.update(slug, payload.to_patch()))


@router.delete("/{slug}", dependencies=[Depends(require_api_key)])
def delete_post(slug: str, store: StoreDep) -> dict:
    store.delete(slug)
    return {"status": "deleted", "slug": slug}
