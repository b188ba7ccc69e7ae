"""Post persistence: create, fetch, list, partial update and delete.

The store owns every SQL statement touching the ``posts``, ``content_sections``
and ``resources`` tables. Each write runs inside one transaction, so a post and
its child rows are committed or rolled back together.

Partial updates are merged by the database rather than by the application:
only supplied columns appear in the ``UPDATE`` statement, and the first
publication is stamped with ``COALESCE(published_at, now)`` so concurrent
writers can never clear or move an existing publication time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, func, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.config import AppSettings
from app.core.errors import (
    ConflictAppError,
    NotFoundAppError,
    PersistenceAppError,
    ValidationAppError,
)
from app.db.database import Database
from app.models.post import ContentSection, Post, Resource, UTCDateTime, utcnow
from app.schemas.post import ContentSectionIn, PostCreate, PostPatch, ResourceIn
from app.utils.sanitize import sanitize_markdown
from app.utils.slug import is_valid_slug, slugify

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
# Keeps OFFSET inside a signed 64-bit column on every backend
MAX_PAGE = 1_000_000
MAX_CONTENT_BYTES = 1024 * 1024

# Bulk statements below never touch objects held by the session
_NO_SYNC = {"synchronize_session": False}


def clamp_pagination(
    page: int | None,
    page_size: int | None,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> tuple[int, int]:
    """Normalise paging input.

    ``page`` below 1 becomes 1 and above ``MAX_PAGE`` becomes ``MAX_PAGE``.
    ``page_size`` below 1 (or missing) becomes the default, above the maximum
    becomes the maximum.

    Returns:
        Tuple of (page, page_size).
    """
    if page is None or page < 1:
        page = 1
    elif page > MAX_PAGE:
        page = MAX_PAGE
    if page_size is None or page_size < 1:
        page_size = default_page_size
    elif page_size > max_page_size:
        page_size = max_page_size
    return page, page_size


def _clean_tags(tags: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def _is_slug_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is the unique index on ``posts.slug``."""
    message = str(exc.orig).lower()
    return "unique" in message and "slug" in message


def _with_children():
    return (selectinload(Post.sections), selectinload(Post.resources))


class PostStore:
    """Relational store for posts.

    Attributes:
        default_page_size: Page size used for missing/invalid input.
        max_page_size: Upper bound applied to ``page_size``.
        max_content_bytes: Largest accepted post body in UTF-8 bytes.
    """

    def __init__(
        self,
        db: Database,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        max_content_bytes: int = MAX_CONTENT_BYTES,
    ) -> None:
        self._db = db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.max_content_bytes = max_content_bytes

    @classmethod
    def from_settings(cls, db: Database, app_settings: AppSettings) -> PostStore:
        return cls(
            db,
            default_page_size=app_settings.default_page_size,
            max_page_size=app_settings.max_page_size,
            max_content_bytes=app_settings.max_content_bytes,
        )

    # -- validation -------------------------------------------------------

    def _clean_title(self, title: str) -> str:
        title = title.strip()
        if not title:
            raise ValidationAppError(
                code="title_required",
                message="title is required",
                details={"field": "title"},
            )
        return title

    def _clean_content(self, content: str) -> str:
        size = len(content.encode("utf-8"))
        if size > self.max_content_bytes:
            raise ValidationAppError(
                code="content_too_large",
                message="post content exceeds maximum size limit",
                details={
                    "field": "content",
                    "limit": self.max_content_bytes,
                    "actual_value": size,
                },
            )
        cleaned = sanitize_markdown(content)
        if not cleaned.strip():
            raise ValidationAppError(
                code="content_required",
                message="content is required",
                details={"field": "content"},
            )
        return cleaned

    def _resolve_slug(self, data: PostCreate, title: str) -> str:
        if data.slug and data.slug.strip():
            slug = data.slug.strip()
            if not is_valid_slug(slug):
                raise ValidationAppError(
                    code="invalid_slug",
                    message="slug can only contain lowercase letters, numbers, and hyphens",
                    details={"field": "slug"},
                )
            return slug

        slug = slugify(title)
        if not slug:
            raise ValidationAppError(
                code="invalid_slug",
                message="title must contain at least one letter or digit to derive a slug",
                details={"field": "title"},
            )
        return slug

    @staticmethod
    def _build_sections(
        sections: list[ContentSectionIn], post_id: int | None = None
    ) -> list[ContentSection]:
        rows = []
        for order, section in enumerate(sections):
            row = ContentSection(
                display_order=order,
                title=section.title.strip(),
                content=sanitize_markdown(section.content),
                points=list(section.points),
                examples=list(section.examples),
            )
            if post_id is not None:
                row.post_id = post_id
            rows.append(row)
        return rows

    @staticmethod
    def _build_resources(
        resources: list[ResourceIn], post_id: int | None = None
    ) -> list[Resource]:
        rows = []
        for resource in resources:
            row = Resource(
                title=resource.title.strip(),
                url=resource.url.strip(),
                type=resource.type,
            )
            if post_id is not None:
                row.post_id = post_id
            rows.append(row)
        return rows

    @staticmethod
    def _persistence_error(operation: str, exc: SQLAlchemyError) -> PersistenceAppError:
        logger.error(
            "post_store.query_failed",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return PersistenceAppError(
            code="persistence_error",
            message=f"Failed to {operation} post",
            details={"context": {"operation": operation}},
        )

    # -- operations -------------------------------------------------------

    def create(self, data: PostCreate) -> Post:
        """Insert a post and its children in one transaction.

        Args:
            data: Validated request body.

        Returns:
            The stored post, re-read after commit.

        Raises:
            ValidationAppError: Blank title/content, oversized content or bad slug.
            ConflictAppError: Another post already uses the slug.
            PersistenceAppError: The database failed.
        """
        title = self._clean_title(data.title)
        content = self._clean_content(data.content)
        slug = self._resolve_slug(data, title)

        now = utcnow()
        post = Post(
            slug=slug,
            title=title,
            content=content,
            description=data.description,
            tags=_clean_tags(data.tags),
            is_published=data.is_published,
            published_at=now if data.is_published else None,
            created_at=now,
            updated_at=now,
        )
        post.sections = self._build_sections(data.sections)
        post.resources = self._build_resources(data.resources)

        try:
            with self._db.transaction() as session:
                session.add(post)
        except IntegrityError as exc:
            if not _is_slug_conflict(exc):
                raise self._persistence_error("create", exc) from exc
            logger.warning("post.slug_conflict", extra={"slug": slug})
            raise ConflictAppError(
                code="slug_conflict",
                message=f"a post with slug '{slug}' already exists",
                details={"slug": slug},
            ) from exc
        except SQLAlchemyError as exc:
            raise self._persistence_error("create", exc) from exc

        logger.info(
            "post.created",
            extra={
                "slug": slug,
                "is_published": data.is_published,
                "section_count": len(data.sections),
                "resource_count": len(data.resources),
            },
        )
        return self._reload(slug, "create")

    def get_by_slug(self, slug: str) -> Post | None:
        """Fetch one post with its sections and resources.

        Returns:
            The post, or None when no row has this slug.

        Raises:
            PersistenceAppError: The query failed.
        """
        stmt = select(Post).where(Post.slug == slug).options(*_with_children())
        try:
            with self._db.session() as session:
                return session.scalars(stmt).one_or_none()
        except SQLAlchemyError as exc:
            raise self._persistence_error("fetch", exc) from exc

    def list(self, page: int | None = 1, page_size: int | None = None) -> list[Post]:
        """List published posts, newest first by creation time."""
        page, page_size = clamp_pagination(
            page,
            page_size,
            default_page_size=self.default_page_size,
            max_page_size=self.max_page_size,
        )
        stmt = (
            select(Post)
            .where(Post.is_published.is_(True))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .options(*_with_children())
        )
        try:
            with self._db.session() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise self._persistence_error("list", exc) from exc

    def update(self, slug: str, patch: PostPatch) -> Post:
        """Apply a partial update.

        Only fields carried as SET or CLEAR in ``patch`` are written. Supplied
        child collections replace the stored ones wholesale; omitted ones are
        kept. The slug itself never changes.

        Raises:
            NotFoundAppError: No post has this slug.
            ValidationAppError: A supplied value is invalid.
            PersistenceAppError: The database failed.
        """
        if patch.is_empty():
            post = self.get_by_slug(slug)
            if post is None:
                raise self._not_found(slug)
            return post

        now = utcnow()
        values: dict = {"updated_at": now}

        if not patch.title.is_unset:
            values["title"] = self._clean_title(patch.title.value or "")
        if not patch.content.is_unset:
            values["content"] = self._clean_content(patch.content.value or "")
        if not patch.description.is_unset:
            values["description"] = patch.description.value
        if not patch.tags.is_unset:
            values["tags"] = _clean_tags(patch.tags.value or [])
        if patch.is_published.is_clear:
            raise ValidationAppError(
                code="invalid_field",
                message="is_published cannot be null",
                details={"field": "is_published"},
            )
        if patch.is_published.is_set:
            values["is_published"] = patch.is_published.value
            if patch.is_published.value:
                values["published_at"] = func.coalesce(
                    Post.published_at, literal(now, UTCDateTime())
                )

        try:
            with self._db.transaction() as session:
                post_id = self._lock_id(session, slug)
                session.execute(
                    update(Post).where(Post.id == post_id).values(**values),
                    execution_options=_NO_SYNC,
                )

                if not patch.sections.is_unset:
                    self._delete_children(session, ContentSection, post_id)
                    session.add_all(self._build_sections(patch.sections.value or [], post_id))
                if not patch.resources.is_unset:
                    self._delete_children(session, Resource, post_id)
                    session.add_all(self._build_resources(patch.resources.value or [], post_id))
        except SQLAlchemyError as exc:
            raise self._persistence_error("update", exc) from exc

        logger.info(
            "post.updated",
            extra={"slug": slug, "fields": sorted(k for k in values if k != "updated_at")},
        )
        return self._reload(slug, "update")

    def delete(self, slug: str) -> None:
        """Remove a post and every row it owns.

        Raises:
            NotFoundAppError: No post has this slug.
            PersistenceAppError: The database failed.
        """
        try:
            with self._db.transaction() as session:
                post_id = self._lock_id(session, slug)
                self._delete_children(session, ContentSection, post_id)
                self._delete_children(session, Resource, post_id)
                session.execute(delete(Post).where(Post.id == post_id), execution_options=_NO_SYNC)
        except SQLAlchemyError as exc:
            raise self._persistence_error("delete", exc) from exc

        logger.info("post.deleted", extra={"slug": slug})

    # -- helpers ----------------------------------------------------------

    def _lock_id(self, session: Session, slug: str) -> int:
        """Resolve a slug to its row id inside a write transaction."""
        post_id = session.scalar(
            select(Post.id).where(Post.slug == slug).with_for_update()
        )
        if post_id is None:
            raise self._not_found(slug)
        return post_id

    @staticmethod
    def _delete_children(
        session: Session, model: type[ContentSection] | type[Resource], post_id: int
    ) -> None:
        session.execute(delete(model).where(model.post_id == post_id), execution_options=_NO_SYNC)

    @staticmethod
    def _not_found(slug: str) -> NotFoundAppError:
        return NotFoundAppError(
            code="post_not_found",
            message="Post not found",
            details={"slug": slug},
        )

    def _reload(self, slug: str, operation: str) -> Post:
        post = self.get_by_slug(slug)
        if post is None:
            # Committed a moment ago; only a concurrent delete gets here
            raise PersistenceAppError(
                code="persistence_error",
                message=f"Failed to {operation} post",
                details={"slug": slug},
            )
        return post
