import re

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-{2,}")
_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify(title: str) -> str:
    """Turn a post title into a URL-safe slug.

    Lowercases the text, turns spaces into hyphens, drops every character
    outside ``[a-z0-9-]``, collapses hyphen runs and trims hyphens at both
    ends. Never raises; an empty or symbol-only title yields ``""``.

    Args:
        title: Arbitrary title text.

    Returns:
        str: Slug matching ``^[a-z0-9]+(-[a-z0-9]+)*$`` or the empty string.
    """
    slug = title.lower().replace(" ", "-")
    slug = _INVALID_CHARS.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")


def is_valid_slug(slug: str) -> bool:
    """Return True if ``slug`` is already in normalized form."""
    return bool(_SLUG_PATTERN.match(slug))
