"""Tests for slug normalization."""

import re

import pytest

from app.utils.slug import is_valid_slug, slugify

SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class TestSlugify:
    def test_punctuation_is_dropped(self) -> None:
        assert slugify("Hello, World!") == "hello-world"

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        assert slugify("  Already-slug  ") == "already-slug"

    def test_consecutive_separators_collapse(self) -> None:
        assert slugify("Python  --  FastAPI   Tips") == "python-fastapi-tips"

    def test_digits_are_kept(self) -> None:
        assert slugify("Top 10 Tricks of 2024") == "top-10-tricks-of-2024"

    def test_non_ascii_letters_are_removed(self) -> None:
        assert slugify("Café Crème") == "caf-crme"

    @pytest.mark.parametrize("title", ["", "   ", "!!!", "---", "¿?"])
    def test_titles_without_alphanumerics_yield_empty(self, title: str) -> None:
        assert slugify(title) == ""

    @pytest.mark.parametrize(
        "title",
        [
            "Hello, World!",
            "  leading and trailing  ",
            "Mixed_CASE with under_scores",
            "tabs\tand\nnewlines",
            "a - b - c",
            "-already-hyphenated-",
            "C++ & Rust: a comparison",
        ],
    )
    def test_output_is_empty_or_well_formed(self, title: str) -> None:
        slug = slugify(title)
        assert slug == "" or SLUG_RE.match(slug)

    @pytest.mark.parametrize("slug", ["hello-world", "a", "post-2", "my-first-post"])
    def test_idempotent_on_normalized_input(self, slug: str) -> None:
        assert slugify(slug) == slug
        assert slugify(slugify(slug)) == slugify(slug)

    def test_deterministic(self) -> None:
        assert slugify("My First Post") == slugify("My First Post") == "my-first-post"


class TestIsValidSlug:
    @pytest.mark.parametrize("slug", ["hello", "hello-world", "v2-release-notes"])
    def test_accepts_normalized_slugs(self, slug: str) -> None:
        assert is_valid_slug(slug) is True

    @pytest.mark.parametrize(
        "slug", ["", "Hello", "hello world", "-hello", "hello-", "hello--world", "héllo"]
    )
    def test_rejects_everything_else(self, slug: str) -> None:
        assert is_valid_slug(slug) is False
