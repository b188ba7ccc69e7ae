"""HTML sanitisation for user-supplied Markdown."""

from __future__ import annotations

import bleach

# Markdown renders to these; anything else (script, iframe, on* attributes) goes
ALLOWED_TAGS = frozenset(
    {
        "a", "abbr", "b", "blockquote", "br", "code", "em", "h1", "h2", "h3",
        "h4", "h5", "h6", "hr", "i", "img", "li", "ol", "p", "pre", "strong",
        "table", "tbody", "td", "th", "thead", "tr", "ul",
    }
)
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "rel"],
    "img": ["src", "alt", "title"],
    "code": ["class"],
    "pre": ["class"],
}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})


def sanitize_markdown(content: str) -> str:
    """Strip disallowed HTML from Markdown content."""
    return bleach.clean(
        content,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    )
