"""Text helpers for rich-text (HTML) entry bodies: tag stripping, word counts, highlighting."""

import re

_TAG_RE = re.compile(r"<[^>]*>")
_TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")

HIGHLIGHT_OPEN = "<span style='background-color: #ffeb3b; color: black;'>"
HIGHLIGHT_CLOSE = "</span>"


def strip_markup(markup: str) -> str:
    """Remove tags from markup, leaving the visible text."""
    if not markup:
        return ""
    return _TAG_RE.sub("", markup).strip()


def word_count(markup: str) -> int:
    """Count whitespace-separated words in the visible text of *markup*."""
    text = strip_markup(markup)
    return len(text.split()) if text else 0


def highlight(markup: str, term: str | None) -> str:
    """Wrap case-insensitive occurrences of *term* in a highlight span.

    Only text between tags is touched, so attribute values and tag names
    that happen to contain the term are left intact.
    """
    if not term or not markup:
        return markup or ""
    pattern = re.compile(f"({re.escape(term)})", re.IGNORECASE)
    replacement = rf"{HIGHLIGHT_OPEN}\1{HIGHLIGHT_CLOSE}"

    # split() with a capturing group puts tags at odd indices
    parts = _TAG_SPLIT_RE.split(markup)
    for i, part in enumerate(parts):
        if i % 2 == 0 and part:
            parts[i] = pattern.sub(replacement, part)
    return "".join(parts)
