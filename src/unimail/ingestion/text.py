"""Body normalisation helpers shared by sync and the outbox."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

MAX_TEXT_BODY = 5000
MAX_HTML_BODY = 200_000
TRUNCATION_MARKER = "..."
NO_BODY = "(no body)"
UNPARSEABLE_BODY = "(unable to parse body)"

_WHITESPACE_RE = re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """Return the visible text of ``html`` with whitespace runs collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    return _WHITESPACE_RE.sub(" ", soup.get_text(" ")).strip()


def derive_plain_body(text: str | None, html: str | None) -> str:
    """Pick the plain body: text part, else stripped HTML, else a placeholder."""
    if text and text.strip():
        candidate = text.strip()
    elif html:
        candidate = html_to_text(html)
    else:
        candidate = ""
    if not candidate:
        return NO_BODY
    return candidate[:MAX_TEXT_BODY]


def cap_html(html: str | None) -> str | None:
    """Cap ``html``; a truncated value ends with the truncation marker."""
    if not html:
        return None
    if len(html) <= MAX_HTML_BODY:
        return html
    return html[:MAX_HTML_BODY] + TRUNCATION_MARKER


__all__ = [
    "MAX_HTML_BODY",
    "MAX_TEXT_BODY",
    "NO_BODY",
    "TRUNCATION_MARKER",
    "UNPARSEABLE_BODY",
    "cap_html",
    "derive_plain_body",
    "html_to_text",
]
