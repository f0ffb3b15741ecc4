"""Scraped-text cleanup: hyperlinks and navigation boilerplate.

Two passes over markdown scraped from a site:

1. **Links** -- a link whose label is a navigation label (``[Home](/)``) is
   dropped outright; any other ``[label](https://...)`` becomes ``label``
   and remaining bare ``http(s)://`` URLs are dropped.
2. **Navigation** -- sentence segments and whole lines holding nothing but a
   navigation label (``Card.``, ``- Support``, ``About Us:``) are removed,
   then runs of blank lines collapse to a single blank line.

A label that is part of a longer sentence is content and stays.
``clean(clean(text)) == clean(text)`` for any input.
"""

from __future__ import annotations

import re
from typing import Iterable

from sitechat.config.settings import DEFAULT_NAV_LABELS

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^\s)]+)\)")
_BARE_URL = re.compile(r"https?://[^\s)\]]+")
_BLANK_LINE = re.compile(r"^[ \t\r]+$", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n{3,}")

# Bullet / dash decoration allowed around a nav label.  No \s: it would
# let one pattern match across line breaks.
_DECOR = r"[-*\t \r]*"


class _NavPatterns:
    """Compiled matchers for one label list."""

    def __init__(self, labels: Iterable[str]) -> None:
        escaped = sorted({re.escape(label.strip()) for label in labels if label.strip()}, key=len, reverse=True)
        alternation = "|".join(escaped)
        flags = re.IGNORECASE | re.MULTILINE
        self.line = re.compile(
            rf"^{_DECOR}(?:{alternation}|\[(?:{alternation})\]\([^)\n]*\)){_DECOR}[.:]?{_DECOR}$",
            flags,
        )
        self.link = re.compile(rf"\[(?:{alternation})\]\([^)\n]*\)", flags)
        # A segment starts a line or follows sentence punctuation plus a
        # blank, and ends with its own punctuation.  One trailing blank goes
        # with it so "A. Card. B." leaves "A. B.".
        self.segment = re.compile(
            rf"(?:^|(?<=[.!?][ \t])){_DECOR}(?:{alternation})[.!?]+(?:[ \t]|$)",
            flags,
        )


def _nav_patterns(labels: Iterable[str]) -> _NavPatterns | None:
    labels = [label for label in labels if label.strip()]
    return _NavPatterns(labels) if labels else None


def remove_links(text: str) -> str:
    """Replace markdown links with their label, then strip bare URLs."""
    text = _MARKDOWN_LINK.sub(r"\1", text)
    return _BARE_URL.sub("", text)


class TextCleaner:
    """Removes hyperlinks and navigation boilerplate from scraped text.

    Parameters
    ----------
    nav_labels:
        Navigation labels to strip (matched case-insensitively).  Defaults
        to the header and footer labels of the Aven site.
    """

    def __init__(self, nav_labels: Iterable[str] | None = None) -> None:
        self._nav_labels = list(nav_labels) if nav_labels is not None else list(DEFAULT_NAV_LABELS)
        self._nav = _nav_patterns(self._nav_labels)

    @property
    def nav_labels(self) -> list[str]:
        return list(self._nav_labels)

    def clean(self, text: str) -> str:
        if not text:
            return ""
        if self._nav is not None:
            text = self._nav.line.sub("", text)
            text = self._nav.link.sub("", text)
        text = remove_links(text)
        return self.remove_nav_lines(text)

    def remove_nav_lines(self, text: str) -> str:
        """Drop navigation-only segments and lines, then collapse blank runs."""
        if self._nav is not None:
            # Segments first: dropping one can leave a bare label on its line.
            text = self._nav.segment.sub("", text)
            text = self._nav.line.sub("", text)
        text = _BLANK_LINE.sub("", text)
        text = _BLANK_RUN.sub("\n\n", text)
        return text.strip()


def clean(text: str, nav_labels: Iterable[str] | None = None) -> str:
    """Module-level shortcut for ``TextCleaner(nav_labels).clean(text)``."""
    return TextCleaner(nav_labels).clean(text)
