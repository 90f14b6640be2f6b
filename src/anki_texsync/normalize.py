"""Text canonicalization for note comparison.

Policy: field names and values are compared after
- removing every whitespace character (re-wrapping is not a change)
- unescaping ``&lt;`` and ``&gt;`` (the store re-escapes angle brackets)
"""

from __future__ import annotations

import re

_WS_RE = re.compile(r"\s+")


def strip_whitespace(text: str) -> str:
    if not text:
        return ""
    return _WS_RE.sub("", text)


def unescape_angle_brackets(text: str) -> str:
    return text.replace("&gt;", ">").replace("&lt;", "<")


def canonicalize(text: str) -> str:
    """Canonical form of a field name or value for equivalence checks."""
    return unescape_angle_brackets(strip_whitespace(text))
