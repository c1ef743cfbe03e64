"""Normalization applied to every completion before it leaves the gateway."""

from __future__ import annotations

import re


_LEADING_FENCE = re.compile(r"^\s*```[\w.+-]*[ \t]*\n")
_TRAILING_FENCE = re.compile(r"^[ \t]*```\s*\Z", re.MULTILINE)


def strip_code_fences(text: str) -> str:
    """Remove a markdown code-fence wrapper.

    Only the opening fence line and its matching closing fence line are
    removed. Text without an opening fence is returned unchanged, and the
    wrapped content keeps its own indentation and trailing newline.
    """
    opening = _LEADING_FENCE.match(text)
    if opening is None:
        return text
    body = text[opening.end():]
    return _TRAILING_FENCE.sub("", body, count=1)
