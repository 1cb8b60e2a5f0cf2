from __future__ import annotations

import re
from urllib.parse import urlparse

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_CHARS_RE = re.compile(r"[^\w\s.,!?-]")


def clean_text(text: str) -> str:
    """Collapse whitespace and drop punctuation other than . , ! ? -"""
    text = _WHITESPACE_RE.sub(" ", text or "")
    text = _DISALLOWED_CHARS_RE.sub("", text)
    return text.strip()


def extract_domain(url: str) -> str:
    """Hostname without a leading 'www.'; the input itself when it does not parse."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return url
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host
