"""Text cleaning helpers."""

import html
import re
from typing import Optional


def clean_text(text: Optional[str]) -> Optional[str]:
    """Clean text by stripping HTML, unescaping entities, and collapsing whitespace."""
    if not text:
        return None
    # Strip HTML tags (keep text content)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    # Remove escaped quotes
    text = text.replace('\\"', '"')
    # Collapse whitespace
    text = re.sub(r"\s+", " ", text).strip()
    return text if text else None


def truncate(text: Optional[str], limit: int) -> Optional[str]:
    """Truncate text to `limit` characters on a word boundary, adding an ellipsis."""
    if text is None or len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0].rstrip(" ,.;:")
    return f"{cut or text[:limit]}..."
