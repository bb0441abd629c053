# clipit/identifier/stages/extract_video_id.py
"""
Stage 1: Canonical video identifier extraction.

Pure function, no I/O. Any input is acceptable; anything that is not a
recognizable YouTube link yields None rather than an exception.
"""

from __future__ import annotations

import re
from typing import Any, Optional

# Ordered: the first pattern that matches wins.
VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/shorts/([^&\n?#]+)"),
)


def extract_video_id(url: Any) -> Optional[str]:
    """Return the video identifier embedded in ``url``, or None when no known link form matches."""
    if not isinstance(url, str):
        return None

    text = url.strip()
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None
