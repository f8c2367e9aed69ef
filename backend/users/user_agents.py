"""Tiny User-Agent parsing used for login history."""

from __future__ import annotations

import re
from typing import Optional

# Order matters: Edge and Opera both advertise Chrome, Chrome advertises Safari.
_BROWSER_PATTERNS = (
    ("Edge", "Edg", re.compile(r"Edg/(\d+\.\d+)")),
    ("Opera", "OPR", re.compile(r"(?:OPR|Opera)/(\d+\.\d+)")),
    ("Opera", "Opera", re.compile(r"(?:OPR|Opera)/(\d+\.\d+)")),
    ("Chrome", "Chrome", re.compile(r"Chrome/(\d+\.\d+)")),
    ("Firefox", "Firefox", re.compile(r"Firefox/(\d+\.\d+)")),
    ("Safari", "Safari", re.compile(r"Version/(\d+\.\d+)")),
)

_TABLET_MARKERS = ("ipad", "tablet", "kindle", "playbook")
_MOBILE_MARKERS = ("mobile", "android", "iphone", "ipod", "windows phone", "blackberry")


def parse_browser(user_agent: Optional[str]) -> Optional[str]:
    """Return e.g. "Chrome 120.0" or None when the browser is not recognised."""
    if not user_agent:
        return None
    for label, marker, pattern in _BROWSER_PATTERNS:
        if marker not in user_agent:
            continue
        match = pattern.search(user_agent)
        if match:
            return f"{label} {match.group(1)}"
    return None


def detect_device(user_agent: Optional[str]) -> Optional[str]:
    """Classify the client as desktop, tablet or mobile."""
    if not user_agent:
        return None
    lowered = user_agent.lower()
    if any(marker in lowered for marker in _TABLET_MARKERS):
        return "tablet"
    if any(marker in lowered for marker in _MOBILE_MARKERS):
        return "mobile"
    return "desktop"
