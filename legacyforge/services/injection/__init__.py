"""Worklet inlining transform."""

from .patterns import PlaceholderPattern, build_patterns, render_blob_url_body
from .service import WorkletInliner, verify_injection

__all__ = [
    "PlaceholderPattern",
    "WorkletInliner",
    "build_patterns",
    "render_blob_url_body",
    "verify_injection",
]
