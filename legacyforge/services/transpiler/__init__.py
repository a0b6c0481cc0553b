"""Legacy syntax downgrade through Babel."""

from .service import (
    LegacyTranspiler,
    build_babel_config,
    find_polyfill_references,
    parse_transform_failure,
)

__all__ = [
    "LegacyTranspiler",
    "build_babel_config",
    "find_polyfill_references",
    "parse_transform_failure",
]
