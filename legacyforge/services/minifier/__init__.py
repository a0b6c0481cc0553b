"""Final minification backends."""

from .service import EsbuildMinifier, Minifier, TerserMinifier

__all__ = ["EsbuildMinifier", "Minifier", "TerserMinifier"]
