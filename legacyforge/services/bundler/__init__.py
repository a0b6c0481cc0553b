"""Bundler backends."""

from .service import BundleRequest, Bundler, EsbuildBundler, RollupBundler

__all__ = ["BundleRequest", "Bundler", "EsbuildBundler", "RollupBundler"]
