"""Services package for LegacyForge."""

from .adapters import AdapterService
from .bundler import Bundler, EsbuildBundler, RollupBundler
from .injection import WorkletInliner
from .minifier import EsbuildMinifier, Minifier, TerserMinifier
from .tooling import ToolRunner
from .transpiler import LegacyTranspiler

__all__ = [
    "AdapterService",
    "Bundler",
    "EsbuildBundler",
    "RollupBundler",
    "WorkletInliner",
    "EsbuildMinifier",
    "Minifier",
    "TerserMinifier",
    "ToolRunner",
    "LegacyTranspiler",
]
