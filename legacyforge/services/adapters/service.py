"""
Entry Adapter Service.

Loads, validates and scaffolds the two entry adapters. Validation covers the
polyfill prelude (the side-effect imports must run before any other module)
and, for the main adapter, the placeholder function the injection step needs.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from ...core.config import Config
from ...core.exceptions import ResolutionError
from ...core.logging import get_logger
from ...models.artifacts import AdapterRole, EntryAdapterModule
from ..injection.patterns import exported_stub_declaration
from .templates import MAIN_ADAPTER, PROCESSOR_ADAPTER, render_polyfills

logger = get_logger(__name__)

_EXPORT_DECLARATION = re.compile(
    r"^\s*export\s+(?:declare\s+)?(?:async\s+)?(?:function\*?|const|let|var|class)\s+([\w$]+)",
    re.MULTILINE,
)
_EXPORT_STAR = re.compile(r"^\s*export\s+\*\s+from\s+[\"']([^\"']+)[\"']", re.MULTILINE)
_SIDE_EFFECT_IMPORT = re.compile(r"""^import\s+["']([^"']+)["']\s*;?\s*$""")


def leading_statements(source: str) -> list[str]:
    """Top-of-file statements with blank lines and comments dropped."""
    statements = []
    in_block_comment = False
    for raw in source.splitlines():
        line = raw.strip()
        if in_block_comment:
            if "*/" in line:
                in_block_comment = False
                line = line.split("*/", 1)[1].strip()
            else:
                continue
        if line.startswith("/*"):
            if "*/" not in line:
                in_block_comment = True
                continue
            line = line.split("*/", 1)[1].strip()
        if not line or line.startswith("//"):
            continue
        statements.append(line)
    return statements


def exported_symbols(source: str) -> list[str]:
    symbols = _EXPORT_DECLARATION.findall(source)
    symbols += [f"*:{module}" for module in _EXPORT_STAR.findall(source)]
    return symbols


class AdapterService:
    """Entry adapters for one project."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.paths = config.paths

    @property
    def main_path(self) -> Path:
        return self.paths.resolve(self.paths.main_entry)

    @property
    def processor_path(self) -> Path:
        return self.paths.resolve(self.paths.processor_entry)

    def check_polyfill_prelude(self, path: Path, source: str) -> None:
        """Require the polyfill imports to be the adapter's first statements.

        Raises:
            ResolutionError: If a polyfill import is missing or comes too late.
        """
        required = self.config.target.polyfill_imports
        head = leading_statements(source)[: len(required)]
        found = []
        for statement in head:
            match = _SIDE_EFFECT_IMPORT.match(statement)
            found.append(match.group(1) if match else statement)
        if found != required:
            raise ResolutionError(
                message="Entry adapter must start with the polyfill imports "
                + ", ".join(required),
                context={"found": found},
                path=str(path),
                stage="polyfill-prelude",
            )

    def _read(self, path: Path) -> str:
        if not path.is_file():
            raise ResolutionError(
                message="Entry adapter does not exist (run 'legacyforge scaffold')",
                path=str(path),
                stage="adapters",
            )
        return path.read_text(encoding="utf-8")

    def load_main(self) -> EntryAdapterModule:
        """Load and validate the main library adapter."""
        path = self.main_path
        source = self._read(path)
        self.check_polyfill_prelude(path, source)

        placeholder = self.config.injection.placeholder_name
        declared = exported_stub_declaration(placeholder).search(source)
        if declared is None:
            raise ResolutionError(
                message=f"Main adapter must export a throwing placeholder '{placeholder}()'",
                path=str(path),
                stage="adapters",
            )

        adapter = EntryAdapterModule(
            source_path=path,
            role=AdapterRole.MAIN,
            exported_symbols=exported_symbols(source),
            placeholder_markers=[placeholder],
            global_name=self.config.injection.main_global_name,
        )
        logger.debug("Loaded main adapter", path=str(path), exports=adapter.exported_symbols)
        return adapter

    def load_processor(self) -> EntryAdapterModule:
        """Load and validate the worklet processor adapter."""
        path = self.processor_path
        source = self._read(path)
        self.check_polyfill_prelude(path, source)
        if "registerProcessor(" not in source:
            raise ResolutionError(
                message="Processor adapter never calls registerProcessor()",
                path=str(path),
                stage="adapters",
            )
        return EntryAdapterModule(
            source_path=path,
            role=AdapterRole.PROCESSOR,
            exported_symbols=exported_symbols(source),
            global_name=self.config.injection.processor_global_name,
        )

    def scaffold(self, force: bool = False) -> list[Path]:
        """Write both adapters from the built-in templates.

        Args:
            force: Overwrite adapters that already exist.

        Returns:
            Paths that were written.
        """
        polyfills = render_polyfills(self.config.target.polyfill_imports)
        library = self.paths.resolve(self.paths.library_entry)
        library_import = os.path.relpath(library, self.main_path.parent).replace(os.sep, "/")
        if not library_import.startswith("."):
            library_import = f"./{library_import}"

        sources = {
            self.main_path: MAIN_ADAPTER.format(
                polyfills=polyfills,
                library_import=library_import,
                placeholder=self.config.injection.placeholder_name,
            ),
            self.processor_path: PROCESSOR_ADAPTER.format(polyfills=polyfills),
        }

        written = []
        for path, source in sources.items():
            if path.exists() and not force:
                logger.info("Adapter exists, skipping", path=str(path))
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source, encoding="utf-8")
            written.append(path)
            logger.info("Wrote adapter", path=str(path))
        return written
