"""
Legacy Transpiler Service.

Downgrades bundled code to the legacy target profile with Babel and
``@babel/preset-env``. Polyfills are added by usage only, so the output only
carries what the code actually needs.

Two invocation modes exist because the pipeline variants call the transpiler
at different points: over a file on disk (standalone command) and over an
in-memory chunk piped through stdin.

Babel only adds polyfills as `require("core-js/...")` or `import "core-js/..."`
statements, and it runs after bundling. Those references are linked here: they
are bundled by esbuild into one minified IIFE that replaces them at the top of
the transpiled code, so the published file never depends on a module loader.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ...core.config import TargetConfig
from ...core.exceptions import ConfigurationError, ResolutionError, TransformError
from ...core.logging import get_logger
from ...models.artifacts import Artifact, TranspiledArtifact
from ...storage import ArtifactStore
from ..tooling import ToolOutput, ToolRunner

logger = get_logger(__name__)

# Babel reports "SyntaxError: /path/file.js: Unexpected token (12:5)"
_BABEL_LOCATION = re.compile(
    r"(?P<kind>\w*Error):\s*(?:(?P<path>[^\n]*?):\s+)?(?P<reason>[^\n]*?)\s*\((?P<line>\d+):(?P<column>\d+)\)"
)
BABEL_CONFIG_KEY = "babel.config.legacy.json"


def _reference_pattern(packages: Sequence[str], statement: bool = False) -> re.Pattern[str]:
    names = "|".join(re.escape(p) for p in packages)
    reference = (
        r"(?:\brequire\s*\(\s*|\bimport\s*)"
        rf"(?P<q>[\"'])(?P<module>(?:{names})(?:/[^\"'\n]*)?)(?P=q)"
    )
    if statement:
        # a whole line holding only the reference; the line break is kept
        return re.compile(rf"^[ \t]*{reference}(?:\s*\))?[ \t]*;?[ \t]*$", re.MULTILINE)
    return re.compile(reference)


def find_polyfill_references(code: str, packages: Sequence[str]) -> list[str]:
    """Module specifiers of polyfill packages still loaded with require/import."""
    if not packages:
        return []
    found: list[str] = []
    for match in _reference_pattern(packages).finditer(code):
        module = match.group("module")
        if module not in found:
            found.append(module)
    return found


def build_babel_config(target: TargetConfig, project_root: Path) -> dict[str, Any]:
    """Render the Babel configuration for a legacy target profile.

    The preset is referenced by absolute path when it is installed in the
    project, because Babel resolves presets relative to the config file and
    the rendered config lives in the temporary workspace.
    """
    preset_dir = project_root / "node_modules" / "@babel" / "preset-env"
    preset = str(preset_dir) if preset_dir.exists() else "@babel/preset-env"
    options: dict[str, Any] = {
        "targets": {target.browser: target.version},
        "useBuiltIns": False if target.use_built_ins == "false" else target.use_built_ins,
        # ES modules stay ES modules; the bundlers already chose the output format
        "modules": False,
    }
    if target.use_built_ins != "false":
        options["corejs"] = target.corejs
    return {
        "babelrc": False,
        "sourceType": "unambiguous",
        "presets": [[preset, options]],
    }


def parse_transform_failure(output: ToolOutput, path: str = "") -> TransformError | None:
    """Turn Babel's error report into a TransformError with a location."""
    match = _BABEL_LOCATION.search(output.combined)
    if match is None:
        return None
    return TransformError(
        message=f"{match.group('kind')}: {match.group('reason')}",
        path=match.group("path") or path,
        line=int(match.group("line")),
        column=int(match.group("column")),
        output=output.combined,
    )


class LegacyTranspiler:
    """Babel front end for the legacy target profile."""

    def __init__(
        self,
        runner: ToolRunner,
        target: TargetConfig,
        workspace: ArtifactStore,
        source_maps: bool = True,
    ) -> None:
        self.runner = runner
        self.target = target
        self.workspace = workspace
        self.source_maps = source_maps
        self._config_path: Path | None = None

    async def config_path(self) -> Path:
        """Path of the Babel config used for every invocation."""
        if self._config_path is not None:
            return self._config_path

        if self.target.babel_config_file is not None:
            configured = self.target.babel_config_file
            if not configured.is_absolute():
                configured = self.runner.project_root / configured
            if not configured.exists():
                raise ConfigurationError(
                    message=f"Babel config file does not exist: {configured}",
                    setting="target.babel_config_file",
                )
            self._config_path = configured
        else:
            config = build_babel_config(self.target, self.runner.project_root)
            await self.workspace.store_text(BABEL_CONFIG_KEY, json.dumps(config, indent=2))
            self._config_path = self.workspace.path_for(BABEL_CONFIG_KEY)
            logger.debug("Rendered Babel config", path=str(self._config_path), config=config)

        return self._config_path

    async def transpile_file(self, source: Path, destination: Path, name: str) -> TranspiledArtifact:
        """Transpile a file on disk into ``destination``.

        Args:
            source: Bundled input file.
            destination: Output file (a ``.map`` sibling is written with source maps).
            name: Logical artifact name.

        Returns:
            The transpiled artifact, with its source map when one was produced.
        """
        args = [
            str(source),
            "--out-file", str(destination),
            "--config-file", str(await self.config_path()),
            "--no-babelrc",
        ]
        if self.source_maps:
            args.append("--source-maps")

        logger.info("Transpiling file", source=source.name, target=self.target.esbuild_target)
        output = await self.runner.run("babel", args)
        self._check(output, str(source))

        source_map_path = destination.with_name(destination.name + ".map")
        return TranspiledArtifact(
            name=name,
            content=await self.link_polyfills(destination.read_text(encoding="utf-8"), name),
            source_map=source_map_path.read_text(encoding="utf-8") if source_map_path.exists() else None,
        )

    async def transpile_chunk(self, chunk: Artifact, filename: str | None = None) -> TranspiledArtifact:
        """Transpile in-memory code through Babel's stdin mode."""
        filename = filename or f"{chunk.name}.js"
        args = ["--filename", filename, "--config-file", str(await self.config_path()), "--no-babelrc"]

        logger.info("Transpiling chunk", chunk=chunk.name, size_bytes=chunk.size_bytes)
        output = await self.runner.run("babel", args, input_text=chunk.content)
        self._check(output, filename)
        return TranspiledArtifact(name=chunk.name, content=await self.link_polyfills(output.stdout, chunk.name))

    async def link_polyfills(self, code: str, name: str) -> str:
        """Replace Babel's polyfill require/import statements with the bundled polyfills.

        The bundled polyfills are one minified line put on the first line of
        the code, and every removed statement keeps its line break, so line
        numbers in the source map still hold.
        """
        modules = find_polyfill_references(code, self.target.polyfill_packages)
        if not modules:
            return code

        entry = "".join(f'import "{module}";\n' for module in modules)
        args = [
            "--bundle",
            "--minify",
            "--format=iife",
            "--platform=browser",
            f"--target={self.target.esbuild_target}",
            "--charset=utf8",
            "--loader=js",
            f"--resolve-dir={self.runner.project_root}",
            f"--sourcefile={name}.polyfills.js",
        ]
        logger.info("Linking polyfills", chunk=name, modules=len(modules))
        output = await self.runner.run("esbuild", args, input_text=entry)
        if not output.ok:
            raise ResolutionError(
                message=f"Could not bundle the polyfills required by {name}",
                path=name,
                stage="link-polyfills",
                output=output.combined,
            )

        stripped = _reference_pattern(self.target.polyfill_packages, statement=True).sub("", code)
        linked = output.stdout.rstrip("\n") + stripped
        left = find_polyfill_references(linked, self.target.polyfill_packages)
        if left:
            raise ResolutionError(
                message=f"Polyfill references are not standalone statements in {name}: {', '.join(left)}",
                path=name,
                stage="link-polyfills",
            )
        return linked

    def _check(self, output: ToolOutput, path: str) -> None:
        if output.ok:
            return
        failure = parse_transform_failure(output, path)
        if failure is not None:
            logger.error("Legacy transform failed", location=failure.location)
            raise failure
        output.raise_for_status(f"Babel could not transpile {path}")
