"""Test configuration for LegacyForge."""

from __future__ import annotations

import re
import shlex
import sys
import tempfile
from pathlib import Path

import pytest
import structlog
from structlog._config import BoundLoggerLazyProxy

from legacyforge.core.config import Config, PathsConfig
from legacyforge.services.tooling import ToolOutput, ToolRunner

POLYFILLS = 'import "core-js/stable";\nimport "regenerator-runtime/runtime";\n'

MAIN_ADAPTER_JS = POLYFILLS + '''
export function foo() {
    return "bar";
}

/**
 * Placeholder replaced at build time.
 */
export function createWorkletBlobURL() {
    // only reachable in an uninjected build
    throw new Error("createWorkletBlobURL is only available in single-file build");
}
'''

PROCESSOR_ADAPTER_JS = POLYFILLS + '''
class Processor extends AudioWorkletProcessor {
    process(inputs, outputs) {
        return true;
    }
}
registerProcessor("test-processor", Processor);
'''


class FakeToolRunner(ToolRunner):
    """In-process stand-in for esbuild, babel, rollup and terser.

    Bundling strips imports and wraps the entry in an IIFE that returns its
    exported functions. Transpiling and minifying copy the code through.
    Bundling stdin (polyfill linking) yields one placeholder IIFE line.

    Args:
        bundles: Bundle text by entry stem, replacing the generated wrapper.
        failures: (returncode, stderr) by tool name, or by "tool:mode"
            where mode is "stdin" or "file".
        babel_polyfills: Modules Babel adds as require() calls at the top of
            every output, the way usage-based polyfilling does.
    """

    def __init__(
        self,
        project_root: Path,
        bundles: dict[str, str] | None = None,
        failures: dict[str, tuple[int, str]] | None = None,
        babel_polyfills: list[str] | None = None,
    ) -> None:
        super().__init__(Config().tools, project_root)
        self.bundles = bundles or {}
        self.failures = failures or {}
        self.babel_polyfills = babel_polyfills or []
        self.calls: list[tuple[str, list[str], bool]] = []

    def find_tool(self, tool_name: str) -> list[str]:
        return [tool_name]

    async def run(self, tool_name, args, input_text=None, cwd=None) -> ToolOutput:
        self.calls.append((tool_name, list(args), input_text is not None))
        mode = "stdin" if input_text is not None else "file"
        failure = self.failures.get(f"{tool_name}:{mode}") or self.failures.get(tool_name)
        if failure is not None:
            return ToolOutput(tool=tool_name, command=[tool_name, *args], returncode=failure[0], stderr=failure[1])

        stdout = ""
        prelude = "".join(f'require("{module}");\n' for module in self.babel_polyfills)
        if input_text is not None and tool_name == "esbuild" and "--bundle" in args:
            modules = re.findall(r'import "([^"]+)"', input_text)
            stdout = f"(()=>{{/* {len(modules)} polyfill modules */}})();\n"
        elif input_text is not None:
            stdout = prelude + input_text if tool_name == "babel" else input_text
        elif tool_name == "esbuild":
            self._bundle(Path(args[0]), _option(args, "--outfile="), _option(args, "--global-name="))
        elif tool_name == "rollup":
            self._bundle(
                Path(args[args.index("--input") + 1]),
                args[args.index("--file") + 1],
                args[args.index("--name") + 1] if "--name" in args else None,
            )
        elif tool_name == "babel":
            source, destination = Path(args[0]), Path(args[args.index("--out-file") + 1])
            destination.write_text(prelude + source.read_text(encoding="utf-8"), encoding="utf-8")
            if "--source-maps" in args:
                destination.with_name(destination.name + ".map").write_text('{"version":3}', encoding="utf-8")
        return ToolOutput(tool=tool_name, command=[tool_name, *args], returncode=0, stdout=stdout)

    def _bundle(self, entry: Path, outfile: str, global_name: str | None) -> None:
        if entry.stem in self.bundles:
            code = self.bundles[entry.stem]
        else:
            source = entry.read_text(encoding="utf-8")
            body = re.sub(r"^import[^\n]*\n", "", source, flags=re.MULTILINE)
            exports = re.findall(r"^export function (\w+)", body, flags=re.MULTILINE)
            body = re.sub(r"^export ", "", body, flags=re.MULTILINE)
            returned = ", ".join(f"{name}: {name}" for name in exports)
            code = f"(function () {{\n{body}\nreturn {{ {returned} }};\n}})()"
            code = f"var {global_name} = {code};\n" if global_name else f"{code};\n"
        Path(outfile).write_text(code, encoding="utf-8")

    def commands(self, tool_name: str) -> list[str]:
        return [shlex.join([tool, *args]) for tool, args, _ in self.calls if tool == tool_name]


def _option(args: list[str], prefix: str) -> str | None:
    for arg in args:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return None


def _drop_cached_loggers() -> None:
    for name, module in list(sys.modules.items()):
        if name.startswith("legacyforge"):
            proxy = getattr(module, "logger", None)
            if isinstance(proxy, BoundLoggerLazyProxy):
                proxy.__dict__.pop("bind", None)


@pytest.fixture(autouse=True)
def reset_structlog(monkeypatch):
    """Keep logging set up by a CLI run under CliRunner from leaking.

    setup_logging binds structlog to the current sys.stderr and caches loggers
    on first use; CliRunner closes its swapped stderr after each invoke, so
    later invokes and tests would log into a closed stream.
    """
    import legacyforge.cli

    real_setup_logging = legacyforge.cli.setup_logging

    def setup_logging(config=None):
        _drop_cached_loggers()
        real_setup_logging(config)

    monkeypatch.setattr(legacyforge.cli, "setup_logging", setup_logging)
    yield
    structlog.reset_defaults()
    _drop_cached_loggers()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project(temp_dir):
    """A JS project with both entry adapters in place."""
    root = temp_dir / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "index_rpgmv.ts").write_text(MAIN_ADAPTER_JS, encoding="utf-8")
    (root / "src" / "worklet_processor_rpgmv.ts").write_text(PROCESSOR_ADAPTER_JS, encoding="utf-8")
    (root / "tsconfig.json").write_text("{}", encoding="utf-8")
    return root


@pytest.fixture
def config(project, temp_dir):
    """Configuration pointing at the test project with a private temp root."""
    return Config(paths=PathsConfig(project_root=project, temp_root=temp_dir / "tmp"))


@pytest.fixture
def fake_runner(project):
    return FakeToolRunner(project)


@pytest.fixture
def make_runner(project):
    """Factory for fake runners with canned bundles or failures."""

    def factory(**kwargs) -> FakeToolRunner:
        return FakeToolRunner(project, **kwargs)

    return factory
