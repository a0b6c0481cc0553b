"""
Tool Runner Service.

Locates the JavaScript build tools (esbuild, babel, rollup, terser) and runs
them as sub-processes, optionally feeding code on stdin.
"""

from __future__ import annotations

import asyncio
import os
import shlex
import shutil
from pathlib import Path

from pydantic import BaseModel, Field

from ...core.config import ToolsConfig
from ...core.exceptions import ToolInvocationError, ToolNotFoundError
from ...core.logging import get_logger

logger = get_logger(__name__)

INSTALL_HINTS = {
    "esbuild": "npm install --save-dev esbuild",
    "babel": "npm install --save-dev @babel/cli @babel/core @babel/preset-env core-js@3",
    "rollup": (
        "npm install --save-dev rollup @rollup/plugin-node-resolve "
        "@rollup/plugin-commonjs @rollup/plugin-typescript"
    ),
    "terser": "npm install --save-dev terser",
}


class ToolOutput(BaseModel):
    """Captured result of one tool invocation."""

    tool: str
    command: list[str]
    returncode: int
    stdout: str = Field(default="", repr=False)
    stderr: str = Field(default="", repr=False)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)

    @property
    def combined(self) -> str:
        """stdout and stderr as the tool reported them."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def raise_for_status(self, message: str = "") -> None:
        if self.ok:
            return
        raise ToolInvocationError(
            message=message or f"{self.tool} failed",
            tool=self.tool,
            command=self.command_line,
            returncode=self.returncode,
            output=self.combined,
        )


class ToolRunner:
    """Finds and runs Node-based build tools for one project."""

    def __init__(self, tools: ToolsConfig, project_root: Path) -> None:
        self.tools = tools
        self.project_root = project_root
        self._resolved: dict[str, list[str]] = {}

    def find_tool(self, tool_name: str) -> list[str]:
        """Find a tool and return the argv prefix that launches it.

        Lookup order: configured path, the project's ``node_modules/.bin``,
        PATH, and finally ``npx --no`` when the fallback is allowed.
        """
        if tool_name in self._resolved:
            return self._resolved[tool_name]

        configured: Path | None = getattr(self.tools, f"{tool_name}_path", None)
        if configured is not None:
            if configured.exists():
                return self._remember(tool_name, [str(configured)])
            raise ToolNotFoundError(
                message=f"Configured {tool_name} does not exist",
                tool_name=tool_name,
                expected_path=str(configured),
                install_hint=INSTALL_HINTS.get(tool_name, ""),
            )

        bin_dir = self.project_root / "node_modules" / ".bin"
        for candidate in (bin_dir / tool_name, bin_dir / f"{tool_name}.cmd"):
            if candidate.exists():
                return self._remember(tool_name, [str(candidate)])

        on_path = shutil.which(tool_name)
        if on_path:
            return self._remember(tool_name, [on_path])

        if self.tools.allow_npx_fallback:
            npx = str(self.tools.npx_path) if self.tools.npx_path else shutil.which("npx")
            if npx:
                return self._remember(tool_name, [npx, "--no", tool_name])

        raise ToolNotFoundError(
            message=f"Tool not found: {tool_name}",
            tool_name=tool_name,
            expected_path=f"{bin_dir} or PATH",
            install_hint=INSTALL_HINTS.get(tool_name, f"Install {tool_name} and add to PATH"),
        )

    def _remember(self, tool_name: str, argv: list[str]) -> list[str]:
        logger.debug("Resolved tool", tool=tool_name, argv=argv)
        self._resolved[tool_name] = argv
        return argv

    async def run(
        self,
        tool_name: str,
        args: list[str],
        input_text: str | None = None,
        cwd: Path | None = None,
    ) -> ToolOutput:
        """Run a tool to completion and capture its output.

        Args:
            tool_name: Tool to run (esbuild, babel, rollup, terser).
            args: Arguments after the tool executable.
            input_text: Text written to the tool's stdin (chunk mode).
            cwd: Working directory, the project root by default.

        Returns:
            ToolOutput with the exit status and both streams.
        """
        cmd = self.find_tool(tool_name) + args
        workdir = cwd or self.project_root
        logger.info("Running command", tool=tool_name, command=shlex.join(cmd), cwd=str(workdir))

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=workdir,
            env={**os.environ, "NO_COLOR": "1", "FORCE_COLOR": "0"},
        )
        stdout, stderr = await process.communicate(
            input_text.encode("utf-8") if input_text is not None else None
        )

        output = ToolOutput(
            tool=tool_name,
            command=cmd,
            returncode=process.returncode or 0,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        for line in output.stderr.splitlines():
            logger.debug(f"[{tool_name}] {line}")

        logger.info("Command completed", tool=tool_name, returncode=output.returncode)
        return output
