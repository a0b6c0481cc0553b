"""
Worklet Inlining Service.

Embeds the fully built processor script inside the main library by rewriting
the placeholder function (``createWorkletBlobURL`` by default). The rewritten
function decodes the embedded base64 payload, wraps it in a Blob and returns a
Blob URL that ``audioWorklet.addModule()`` accepts directly.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import NoReturn

from ...core.config import InjectionConfig
from ...core.exceptions import InjectionPatternNotFoundError
from ...core.logging import get_logger
from ...models.artifacts import InjectionTarget, PayloadArtifact, PlaceholderMatch
from ...storage import ArtifactStore
from ..transpiler import find_polyfill_references
from .patterns import PlaceholderPattern, build_patterns, render_blob_url_body

logger = get_logger(__name__)


class WorkletInliner:
    """Locates the placeholder in an injection target and replaces it.

    Patterns are tried in priority order; only the first match of the first
    matching pattern is replaced. A target without a match is dumped to the
    diagnostics store and the transform fails.
    """

    def __init__(self, config: InjectionConfig, debug_store: ArtifactStore | None = None) -> None:
        """Initialize the inliner.

        Args:
            config: Placeholder name and Blob media type.
            debug_store: Where unmatched inputs are written for inspection.
        """
        self.config = config
        self.debug_store = debug_store
        self.patterns: list[PlaceholderPattern] = build_patterns(config.placeholder_name)

    def _find(self, code: str) -> tuple[PlaceholderPattern, re.Match[str]] | None:
        for priority, pattern in enumerate(self.patterns, start=1):
            logger.debug("Trying placeholder pattern", pattern=pattern.name, priority=priority)
            match = pattern.search(code)
            if match is not None:
                return pattern, match
        return None

    def locate(self, code: str) -> PlaceholderMatch | None:
        """Find the placeholder with the first pattern that matches."""
        found = self._find(code)
        if found is None:
            return None
        pattern, match = found
        return PlaceholderMatch(
            pattern_name=pattern.name,
            start=match.start(),
            end=match.end(),
            matched_text=match.group(0),
        )

    async def inject(self, payload: PayloadArtifact, target: InjectionTarget) -> InjectionTarget:
        """Replace the placeholder in ``target`` with the inline payload loader.

        Args:
            payload: Fully built processor script.
            target: Main library text carrying the placeholder.

        Returns:
            A new InjectionTarget with the placeholder replaced.

        Raises:
            InjectionPatternNotFoundError: If no pattern matches.
        """
        code = target.content
        encoded = payload.encoded
        logger.info(
            "Injecting worklet payload",
            target=target.name,
            payload_bytes=payload.size_bytes,
            encoded_bytes=len(encoded),
        )

        found = self._find(code)
        if found is None:
            await self._fail(target)

        pattern, match = found
        replacement = pattern.render(match, render_blob_url_body(encoded, self.config.mime_type))
        new_code = code[: match.start()] + replacement + code[match.end() :]

        logger.info("Placeholder replaced", pattern=pattern.name, start=match.start())
        return InjectionTarget(
            name=target.name,
            content=new_code,
            placeholder_name=target.placeholder_name,
            match=PlaceholderMatch(
                pattern_name=pattern.name,
                start=match.start(),
                end=match.end(),
                matched_text=match.group(0),
            ),
            injected=True,
        )

    async def _fail(self, target: InjectionTarget) -> NoReturn:
        attempted = [pattern.name for pattern in self.patterns]
        logger.error(
            "No placeholder pattern matched",
            placeholder=self.config.placeholder_name,
            attempted=attempted,
            name_present=self.config.placeholder_name in target.content,
        )

        dump_path = ""
        if self.debug_store is not None:
            key = f"debug_{target.name}.js"
            await self.debug_store.store_text(key, target.content)
            dump_path = str(self.debug_store.path_for(key))
            logger.error("Saved unmatched input", path=dump_path)

        raise InjectionPatternNotFoundError(
            message="Placeholder function not found in injection target",
            context={"target": target.name, "size_bytes": target.size_bytes},
            placeholder=self.config.placeholder_name,
            attempted_patterns=attempted,
            dump_path=dump_path,
        )


# Characters around the payload literal that must hold the rest of the loader
LOADER_WINDOW = 600


def _loader_beside(final_code: str, encoded: str) -> bool:
    for quote in ('"', "'"):
        literal = f"{quote}{encoded}{quote}"
        start = final_code.find(literal)
        while start != -1:
            end = start + len(literal)
            before = final_code[max(0, start - LOADER_WINDOW):start]
            after = final_code[end:end + LOADER_WINDOW]
            if "atob(" in before[-40:] + after and "Blob(" in after and "createObjectURL(" in after:
                return True
            start = final_code.find(literal, end)
    return False


def verify_injection(
    final_code: str,
    payload: PayloadArtifact,
    polyfill_packages: Sequence[str] = ("core-js", "regenerator-runtime"),
) -> list[str]:
    """List the problems that make an injected artifact unsafe to ship.

    Minifiers may requote string literals but never change their contents,
    so the base64 payload must still be present verbatim, followed by the
    rest of the loader (atob, Blob, createObjectURL). Neither the final code
    nor the payload may still load a polyfill module at run time.
    """
    problems = []
    if payload.encoded not in final_code:
        problems.append("embedded payload literal is missing")
    elif not _loader_beside(final_code, payload.encoded):
        problems.append("Blob URL loader is missing next to the payload literal")
    for where, code in (("final code", final_code), ("payload", payload.content)):
        for module in find_polyfill_references(code, polyfill_packages):
            problems.append(f"unresolved polyfill reference in {where}: {module}")
    return problems
