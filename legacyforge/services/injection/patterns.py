"""
Placeholder patterns for the worklet inlining transform.

The placeholder function reaches the injection step in one of several lexical
shapes, depending on which bundler, transpiler and minifier stages ran before
it. Each shape gets one pattern; patterns are tried in priority order and the
first one that matches wins.

Every pattern spans from the function signature through the throwing stub
(``throw new Error("...")``) and its closing brace. Requiring the body to be
exactly that stub keeps the match from running into unrelated code, and it
guarantees that already-injected output no longer matches.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass

# Whitespace and comments that may surround the stub after TypeScript and Babel
_GAP = r"(?:\s|/\*[\s\S]*?\*/|//[^\n]*(?:\n|$))*"
_STRING = r"""(?:"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*'|`(?:[^`\\]|\\.)*`)"""
_STUB = (
    r"\{" + _GAP
    + r"throw\s+(?:new\s+)?Error\s*\(\s*(?:" + _STRING + r")?\s*\)\s*;?"
    + _GAP + r"\}"
)
_PARAMS = r"\([^)]*\)"
# Not part of a longer identifier and not a property access
_BOUNDARY = r"(?<![\w$.])"


def exported_stub_declaration(name: str) -> re.Pattern[str]:
    """``export function NAME(...)`` whose body is only the throwing stub.

    Matches TypeScript sources too, so a return type annotation may sit
    between the parameters and the body.
    """
    return re.compile(
        r"export\s+function\s+" + re.escape(name) + r"\s*" + _PARAMS
        + r"\s*(?::\s*[^{;]+?)?\s*" + _STUB
    )


def _is_property_value(match: re.Match[str]) -> bool:
    """True for ``key: function NAME() {...}``, which the object-method pattern owns."""
    return match.string[: match.start()].rstrip().endswith(":")


def render_blob_url_body(encoded_payload: str, mime_type: str) -> str:
    """ES5 function body that rebuilds the payload and returns a Blob URL.

    The base64 text is decoded byte-wise into a Uint8Array so that multi-byte
    UTF-8 sequences in the payload reach the Blob unchanged.
    """
    return (
        "{\n"
        f'    var base64Code = "{encoded_payload}";\n'
        "    var binary = atob(base64Code);\n"
        "    var bytes = new Uint8Array(binary.length);\n"
        "    for (var i = 0; i < binary.length; i++) {\n"
        "        bytes[i] = binary.charCodeAt(i);\n"
        "    }\n"
        "    var blob = new Blob([bytes], {\n"
        f"        type: {json.dumps(mime_type)}\n"
        "    });\n"
        "    return URL.createObjectURL(blob);\n"
        "}"
    )


@dataclass(frozen=True)
class PlaceholderPattern:
    """One lexical shape of the placeholder function.

    Attributes:
        name: Pattern identifier reported in diagnostics.
        regex: Compiled whole-function pattern.
        render: Builds the replacement from the match and the new body.
        accept: Rejects matches that belong to another pattern.
    """

    name: str
    regex: re.Pattern[str]
    render: Callable[[re.Match[str], str], str]
    accept: Callable[[re.Match[str]], bool] = lambda match: True

    def search(self, code: str) -> re.Match[str] | None:
        for match in self.regex.finditer(code):
            if self.accept(match):
                return match
        return None


def build_patterns(placeholder: str) -> list[PlaceholderPattern]:
    """Build the prioritized pattern list for one placeholder name."""
    name = re.escape(placeholder)
    after_name = r"(?![\w$])"

    declaration = re.compile(
        _BOUNDARY + r"(?P<export>export\s+)?function\s+" + name + after_name
        + r"\s*" + _PARAMS + r"\s*" + _STUB
    )
    object_method = re.compile(
        _BOUNDARY + r"(?P<quote>[\"']?)" + name + r"(?P=quote)\s*:\s*function"
        + r"(?:\s+[\w$]+)?\s*" + _PARAMS + r"\s*" + _STUB
    )

    return [
        PlaceholderPattern(
            name="function-declaration",
            regex=declaration,
            render=lambda m, body: f"function {placeholder}() {body}",
            accept=lambda m: m.group("export") is None and not _is_property_value(m),
        ),
        PlaceholderPattern(
            name="export-function-declaration",
            regex=declaration,
            render=lambda m, body: f"export function {placeholder}() {body}",
            accept=lambda m: m.group("export") is not None,
        ),
        PlaceholderPattern(
            name="object-method",
            regex=object_method,
            render=lambda m, body: f"{m.group('quote')}{placeholder}{m.group('quote')}: function() {body}",
        ),
    ]
