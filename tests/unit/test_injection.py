"""Unit tests for the worklet inlining transform."""

import base64
import re
from pathlib import Path

import pytest

from legacyforge.core.config import InjectionConfig
from legacyforge.core.exceptions import InjectionPatternNotFoundError
from legacyforge.models.artifacts import InjectionTarget, PayloadArtifact
from legacyforge.services.injection import (
    WorkletInliner,
    build_patterns,
    render_blob_url_body,
    verify_injection,
)
from legacyforge.storage import LocalArtifactStore

BARE = 'var x=1;function createWorkletBlobURL(){throw new Error("only in single-file build")}var y=2;'
EXPORTED = '''export function foo() { return "bar"; }
export function createWorkletBlobURL() {
    // This placeholder will be replaced
    throw new Error(
        "createWorkletBlobURL is only available in single-file Rollup build"
    );
}
export const z = 3;
'''
OBJECT_METHOD = 'var lib = {\n  createWorkletBlobURL: function createWorkletBlobURL() {\n    throw new Error("stub");\n  },\n  other: 1\n};'
BABEL_OUTPUT = '''function createWorkletBlobURL() {
  // This placeholder will be replaced by the build
  throw new Error("createWorkletBlobURL is only available in single-file Rollup build");
}
function later() {
  throw new Error("unrelated");
}
'''


def _target(content: str, name: str = "spessasynth_lib") -> InjectionTarget:
    return InjectionTarget(name=name, content=content, placeholder_name="createWorkletBlobURL")


def _embedded_literal(code: str) -> str:
    match = re.search(r'var base64Code = "([A-Za-z0-9+/=]*)";', code)
    assert match is not None
    return match.group(1)


class TestPatterns:
    """Tests for the prioritized placeholder patterns."""

    def test_priority_order(self):
        names = [p.name for p in build_patterns("createWorkletBlobURL")]
        assert names == ["function-declaration", "export-function-declaration", "object-method"]

    @pytest.mark.parametrize(
        "code, expected",
        [
            (BARE, "function-declaration"),
            (EXPORTED, "export-function-declaration"),
            (OBJECT_METHOD, "object-method"),
            (BABEL_OUTPUT, "function-declaration"),
        ],
    )
    def test_each_shape_matches_one_pattern(self, code, expected):
        matching = [p.name for p in build_patterns("createWorkletBlobURL") if p.search(code)]
        assert matching == [expected]

    def test_exported_declaration_is_not_a_bare_declaration(self):
        bare = build_patterns("createWorkletBlobURL")[0]
        assert bare.search(EXPORTED) is None

    def test_match_ends_at_stub_closing_brace(self):
        bare = build_patterns("createWorkletBlobURL")[0]
        match = bare.search(BABEL_OUTPUT)
        assert match.group(0).endswith('build");\n}')
        assert "later" not in match.group(0)

    def test_longer_identifiers_do_not_match(self):
        code = 'function createWorkletBlobURLs(){throw new Error("x")}function mycreateWorkletBlobURL(){throw new Error("x")}'
        assert all(p.search(code) is None for p in build_patterns("createWorkletBlobURL"))

    def test_property_access_does_not_match(self):
        code = 'exports.createWorkletBlobURL = function () { throw new Error("x"); };'
        assert all(p.search(code) is None for p in build_patterns("createWorkletBlobURL"))

    def test_body_other_than_stub_does_not_match(self):
        code = 'function createWorkletBlobURL(){ if (a) { throw new Error("x") } return b; }'
        assert all(p.search(code) is None for p in build_patterns("createWorkletBlobURL"))

    def test_quoted_object_key(self):
        code = '{"createWorkletBlobURL": function () { throw new Error(\'x\'); }}'
        method = build_patterns("createWorkletBlobURL")[2]
        assert method.search(code) is not None


@pytest.mark.asyncio
class TestWorkletInliner:
    """Tests for WorkletInliner."""

    async def test_inject_declaration(self):
        inliner = WorkletInliner(InjectionConfig())
        result = await inliner.inject(PayloadArtifact(name="p", content="hello-world"), _target(BARE))

        assert result.injected
        assert result.match.pattern_name == "function-declaration"
        assert result.content.startswith("var x=1;function createWorkletBlobURL() {")
        assert result.content.endswith("}var y=2;")
        assert "throw new Error" not in result.content
        assert 'type: "application/javascript"' in result.content
        assert "URL.createObjectURL(blob)" in result.content

    async def test_inject_keeps_export_keyword(self):
        inliner = WorkletInliner(InjectionConfig())
        result = await inliner.inject(PayloadArtifact(name="p", content="x"), _target(EXPORTED))

        assert result.match.pattern_name == "export-function-declaration"
        assert "export function createWorkletBlobURL() {" in result.content
        assert 'export function foo() { return "bar"; }' in result.content
        assert result.content.rstrip().endswith("export const z = 3;")

    async def test_inject_object_method(self):
        inliner = WorkletInliner(InjectionConfig())
        result = await inliner.inject(PayloadArtifact(name="p", content="x"), _target(OBJECT_METHOD))

        assert result.match.pattern_name == "object-method"
        assert "createWorkletBlobURL: function() {" in result.content
        assert "other: 1" in result.content

    @pytest.mark.parametrize(
        "payload",
        [
            'registerProcessor("a",class{process(){return!0}});',
            "var s='it\\'s \"quoted\"';var r=/\\d+\\\\/g;",
            'console.log("été ♫ 你好 \U0001f3b5");',
            "line one\nline two\r\n\ttabbed ",
        ],
    )
    async def test_payload_round_trip(self, payload):
        inliner = WorkletInliner(InjectionConfig())
        result = await inliner.inject(PayloadArtifact(name="p", content=payload), _target(BARE))

        literal = _embedded_literal(result.content)
        assert base64.b64decode(literal) == payload.encode("utf-8")
        assert PayloadArtifact.decode(literal) == payload

    async def test_second_injection_fails_loudly(self, temp_dir):
        inliner = WorkletInliner(InjectionConfig(), debug_store=LocalArtifactStore(temp_dir))
        payload = PayloadArtifact(name="p", content="hello-world")
        once = await inliner.inject(payload, _target(BABEL_OUTPUT))

        with pytest.raises(InjectionPatternNotFoundError):
            await inliner.inject(payload, _target(once.content))

    async def test_first_priority_wins_on_adversarial_input(self):
        code = OBJECT_METHOD + "\n" + BARE + "\n" + EXPORTED
        inliner = WorkletInliner(InjectionConfig())
        result = await inliner.inject(PayloadArtifact(name="p", content="x"), _target(code))

        assert result.match.pattern_name == "function-declaration"
        assert result.content.count("var base64Code") == 1
        # lower-priority shapes are left exactly as they were
        assert result.content.startswith(OBJECT_METHOD)
        assert result.content.endswith(EXPORTED)

    async def test_missing_placeholder_dumps_input(self, temp_dir):
        code = 'function createWorkletURL(){throw new Error("renamed")}'
        inliner = WorkletInliner(InjectionConfig(), debug_store=LocalArtifactStore(temp_dir))

        with pytest.raises(InjectionPatternNotFoundError) as exc_info:
            await inliner.inject(PayloadArtifact(name="p", content="x"), _target(code, "main"))

        error = exc_info.value
        assert error.attempted_patterns == [
            "function-declaration",
            "export-function-declaration",
            "object-method",
        ]
        assert error.placeholder == "createWorkletBlobURL"
        dump = Path(error.dump_path)
        assert dump.name == "debug_main.js"
        assert dump.parent == temp_dir.resolve()
        assert dump.read_text(encoding="utf-8") == code
        assert "object-method" in str(error)

    async def test_custom_placeholder_and_mime_type(self):
        config = InjectionConfig(placeholder_name="getProcessorURL", mime_type="text/javascript")
        code = 'function getProcessorURL(){throw new Error("x")}'
        result = await WorkletInliner(config).inject(
            PayloadArtifact(name="p", content="x"),
            InjectionTarget(name="m", content=code, placeholder_name="getProcessorURL"),
        )
        assert result.content.startswith("function getProcessorURL() {")
        assert 'type: "text/javascript"' in result.content

    async def test_locate_reports_offsets(self):
        inliner = WorkletInliner(InjectionConfig())
        match = inliner.locate(BARE)
        assert match is not None
        assert BARE[match.start:match.end] == match.matched_text
        assert match.matched_text.startswith("function createWorkletBlobURL")
        assert inliner.locate("var nothing = 1;") is None


def test_verify_injection():
    payload = PayloadArtifact(name="p", content="hello-world")
    good = (
        f'function f(){{var b="{payload.encoded}",s=atob(b),a=new Uint8Array(s.length);'
        'return URL.createObjectURL(new Blob([a]))}'
    )
    assert verify_injection(good, payload) == []
    assert verify_injection("function f(){}", payload) == ["embedded payload literal is missing"]


def test_verify_injection_requires_loader_beside_payload():
    payload = PayloadArtifact(name="p", content="hello-world")
    detached = (
        f'var unused="{payload.encoded}";'
        + "x();" * 300
        + "function f(b){var s=atob(b);return URL.createObjectURL(new Blob([s]))}"
    )
    assert verify_injection(detached, payload) == ["Blob URL loader is missing next to the payload literal"]


def test_verify_injection_rejects_polyfill_requires():
    payload = PayloadArtifact(name="p", content='import "core-js/stable";')
    loader = render_blob_url_body(payload.encoded, "application/javascript")
    code = 'require("core-js/modules/es.array.push.js");\nfunction f() ' + loader

    assert verify_injection(code, payload) == [
        "unresolved polyfill reference in final code: core-js/modules/es.array.push.js",
        "unresolved polyfill reference in payload: core-js/stable",
    ]
