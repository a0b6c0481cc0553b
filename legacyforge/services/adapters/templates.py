"""TypeScript sources written by ``legacyforge scaffold``."""

from __future__ import annotations

MAIN_ADAPTER = '''/**
 * Legacy adapter for the main library.
 *
 * Loads the ES5 polyfills first, then re-exports the whole library surface
 * unchanged. {placeholder}() is a placeholder: the build replaces it with
 * an implementation that returns a Blob URL for the inlined processor.
 */

{polyfills}

export * from "{library_import}";

/**
 * Creates a Blob URL from the inline worklet processor code.
 *
 * @returns A Blob URL that can be passed to audioWorklet.addModule()
 */
export function {placeholder}(): string {{
    // Replaced at build time; only reachable in an uninjected build
    throw new Error(
        "{placeholder} is only available in the single-file legacy build"
    );
}}
'''

PROCESSOR_ADAPTER = '''/**
 * Legacy adapter for the worklet processor.
 *
 * Re-implements processor registration with process() as a regular class
 * method instead of a class field, which the legacy transpiler can lower.
 */

{polyfills}

import {{ SpessaSynthCoreUtils }} from "spessasynth_core";
import {{ consoleColors }} from "./utils/other.ts";
import {{ WORKLET_PROCESSOR_NAME }} from "./synthesizer/worklet/worklet_processor_name.ts";
import type {{ PassedProcessorParameters }} from "./synthesizer/types.ts";
import {{ WorkletSynthesizerCore }} from "./synthesizer/worklet/worklet_synthesizer_core.ts";

class WorkletSynthesizerProcessor extends AudioWorkletProcessor {{
    private readonly core: WorkletSynthesizerCore;

    public constructor(options: {{
        processorOptions: PassedProcessorParameters;
    }}) {{
        super();
        this.core = new WorkletSynthesizerCore(
            sampleRate,
            currentTime,
            this.port,
            options.processorOptions
        );
    }}

    public process(
        inputs: Float32Array[][],
        outputs: Float32Array[][],
        parameters: Record<string, Float32Array>
    ): boolean {{
        return this.core.process(inputs, outputs);
    }}
}}

registerProcessor(WORKLET_PROCESSOR_NAME, WorkletSynthesizerProcessor);
SpessaSynthCoreUtils.SpessaSynthInfo(
    "%cProcessor successfully registered!",
    consoleColors.recognized
);
'''


def render_polyfills(imports: list[str]) -> str:
    return "\n".join(f'import "{module}";' for module in imports)
