"""
LegacyForge: legacy-compatibility build pipeline for AudioWorklet libraries.

Bundles a modern audio library and its real-time processor, downgrades both to
a fixed legacy browser profile, and embeds the processor inside the main
artifact so that the result runs in engines without native module loading.
"""

__version__ = "1.0.0"
__author__ = "LegacyForge Team"
