"""
LegacyForge CLI.

Command-line interface for building the legacy single-file artifacts.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import Config, PipelineVariant, get_config
from .core.exceptions import LegacyForgeError
from .core.logging import setup_logging

app = typer.Typer(
    name="legacyforge",
    help="Build ES5 single-file AudioWorklet libraries for legacy Chromium runtimes",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"LegacyForge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """LegacyForge: legacy-compatibility build pipeline."""
    pass


def _load_config(project: Path | None, verbose: bool = False) -> Config:
    config = get_config()
    if project is not None:
        config.paths.project_root = project
    if verbose:
        config.log_level = "DEBUG"
    setup_logging(config)
    return config


def _build(config: Config, variant: PipelineVariant | None, use_prefect: bool) -> None:
    from .orchestration import create_pipeline

    pipeline = create_pipeline(config, variant)
    console.print(Panel.fit(
        f"[bold blue]LegacyForge[/bold blue] ({pipeline.variant})\n"
        f"Target: {config.target.browser} {config.target.version} | "
        f"injection {pipeline.injection_point.value}",
        border_style="blue",
    ))

    if use_prefect or config.pipeline.use_prefect:
        from .orchestration.flows import legacy_build_flow
        result = asyncio.run(legacy_build_flow(pipeline.variant))
    else:
        result = asyncio.run(pipeline.run())

    if not result.success:
        console.print("\n[bold red]✗ Build failed![/bold red]")
        console.print(f"Failed at: {result.failed_stage}")
        console.print(f"Error: {result.error}")
        raise typer.Exit(1)

    console.print("\n[bold green]✓ Build successful![/bold green]\n")
    table = Table(title="Build Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Run ID", result.run_id)
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    table.add_row("Injection pattern", result.injection_pattern or "-")
    table.add_row("Payload size", f"{result.payload_bytes:,} bytes")
    table.add_row("Main artifact size", f"{result.main_bytes:,} bytes")
    console.print(table)

    console.print("\n[bold]Published:[/bold]")
    for path in result.published:
        console.print(f"  -> {path}")


@app.command()
def build(
    variant: Optional[str] = typer.Option(
        None,
        "--variant",
        "-V",
        help="Pipeline configuration: esbuild or rollup",
    ),
    project: Optional[Path] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project root (defaults to LF_PROJECT_ROOT or the current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    prefect: bool = typer.Option(False, "--prefect", help="Run the build as a Prefect flow"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Build the legacy artifacts with the inlined worklet processor."""
    if variant is not None and variant not in ("esbuild", "rollup"):
        console.print(f"[red]Unknown variant '{variant}' (expected esbuild or rollup)[/red]")
        raise typer.Exit(2)
    config = _load_config(project, verbose)
    _build(config, variant, prefect)  # type: ignore[arg-type]


@app.command()
def inject(
    payload: Path = typer.Argument(..., help="Built processor script", exists=True, dir_okay=False, resolve_path=True),
    target: Path = typer.Argument(..., help="Script with the placeholder", exists=True, dir_okay=False, resolve_path=True),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Result file (default: TARGET in place)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Placeholder function name"),
) -> None:
    """Inline PAYLOAD into the placeholder function of TARGET."""
    from .models.artifacts import FinalArtifact, InjectionTarget, PayloadArtifact
    from .services.injection import WorkletInliner
    from .storage import LocalArtifactStore, publish_atomically

    config = _load_config(None)
    if name:
        config.injection.placeholder_name = name
    inliner = WorkletInliner(
        config.injection,
        debug_store=LocalArtifactStore(config.paths.resolve(config.paths.debug_dir)),
    )

    async def run_async() -> None:
        injected = await inliner.inject(
            PayloadArtifact(name=payload.stem, content=payload.read_text(encoding="utf-8")),
            InjectionTarget(
                name=target.stem,
                content=target.read_text(encoding="utf-8"),
                placeholder_name=config.injection.placeholder_name,
            ),
        )
        destination = (output or target).resolve()
        await publish_atomically([FinalArtifact(name=target.stem, path=destination, content=injected.content)])
        pattern = injected.match.pattern_name if injected.match else "-"
        console.print(f"[bold green]✓ Injected[/bold green] ({pattern}) -> {destination}")

    try:
        asyncio.run(run_async())
    except LegacyForgeError as e:
        console.print(f"[bold red]✗ Injection failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def scaffold(
    project: Optional[Path] = typer.Option(
        None, "--project", "-p", help="Project root", file_okay=False, resolve_path=True
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing adapters"),
) -> None:
    """Write the main and processor entry adapters."""
    from .services.adapters import AdapterService

    config = _load_config(project)
    written = AdapterService(config).scaffold(force=force)
    if not written:
        console.print("[yellow]Adapters already exist (use --force to overwrite)[/yellow]")
    for path in written:
        console.print(f"[green]wrote[/green] {path}")


@app.command("config")
def show_config() -> None:
    """Show the effective configuration."""
    cfg = get_config()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Log Level", cfg.log_level)
    table.add_row("Project Root", str(cfg.paths.project_root))
    table.add_row("Main Entry", str(cfg.paths.main_entry))
    table.add_row("Processor Entry", str(cfg.paths.processor_entry))
    table.add_row("Output Dir", str(cfg.paths.output_dir))
    table.add_row("Variant", cfg.pipeline.variant)
    table.add_row("Main Format", cfg.pipeline.main_format)
    table.add_row("Legacy Target", f"{cfg.target.browser} {cfg.target.version}")
    table.add_row("Polyfills", f"{cfg.target.use_built_ins} (core-js {cfg.target.corejs})")
    table.add_row("Placeholder", cfg.injection.placeholder_name)
    table.add_row("Parallel Units", str(cfg.pipeline.parallel_units))

    console.print(table)

    console.print("\n[dim]Configure via environment variables:[/dim]")
    console.print("  LF_PROJECT_ROOT, LF_OUTPUT_DIR, LF_VARIANT, LF_LOG_LEVEL, LF_LOG_FORMAT")
    console.print("  LF_TARGET_CHROME, LF_BABEL_CONFIG, LF_PARALLEL, LF_SOURCE_MAPS")


def build_esbuild() -> None:
    """No-argument entry point for the esbuild pipeline."""
    _run_fixed_variant("esbuild")


def build_rollup() -> None:
    """No-argument entry point for the Rollup pipeline."""
    _run_fixed_variant("rollup")


def _run_fixed_variant(variant: PipelineVariant) -> None:
    try:
        _build(_load_config(None), variant, use_prefect=False)
    except typer.Exit as e:
        raise SystemExit(e.exit_code)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
