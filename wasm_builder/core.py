"""Build orchestration: fmt → cargo build → wasm-bindgen → stage → patch → fmt.

Every external stage must succeed before the next starts; the first failure
raises `StageFailed` and nothing after it runs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from wasm_builder.context import BuildContext
from wasm_builder.logging import get_logger
from wasm_builder.package.staging import stage_artifacts
from wasm_builder.patch.bindings import PatchReport, patch_bindings
from wasm_builder.signing.checks import digest_artifact, write_sidecar
from wasm_builder.stages import commands
from wasm_builder.stages.commands import Stage
from wasm_builder.stages.runner import StageResult, require, run_stage
from wasm_builder.types import ArtifactDigest, BuildConfig

log = get_logger()

Runner = Callable[[Stage, BuildContext, Console], StageResult]


@dataclass
class BuildReport:
    stages: list[StageResult] = field(default_factory=list)
    staged: list[Path] = field(default_factory=list)
    patch: PatchReport | None = None
    digests: list[ArtifactDigest] = field(default_factory=list)


def compile_stages(ctx: BuildContext, config: BuildConfig) -> list[Stage]:
    return [
        commands.format_sources(config),
        commands.compile_wasm(ctx, config),
        commands.generate_bindings(config),
    ]


def finish_bindings(
    ctx: BuildContext,
    config: BuildConfig,
    runner: Runner = run_stage,
    console: Console | None = None,
    fmt: bool = True,
) -> tuple[PatchReport, StageResult | None]:
    console = console or Console()
    report = patch_bindings(ctx, config, console)
    if not fmt:
        return report, None
    return report, require(runner(commands.format_bindings(config), ctx, console))


def build_pipeline(
    ctx: BuildContext,
    config: BuildConfig,
    runner: Runner = run_stage,
    console: Console | None = None,
) -> BuildReport:
    console = console or Console()
    report = BuildReport()

    console.print(f"[bold green]Building[/bold green] {config.name} web assembly...")
    for stage in compile_stages(ctx, config):
        report.stages.append(require(runner(stage, ctx, console)))

    report.staged = stage_artifacts(ctx, config, console)

    report.patch, fmt_result = finish_bindings(ctx, config, runner, console)
    report.stages.append(fmt_result)

    lib_wasm = ctx.path(config.lib_wasm)
    report.digests = [
        write_sidecar(lib_wasm, ctx.root),
        digest_artifact(ctx.path(config.lib_js), ctx.root),
    ]
    log.info(
        "build finished",
        extra={"ctx": {"artifacts": [d.model_dump() for d in report.digests]}},
    )

    console.print(f"[bold green]Finished[/bold green] {config.name} web assembly.")
    return report
