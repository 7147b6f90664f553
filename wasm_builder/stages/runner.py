"""Blocking execution of a single stage."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape

from wasm_builder.context import BuildContext
from wasm_builder.errors import StageFailed
from wasm_builder.logging import get_logger
from wasm_builder.stages.commands import Stage

log = get_logger()


@dataclass(frozen=True)
class StageResult:
    stage: Stage
    success: bool
    returncode: int | None = None


def run_stage(stage: Stage, ctx: BuildContext, console: Console | None = None) -> StageResult:
    """Run *stage* in the build root and wait for it to exit.

    A program that cannot be found or spawned counts as a failed stage
    (`returncode` is None).
    """
    console = console or Console()
    console.print(f"  [bold bright_black]{escape(str(stage))}[/bold bright_black]")
    env = {**ctx.environ, **stage.env}
    log.info("stage start", extra={"ctx": {"stage": stage.name, "argv": stage.argv}})
    try:
        proc = subprocess.run(stage.argv, cwd=ctx.root, env=env)
    except OSError as exc:
        log.error(
            "stage spawn failed",
            extra={"ctx": {"stage": stage.name, "error": str(exc)}},
        )
        return StageResult(stage=stage, success=False)

    result = StageResult(stage=stage, success=proc.returncode == 0, returncode=proc.returncode)
    log.info(
        "stage finished",
        extra={"ctx": {"stage": stage.name, "returncode": proc.returncode}},
    )
    return result


def require(result: StageResult) -> StageResult:
    if not result.success:
        raise StageFailed(result)
    return result
