"""Staging: move generator output into the library tree.

Copies:
- `<out_dir>/<name>_bg.wasm` -> `lib/<name>_bg.wasm`
- `<out_dir>/snippets/`      -> `lib/snippets/` (emptied first)

Errors are not caught here. A half-staged `lib/` is worse than a loud failure.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from rich.console import Console

from wasm_builder.context import BuildContext
from wasm_builder.logging import get_logger
from wasm_builder.types import BuildConfig

log = get_logger()


def _announce(console: Console, verb: str, dest: Path) -> None:
    console.print(f"  {verb} [yellow]{dest.as_posix()}[/yellow]")
    log.info(verb, extra={"ctx": {"path": dest.as_posix()}})


def empty_dir(path: Path) -> None:
    """Make *path* an existing, empty directory."""
    if path.is_dir() and not path.is_symlink():
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    else:
        if path.exists() or path.is_symlink():
            path.unlink()
        path.mkdir(parents=True)


def copy_wasm(ctx: BuildContext, config: BuildConfig, console: Console) -> Path:
    dest = ctx.path(config.lib_wasm)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(ctx.path(config.generated_wasm), dest)
    _announce(console, "copy", config.lib_wasm)
    return dest


def copy_snippets(ctx: BuildContext, config: BuildConfig, console: Console) -> Path:
    dest = ctx.path(config.lib_snippets)
    empty_dir(dest)
    _announce(console, "delete", config.lib_snippets)
    src = ctx.path(config.generated_snippets)
    # wasm-bindgen omits snippets/ when the crate has no inline JS
    if src.is_dir():
        shutil.copytree(src, dest, dirs_exist_ok=True)
    _announce(console, "copy", config.lib_snippets)
    return dest


def stage_artifacts(
    ctx: BuildContext, config: BuildConfig, console: Console | None = None
) -> list[Path]:
    console = console or Console()
    console.print("[bold green]Copying[/bold green] lib wasm...")
    return [copy_wasm(ctx, config, console), copy_snippets(ctx, config, console)]
