"""wasm-builder CLI — reproducible cargo → wasm-bindgen builds into ./lib.

Commands:
- build   full pipeline (fmt, compile, bindgen, stage, patch, fmt)
- stage   copy existing generator output into lib/
- patch   re-patch lib/<name>.js from existing generator output
- env     print the compile-stage environment overlay
- verify  check lib/<name>_bg.wasm against an expected SHA-256
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wasm_builder.config import load_config
from wasm_builder.context import BuildContext, prepare_context, reproducible_env
from wasm_builder.core import build_pipeline, finish_bindings
from wasm_builder.errors import BuildError
from wasm_builder.logging import set_verbose
from wasm_builder.package.staging import stage_artifacts
from wasm_builder.signing.checks import verify_artifact
from wasm_builder.types import BuildConfig

app = typer.Typer(
    add_completion=False, help="Build Rust crates into patched wasm-bindgen libraries"
)
console = Console()
err_console = Console(stderr=True)

PATH_ARG = typer.Argument(".", help="Crate directory, build script path or file:// URL")
NAME_OPT = typer.Option(None, "--name", help="Crate/module name (default: from Cargo.toml)")
CONFIG_OPT = typer.Option(None, "--config", help="Config file (default: <root>/wasmbuild.json)")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit JSON log lines"),
) -> None:
    set_verbose(verbose)


@contextmanager
def _fatal_on_build_error() -> Iterator[None]:
    try:
        yield
    except BuildError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def _setup(
    path: str, name: str | None, config: str | None, **overrides
) -> tuple[BuildContext, BuildConfig]:
    ctx = prepare_context(path)
    cfg = load_config(
        ctx.root,
        Path(config) if config else None,
        overrides={"name": name, **overrides},
    )
    return ctx, cfg


@app.command()
def build(
    path: str = PATH_ARG,
    name: str | None = NAME_OPT,
    config: str | None = CONFIG_OPT,
    strict: bool = typer.Option(
        False, "--strict", help="Fail when a binding patch does not match exactly once"
    ),
) -> None:
    with _fatal_on_build_error():
        ctx, cfg = _setup(path, name, config, strict_patch=strict or None)
        report = build_pipeline(ctx, cfg, console=console)

    table = Table(title="Build Summary")
    table.add_column("File", style="cyan")
    table.add_column("Bytes", justify="right")
    table.add_column("SHA-256")
    for d in report.digests:
        table.add_row(d.path, str(d.size), d.sha256[:16])
    console.print(table)


@app.command()
def stage(
    path: str = PATH_ARG,
    name: str | None = NAME_OPT,
    config: str | None = CONFIG_OPT,
) -> None:
    with _fatal_on_build_error():
        ctx, cfg = _setup(path, name, config)
    stage_artifacts(ctx, cfg, console)


@app.command()
def patch(
    path: str = PATH_ARG,
    name: str | None = NAME_OPT,
    config: str | None = CONFIG_OPT,
    strict: bool = typer.Option(False, "--strict", help="Fail on a patch miss"),
    fmt: bool = typer.Option(True, "--fmt/--no-fmt", help="Run deno fmt on the written module"),
) -> None:
    with _fatal_on_build_error():
        ctx, cfg = _setup(path, name, config, strict_patch=strict or None)
        report, _ = finish_bindings(ctx, cfg, console=console, fmt=fmt)
    for rule, count in report.counts.items():
        rprint(f"  {rule}: [cyan]{count}[/cyan] match(es)")


@app.command()
def env(
    path: str = PATH_ARG,
    name: str | None = NAME_OPT,
    config: str | None = CONFIG_OPT,
) -> None:
    with _fatal_on_build_error():
        ctx, cfg = _setup(path, name, config)
    print(json.dumps(reproducible_env(ctx, cfg), indent=2, sort_keys=True))


@app.command()
def verify(
    sha256: str = typer.Argument(..., help="Expected digest (hex or sha256:<hex>)"),
    path: str = PATH_ARG,
    name: str | None = NAME_OPT,
    config: str | None = CONFIG_OPT,
) -> None:
    with _fatal_on_build_error():
        ctx, cfg = _setup(path, name, config)
        verify_artifact(ctx.path(cfg.lib_wasm), ctx.root, expected=sha256)
    rprint("[green]SHA-256 verified.[/green]")


if __name__ == "__main__":
    app()
