"""Stage descriptors for each external tool the pipeline drives.

Each factory returns a `Stage` value; `stages.runner.run_stage` is the only
place that turns one into a process.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from wasm_builder.context import BuildContext, reproducible_env
from wasm_builder.types import BuildConfig


@dataclass(frozen=True)
class Stage:
    name: str
    program: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    failure: str = ""

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


def _rel(path) -> str:
    return f"./{path.as_posix()}"


def format_sources(config: BuildConfig) -> Stage:
    return Stage(
        name="fmt",
        program=config.cargo,
        args=("fmt",),
        failure="cargo fmt failed",
    )


def compile_wasm(ctx: BuildContext, config: BuildConfig) -> Stage:
    args = ["build", "--release", "--no-default-features"]
    if config.features:
        args += ["--features", ",".join(config.features)]
    args += ["--target", config.target]
    return Stage(
        name="build",
        program=config.cargo,
        args=tuple(args),
        env=MappingProxyType(reproducible_env(ctx, config)),
        failure="cargo build failed",
    )


def generate_bindings(config: BuildConfig) -> Stage:
    return Stage(
        name="bindgen",
        program=config.wasm_bindgen,
        args=(
            _rel(config.compiled_wasm),
            "--target",
            config.bindgen_target,
            "--weak-refs",
            "--out-dir",
            _rel(config.generated_js.parent),
        ),
        failure="wasm-bindgen failed",
    )


def format_bindings(config: BuildConfig) -> Stage:
    return Stage(
        name="fmt-js",
        program=config.deno,
        args=("fmt", "--quiet", _rel(config.lib_companion_js), _rel(config.lib_js)),
        failure="deno fmt command failed",
    )
