from __future__ import annotations

import io
import subprocess
from datetime import date
from pathlib import Path

import pytest
from rich.console import Console

from wasm_builder.context import BuildContext, prepare_context
from wasm_builder.stages.commands import Stage
from wasm_builder.stages.runner import StageResult
from wasm_builder.types import BuildConfig

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"
SAMPLE_JS = FIXTURES / "bindgen-deno" / "sample.js"


def write_generator_output(root: Path, config: BuildConfig, snippets: dict[str, str]) -> None:
    """Lay out what wasm-bindgen would leave in `out_dir`."""
    out = root / config.out_dir
    out.mkdir(parents=True, exist_ok=True)
    (root / config.generated_wasm).write_bytes(b"\0asm\x01\0\0\0\0\0")
    (root / config.generated_js).write_text(SAMPLE_JS.read_text(encoding="utf-8"), encoding="utf-8")
    for rel, content in snippets.items():
        p = root / config.generated_snippets / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")


class FakeToolchain:
    """Stands in for cargo / wasm-bindgen / deno.

    `fail_at` names the stage whose process reports failure; every call is
    recorded so tests can check ordering.
    """

    def __init__(self, fail_at: str | None = None) -> None:
        self.fail_at = fail_at
        self.calls: list[Stage] = []

    def __call__(
        self, stage: Stage, ctx: BuildContext, console: Console | None = None
    ) -> StageResult:
        self.calls.append(stage)
        if stage.name == self.fail_at:
            return StageResult(stage=stage, success=False, returncode=1)
        if stage.name == "build":
            wasm = ctx.root / "target" / "wasm32-unknown-unknown" / "release"
            wasm.mkdir(parents=True, exist_ok=True)
            (wasm / f"{_name(stage)}.wasm").write_bytes(b"\0asm\x01\0\0\0\0\0")
        elif stage.name == "bindgen":
            cfg = BuildConfig(name=_name(stage))
            write_generator_output(ctx.root, cfg, {"sample-0001/src/js/loader.js": "export {};\n"})
        return StageResult(stage=stage, success=True, returncode=0)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.calls]


def _name(stage: Stage) -> str:
    if stage.name == "bindgen":
        return Path(stage.args[0]).stem
    return "sample"


def fake_subprocess_run(fail_program_arg: str | None = None):
    """A `subprocess.run` replacement driven by argv, for CLI tests."""
    calls: list[list[str]] = []
    toolchain = FakeToolchain()

    def run(argv, cwd=None, env=None, **_):
        calls.append(list(argv))
        if fail_program_arg and fail_program_arg in argv:
            return subprocess.CompletedProcess(argv, 101)
        ctx = BuildContext(root=Path(cwd), year=2030)
        if argv[:2] == ["cargo", "build"]:
            toolchain(Stage(name="build", program="cargo"), ctx)
        elif argv[0] == "wasm-bindgen":
            toolchain(Stage(name="bindgen", program=argv[0], args=tuple(argv[1:])), ctx)
        return subprocess.CompletedProcess(argv, 0)

    run.calls = calls
    return run


@pytest.fixture
def quiet_console() -> Console:
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def crate(tmp_path: Path) -> Path:
    root = tmp_path / "sample"
    (root / "lib").mkdir(parents=True)
    (root / "lib" / "sample.wasm.js").write_text("export const source = 1;\n", encoding="utf-8")
    return root


@pytest.fixture
def ctx(crate: Path) -> BuildContext:
    return prepare_context(
        crate,
        environ={"HOME": "/home/builder", "PATH": "/usr/bin"},
        today=date(2030, 6, 1),
    )


@pytest.fixture
def config() -> BuildConfig:
    return BuildConfig(name="sample")


@pytest.fixture
def sample_js() -> str:
    return SAMPLE_JS.read_text(encoding="utf-8")


@pytest.fixture
def generator_output():
    return write_generator_output


def tree(path: Path) -> dict[str, bytes]:
    return {
        p.relative_to(path).as_posix(): p.read_bytes()
        for p in sorted(path.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def snapshot():
    return tree


@pytest.fixture
def toolchain():
    """Factory for `FakeToolchain`, e.g. `toolchain(fail_at="build")`."""
    return FakeToolchain


@pytest.fixture
def fake_run():
    return fake_subprocess_run
