from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from wasm_builder.cli import app
from wasm_builder.stages import runner as runner_mod
from wasm_builder.types import BuildConfig

cli = CliRunner()


@pytest.mark.timeout(20)
def test_cli_build_end_to_end(crate: Path, monkeypatch, fake_run) -> None:
    run = fake_run()
    monkeypatch.setattr(runner_mod.subprocess, "run", run)

    result = cli.invoke(app, ["build", str(crate), "--name", "sample"])

    assert result.exit_code == 0, result.output
    assert [argv[:2] for argv in run.calls] == [
        ["cargo", "fmt"],
        ["cargo", "build"],
        ["wasm-bindgen", "./target/wasm32-unknown-unknown/release/sample.wasm"],
        ["deno", "fmt"],
    ]
    assert "Finished" in result.output
    assert (crate / "lib" / "sample_bg.wasm").stat().st_size == 10
    js = (crate / "lib" / "sample.js").read_text(encoding="utf-8")
    assert js.startswith("// Copyright 2018-")

    digest = (crate / "lib" / "sample_bg.wasm.sha256").read_text(encoding="utf-8").strip()
    ok = cli.invoke(app, ["verify", f"sha256:{digest}", str(crate), "--name", "sample"])
    assert ok.exit_code == 0, ok.output
    assert "SHA-256 verified." in ok.output
    bad = cli.invoke(app, ["verify", "0" * 64, str(crate), "--name", "sample"])
    assert bad.exit_code == 1


def test_cli_refuses_remote_location(monkeypatch, fake_run) -> None:
    run = fake_run()
    monkeypatch.setattr(runner_mod.subprocess, "run", run)

    result = cli.invoke(app, ["build", "https://example.com/crate/build.py"])

    assert result.exit_code == 1
    assert "local file system" in result.output
    assert run.calls == []


def test_cli_stage_failure_exits_1(crate: Path, monkeypatch, fake_run) -> None:
    run = fake_run(fail_program_arg="build")
    monkeypatch.setattr(runner_mod.subprocess, "run", run)

    result = cli.invoke(app, ["build", str(crate), "--name", "sample"])

    assert result.exit_code == 1
    assert "cargo build failed" in result.output
    assert len(run.calls) == 2
    assert not (crate / "lib" / "sample.js").exists()


def test_cli_env_prints_compile_overlay(crate: Path) -> None:
    result = cli.invoke(app, ["env", str(crate)])
    assert result.exit_code == 0, result.output
    env = json.loads(result.output)
    assert env["TZ"] == "UTC"
    assert env["LC_ALL"] == "C"
    assert f"--remap-path-prefix={crate.resolve()}=." in env["RUSTFLAGS"]


def test_cli_patch_without_fmt(crate: Path, generator_output) -> None:
    generator_output(crate, BuildConfig(name="sample"), {})

    result = cli.invoke(app, ["patch", str(crate), "--name", "sample", "--no-fmt"])

    assert result.exit_code == 0, result.output
    assert "read: 1 match(es)" in result.output
    assert "fetch: 1 match(es)" in result.output


def test_cli_strict_patch_miss_exits_1(crate: Path) -> None:
    cfg = BuildConfig(name="sample")
    (crate / cfg.out_dir).mkdir(parents=True)
    (crate / cfg.generated_js).write_text("export {};\n", encoding="utf-8")

    result = cli.invoke(app, ["patch", str(crate), "--name", "sample", "--strict", "--no-fmt"])

    assert result.exit_code == 1
    assert "matched 0 lines" in result.output


def test_cli_rejects_invalid_config(crate: Path) -> None:
    (crate / "wasmbuild.json").write_text(json.dumps({"target": ""}), encoding="utf-8")
    result = cli.invoke(app, ["stage", str(crate)])
    assert result.exit_code == 1
    assert "invalid build config" in result.output
