"""Shared Pydantic models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class BuildConfig(BaseModel):
    """Settings for one crate build.

    Paths are relative to the build root. `name` is both the crate's binary
    name and the stem of every generated artifact.
    """

    name: str
    features: list[str] = Field(default_factory=lambda: ["wasm"])
    target: str = "wasm32-unknown-unknown"
    bindgen_target: str = "deno"
    out_dir: str = "target/wasm32-bindgen-deno-js"
    lib_dir: str = "lib"
    copyright_owner: str = "the authors"
    license: str = "MIT license"
    source_date_epoch: str = "1600000000"
    cargo: str = "cargo"
    wasm_bindgen: str = "wasm-bindgen"
    deno: str = "deno"
    strict_patch: bool = False

    # --- compiler / generator outputs ---------------------------------------

    @property
    def compiled_wasm(self) -> Path:
        return Path("target") / self.target / "release" / f"{self.name}.wasm"

    @property
    def generated_wasm(self) -> Path:
        return Path(self.out_dir) / f"{self.name}_bg.wasm"

    @property
    def generated_js(self) -> Path:
        return Path(self.out_dir) / f"{self.name}.js"

    @property
    def generated_snippets(self) -> Path:
        return Path(self.out_dir) / "snippets"

    # --- library tree -------------------------------------------------------

    @property
    def lib_wasm(self) -> Path:
        return Path(self.lib_dir) / f"{self.name}_bg.wasm"

    @property
    def lib_snippets(self) -> Path:
        return Path(self.lib_dir) / "snippets"

    @property
    def lib_js(self) -> Path:
        return Path(self.lib_dir) / f"{self.name}.js"

    @property
    def lib_companion_js(self) -> Path:
        return Path(self.lib_dir) / f"{self.name}.wasm.js"


class ArtifactDigest(BaseModel):
    path: str
    sha256: str
    size: int
