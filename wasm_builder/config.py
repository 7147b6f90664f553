"""Build configuration: optional `wasmbuild.json` + CLI overrides."""

from __future__ import annotations

import json
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from wasm_builder.errors import ConfigError
from wasm_builder.types import BuildConfig

CONFIG_FILENAME = "wasmbuild.json"


def _build_schema() -> dict:
    with resources.files("wasm_builder.schema").joinpath("build.schema.json").open(
        "r", encoding="utf-8"
    ) as f:
        return json.load(f)


def validate_config(data: dict) -> None:
    try:
        Draft202012Validator(_build_schema()).validate(data)
    except ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"invalid build config at {where}: {exc.message}") from exc


def crate_name(root: Path) -> str | None:
    """Artifact stem cargo uses for the crate at *root*, if it has a manifest.

    `[lib].name` wins over `[package].name`; cargo maps `-` to `_` either way.
    """
    manifest = root / "Cargo.toml"
    if not manifest.is_file():
        return None
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{manifest}: {exc}") from exc
    name = data.get("lib", {}).get("name") or data.get("package", {}).get("name")
    return name.replace("-", "_") if isinstance(name, str) else None


def default_name(root: Path) -> str:
    return crate_name(root) or root.name.replace("-", "_")


def load_config(
    root: Path,
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> BuildConfig:
    """Load settings for the crate at *root*.

    Precedence, lowest first: built-in defaults, `wasmbuild.json` (or *path*),
    then non-None *overrides* (typically CLI options).
    """
    data: dict[str, Any] = {}
    cfg_path = path if path is not None else root / CONFIG_FILENAME
    if path is not None and not cfg_path.exists():
        raise ConfigError(f"config file not found: {cfg_path}")
    if cfg_path.exists():
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{cfg_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{cfg_path}: expected a JSON object")

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value
    validate_config(data)
    data.setdefault("name", default_name(root))
    return BuildConfig(**data)
