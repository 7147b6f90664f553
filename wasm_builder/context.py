"""Build context: where the build runs and the environment it runs with.

The context is resolved once at startup and passed to every stage. Nothing in
the pipeline reads the current working directory or `os.environ` directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from types import MappingProxyType
from urllib.parse import unquote, urlparse

from wasm_builder.errors import InvocationError
from wasm_builder.types import BuildConfig


@dataclass(frozen=True)
class BuildContext:
    root: Path
    year: int
    home: str | None = None
    environ: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def path(self, rel: Path | str) -> Path:
        return self.root / rel


def resolve_root(location: str | os.PathLike[str]) -> Path:
    """Return the build root for *location*.

    *location* is a local path or a `file://` URL. A file resolves to its
    containing directory. Any other scheme means the build is not running from
    the local file system and is refused.
    """
    raw = os.fspath(location)
    # only `scheme://` or `file:` read as URLs; `crate:v2` and `C:\x` are paths
    if "://" in raw or raw.startswith("file:"):
        parsed = urlparse(raw)
        if parsed.scheme != "file" or parsed.netloc not in {"", "localhost"}:
            raise InvocationError("The build script can only be run from a local file system")
        raw = unquote(parsed.path)

    path = Path(raw).expanduser().resolve()
    if path.is_file():
        path = path.parent
    if not path.is_dir():
        raise InvocationError(f"Build root is not a directory: {path}")
    return path


def prepare_context(
    location: str | os.PathLike[str],
    environ: Mapping[str, str] | None = None,
    today: date | None = None,
) -> BuildContext:
    env = dict(os.environ if environ is None else environ)
    root = resolve_root(location)
    home = env.get("HOME") or env.get("USERPROFILE") or None
    year = (today or date.today()).year
    return BuildContext(root=root, year=year, home=home, environ=MappingProxyType(env))


def reproducible_env(ctx: BuildContext, config: BuildConfig) -> dict[str, str]:
    """Environment overlay that pins every machine-specific input of the compile."""
    remaps = [f"--remap-path-prefix={ctx.root}=."]
    if ctx.home:
        remaps.append(f"--remap-path-prefix={ctx.home}=~")
    return {
        "SOURCE_DATE_EPOCH": config.source_date_epoch,
        "TZ": "UTC",
        "LC_ALL": "C",
        "RUSTFLAGS": " ".join(remaps),
    }
