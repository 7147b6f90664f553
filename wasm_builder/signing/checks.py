"""Artifact digests: SHA-256 of staged outputs and verification.

Builds are pinned to be bit-reproducible, so two operators building the same
revision should produce the same `<name>_bg.wasm.sha256`.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from wasm_builder.errors import DigestMismatch
from wasm_builder.types import ArtifactDigest

CHUNK = 1 << 20


def digest_artifact(path: Path, root: Path) -> ArtifactDigest:
    h = hashlib.sha256()
    size = 0
    with path.open("rb") as f:
        while chunk := f.read(CHUNK):
            h.update(chunk)
            size += len(chunk)
    return ArtifactDigest(path=path.relative_to(root).as_posix(), sha256=h.hexdigest(), size=size)


def sidecar_path(path: Path) -> Path:
    return path.with_name(path.name + ".sha256")


def write_sidecar(path: Path, root: Path) -> ArtifactDigest:
    digest = digest_artifact(path, root)
    sidecar_path(path).write_text(digest.sha256 + "\n", encoding="utf-8")
    return digest


def verify_artifact(path: Path, root: Path, expected: str) -> ArtifactDigest:
    """Raise DigestMismatch unless *path* hashes to *expected* (`<hex>` or `sha256:<hex>`)."""
    want = expected.strip().lower().removeprefix("sha256:")
    digest = digest_artifact(path, root)
    if digest.sha256 != want:
        raise DigestMismatch(f"{digest.path}: sha256 {digest.sha256}, expected {want}")
    return digest
