"""Error types raised by the build pipeline.

Everything the CLI reports as a one-line diagnostic derives from `BuildError`.
Filesystem errors (`OSError`) are deliberately not wrapped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wasm_builder.stages.runner import StageResult


class BuildError(Exception):
    pass


class InvocationError(BuildError):
    """The build root is not a trusted local directory."""


class ConfigError(BuildError):
    pass


class PatchError(BuildError):
    pass


class StageFailed(BuildError):
    def __init__(self, result: StageResult) -> None:
        super().__init__(result.stage.failure)
        self.result = result


class DigestMismatch(BuildError):
    pass
