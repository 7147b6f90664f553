"""Post-processing of the wasm-bindgen JS module.

The generated module loads its WASM bytes either from disk (`Deno.readFile`)
or over the network (`fetch`). Each of those lines is rewritten so that, on a
host exposing `Deno.permissions`, the matching permission is requested first:

    if ("permissions" in Deno) {
      Deno.permissions.request({ name: "read" });
    }
    wasmCode = await Deno.readFile(wasm_url);

The rewrites are plain text substitutions anchored on one whole line each.
`apply_rules` is pure and reports how many lines every rule matched, so the
caller decides whether a miss is a warning or an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from wasm_builder.context import BuildContext
from wasm_builder.errors import PatchError
from wasm_builder.logging import get_logger
from wasm_builder.types import BuildConfig

log = get_logger()

COPYRIGHT_START_YEAR = 2018

CAPABILITY_CHECK = '"permissions" in Deno'

GENERATED_BANNER = (
    "// @generated file from build script, do not edit\n"
    "// deno-lint-ignore-file\n"
)

DEBUG_EXPORTS = (
    "/* for testing and debugging */\n"
    "export const _wasm = wasm;\n"
    "export const _wasmInstance = wasmInstance;\n"
)


@dataclass(frozen=True)
class PatchRule:
    name: str
    pattern: re.Pattern[str]
    request: str
    statement: str
    check: str = CAPABILITY_CHECK

    def render(self, indent: str, eol: str = "") -> str:
        lines = [
            f"{indent}if ({self.check}) {{",
            f"{indent}  {self.request}",
            f"{indent}}}",
            f"{indent}{self.statement}",
        ]
        # keep the source's line terminator on every emitted line
        return f"{eol}\n".join(lines) + eol

    def _replace(self, match: re.Match[str]) -> str:
        return self.render(match.group("indent"), match.group("eol"))

    def apply(self, text: str) -> tuple[str, int]:
        return self.pattern.subn(self._replace, text)


def _anchor(body: str) -> re.Pattern[str]:
    return re.compile(rf"^(?P<indent>[ \t]*){body}[ \t]*(?P<eol>\r?)$", re.MULTILINE)


READ_RULE = PatchRule(
    name="read",
    pattern=_anchor(r"wasmCode\s=\sawait Deno\.readFile\(wasm_url\);"),
    request='Deno.permissions.request({ name: "read" });',
    statement="wasmCode = await Deno.readFile(wasm_url);",
)

FETCH_RULE = PatchRule(
    name="fetch",
    pattern=_anchor(r"wasmCode\s=\sawait\s\(await\sfetch\(wasm_url\)\)\.arrayBuffer\(\);"),
    request='Deno.permissions.request({ name: "net", host: wasm_url.host });',
    statement="wasmCode = await (await fetch(wasm_url)).arrayBuffer();",
)

DEFAULT_RULES: tuple[PatchRule, ...] = (READ_RULE, FETCH_RULE)


@dataclass(frozen=True)
class PatchReport:
    text: str
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def unmatched(self) -> list[str]:
        return [name for name, n in self.counts.items() if n != 1]


def apply_rules(text: str, rules: tuple[PatchRule, ...] = DEFAULT_RULES) -> PatchReport:
    counts: dict[str, int] = {}
    for rule in rules:
        text, counts[rule.name] = rule.apply(text)
    return PatchReport(text=text, counts=counts)


def check_report(report: PatchReport, strict: bool = False) -> None:
    """Warn (or raise, when *strict*) for every rule that did not match exactly once."""
    for name in report.unmatched:
        count = report.counts[name]
        if strict:
            raise PatchError(f"binding patch '{name}' matched {count} lines, expected 1")
        log.warning(
            "binding patch did not match exactly once",
            extra={"ctx": {"rule": name, "count": count}},
        )


def copyright_header(
    year: int,
    owner: str = "the authors",
    license: str = "MIT license",
) -> str:
    if year < COPYRIGHT_START_YEAR:
        raise PatchError(f"build year {year} precedes {COPYRIGHT_START_YEAR}")
    return (
        f"// Copyright {COPYRIGHT_START_YEAR}-{year} {owner}. All rights reserved. {license}."
    )


def render_binding_module(
    generated: str,
    year: int,
    config: BuildConfig,
    rules: tuple[PatchRule, ...] = DEFAULT_RULES,
) -> PatchReport:
    """Return the final library module text for the generated JS *generated*."""
    report = apply_rules(generated, rules)
    header = copyright_header(
        year,
        owner=config.copyright_owner,
        license=config.license,
    )
    text = f"{header}\n{GENERATED_BANNER}\n{report.text}\n\n{DEBUG_EXPORTS}"
    return PatchReport(text=text, counts=report.counts)


def patch_bindings(
    ctx: BuildContext,
    config: BuildConfig,
    console: Console | None = None,
) -> PatchReport:
    """Read the generated module, patch it and write `lib/<name>.js`."""
    console = console or Console()
    console.print("[bold green]Generating[/bold green] lib JS bindings...")

    generated = ctx.path(config.generated_js).read_text(encoding="utf-8")
    report = render_binding_module(generated, ctx.year, config)
    check_report(report, strict=config.strict_patch)

    dest: Path = ctx.path(config.lib_js)
    console.print(f"  write [yellow]{config.lib_js.as_posix()}[/yellow]")
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(report.text, encoding="utf-8")
    log.info("write", extra={"ctx": {"path": config.lib_js.as_posix(), **report.counts}})
    return report
