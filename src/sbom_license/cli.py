from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from .collector import collect_licenses, summarize_licenses
from .config import get_settings
from .log import configure_logging
from .policy import PolicyConflictError, PolicyIndex
from .policy_loader import PolicyConfigError, load_policy_index
from .report_builder import (
    render_license_list_json,
    render_policies_csv,
    render_policies_text,
    render_summary_csv,
    render_summary_html,
    render_summary_json,
    render_summary_text,
)
from .sbom_loader import SbomError, load_components

ERROR_APPLICATION = 1
ERROR_VALIDATION = 2

SUMMARY_FORMATS = ("txt", "csv", "json", "html")
POLICY_FORMATS = ("txt", "csv")

logger = logging.getLogger(__name__)

app = typer.Typer(help="Software Bill-of-Materials (SBOM) license utility")
license_app = typer.Typer(help="Process licenses found in SBOM input file")
app.add_typer(license_app, name="license")


@app.callback()
def main(
    ctx: typer.Context,
    policy_file: Annotated[
        Optional[Path],
        typer.Option(
            "--policy-file",
            help="License policy configuration (JSON); defaults to LICENSE_POLICY_FILE",
        ),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", "-d", help="Enable debug logging")] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Only log errors. Overrides --debug")
    ] = False,
) -> None:
    settings = get_settings()
    level = settings.log_level
    if debug:
        level = "DEBUG"
    if quiet:
        level = "ERROR"
    configure_logging(level)

    path = policy_file or settings.policy_file
    try:
        ctx.obj = load_policy_index(path)
    except PolicyConfigError as exc:
        typer.echo(f"[sbom-license] {exc}", err=True)
        raise typer.Exit(code=ERROR_APPLICATION)
    except PolicyConflictError as exc:
        typer.echo(f"[sbom-license] license policy conflict: {exc}", err=True)
        raise typer.Exit(code=ERROR_VALIDATION)


def _output_format(requested: Optional[str], supported: tuple[str, ...]) -> str:
    default = get_settings().output_format
    if default not in supported:
        default = supported[0]
    if not requested:
        return default
    value = requested.lower()
    if value not in supported:
        logger.warning("Unsupported format: `%s`; using default format `%s`.", requested, default)
        return default
    return value


def _write(text: str, output_file: Optional[Path]) -> None:
    if output_file is None:
        typer.echo(text, nl=False)
        return
    logger.info("Creating output file: `%s`", output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(text, encoding="utf-8")


@license_app.command("list")
def list_licenses(
    ctx: typer.Context,
    input_file: Annotated[
        Path,
        typer.Option("--input-file", "-i", exists=True, readable=True, help="SBOM input file"),
    ],
    summary: Annotated[
        bool, typer.Option(help="Summarize licenses and component references")
    ] = False,
    output_format: Annotated[
        Optional[str],
        typer.Option("--format", help="Summary format: txt, csv, json or html"),
    ] = None,
    output_file: Annotated[
        Optional[Path], typer.Option("--output-file", "-o", help="Output filename")
    ] = None,
) -> None:
    index: PolicyIndex = ctx.obj
    try:
        components = load_components(input_file)
    except SbomError as exc:
        typer.echo(f"[sbom-license] {exc}", err=True)
        raise typer.Exit(code=ERROR_APPLICATION)

    collection = collect_licenses(components)
    for error in collection.errors:
        typer.echo(f"[sbom-license] skipped component: {error}", err=True)

    if not summary:
        _write(render_license_list_json(collection), output_file)
        return

    rows = summarize_licenses(collection, index)
    fmt = _output_format(output_format, SUMMARY_FORMATS)
    if fmt == "csv":
        text = render_summary_csv(rows)
    elif fmt == "json":
        text = render_summary_json(rows)
    elif fmt == "html":
        text = render_summary_html(rows, title=f"License summary: {input_file.name}")
    else:
        text = render_summary_text(rows)
    _write(text, output_file)


@license_app.command("policy")
def list_policies(
    ctx: typer.Context,
    output_format: Annotated[
        Optional[str], typer.Option("--format", help="Output format: txt or csv")
    ] = None,
    output_file: Annotated[
        Optional[Path], typer.Option("--output-file", "-o", help="Output filename")
    ] = None,
) -> None:
    index: PolicyIndex = ctx.obj
    if not len(index):
        typer.echo("[sbom-license] license policy is empty; verify the policy file", err=True)
        raise typer.Exit(code=ERROR_APPLICATION)

    fmt = _output_format(output_format, POLICY_FORMATS)
    if fmt == "csv":
        _write(render_policies_csv(index.policies), output_file)
    else:
        _write(render_policies_text(index.policies), output_file)
