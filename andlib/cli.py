"""
AndLibUtils CLI
================

Click-based command-line interface for the AndLibUtils tools.

Usage::

    # Rename a JNI method in place
    andlib rename-jni libwebcore.so "native_drawText(I[CIIFFI)V" drawText

    # Write the result elsewhere, verbosely
    andlib rename-jni libwebcore.so "native_drawText(I[CIIFFI)V" drawText \\
        -o out/libwebcore.so -v

    # Map prelinked libraries by load address
    andlib prelink map system/lib/*.so -o prelink.map

    # Show the version
    andlib version

Exit codes:
    0  success
    2  usage error
    3  I/O error (unreadable input, unwritable output, failed publish)
    5  rename failed, or some files could not be mapped

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import json
import sys

import click

from shared.config import AndLibConfig
from shared.console import AndLibConsole
from shared.logger import AndLibLogger

from andlib import __version__
from andlib.core.errors import AndLibError, AndLibIOError
from andlib.core.renamer import rename_jni
from andlib.core.workspace import TempWorkspace
from andlib.output.console import RenameConsoleOutput
from andlib.output.report import RenameReportGenerator
from andlib.parsers.prelink import prelink_map


EXIT_IO_ERROR: int = 3
EXIT_FAILED: int = 5

COMMAND_NAME: str = "AndLibUtils"


def _load_config(config_path: str | None) -> AndLibConfig:
    if config_path is not None:
        return AndLibConfig.load(config_path)
    try:
        return AndLibConfig.load()
    except Exception:
        return AndLibConfig()


# ---------------------------------------------------------------------------
# CLI group / commands
# ---------------------------------------------------------------------------

@click.group("andlib")
def cli() -> None:
    """AndLibUtils -- Android native library utilities."""


@cli.command("version")
def version_command() -> None:
    """Print the AndLibUtils version."""
    click.echo(f"{COMMAND_NAME} v{__version__}")


@cli.command("rename-jni")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.argument("function_signature")
@click.argument("new_name")
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write output to this file (default: overwrite PATH).",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Be verbose.",
)
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write a JSON report of the rename to this path.",
)
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Print the rename result as JSON to stdout.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="TOML configuration file.",
)
def rename_jni_command(
    path: str,
    function_signature: str,
    new_name: str,
    output_path: str | None,
    verbose: bool,
    report_path: str | None,
    json_output: bool,
    config_path: str | None,
) -> None:
    """Try to rename the given JNI function to a new name.

    FUNCTION_SIGNATURE is the full signature, for example
    "native_drawText(I[CIIFFI)V".  NEW_NAME, for example "drawText", must
    already exist as a string in the library's .rodata section.

    \b
        andlib rename-jni libwebcore.so "native_drawText(I[CIIFFI)V" drawText
    """
    if not function_signature.strip():
        raise click.BadParameter("must not be empty", param_hint="FUNCTION_SIGNATURE")
    if "(" not in function_signature:
        raise click.BadParameter("must contain '('", param_hint="FUNCTION_SIGNATURE")
    if not new_name:
        raise click.BadParameter("must not be empty", param_hint="NEW_NAME")

    console = AndLibConsole(quiet=json_output)
    err_console = AndLibConsole(stderr=True)

    try:
        config = _load_config(config_path)
    except Exception as exc:
        err_console.error(f"Cannot load configuration: {exc}")
        sys.exit(EXIT_IO_ERROR)

    gcfg = config.global_settings
    logger = AndLibLogger(
        "rename",
        log_level="DEBUG" if verbose else gcfg.log_level,
        log_file=gcfg.log_file,
        json_logs=gcfg.log_json,
    )

    console.info(f"renameJNI processing file {path}...")

    workspace = TempWorkspace(path, output_path, suffix=config.rename.temp_suffix)
    try:
        with workspace as temp:
            result = rename_jni(
                temp,
                function_signature,
                new_name,
                display_name=path,
                config=config,
                logger=logger,
            )
            published = workspace.commit()
    except AndLibIOError as exc:
        err_console.error(str(exc))
        sys.exit(EXIT_IO_ERROR)
    except AndLibError as exc:
        err_console.error(str(exc))
        sys.exit(EXIT_FAILED)
    except OSError as exc:
        err_console.error(f"Error: {exc}")
        sys.exit(EXIT_IO_ERROR)

    report_gen = RenameReportGenerator()
    if json_output:
        click.echo(json.dumps(report_gen.build(result), indent=2, default=str))
    else:
        RenameConsoleOutput(console=console).display_rename(result, verbose=verbose)
        console.success(f"Result written to {published}")

    if report_path:
        try:
            written = report_gen.generate_json(result, report_path)
        except OSError as exc:
            err_console.error(f"Cannot write report {report_path}: {exc}")
            sys.exit(EXIT_IO_ERROR)
        console.success(f"JSON report saved: {written}")


@cli.group("prelink")
def prelink_group() -> None:
    """Inspect prelinked libraries."""


@prelink_group.command("map")
@click.argument("files", nargs=-1, required=True, type=click.Path())
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the map to this file instead of stdout.",
)
def prelink_map_command(files: tuple[str, ...], output_path: str | None) -> None:
    """Check the prelinked address of FILES, sorted by address."""
    console = AndLibConsole()
    err_console = AndLibConsole(stderr=True)

    entries = prelink_map(files)
    errors = [e for e in entries if e.error is not None]
    for entry in errors:
        err_console.error(f"Error processing file {entry.path}: {entry.error}")

    output = RenameConsoleOutput(console=console)
    if output_path is not None:
        try:
            with open(output_path, "w", encoding="utf-8") as fh:
                output.display_prelink_map(entries, out=fh)
        except OSError as exc:
            err_console.error(f"Error opening output file: {exc}")
            sys.exit(EXIT_IO_ERROR)
    else:
        output.display_prelink_map(entries)

    summary = f"Processed {len(files)} files"
    summary += f" ({len(errors)} errors)." if errors else "."
    console.print(summary, markup=False)
    if errors:
        sys.exit(EXIT_FAILED)


# ---------------------------------------------------------------------------
# Module entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point for ``andlib`` and ``python -m andlib``."""
    cli()


if __name__ == "__main__":
    main()
