"""Command-line interface for qrbackup.

Examples:
    qrbackup encode ~/test.zip --grid 4x5
    qrbackup decode --list ~/list.txt --max-codes 20
    qrbackup decode --codes ~/codes.txt
    qrbackup decode --list ~/list.txt --codes ~/codes.txt --max-codes 20

A list file names one image per line (``ls -d "$PWD/"lsqrbt*.png > list.txt``);
images may hold many symbols each. A codes file holds one transport
string per line, as saved by any QR scanner app. Both sources can be
mixed; duplicates are removed.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from . import __version__
from .config import BackupConfig, parse_grid
from .errors import QRBackupError
from .levels import LEVEL_INDEX
from .pipeline import decode_files, encode_file


def configure_logging(level: str) -> None:
    """Configure structlog console output filtered at level."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _grid_option(ctx: click.Context, param: click.Parameter, value: str | None):
    if value is None:
        return None
    try:
        return parse_grid(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _build_config(**settings) -> BackupConfig:
    try:
        return BackupConfig(**settings)
    except ValidationError as e:
        raise click.UsageError(str(e)) from e


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Set the log level for the CLI session.",
)
def main(log_level: str) -> None:
    """Back up any file as printable QR codes and restore it from scans."""
    configure_logging(log_level)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-c",
    "--level",
    type=click.Choice(list(LEVEL_INDEX), case_sensitive=False),
    default="L",
    show_default=True,
    help="QR error correction level; stronger levels hold less data per code.",
)
@click.option(
    "-t",
    "--grid",
    callback=_grid_option,
    default=None,
    metavar="WxH",
    help="Also compose printable pages holding W x H codes each (e.g. 4x5).",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for generated images (default: next to FILE).",
)
def encode(
    file: Path,
    level: str,
    grid: tuple[int, int] | None,
    output_dir: Path | None,
) -> None:
    """Encode FILE into QR code images."""
    config = _build_config(
        level=level,
        page_width=grid[0] if grid else None,
        page_height=grid[1] if grid else None,
        output_dir=output_dir,
    )

    try:
        report = encode_file(file, config)
    except QRBackupError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(
        f'Encoded "{report.file_name}" (size: {report.file_size}, '
        f"crc32: 0x{report.checksum:08X}) at level {report.level} "
        f"into {report.count} code(s)."
    )
    for path in report.symbol_paths:
        click.echo(f"Generated {path.name}")
    for path in report.page_paths:
        click.echo(f"Generated page {path.name}")


@main.command()
@click.option(
    "-d",
    "--list",
    "list_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Text file listing image paths to scan, one per line.",
)
@click.option(
    "-s",
    "--codes",
    "codes_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Text file with already scanned codes, one per line.",
)
@click.option(
    "-m",
    "--max-codes",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Move to the next image once this many codes were found on it (0 = no limit).",
)
@click.option(
    "-w",
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Images scanned in parallel.",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for decoded files (default: next to the codes or list file).",
)
@click.option(
    "--keep-corrupted",
    is_flag=True,
    help="Write decoded files even when their checksum does not match.",
)
def decode(
    list_file: Path | None,
    codes_file: Path | None,
    max_codes: int,
    workers: int | None,
    output_dir: Path | None,
    keep_corrupted: bool,
) -> None:
    """Decode files from scanned QR code images and/or a codes file."""
    if list_file is None and codes_file is None:
        raise click.UsageError("Give --list, --codes or both.")

    settings = {"max_codes": max_codes, "output_dir": output_dir, "keep_corrupted": keep_corrupted}
    if workers is not None:
        settings["workers"] = workers
    config = _build_config(**settings)

    try:
        report = decode_files(list_file, codes_file, config)
    except QRBackupError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Detected {report.codes_from_images} code(s) from list file.")
    click.echo(f"Detected {report.codes_from_text} code(s) from codes file.")
    click.echo(f"Detected {report.unique_codes} unique code(s) in total.")
    for path in report.unreadable_images:
        click.echo(f"Error: Could not read image from file {path}.", err=True)
    if report.rejected_codes:
        click.echo(f"Skipped {report.rejected_codes} invalid code(s).", err=True)

    for output in report.outputs:
        outcome = output.outcome
        click.echo(f"Found {outcome.part_count} parts of file {outcome.identifier}.")
        if output.path is not None:
            click.echo(f"Decoded {outcome.identifier} and saved to {output.path}.")
        if outcome.ok:
            click.echo("Checksum validated successfully.")
        else:
            click.echo(f"Error: {outcome.error}", err=True)

    if not report.outputs:
        click.echo("Error: No file could be decoded.", err=True)
    if not report.ok:
        sys.exit(1)
    click.echo("Decoding finished!")


if __name__ == "__main__":
    main()
