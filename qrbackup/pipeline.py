"""Encode and decode jobs.

Both jobs return a report instead of exiting; the command line turns
reports into messages and exit status.

Output naming:
    lsqrbt_<part>_<count>_<stem>.png          one symbol per frame
    lsqrbt_page_<page>_<pages>_<stem>.png     printable pages
    lsqrbt_<file name>                         decoded files
    lsqrbt_<CRC>_<file name>                   later versions of a name in one run

Part and page numbers are 1-based and zero-padded to the width of the
total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from .canvas import PillowCanvas
from .checksum import compute_crc32, format_checksum
from .collector import CodeCollector
from .config import BackupConfig
from .detector import QRDetector, detect_images
from .errors import IoError
from .interfaces import Canvas, SymbolDetector, SymbolEncoder, TextTranscoder
from .layout import compute_page_layout
from .reassembler import (
    GroupOutcome,
    ReassembledFile,
    decode_transport_strings,
    reassemble,
)
from .renderer import QRSymbolEncoder
from .splitter import split_file
from .transport import Base32Transcoder

logger = structlog.get_logger(__name__)

OUTPUT_PREFIX = "lsqrbt"


def symbol_file_name(part: int, count: int, stem: str) -> str:
    """File name for the symbol of 1-based part out of count."""
    width = len(str(count))
    return f"{OUTPUT_PREFIX}_{part:0{width}d}_{count}_{stem}.png"


def symbol_title(file_name: str, part: int, count: int) -> str:
    """Caption printed above the symbol of 1-based part out of count."""
    width = len(str(count))
    return f" {file_name} ({part:0{width}d} / {count})"


def page_file_name(page: int, pages: int, stem: str) -> str:
    """File name for 1-based page out of pages."""
    width = len(str(pages))
    return f"{OUTPUT_PREFIX}_page_{page:0{width}d}_{pages}_{stem}.png"


def decoded_file_name(file_name: str, checksum: int | None = None) -> str:
    """File name for a reconstructed file.

    Only the final path component of the stored name is used, so frames
    cannot direct output outside the destination directory. With a
    checksum the name becomes ``lsqrbt_<CRC>_<name>``, which tells apart
    versions of a file decoded in the same run.
    """
    base = Path(file_name.replace("\\", "/")).name
    if base in ("", ".", ".."):
        base = "unnamed"
    if checksum is not None:
        return f"{OUTPUT_PREFIX}_{format_checksum(checksum)}_{base}"
    return f"{OUTPUT_PREFIX}_{base}"


def read_input(path: Path, what: str) -> bytes:
    """Read a whole input file, raising IoError on failure."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise IoError(f"Could not read {what} at {path}: {e}") from e


def read_lines(path: Path, what: str) -> list[str]:
    """Read a UTF-8 text input file as stripped, non-empty lines."""
    try:
        text = read_input(path, what).decode("utf-8")
    except UnicodeDecodeError as e:
        raise IoError(f"{what.capitalize()} at {path} is not UTF-8 text: {e}") from e
    return [line.strip() for line in text.splitlines() if line.strip()]


@dataclass
class EncodeReport:
    """Outcome of an encode run."""

    source: Path
    file_name: str
    file_size: int
    checksum: int
    level: str
    symbol_paths: list[Path] = field(default_factory=list)
    page_paths: list[Path] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.symbol_paths)


@dataclass
class DecodedOutput:
    """Where a group's data was written, if anywhere."""

    outcome: GroupOutcome
    path: Path | None = None


@dataclass
class DecodeReport:
    """Outcome of a decode run."""

    codes_from_images: int = 0
    codes_from_text: int = 0
    unique_codes: int = 0
    rejected_codes: int = 0
    unreadable_images: list[Path] = field(default_factory=list)
    outputs: list[DecodedOutput] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.outputs) and all(out.outcome.ok for out in self.outputs)

    @property
    def failures(self) -> list[GroupOutcome]:
        return [out.outcome for out in self.outputs if not out.outcome.ok]


def encode_file(
    source: Path,
    config: BackupConfig,
    encoder: SymbolEncoder | None = None,
    canvas: Canvas | None = None,
    transcoder: TextTranscoder | None = None,
) -> EncodeReport:
    """Split a file into frames and write one symbol image per frame.

    When config has a page grid, printable pages are composed afterwards
    from the written symbols.

    Raises:
        IoError: If the source cannot be read or an output cannot be written.
        CapacityError: If the file name does not fit the robustness level.
    """
    level = config.robustness
    encoder = encoder or QRSymbolEncoder(level)
    canvas = canvas or PillowCanvas()
    transcoder = transcoder or Base32Transcoder()

    data = read_input(source, "file to encode")
    checksum = compute_crc32(data)
    file_name = source.name
    stem = source.stem
    destination = config.output_dir or source.parent

    frames = split_file(data, file_name, level.budget, checksum)
    count = len(frames)

    logger.info(
        "encode_started",
        file_name=file_name,
        size=len(data),
        crc32=format_checksum(checksum),
        level=level.name,
        parts=count,
    )

    report = EncodeReport(
        source=source,
        file_name=file_name,
        file_size=len(data),
        checksum=checksum,
        level=level.name,
    )

    for frame in frames:
        part = frame.index + 1
        payload = transcoder.encode(frame.encode())
        png_bytes = encoder.render(payload, symbol_title(file_name, part, count))
        path = destination / symbol_file_name(part, count, stem)
        canvas.write_image(png_bytes, path)
        report.symbol_paths.append(path)
        logger.info("symbol_written", path=path.name, progress=f"{100 * part // count}%")

    grid = config.grid
    if grid is not None:
        width, height = grid
        layouts = compute_page_layout(count, width, height)
        logger.info("pages_started", pages=len(layouts), width=width, height=height)
        for layout in layouts:
            path = destination / page_file_name(layout.number, layout.total, stem)
            canvas.compose_page(report.symbol_paths, layout, path)
            report.page_paths.append(path)
            logger.info("page_written", path=path.name)

    logger.info("encode_finished", file_name=file_name, parts=count, pages=len(report.page_paths))
    return report


def collect_codes(
    list_file: Path | None,
    codes_file: Path | None,
    config: BackupConfig,
    detector: SymbolDetector | None = None,
) -> tuple[CodeCollector, DecodeReport]:
    """Gather unique transport strings from images and a codes file.

    Raises:
        IoError: If the list or codes file cannot be read.
    """
    collector = CodeCollector()
    report = DecodeReport()

    image_paths: list[Path] = []
    if list_file is not None:
        image_paths = [Path(line) for line in read_lines(list_file, "list file")]
    codes_text = None
    if codes_file is not None:
        codes_text = read_input(codes_file, "codes file").decode("utf-8", errors="replace")

    if image_paths:
        report.unreadable_images = detect_images(
            image_paths,
            detector or QRDetector(),
            collector,
            max_codes=config.max_codes,
            workers=config.workers,
            source="images",
        )
    report.codes_from_images = collector.source_count("images")
    logger.info("codes_from_list_file", codes=report.codes_from_images)

    if codes_text is not None:
        collector.add_codes_text(codes_text, source="codes")
    report.codes_from_text = collector.source_count("codes")
    logger.info("codes_from_codes_file", codes=report.codes_from_text)

    report.unique_codes = len(collector)
    logger.info("codes_collected", unique=report.unique_codes)
    return collector, report


def _unique_output_name(rebuilt: ReassembledFile, written: set[str]) -> str:
    """Pick an output name not yet used in this run and record it."""
    name = decoded_file_name(rebuilt.file_name)
    if name in written:
        name = decoded_file_name(rebuilt.file_name, rebuilt.checksum)
        copy = 2
        while name in written:
            name = f"{decoded_file_name(rebuilt.file_name, rebuilt.checksum)}.{copy}"
            copy += 1
        logger.warning("output_name_collision", identifier=rebuilt.identifier, path=name)
    written.add(name)
    return name


def decode_files(
    list_file: Path | None,
    codes_file: Path | None,
    config: BackupConfig,
    detector: SymbolDetector | None = None,
    transcoder: TextTranscoder | None = None,
) -> DecodeReport:
    """Rebuild every file found in the given images and codes file.

    Verified files are written as ``lsqrbt_<name>``. Files failing the
    checksum are only written when config.keep_corrupted is set; groups
    with missing or conflicting parts are never written. A file whose
    name is already taken in this run is written as ``lsqrbt_<CRC>_<name>``.

    Raises:
        ValueError: If neither list_file nor codes_file is given.
        IoError: If an input cannot be read or an output cannot be written.
    """
    if list_file is None and codes_file is None:
        raise ValueError("At least one of list_file or codes_file is required")

    transcoder = transcoder or Base32Transcoder()
    destination = config.output_dir or (codes_file or list_file).parent

    collector, report = collect_codes(list_file, codes_file, config, detector)

    decoded = decode_transport_strings(collector.codes, transcoder)
    report.rejected_codes = len(decoded.rejected)

    written: set[str] = set()
    for outcome in reassemble(decoded.frames):
        output = DecodedOutput(outcome=outcome)
        rebuilt = outcome.file
        if rebuilt is not None and (rebuilt.verified or config.keep_corrupted):
            path = destination / _unique_output_name(rebuilt, written)
            try:
                path.write_bytes(rebuilt.data)
            except OSError as e:
                raise IoError(f"Could not save decoded file {outcome.identifier}: {e}") from e
            output.path = path
            logger.info(
                "file_written",
                identifier=outcome.identifier,
                path=str(path),
                verified=rebuilt.verified,
            )
        report.outputs.append(output)

    return report
