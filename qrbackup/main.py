"""qrbackup microservice -- FastAPI application.

Endpoints:
    POST /encode         -- Split an uploaded file into transport strings
    POST /encode/symbol  -- Render one transport string as a PNG QR code
    POST /encode/svg     -- Render one transport string as an SVG QR code
    POST /decode         -- Rebuild files from transport strings
    POST /detect         -- Read transport strings from an uploaded image
    GET  /health         -- Health check
"""

from __future__ import annotations

import base64
import io

import numpy as np
import structlog
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

from . import __version__
from .checksum import compute_crc32, format_checksum
from .collector import CodeCollector
from .detector import QRDetector
from .levels import DEFAULT_LEVEL, select_level
from .reassembler import decode_transport_strings, reassemble
from .renderer import QRSymbolEncoder
from .splitter import split_file
from .transport import Base32Transcoder, is_candidate

structlog.configure(
    processors=[
        structlog.dev.ConsoleRenderer(),
    ],
)

logger = structlog.get_logger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

app = FastAPI(
    title="qrbackup",
    description="Split files into QR code frames and rebuild them from scans",
    version=__version__,
)

transcoder = Base32Transcoder()
detector = QRDetector()


# --------------------------------------------------------------------------
# Request / Response models
# --------------------------------------------------------------------------


class EncodeResponse(BaseModel):
    """Response body for /encode."""

    file_name: str
    size: int
    checksum: str = Field(description="CRC-32 of the file as 8 upper-case hex digits")
    level: str
    count: int
    codes: list[str] = Field(description="Transport strings, one per frame, in index order")


class SymbolRequest(BaseModel):
    """Request body for /encode/symbol and /encode/svg."""

    code: str = Field(..., min_length=1, description="Transport string to render")
    title: str = Field(default="", description="Caption drawn above the symbol")
    level: str = Field(default=DEFAULT_LEVEL.name, description="Robustness level: L, M, Q or H")
    module_size: int = Field(default=10, ge=1, le=40, description="Pixels per QR module")


class DecodeRequest(BaseModel):
    """Request body for /decode."""

    codes: list[str] = Field(..., description="Transport strings in any order, duplicates allowed")


class DecodedFileModel(BaseModel):
    """One reconstruction group in a /decode response."""

    identifier: str
    parts: int
    file_name: str | None = None
    data_base64: str | None = Field(
        default=None,
        description="Reconstructed file, present when bodies could be concatenated",
    )
    verified: bool = False
    error: str | None = None


class DecodeResponse(BaseModel):
    """Response body for /decode."""

    unique_codes: int
    rejected_codes: int
    files: list[DecodedFileModel]


class DetectResponse(BaseModel):
    """Response body for /detect."""

    codes: list[str]


class HealthResponse(BaseModel):
    """Response body for /health."""

    status: str
    service: str
    version: str


# --------------------------------------------------------------------------
# Endpoints
# --------------------------------------------------------------------------


@app.post("/encode", response_model=EncodeResponse)
async def encode_endpoint(
    file: UploadFile = File(...),
    level: str = Form(DEFAULT_LEVEL.name),
) -> EncodeResponse:
    """Split an uploaded file into frames and return their transport strings."""
    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (max 10MB)")

    file_name = file.filename or "upload.bin"
    try:
        robustness = select_level(level)
        checksum = compute_crc32(data)
        frames = split_file(data, file_name, robustness.budget, checksum)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return EncodeResponse(
        file_name=file_name,
        size=len(data),
        checksum=format_checksum(checksum),
        level=robustness.name,
        count=len(frames),
        codes=[transcoder.encode(frame.encode()) for frame in frames],
    )


@app.post(
    "/encode/symbol",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "PNG-encoded QR symbol"},
        422: {"description": "Invalid input"},
    },
)
async def encode_symbol(request: SymbolRequest) -> Response:
    """Render a transport string as a captioned QR code PNG."""
    try:
        encoder = QRSymbolEncoder(select_level(request.level), module_size=request.module_size)
        png_bytes = await run_in_threadpool(encoder.render, request.code, request.title)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error("encode_symbol_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Encoding failed")

    return Response(content=png_bytes, media_type="image/png")


@app.post(
    "/encode/svg",
    response_class=Response,
    responses={
        200: {"content": {"image/svg+xml": {}}, "description": "SVG-encoded QR symbol"},
        422: {"description": "Invalid input"},
    },
)
async def encode_svg_endpoint(request: SymbolRequest) -> Response:
    """Render a transport string as a captioned QR code SVG."""
    try:
        encoder = QRSymbolEncoder(select_level(request.level), module_size=request.module_size)
        svg_content = await run_in_threadpool(encoder.render_svg, request.code, request.title)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error("encode_svg_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Encoding failed")

    return Response(content=svg_content, media_type="image/svg+xml")


@app.post("/decode", response_model=DecodeResponse)
async def decode_endpoint(request: DecodeRequest) -> DecodeResponse:
    """Rebuild every file represented in a list of transport strings."""
    collector = CodeCollector()
    collector.update((code.strip() for code in request.codes if is_candidate(code)), "request")

    decoded = decode_transport_strings(collector.codes, transcoder)

    files: list[DecodedFileModel] = []
    for outcome in reassemble(decoded.frames):
        rebuilt = outcome.file
        files.append(
            DecodedFileModel(
                identifier=outcome.identifier,
                parts=outcome.part_count,
                file_name=rebuilt.file_name if rebuilt else None,
                data_base64=base64.b64encode(rebuilt.data).decode("ascii") if rebuilt else None,
                verified=rebuilt.verified if rebuilt else False,
                error=str(outcome.error) if outcome.error else None,
            )
        )

    return DecodeResponse(
        unique_codes=len(collector),
        rejected_codes=len(decoded.rejected),
        files=files,
    )


@app.post("/detect", response_model=DetectResponse)
async def detect_endpoint(
    file: UploadFile = File(...),
    max_codes: int = Form(0, ge=0),
) -> DetectResponse:
    """Read transport strings from an uploaded page image."""
    if file.content_type and file.content_type not in (
        "image/png",
        "image/jpeg",
        "image/webp",
    ):
        raise HTTPException(
            status_code=422,
            detail=(f"Unsupported image type: {file.content_type}. " "Use PNG, JPEG, or WebP."),
        )

    image_bytes = await file.read()
    if len(image_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Image too large (max 10MB)")

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            gray = np.array(img.convert("L"))
    except (OSError, UnidentifiedImageError) as e:
        logger.warning("detect_image_open_failed", error=str(e))
        raise HTTPException(status_code=422, detail=f"Cannot open image: {e}")

    try:
        payloads = await run_in_threadpool(
            detector.detect_array, gray, max_codes, name=file.filename or "upload"
        )
    except Exception as e:
        logger.error("detect_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Detection failed")

    return DetectResponse(codes=[payload for payload in payloads if is_candidate(payload)])


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for Docker and load balancer probes."""
    return HealthResponse(
        status="healthy",
        service="qrbackup",
        version=__version__,
    )
