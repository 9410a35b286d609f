"""API routes for batch conversion, bulk download and purge."""
import asyncio
import logging
import uuid
from pathlib import Path
from typing import BinaryIO, Iterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.datastructures import UploadFile

from converter import config as app_config
from converter.archive import ARCHIVE_NAME, ArchiveExporter
from converter.batch import BatchCoordinator
from converter.conversion.models import ConversionRequest, UploadedImage, WatermarkMode
from converter.conversion.service import ConversionService
from converter.errors import EmptyExportError, FilesystemError, ValidationError
from converter.storage import OutputStore, get_output_store

logger = logging.getLogger("converter.api")
router = APIRouter(tags=["converter"])

WATERMARK_FIELD_PREFIX = "watermark_"
CHUNK_SIZE = 1024 * 1024


def get_batch_coordinator(store: OutputStore = Depends(get_output_store)) -> BatchCoordinator:
    return BatchCoordinator(ConversionService(store.directory), store)


def get_archive_exporter(store: OutputStore = Depends(get_output_store)) -> ArchiveExporter:
    return ArchiveExporter(store)


async def _stage_upload(file: UploadFile) -> UploadedImage:
    """Copy a multipart file into UPLOAD_DIR under a unique name."""
    filename = Path(file.filename or "image").name
    dest = app_config.UPLOAD_DIR / f"{uuid.uuid4()}_{filename}"
    total = 0
    try:
        with open(dest, "wb") as f:
            while chunk := await file.read(CHUNK_SIZE):
                total += len(chunk)
                f.write(chunk)
    except OSError as e:
        dest.unlink(missing_ok=True)
        raise FilesystemError(f"Upload failed for {filename}: {e}") from e
    return UploadedImage(path=dest, filename=filename, size=total)


def _parse_watermark_modes(form) -> dict[str, WatermarkMode]:
    return {
        key[len(WATERMARK_FIELD_PREFIX):]: WatermarkMode.parse(value)
        for key, value in form.multi_items()
        if key.startswith(WATERMARK_FIELD_PREFIX) and isinstance(value, str)
    }


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    try:
        while chunk := stream.read(64 * 1024):
            yield chunk
    finally:
        stream.close()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/convert")
async def convert(request: Request, coordinator: BatchCoordinator = Depends(get_batch_coordinator)):
    """
    Multipart form: images (files), convertTo, optional watermarkText and
    watermark_<baseName> = none | light | dark per file.
    Any failure fails the whole batch with a generic error.
    """
    uploaded: list[UploadedImage] = []
    try:
        form = await request.form()
        convert_to = form.get("convertTo")
        if not isinstance(convert_to, str) or not convert_to.strip():
            raise ValidationError("convertTo is required")
        files = [f for f in form.getlist("images") if isinstance(f, UploadFile)]
        if not files:
            raise ValidationError("No images uploaded")
        watermark_text = form.get("watermarkText")
        conversion_request = ConversionRequest(
            convert_to=convert_to,
            watermark_text=watermark_text if isinstance(watermark_text, str) else "",
            watermark_modes=_parse_watermark_modes(form),
        )
        for file in files:
            uploaded.append(await _stage_upload(file))
        results = await asyncio.to_thread(coordinator.run, uploaded, conversion_request)
    except Exception as e:
        logger.exception("Conversion failed: %s", e)
        for upload in uploaded:
            coordinator.service.cleanup_upload(upload.path)
        return JSONResponse(status_code=500, content={"success": False, "error": "Conversion failed"})
    return {"success": True, "files": [r.to_dict() for r in results]}


@router.get("/download-all")
def download_all(exporter: ArchiveExporter = Depends(get_archive_exporter)):
    """Zip of every tracked output, or 400 when nothing has been converted."""
    try:
        stream = exporter.open_stream()
    except EmptyExportError:
        return PlainTextResponse("No files to download", status_code=400)
    return StreamingResponse(
        _iter_stream(stream),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_NAME}"'},
    )


@router.post("/clear-all")
def clear_all(store: OutputStore = Depends(get_output_store)):
    """Delete all converted outputs and forget tracked names."""
    try:
        store.delete_all()
    except FilesystemError as e:
        logger.error("Clear failed: %s", e)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return {"success": True}
