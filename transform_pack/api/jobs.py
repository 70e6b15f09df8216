"""Job submission, status, image and archive endpoints."""

from typing import List, Optional

from fastapi import APIRouter, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from ..core.archive_builder import ArchiveBuilder
from ..core.job_registry import JobRegistry, NOTHING_PRODUCED
from ..core.transformation_job import TransformationJob
from ..models.schemas import JobResponse, ReferenceImage
from ..models.enums import JobStatus
from ..utils.logger import get_logger
from ..utils.errors import ImageProcessingError, OutputError
from ..utils.images import base64_to_bytes, validate_image_format

logger = get_logger(__name__)

router = APIRouter()


def _registry(request: Request) -> JobRegistry:
    return request.app.state.registry


async def _read_reference_images(files: List[UploadFile], limit: int) -> List[ReferenceImage]:
    if not files:
        raise HTTPException(status_code=400, detail="Upload at least one reference image")
    if len(files) > limit:
        raise HTTPException(
            status_code=400,
            detail=f"At most {limit} reference images are accepted, got {len(files)}",
        )
    
    images = []
    for upload in files:
        data = await upload.read()
        try:
            mime_type = validate_image_format(data)
        except ImageProcessingError as e:
            raise HTTPException(status_code=400, detail=f"{upload.filename}: {e}")
        images.append(ReferenceImage(data=data, mime_type=mime_type))
    return images


@router.post("", status_code=202, response_model=JobResponse)
async def create_job(
    request: Request,
    files: List[UploadFile] = File(...),
    x_api_key: Optional[str] = Header(default=None),
):
    """Start a transformation job for the uploaded reference images."""
    if not x_api_key or not x_api_key.strip():
        raise HTTPException(status_code=401, detail="X-API-Key header is required")
    
    config = request.app.state.config
    catalog = request.app.state.catalog
    backend_factory = request.app.state.backend_factory
    reference_images = await _read_reference_images(files, config.max_reference_images)
    api_key = x_api_key.strip()
    
    async def runner(progress_sink):
        async with backend_factory(api_key) as backend:
            job = TransformationJob.from_config(backend, config, catalog=catalog)
            return await job.run(reference_images, progress_sink)
    
    record = await _registry(request).submit(runner, total=len(catalog))
    
    logger.info(
        "Job accepted",
        extra={"job_id": record.job_id, "reference_images": len(reference_images)}
    )
    return JobResponse.from_record(record)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    request: Request,
    job_id: str,
    wait: float = Query(default=0.0, ge=0.0, le=600.0),
):
    """Job status. ``wait`` long-polls up to that many seconds for completion."""
    registry = _registry(request)
    record = registry.get(job_id)
    if wait and not record.status.is_finished:
        record = await registry.wait(job_id, timeout=wait)
    return JobResponse.from_record(record)


@router.get("/{job_id}/images/{index}")
async def get_job_image(request: Request, job_id: str, index: int):
    """Raw bytes of one generated image."""
    record = _registry(request).get(job_id)
    if index < 0 or index >= len(record.results):
        raise HTTPException(status_code=404, detail=f"Image {index} not found")
    
    image = record.results[index]
    try:
        data = base64_to_bytes(image.data)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=f"Image {index} is corrupt: {e}")
    return Response(content=data, media_type=image.mime_type)


@router.get("/{job_id}/archive")
async def download_archive(request: Request, job_id: str):
    """Zip of every generated image, grouped by category."""
    record = _registry(request).get(job_id)
    
    if not record.status.is_finished:
        raise HTTPException(status_code=409, detail="Job is still running")
    if record.status != JobStatus.COMPLETED:
        raise HTTPException(status_code=409, detail=record.error or f"Job {record.status.value}")
    if not record.results:
        raise HTTPException(status_code=409, detail=NOTHING_PRODUCED)
    
    try:
        # Decoded and zipped in a worker thread
        content = await run_in_threadpool(ArchiveBuilder().build, record.results)
    except OutputError as e:
        logger.error("Archive build failed", extra={"job_id": job_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=f"Could not build archive: {e}")
    
    filename = request.app.state.config.archive_filename
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
