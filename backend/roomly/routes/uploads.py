"""
Roomly Backend - Upload & File Serving Routes
==============================================

What:  POST /v1/upload/image stores a single image (avatars, listing photos
       before the listing exists) and returns its URL; GET /v1/files/{path}
       serves stored files.
Security:
    - Uploads require a session; type and size are checked by FileService
    - Served paths are resolved against the storage root; ../ escapes are 400
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from roomly.dependencies import require_authenticated_user
from roomly.schemas.common import ErrorResponse
from roomly.schemas.listing import UploadResponse
from roomly.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Files"])


@router.post(
    "/upload/image",
    status_code=201,
    response_model=UploadResponse,
    dependencies=[Depends(require_authenticated_user)],
    responses={422: {"description": "Invalid file type or size", "model": ErrorResponse}},
    summary="Upload an image",
)
async def upload_image(
    file: UploadFile = File(..., description="PNG, JPG or WEBP image, max 10MB"),
) -> UploadResponse:
    try:
        content = await file.read()
        logger.info(
            "Received upload: filename=%s, size=%d bytes",
            file.filename or "unknown",
            len(content),
        )
        _, relative_path = await file_service.validate_and_store(
            filename=file.filename or "",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()

    return UploadResponse(url=file_service.public_url(relative_path))


@router.get(
    "/files/{file_path:path}",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Invalid path", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve an uploaded file",
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve_stored_path(file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
