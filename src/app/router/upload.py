"""Router – profile image upload."""

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from src.app.schemas.upload import UploadErrorResponse, UploadResponse
from src.app.services.upload_service import UploadError, UploadHandler, UploadRequest

router = APIRouter(tags=["Upload"])


def get_upload_handler(request: Request) -> UploadHandler:
    """Return the handler built by the application factory."""
    return request.app.state.upload_handler


@router.post("/upload", response_model=UploadResponse | UploadErrorResponse)
async def upload_image(
    request: Request,
    handler: UploadHandler = Depends(get_upload_handler),
) -> UploadResponse | UploadErrorResponse:
    """
    Upload a profile image and return a publicly accessible URL.

    Expects a multipart body with a ``file`` field holding the image
    (jpeg, png, gif).  A ``file`` field sent as plain text counts as
    no file.

    Returns
    -------
    UploadResponse with ``url`` on success, otherwise
    UploadErrorResponse with a human-readable ``error``.
    Both are sent with status 200.
    """
    async with request.form() as form:
        file = form.get("file")
        upload = None
        if isinstance(file, UploadFile):
            upload = UploadRequest(
                content_type=file.content_type,
                filename=file.filename,
                file=file.file,
                size=file.size,
            )

        # ── filesystem work off the event loop ──
        try:
            url = await run_in_threadpool(handler.handle, upload, str(request.base_url))
        except UploadError as exc:
            return UploadErrorResponse(error=exc.message)

    return UploadResponse(url=url)
