import logging
import os
import secrets
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from core import schemas
from core.config import Settings
from core.errors import BadRequestError, PayloadTooLargeError
from core.identity import Principal
from utils.archive import build_zip_index
from utils.dependencies import get_optional_principal, get_principal, get_settings, get_upload_store
from utils.upload_store import UploadStore, is_image_name

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = "jpg, jpeg, png, webp, gif, bmp, svg"

router = APIRouter(
    tags=["Uploads"],
)


async def _read_image(upload: UploadFile, app_settings: Settings) -> bytes:
    if not is_image_name(upload.filename or ""):
        raise BadRequestError("Only image files are allowed")
    data = await upload.read()
    if len(data) > app_settings.MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError(f"File exceeds {app_settings.MAX_UPLOAD_BYTES} bytes")
    return data


async def _store_zip_images(images_zip: UploadFile, store: UploadStore, app_settings: Settings) -> List[str]:
    """Spool the archive to TMP_DIR and store every image entry. Returns the stored references."""
    os.makedirs(app_settings.TMP_DIR, exist_ok=True)
    zip_path = os.path.join(app_settings.TMP_DIR, f"{time.time_ns()}-{secrets.token_hex(4)}.zip")
    with open(zip_path, "wb") as f:
        f.write(await images_zip.read())
    try:
        index = await build_zip_index(zip_path, store)
    finally:
        try:
            os.remove(zip_path)
        except OSError as e:
            logger.debug(f"Could not remove temp file {zip_path}: {e}")
    return list(index.values())


@router.post("/api/uploads", response_model=schemas.UploadResponse)
async def upload_files(
    request: Request,
    file: Optional[UploadFile] = File(None),
    images_zip: Optional[UploadFile] = File(None),
    store: UploadStore = Depends(get_upload_store),
    app_settings: Settings = Depends(get_settings),
):
    """Store a single image and/or every image of a ZIP archive."""
    uploaded: List[str] = []

    if file is not None and file.filename:
        data = await _read_image(file, app_settings)
        ext = os.path.splitext(file.filename)[1].lower()
        uploaded.append(await store.save_bytes(data, ext))

    if images_zip is not None and images_zip.filename:
        uploaded.extend(await _store_zip_images(images_zip, store, app_settings))

    if not uploaded:
        raise BadRequestError("No file")

    base_url = str(request.base_url)
    logger.info(f"Stored {len(uploaded)} uploads")
    return schemas.UploadResponse(
        url=store.absolute_url(uploaded[0], base_url),
        uploaded=uploaded,
        message=f"Uploaded {len(uploaded)} file(s)",
    )


@router.post("/api/import-images", response_model=schemas.ImportImagesResponse)
async def import_images(
    file: Optional[UploadFile] = File(None),
    images_zip: Optional[UploadFile] = File(None),
    store: UploadStore = Depends(get_upload_store),
    app_settings: Settings = Depends(get_settings),
):
    """Bulk image intake ahead of a project import; answers with store references only."""
    saved: List[str] = []
    if file is not None and file.filename:
        data = await _read_image(file, app_settings)
        saved.append(await store.save_bytes(data, os.path.splitext(file.filename)[1].lower()))
    if images_zip is not None and images_zip.filename:
        saved.extend(await _store_zip_images(images_zip, store, app_settings))

    if not saved:
        raise BadRequestError(f"No images found in upload (supported: {SUPPORTED_IMAGE_TYPES})")

    logger.info(f"Imported {len(saved)} images")
    return schemas.ImportImagesResponse(uploaded=saved, message=f"Saved {len(saved)} image(s)")


@router.get("/api/uploads", response_model=List[str])
async def list_uploads(
    principal: Principal = Depends(get_principal),
    store: UploadStore = Depends(get_upload_store),
):
    return await store.list_images()


@router.post("/api/upload-testimonial-image", response_model=schemas.TestimonialImageResponse)
async def upload_testimonial_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: UploadStore = Depends(get_upload_store),
    app_settings: Settings = Depends(get_settings),
):
    if image is None or not image.filename:
        raise BadRequestError("No file uploaded (field name: image)")

    data = await _read_image(image, app_settings)
    ext = os.path.splitext(image.filename)[1].lower() or ".jpg"
    folder = f"testimonials/{principal.uid if principal else 'general'}"
    name = f"testimonial-{int(time.time() * 1000)}-{secrets.token_hex(8)}{ext}"
    reference = await store.save_bytes(data, ext, folder=folder, name=name)

    return schemas.TestimonialImageResponse(
        url=store.absolute_url(reference, str(request.base_url)),
        path=f"{folder}/{name}",
        message="Uploaded successfully",
    )
