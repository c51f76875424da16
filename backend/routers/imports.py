import logging
import os
import secrets
import time
from typing import List, Optional, Tuple

import httpx
from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from core import models, schemas
from core.config import Settings
from core.database import get_db
from core.errors import BadRequestError
from core.migrations import ensure_project_columns
from utils.archive import build_zip_index
from utils.dependencies import get_current_admin, get_http_client, get_settings, get_upload_store
from utils.importer import ProjectImporter
from utils.spreadsheet import SpreadsheetError, read_rows
from utils.upload_store import UploadStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/import-projects",
    tags=["Import"],
)


async def _spool(upload: UploadFile, tmp_dir: str) -> Tuple[str, bytes]:
    """Copy an upload into TMP_DIR; returns the spooled path and the bytes read."""
    os.makedirs(tmp_dir, exist_ok=True)
    safe_name = os.path.basename(upload.filename or "upload").replace(" ", "_")
    path = os.path.join(tmp_dir, f"{time.time_ns()}-{secrets.token_hex(4)}-{safe_name}")
    content = await upload.read()
    with open(path, "wb") as f:
        f.write(content)
    return path, content


def _cleanup(paths: List[str]):
    for path in paths:
        try:
            os.remove(path)
        except OSError as e:
            logger.debug(f"Could not remove temp file {path}: {e}")


@router.post("", response_model=schemas.ImportResult, response_model_exclude_none=True)
async def import_projects(
    request: Request,
    file: Optional[UploadFile] = File(None),
    images_zip: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
    store: UploadStore = Depends(get_upload_store),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    app_settings: Settings = Depends(get_settings),
):
    """
    Import projects from the first sheet of ``file``, with gallery images optionally
    supplied in the ``images_zip`` archive.
    """
    if file is None or not file.filename:
        raise BadRequestError("Spreadsheet file is required (field name: file)")

    spooled = []
    try:
        sheet_path, content = await _spool(file, app_settings.TMP_DIR)
        spooled.append(sheet_path)
        try:
            rows = read_rows(content, file.filename)
        except SpreadsheetError as e:
            raise BadRequestError(str(e))

        zip_index = {}
        if images_zip is not None and images_zip.filename:
            zip_path, _ = await _spool(images_zip, app_settings.TMP_DIR)
            spooled.append(zip_path)
            zip_index = await build_zip_index(zip_path, store)

        async with request.app.state.engine.begin() as conn:
            await ensure_project_columns(conn)

        importer = ProjectImporter(
            db,
            store,
            http_client,
            fetch_timeout=app_settings.IMPORT_FETCH_TIMEOUT_SECONDS,
            actor=admin.phone,
        )
        logger.info(f"Importing {len(rows)} rows for {admin.phone}")
        return await importer.run(rows, zip_index)
    finally:
        _cleanup(spooled)
