"""
Bulk project import.

Each spreadsheet row is validated, has its gallery resolved into upload store
references and is inserted in its own commit. Row problems are collected into the
result instead of aborting the batch.
"""

import logging
import os
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import schemas
import utils.crud as crud
from utils.text import slugify, split_tokens
from utils.upload_store import IMAGE_EXTS, UploadStore

logger = logging.getLogger(__name__)

MISSING_REQUIRED = "Missing required title or city"

_EXTENSION_SUFFIX = re.compile(r"\.[a-z]{2,4}$", re.IGNORECASE)


def _extension_for(url: str, content_type: str) -> str:
    content_type = (content_type or "").lower()
    if "png" in content_type:
        return ".png"
    if "jpeg" in content_type:
        return ".jpg"
    if "gif" in content_type:
        return ".gif"
    ext = os.path.splitext(urlparse(url).path)[1].lower()
    return ext if ext in IMAGE_EXTS else ".jpg"


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else err.get("msg", "Invalid row")


class ProjectImporter:
    def __init__(
        self,
        db: AsyncSession,
        store: UploadStore,
        http_client: httpx.AsyncClient,
        fetch_timeout: float = 20.0,
        actor: Optional[str] = None,
    ):
        self.db = db
        self.store = store
        self.http_client = http_client
        self.fetch_timeout = fetch_timeout
        self.actor = actor

    async def fetch_and_save(self, url: str) -> Optional[str]:
        """Download a remote image into the upload store. Failures are logged and give None."""
        try:
            response = await self.http_client.get(url, timeout=self.fetch_timeout)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            # InvalidURL is not an HTTPError; unparseable tokens like "img:1.jpg" land here
            logger.warning(f"Failed to fetch image {url}: {e}")
            return None

        ext = _extension_for(url, response.headers.get("content-type", ""))
        try:
            return await self.store.save_bytes(response.content, ext)
        except OSError as e:
            logger.warning(f"Failed to store image fetched from {url}: {e}")
            return None

    async def resolve_token(self, token: str, zip_index: Dict[str, str]) -> Optional[str]:
        """
        Turn one gallery token into an upload store reference.

        Tried in order: absolute http(s) URL, archive entry name, existing upload
        store path, scheme-less URL with a file extension. Anything else is dropped.
        """
        if token.startswith("http://") or token.startswith("https://"):
            if self.store.owns(token):
                return token
            return await self.fetch_and_save(token)

        saved = zip_index.get(token) or zip_index.get(os.path.basename(token))
        if saved:
            return saved

        if self.store.owns(token):
            return self.store.normalize(token)

        if _EXTENSION_SUFFIX.search(token) and " " not in token:
            guessed = f"https:{token}" if token.startswith("//") else f"http://{token}"
            return await self.fetch_and_save(guessed)

        logger.debug(f"Dropping unresolvable gallery token {token!r}")
        return None

    async def resolve_gallery(self, value: Any, zip_index: Dict[str, str]) -> List[str]:
        gallery = []
        for token in split_tokens(value):
            resolved = await self.resolve_token(token, zip_index)
            if resolved:
                gallery.append(resolved)
        return gallery

    async def import_row(self, row_number: int, row: Dict[str, Any], zip_index: Dict[str, str], result: schemas.ImportResult):
        title = str(row.get("title") or row.get("name") or "").strip()
        city = str(row.get("city") or "").strip()
        if not title or not city:
            logger.warning(f"Skipping import row {row_number}: missing title or city")
            result.errors.append(schemas.ImportRowError(row=row_number, error=MISSING_REQUIRED))
            return

        data = dict(row)
        data["title"] = title
        data["city"] = city
        data["gallery"] = await self.resolve_gallery(row.get("gallery"), zip_index)
        thumbnail = str(row.get("thumbnail") or "").strip()
        data["thumbnail"] = await self.resolve_token(thumbnail, zip_index) if thumbnail else None

        try:
            project = schemas.ProjectCreate.model_validate(data)
        except ValidationError as e:
            message = _validation_message(e)
            logger.warning(f"Import row {row_number} rejected: {message}")
            result.errors.append(schemas.ImportRowError(row=row_number, title=title, error=message))
            return

        slug = slugify(project.slug) if project.slug else slugify(project.title)
        try:
            db_project = await crud.create_project(self.db, project, slug, created_by=self.actor)
        except SQLAlchemyError as e:
            message = str(getattr(e, "orig", None) or e)
            logger.warning(f"Import row {row_number} insert failed: {message}")
            result.errors.append(schemas.ImportRowError(row=row_number, title=title, error=message))
            return

        result.items.append(schemas.ImportedItem(id=db_project.id, slug=db_project.slug, title=db_project.title))
        result.imported += 1

    async def run(self, rows: List[Dict[str, Any]], zip_index: Optional[Dict[str, str]] = None) -> schemas.ImportResult:
        """Import rows in order, one commit per row. Row numbers in errors are 1-based."""
        zip_index = zip_index or {}
        result = schemas.ImportResult()
        for row_number, row in enumerate(rows, start=1):
            await self.import_row(row_number, row, zip_index, result)
        logger.info(f"Import finished: {result.imported} imported, {len(result.errors)} errors")
        return result
