"""
Upload store backends.

Both backends hand out references that the API stores in project and testimonial
rows: ``/uploads/<name>`` style paths for the local directory, public object URLs
for the S3 bucket.
"""

import logging
import mimetypes
import os
import secrets
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from fastapi.concurrency import run_in_threadpool

from core.config import Settings

logger = logging.getLogger(__name__)

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".svg"}


def is_image_name(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMAGE_EXTS


def generate_name(ext: str) -> str:
    return f"{secrets.token_hex(8)}{ext.lower()}"


class UploadStore:
    """Common interface of the upload backends."""

    async def save_bytes(self, data: bytes, ext: str, folder: Optional[str] = None, name: Optional[str] = None) -> str:
        raise NotImplementedError

    async def list_images(self) -> List[str]:
        raise NotImplementedError

    def owns(self, reference: str) -> bool:
        raise NotImplementedError

    def normalize(self, reference: str) -> str:
        return reference

    def absolute_url(self, reference: str, base_url: str) -> str:
        return reference

    def ensure_ready(self) -> bool:
        return True


class LocalUploadStore(UploadStore):
    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = root
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_ready(self) -> bool:
        os.makedirs(self.root, exist_ok=True)
        return True

    def _write(self, relative: str, data: bytes):
        path = os.path.join(self.root, *relative.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    async def save_bytes(self, data: bytes, ext: str, folder: Optional[str] = None, name: Optional[str] = None) -> str:
        filename = name or generate_name(ext)
        relative = f"{folder.strip('/')}/{filename}" if folder else filename
        await run_in_threadpool(self._write, relative, data)
        logger.debug(f"Stored upload {relative} ({len(data)} bytes)")
        return f"{self.url_prefix}/{relative}"

    async def list_images(self) -> List[str]:
        references = []
        if not os.path.isdir(self.root):
            return references
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for filename in filenames:
                if filename.startswith(".") or not is_image_name(filename):
                    continue
                relative = os.path.relpath(os.path.join(dirpath, filename), self.root)
                references.append(f"{self.url_prefix}/{relative.replace(os.sep, '/')}")
        return sorted(references)

    def owns(self, reference: str) -> bool:
        bare = self.url_prefix.lstrip("/")
        return reference.startswith(f"{self.url_prefix}/") or reference.startswith(f"{bare}/")

    def normalize(self, reference: str) -> str:
        return reference if reference.startswith("/") else f"/{reference}"

    def absolute_url(self, reference: str, base_url: str) -> str:
        return f"{base_url.rstrip('/')}{reference}"


class S3UploadStore(UploadStore):
    def __init__(self, client, bucket: str, public_base_url: str):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

    def ensure_ready(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"Bucket '{self.bucket}' already exists.")
            return True
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code not in ('404', 'NoSuchBucket'):
                logger.error(f"Error checking bucket '{self.bucket}': {error_code}")
                return False
        try:
            self.client.create_bucket(Bucket=self.bucket)
            logger.info(f"Bucket '{self.bucket}' created successfully.")
            return True
        except ClientError as e:
            logger.error(f"Error creating bucket '{self.bucket}': {e}")
            return False

    async def save_bytes(self, data: bytes, ext: str, folder: Optional[str] = None, name: Optional[str] = None) -> str:
        filename = name or generate_name(ext)
        key = f"{folder.strip('/')}/{filename}" if folder else filename
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        await run_in_threadpool(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.debug(f"Stored object {key} in bucket {self.bucket}")
        return f"{self.public_base_url}/{key}"

    async def list_images(self) -> List[str]:
        def _list():
            keys = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    if is_image_name(obj["Key"]):
                        keys.append(obj["Key"])
            return keys

        keys = await run_in_threadpool(_list)
        return sorted(f"{self.public_base_url}/{key}" for key in keys)

    def owns(self, reference: str) -> bool:
        return reference.startswith(f"{self.public_base_url}/")


def build_upload_store(app_settings: Settings) -> UploadStore:
    if app_settings.UPLOAD_BACKEND.lower() == "s3":
        client = boto3.client(
            's3',
            endpoint_url=app_settings.s3_endpoint_url,
            aws_access_key_id=app_settings.S3_ACCESS_KEY,
            aws_secret_access_key=app_settings.S3_SECRET_KEY,
            region_name=app_settings.S3_REGION,
            # Path-style URLs (required for MinIO)
            config=Config(signature_version='s3v4', s3={'addressing_style': 'path'})
        )
        public_base = app_settings.S3_PUBLIC_BASE_URL or f"{app_settings.s3_endpoint_url}/{app_settings.S3_BUCKET}"
        logger.info(f"Using S3 upload store: bucket={app_settings.S3_BUCKET}")
        return S3UploadStore(client, app_settings.S3_BUCKET, public_base)

    logger.info(f"Using local upload store: {app_settings.UPLOADS_DIR}")
    return LocalUploadStore(app_settings.UPLOADS_DIR, app_settings.UPLOADS_URL_PREFIX)
