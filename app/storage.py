"""
Image storage on Cloudflare R2.
Validates, compresses and uploads images under a namespaced key and returns
their public URL.
"""

import io
import logging
import uuid
from typing import NamedTuple, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from .config import (
    R2_ACCESS_KEY_ID,
    R2_ACCOUNT_ID,
    R2_BUCKET_NAME,
    R2_PUBLIC_URL,
    R2_SECRET_ACCESS_KEY,
)
from .shared.errors import UploadError

logger = logging.getLogger(__name__)

# Maximum upload size per namespace
NAMESPACE_LIMITS = {
    "artwork": 10 * 1024 * 1024,
    "appointments": 5 * 1024 * 1024,
    "chat": 5 * 1024 * 1024,
}

# Images above this size are downscaled and re-encoded before upload
COMPRESSION_THRESHOLD = 500 * 1024
MAX_DIMENSION = 1000
JPEG_QUALITY = 80

# Object key extension per content type; other image types use their subtype
EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/svg+xml": "svg",
}


class ImageFile(NamedTuple):
    content: bytes
    content_type: str
    filename: Optional[str] = None


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


async def read_upload(file: Optional[UploadFile]) -> Optional[ImageFile]:
    """Read a multipart upload into memory; empty or missing parts become None"""
    if file is None or not file.filename:
        return None
    content = await file.read()
    if not content:
        return None
    return ImageFile(content=content, content_type=file.content_type or "", filename=file.filename)


def validate_image(image: ImageFile, namespace: str) -> None:
    if namespace not in NAMESPACE_LIMITS:
        raise ValueError(f"Unknown storage namespace: {namespace}")
    if not image.content_type.startswith("image/"):
        raise UploadError("Please upload an image file")
    limit = NAMESPACE_LIMITS[namespace]
    if len(image.content) > limit:
        raise UploadError(f"Image size must be less than {limit // (1024 * 1024)}MB")


def compress_image(content: bytes) -> bytes:
    """Downscale to fit MAX_DIMENSION and re-encode as JPEG"""
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.thumbnail((MAX_DIMENSION, MAX_DIMENSION), Image.Resampling.LANCZOS)
            if img.mode != "RGB":
                img = img.convert("RGB")
            output = io.BytesIO()
            img.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
            return output.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        raise UploadError("Failed to process image") from e


def upload_image(image: ImageFile, namespace: str, uploaded_by: str) -> str:
    """
    Upload an image and return its public URL.

    Raises:
        UploadError: invalid file, or the storage write failed
    """
    validate_image(image, namespace)

    body = image.content
    content_type = image.content_type
    if len(body) > COMPRESSION_THRESHOLD:
        body = compress_image(body)
        content_type = "image/jpeg"

    extension = EXTENSIONS.get(content_type) or content_type.split("/", 1)[-1]
    key = f"{namespace}/{uuid.uuid4()}.{extension}"

    try:
        get_r2_client().put_object(
            Bucket=R2_BUCKET_NAME,
            Key=key,
            Body=body,
            ContentType=content_type,
            Metadata={
                "uploaded-by": uploaded_by,
                "original-size": str(len(image.content)),
                "processed-size": str(len(body)),
            },
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Upload failed for {key}: {e}")
        raise UploadError("Failed to upload image. Please try again.", status_code=502) from e

    logger.info(f"📤 Uploaded {key} ({len(body)} bytes)")
    return f"{R2_PUBLIC_URL.rstrip('/')}/{key}"
