import mimetypes
import os
import uuid
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from django.conf import settings
from django.utils.text import slugify


def _client():
    cfg = Config(
        signature_version="s3v4",
        s3={"addressing_style": "path" if settings.AWS_S3_FORCE_PATH_STYLE else "auto"},
    )
    return boto3.client(
        "s3",
        region_name=settings.AWS_S3_REGION_NAME,
        endpoint_url=settings.AWS_S3_ENDPOINT_URL,
        config=cfg,
    )


def _unique_name(filename: str) -> str:
    name, ext = os.path.splitext(filename or "")
    safe_name = slugify(name) or "upload"
    ext = ext.lower().lstrip(".")
    combined_name = f"{uuid.uuid4()}-{safe_name}"
    if ext:
        combined_name = f"{combined_name}.{ext}"
    return combined_name


def listing_object_key(listing_id: int, host_id: int, filename: str) -> str:
    prefix = (getattr(settings, "S3_UPLOADS_PREFIX", "") or "").strip("/")
    parts = [prefix, str(listing_id), str(host_id), _unique_name(filename)]
    return "/".join(part for part in parts if part)


def avatar_object_key(user_id: int, filename: str) -> str:
    prefix = (getattr(settings, "S3_AVATAR_PREFIX", "") or "").strip("/")
    parts = [prefix, str(user_id), _unique_name(filename)]
    return "/".join(part for part in parts if part)


def presign_put(
    key: str,
    *,
    content_type: str,
    size_hint: Optional[int] = None,
) -> Dict:
    max_size = getattr(settings, "S3_MAX_UPLOAD_BYTES", None)
    if size_hint is not None and max_size is not None and size_hint > max_size:
        raise ValueError("Upload exceeds the maximum allowed size.")

    url = _client().generate_presigned_url(
        ClientMethod="put_object",
        Params={
            "Bucket": settings.AWS_STORAGE_BUCKET_NAME,
            "Key": key,
            "ContentType": content_type,
        },
        ExpiresIn=getattr(settings, "S3_PRESIGN_EXPIRES", 300),
    )
    return {
        "upload_url": url,
        "key": key,
        "public_url": public_url(key),
        "headers": {"Content-Type": content_type},
    }


def copy_object(source_key: str, dest_key: str):
    bucket = settings.AWS_STORAGE_BUCKET_NAME
    _client().copy_object(
        Bucket=bucket,
        Key=dest_key,
        CopySource={"Bucket": bucket, "Key": source_key},
    )


def delete_object(key: str):
    _client().delete_object(Bucket=settings.AWS_STORAGE_BUCKET_NAME, Key=key)


def public_url(key: str) -> str:
    """Public URL for ``key``: MEDIA_BASE_URL when a CDN fronts the bucket, else the bucket URL."""
    media_base = (getattr(settings, "MEDIA_BASE_URL", "") or "").rstrip("/")
    if media_base:
        return f"{media_base}/{key}"
    endpoint = settings.AWS_S3_ENDPOINT_URL
    bucket = settings.AWS_STORAGE_BUCKET_NAME
    if endpoint and "localhost" in endpoint:
        return f"{endpoint}/{bucket}/{key}"
    return f"https://{bucket}.s3.{settings.AWS_S3_REGION_NAME}.amazonaws.com/{key}"


def key_from_url(url: str) -> Optional[str]:
    """
    Recover the object key from a URL produced by public_url().

    Returns None for URLs that point somewhere other than our bucket.
    """
    if not url:
        return None
    media_base = (getattr(settings, "MEDIA_BASE_URL", "") or "").rstrip("/")
    if media_base and url.startswith(f"{media_base}/"):
        return unquote(url[len(media_base) + 1 :]) or None
    bucket = settings.AWS_STORAGE_BUCKET_NAME
    parsed = urlparse(url)
    path = unquote(parsed.path or "").lstrip("/")
    if parsed.netloc.startswith(f"{bucket}.s3."):
        return path or None
    if path.startswith(f"{bucket}/"):
        return path[len(bucket) + 1 :] or None
    return None


def guess_content_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


def put_object(key: str, body: bytes, *, content_type: str):
    _client().put_object(
        Bucket=settings.AWS_STORAGE_BUCKET_NAME,
        Key=key,
        Body=body,
        ContentType=content_type,
    )


def report_object_prefix(report_id: int, report_for: str, reported_id: int) -> str:
    base = (getattr(settings, "S3_REPORTS_PREFIX", "reports") or "reports").strip("/")
    return f"{base}/report_{report_id}_{report_for}_{reported_id}/"
