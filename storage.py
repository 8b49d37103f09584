"""
Cloudinary media store

Uploads one file per record to Cloudinary and deletes it again by public id.
Credentials are passed on every SDK call, so the SDK's global config is never
touched and several stores can coexist (tests, multiple clouds).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from errors import InvalidFormat, PayloadTooLarge, UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadPolicy:
    folder: str
    resource_kind: str
    allowed_formats: Tuple[str, ...]
    max_bytes: int
    transformation: Optional[List[dict]] = field(default=None)


@dataclass(frozen=True)
class StoredFile:
    url: str
    remote_file_id: str
    mime_type: str


FORMAT_BY_MIME = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}


def file_extension(filename: Optional[str]) -> str:
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def file_format(filename: Optional[str], content_type: str) -> str:
    # FormData blobs arrive named "blob", with no extension
    return file_extension(filename) or FORMAT_BY_MIME.get(content_type, "")


class MediaStore:
    def __init__(self, cloud_name: str, api_key: str, api_secret: str):
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }

    @classmethod
    def from_settings(cls, settings) -> "MediaStore":
        return cls(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
        )

    @property
    def configured(self) -> bool:
        return bool(self._credentials["cloud_name"])

    def store(self, content: bytes, content_type: str, filename: str, policy: UploadPolicy) -> StoredFile:
        ext = file_format(filename, content_type)
        if ext not in policy.allowed_formats:
            raise InvalidFormat(
                f"Invalid file format '{ext or filename}'. Allowed formats: {', '.join(policy.allowed_formats)}"
            )
        if len(content) > policy.max_bytes:
            raise PayloadTooLarge.for_limit(policy.max_bytes)

        options = {
            "folder": policy.folder,
            "resource_type": policy.resource_kind,
            "allowed_formats": list(policy.allowed_formats),
            **self._credentials,
        }
        if policy.transformation:
            options["transformation"] = policy.transformation

        try:
            result = cloudinary.uploader.upload((filename, content), **options)
        except CloudinaryError as exc:
            logger.error("Cloudinary upload failed", extra={"folder": policy.folder, "error": str(exc)})
            raise UpstreamFailure(f"Upload failed: {exc}") from exc

        logger.info(
            "Uploaded file to Cloudinary",
            extra={"public_id": result["public_id"], "resource_type": policy.resource_kind, "bytes": len(content)},
        )
        return StoredFile(url=result["secure_url"], remote_file_id=result["public_id"], mime_type=content_type)

    def delete(self, remote_file_id: str, resource_kind: str = "image") -> None:
        """Best-effort delete. Failures are logged, never raised."""
        try:
            result = cloudinary.uploader.destroy(remote_file_id, resource_type=resource_kind, **self._credentials)
        except Exception:
            logger.exception(
                "Error deleting from Cloudinary",
                extra={"public_id": remote_file_id, "resource_type": resource_kind},
            )
            return

        outcome = (result or {}).get("result")
        if outcome == "ok":
            logger.info("Deleted file from Cloudinary", extra={"public_id": remote_file_id})
        else:
            logger.warning(
                "Cloudinary did not delete file",
                extra={"public_id": remote_file_id, "resource_type": resource_kind, "result": outcome},
            )
