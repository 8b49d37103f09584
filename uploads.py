"""
Upload pipeline

Validates the single file of a write request, decides where it goes on the
media store and hands it over. Nothing here touches the database: a record is
only written by the caller once receive_upload() has returned.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

from database import PROJECT_COLLECTION
from errors import InvalidFile, PayloadTooLarge
from storage import MediaStore, StoredFile, UploadPolicy

ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "video/mp4",
    "video/webm",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

ALLOWED_FORMATS = ("jpg", "jpeg", "png", "gif", "mp4", "webm", "pdf", "doc", "docx")

CATEGORY_FOLDERS = ("curriculum", "hobbies")

# Bound images to 1200x1200 keeping aspect ratio; "limit" never upscales
IMAGE_TRANSFORMATION = [{"width": 1200, "height": 1200, "crop": "limit"}]

READ_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class IncomingFile:
    content: bytes
    mime_type: str
    filename: str


def resource_kind_for(mime_type: str) -> str:
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("image/"):
        return "image"
    return "raw"  # PDFs and Word documents


def destination_folder(collection: str, category: Optional[str], root: str = "portfolio") -> str:
    if collection == PROJECT_COLLECTION:
        return f"{root}/projects"
    if category in CATEGORY_FOLDERS:
        return f"{root}/{category}"
    return root


def resolve_policy(
    collection: str,
    category: Optional[str],
    mime_type: str,
    max_bytes: int,
    root: str = "portfolio",
) -> UploadPolicy:
    """Pick folder, resource kind and constraints for one upload."""
    kind = resource_kind_for(mime_type)
    return UploadPolicy(
        folder=destination_folder(collection, category, root),
        resource_kind=kind,
        allowed_formats=ALLOWED_FORMATS,
        max_bytes=max_bytes,
        transformation=IMAGE_TRANSFORMATION if kind == "image" else None,
    )


def check_mime_type(mime_type: Optional[str]) -> None:
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidFile()


def validate_upload(mime_type: Optional[str], size: int, max_bytes: int) -> None:
    check_mime_type(mime_type)
    if size > max_bytes:
        raise PayloadTooLarge.for_limit(max_bytes)


def read_upload(upload: UploadFile, max_bytes: int) -> IncomingFile:
    """Read a multipart file, refusing bad types before reading and stopping past the limit."""
    check_mime_type(upload.content_type)

    chunks = []
    size = 0
    while True:
        chunk = upload.file.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise PayloadTooLarge.for_limit(max_bytes)
        chunks.append(chunk)

    return IncomingFile(content=b"".join(chunks), mime_type=upload.content_type, filename=upload.filename or "")


def receive_upload(
    store: MediaStore,
    incoming: IncomingFile,
    collection: str,
    category: Optional[str],
    max_bytes: int,
    root: str = "portfolio",
) -> StoredFile:
    validate_upload(incoming.mime_type, len(incoming.content), max_bytes)
    policy = resolve_policy(collection, category, incoming.mime_type, max_bytes, root)
    return store.store(incoming.content, incoming.mime_type, incoming.filename, policy)
