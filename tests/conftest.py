"""
Shared fixtures for the API tests.

The app is built through create_app() with an in-memory MongoDB (mongomock)
and a fake media store that records every store/delete call instead of
talking to Cloudinary.
"""

from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import CONTENT_COLLECTION, PROJECT_COLLECTION
from main import create_app
from storage import StoredFile

ADMIN_PASSWORD = "let-me-in"

PAST = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeMediaStore:
    configured = True

    def __init__(self):
        self.stored = []
        self.deleted = []

    def store(self, content, content_type, filename, policy):
        public_id = f"{policy.folder}/upload-{len(self.stored) + 1}"
        self.stored.append({"filename": filename, "content_type": content_type, "size": len(content), "policy": policy})
        return StoredFile(
            url=f"https://res.cloudinary.com/demo/{policy.resource_kind}/upload/{public_id}",
            remote_file_id=public_id,
            mime_type=content_type,
        )

    def delete(self, remote_file_id, resource_kind="image"):
        self.deleted.append((remote_file_id, resource_kind))


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        CLOUDINARY_CLOUD_NAME="demo",
        CLOUDINARY_API_KEY="key",
        CLOUDINARY_API_SECRET="secret",
        MAX_FILE_SIZE=1024 * 1024,
    )


@pytest.fixture
def db():
    return mongomock.MongoClient(tz_aware=True)["portfolio_test"]


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest.fixture
def app(settings, db, media_store):
    return create_app(settings=settings, db=db, media_store=media_store)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"x-admin-password": ADMIN_PASSWORD}


@pytest.fixture
def png_file():
    return {"file": ("photo.png", b"\x89PNG" + b"0" * 10 * 1024, "image/png")}


def seed_content(db, **overrides) -> str:
    """Insert a content document directly, created in the past."""
    doc = {
        "title": "Old title",
        "description": "Old description",
        "category": "hobbies",
        "file_url": "https://res.cloudinary.com/demo/image/upload/portfolio/hobbies/old",
        "file_type": "image/png",
        "remote_file_id": "portfolio/hobbies/old",
        "created_at": PAST,
        "updated_at": PAST,
    }
    doc.update(overrides)
    return str(db[CONTENT_COLLECTION].insert_one(doc).inserted_id)


def seed_project(db, **overrides) -> str:
    doc = {
        "project_title": "Solar Tracker",
        "student_name": "Ana Ruiz",
        "roll_no": "21CS042",
        "department": "Computer Science",
        "year": "2024",
        "description": "Dual-axis tracker",
        "file_url": "https://res.cloudinary.com/demo/raw/upload/portfolio/projects/report.pdf",
        "file_type": "application/pdf",
        "remote_file_id": "portfolio/projects/report.pdf",
        "created_at": PAST,
        "updated_at": PAST,
    }
    doc.update(overrides)
    return str(db[PROJECT_COLLECTION].insert_one(doc).inserted_id)
