import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ValidationError
from pymongo.database import Database
from starlette.exceptions import HTTPException

import database
from config import Settings, get_settings as load_settings
from database import CONTENT_COLLECTION, PROJECT_COLLECTION
from errors import InvalidFields, MissingFile, NotFound, register_exception_handlers
from logging_config import RequestIdMiddleware, configure_logging
from schemas import (
    ContentCreate,
    ContentRecord,
    ContentUpdate,
    HealthResponse,
    MessageResponse,
    ProjectCreate,
    ProjectRecord,
    ProjectUpdate,
    VerifyAdminResponse,
)
from security import get_settings, is_admin, require_admin
from storage import MediaStore, StoredFile
from uploads import read_upload, receive_upload, resource_kind_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


# ============
# Dependencies
# ============

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


# =========
# Utilities
# =========

def has_file(file: Optional[UploadFile]) -> bool:
    # browsers send an empty part when no file was picked
    return file is not None and bool(file.filename)


def parse_form(model: type, **fields) -> BaseModel:
    """Build a request model from form fields; bad input is the client's fault."""
    try:
        return model(**fields)
    except ValidationError as exc:
        raise InvalidFields.from_validation(exc) from exc


def store_file(settings: Settings, store: MediaStore, file: UploadFile, collection: str, category: Optional[str] = None) -> StoredFile:
    incoming = read_upload(file, settings.MAX_FILE_SIZE)
    return receive_upload(store, incoming, collection, category, settings.MAX_FILE_SIZE, settings.MEDIA_ROOT_FOLDER)


def file_fields(stored: StoredFile) -> dict:
    return {
        "file_url": stored.url,
        "file_type": stored.mime_type,
        "remote_file_id": stored.remote_file_id,
    }


def discard_remote_file(store: MediaStore, doc: dict) -> None:
    store.delete(doc["remote_file_id"], resource_kind_for(doc["file_type"]))


def apply_update(
    db: Database,
    store: MediaStore,
    settings: Settings,
    collection: str,
    record_id: str,
    changes: dict,
    file: Optional[UploadFile],
    not_found: str,
) -> dict:
    """Shared update flow: look up, optionally upload the new file, persist, then drop the old file."""
    existing = database.get_document(db, collection, record_id)
    if existing is None:
        raise NotFound(not_found)

    stored = None
    if has_file(file):
        stored = store_file(settings, store, file, collection, existing.get("category"))
        changes.update(file_fields(stored))

    doc = database.update_document(db, collection, record_id, changes)
    if doc is None:
        # removed while we were uploading
        if stored is not None:
            store.delete(stored.remote_file_id, resource_kind_for(stored.mime_type))
        raise NotFound(not_found)

    if stored is not None:
        discard_remote_file(store, existing)
    return doc


def remove_record(db: Database, store: MediaStore, collection: str, record_id: str, not_found: str) -> dict:
    doc = database.delete_document(db, collection, record_id)
    if doc is None:
        raise NotFound(not_found)
    discard_remote_file(store, doc)
    return doc


# ===============================
# Content (curriculum & hobbies)
# ===============================

@router.get("/content/item/{content_id}", response_model=ContentRecord)
def get_content(content_id: str, db: Database = Depends(get_db)):
    doc = database.get_document(db, CONTENT_COLLECTION, content_id)
    if doc is None:
        raise NotFound("Content not found")
    return ContentRecord(**doc)


@router.get("/content/{category}", response_model=List[ContentRecord])
def list_content(category: str, db: Database = Depends(get_db)):
    return [ContentRecord(**doc) for doc in database.list_content(db, category)]


@router.post("/content", response_model=ContentRecord, status_code=201, dependencies=[Depends(require_admin)])
def create_content(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
):
    if not has_file(file):
        raise MissingFile()
    payload = parse_form(ContentCreate, title=title, description=description, category=category)

    stored = store_file(settings, store, file, CONTENT_COLLECTION, payload.category)
    doc = database.create_document(db, CONTENT_COLLECTION, {**payload.model_dump(), **file_fields(stored)})
    return ContentRecord(**doc)


@router.put("/content/{content_id}", response_model=ContentRecord, dependencies=[Depends(require_admin)])
def update_content(
    content_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
):
    changes = parse_form(ContentUpdate, title=title, description=description).changes()
    doc = apply_update(db, store, settings, CONTENT_COLLECTION, content_id, changes, file, "Content not found")
    return ContentRecord(**doc)


@router.delete("/content/{content_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_content(content_id: str, db: Database = Depends(get_db), store: MediaStore = Depends(get_media_store)):
    remove_record(db, store, CONTENT_COLLECTION, content_id, "Content not found")
    return MessageResponse(message="Content deleted successfully")


# ========
# Projects
# ========

@router.get("/projects", response_model=List[ProjectRecord])
def list_projects(db: Database = Depends(get_db)):
    return [ProjectRecord(**doc) for doc in database.list_projects(db)]


@router.get("/projects/{project_id}", response_model=ProjectRecord)
def get_project(project_id: str, db: Database = Depends(get_db)):
    doc = database.get_document(db, PROJECT_COLLECTION, project_id)
    if doc is None:
        raise NotFound("Project not found")
    return ProjectRecord(**doc)


@router.post("/projects", response_model=ProjectRecord, status_code=201, dependencies=[Depends(require_admin)])
def create_project(
    project_title: Optional[str] = Form(None, alias="projectTitle"),
    student_name: Optional[str] = Form(None, alias="studentName"),
    roll_no: Optional[str] = Form(None, alias="rollNo"),
    department: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
):
    if not has_file(file):
        raise MissingFile()
    payload = parse_form(
        ProjectCreate,
        project_title=project_title,
        student_name=student_name,
        roll_no=roll_no,
        department=department,
        year=year,
        description=description,
    )

    stored = store_file(settings, store, file, PROJECT_COLLECTION)
    doc = database.create_document(db, PROJECT_COLLECTION, {**payload.model_dump(), **file_fields(stored)})
    return ProjectRecord(**doc)


@router.put("/projects/{project_id}", response_model=ProjectRecord, dependencies=[Depends(require_admin)])
def update_project(
    project_id: str,
    project_title: Optional[str] = Form(None, alias="projectTitle"),
    student_name: Optional[str] = Form(None, alias="studentName"),
    roll_no: Optional[str] = Form(None, alias="rollNo"),
    department: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
):
    changes = parse_form(
        ProjectUpdate,
        project_title=project_title,
        student_name=student_name,
        roll_no=roll_no,
        department=department,
        year=year,
        description=description,
    ).changes()
    doc = apply_update(db, store, settings, PROJECT_COLLECTION, project_id, changes, file, "Project not found")
    return ProjectRecord(**doc)


@router.delete("/projects/{project_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_project(project_id: str, db: Database = Depends(get_db), store: MediaStore = Depends(get_media_store)):
    remove_record(db, store, PROJECT_COLLECTION, project_id, "Project not found")
    return MessageResponse(message="Project deleted successfully")


# ==================
# Admin verification
# ==================

@router.post("/verify-admin", response_model=VerifyAdminResponse)
async def verify_admin(request: Request, settings: Settings = Depends(get_settings)):
    """Credential check only; a malformed body is simply not valid."""
    password = None
    try:
        if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            password = form.get("password")
        else:
            body = await request.json()
            if isinstance(body, dict):
                password = body.get("password")
    except (ValueError, HTTPException):
        # bad JSON, or a form body Starlette could not parse
        logger.info("Unreadable verify-admin body")

    return VerifyAdminResponse(valid=isinstance(password, str) and is_admin(password, settings))


# ============
# Health check
# ============

@router.get("/health", response_model=HealthResponse)
def health(db: Database = Depends(get_db), store: MediaStore = Depends(get_media_store)):
    return HealthResponse(
        cloudinary="Connected" if store.configured else "Not configured",
        mongodb="Connected" if database.ping(db) else "Disconnected",
    )


# ==================
# FastAPI app config
# ==================

def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    media_store: Optional[MediaStore] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.db = db if db is not None else database.connect(settings.MONGODB_URI, settings.DATABASE_NAME)
    app.state.media_store = media_store or MediaStore.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(router)
    register_exception_handlers(app)

    # Static landing page; mounted last so /api routes win
    public_dir = Path(settings.PUBLIC_DIR)
    if not public_dir.is_absolute():
        public_dir = Path(__file__).resolve().parent / public_dir
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")
    else:
        logger.warning("Public directory missing, static files disabled", extra={"path": str(public_dir)})

    logger.info(
        "App configured",
        extra={"app": settings.APP_NAME, "cloudinary": settings.CLOUDINARY_CLOUD_NAME or "Not configured"},
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=load_settings().PORT)
