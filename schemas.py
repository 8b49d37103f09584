"""
Database Schemas for the Portfolio API

ContentRecord and ProjectRecord mirror one MongoDB collection each. Documents
are stored with snake_case keys; the API speaks camelCase through aliases.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PatchModel(CamelModel):
    """Partial update: only fields present in the request are applied.

    Blank form values count as absent, since every record field is required text.
    """

    @field_validator("*", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


# File reference embedded in every record
class FileReference(CamelModel):
    file_url: str
    file_type: str
    remote_file_id: str


# Content (curriculum, hobbies, ...)
class ContentCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)


class ContentUpdate(PatchModel):
    title: Optional[str] = None
    description: Optional[str] = None


class ContentRecord(ContentCreate, FileReference):
    id: str
    created_at: datetime
    updated_at: datetime


# Student projects
class ProjectCreate(CamelModel):
    project_title: str = Field(min_length=1)
    student_name: str = Field(min_length=1)
    roll_no: str = Field(min_length=1)
    department: str = Field(min_length=1)
    year: str = Field(min_length=1)
    description: str = Field(min_length=1)


class ProjectUpdate(PatchModel):
    project_title: Optional[str] = None
    student_name: Optional[str] = None
    roll_no: Optional[str] = None
    department: Optional[str] = None
    year: Optional[str] = None
    description: Optional[str] = None


class ProjectRecord(ProjectCreate, FileReference):
    id: str
    created_at: datetime
    updated_at: datetime


# Responses
class MessageResponse(BaseModel):
    message: str


class VerifyAdminResponse(BaseModel):
    valid: bool


class HealthResponse(BaseModel):
    status: str = "OK"
    cloudinary: str
    mongodb: str
