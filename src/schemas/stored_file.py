"""File storage schema definitions."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.stored_file import FileType
from schemas.user import User


class StoredFile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    original_name: str
    size: int
    mime_type: str
    file_type: FileType
    user_id: str
    relation_id: Optional[str] = None
    created_at: datetime
    user: Optional[User] = None


class FileListResponse(BaseModel):
    files: List[StoredFile]


class FileShare(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_id: str
    relation_id: str
    created_at: datetime


class FileShareListResponse(BaseModel):
    shares: List[FileShare]


class ShareFileRequest(BaseModel):
    relation_ids: List[str] = Field(min_length=1, max_length=100)


class SharedFile(BaseModel):
    """A file a teacher shared with the caller."""

    id: str
    original_name: str
    size: int
    mime_type: str
    file_type: FileType
    relation_id: str
    shared_at: datetime
    shared_by: User


class SharedFileListResponse(BaseModel):
    files: List[SharedFile]
