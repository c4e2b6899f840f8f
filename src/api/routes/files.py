"""File storage routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse

from api.routes.auth import get_current_user
from core.dependencies import FileManagerDep
from core.exceptions import InvalidOperationError, RelationNotFoundError, StoredFileNotFoundError
from models.stored_file import FileType
from schemas.stored_file import (
    FileListResponse,
    FileShare,
    FileShareListResponse,
    ShareFileRequest,
    SharedFile,
    SharedFileListResponse,
    StoredFile,
)
from schemas.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["File"])


def _file_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")


@router.post("", response_model=StoredFile, summary="Upload a file")
async def upload_file(
    file_manager: FileManagerDep,
    file: UploadFile = File(..., description="File to store"),
    relation_id: Optional[str] = Form(default=None),
    current_user: User = Depends(get_current_user),
) -> StoredFile:
    """Store an uploaded file for the caller.

    Raises:
        HTTPException: 400 if the file is empty, too large or of a type that
            is not accepted; 404 if ``relation_id`` is not a live relation of
            the caller.
    """
    content = await file.read()
    try:
        model = file_manager.save_file(
            current_user.user_id,
            original_name=file.filename or "upload",
            mime_type=file.content_type or "",
            content=content,
            relation_id=relation_id,
        )
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except RelationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relation not found")
    return StoredFile.model_validate(model)


@router.get("", response_model=FileListResponse, summary="List own files")
def list_files(
    file_manager: FileManagerDep,
    relation_id: Optional[str] = Query(None, max_length=100),
    type: Optional[FileType] = Query(None),
    current_user: User = Depends(get_current_user),
) -> FileListResponse:
    files = file_manager.list_files(current_user.user_id, relation_id=relation_id, file_type=type)
    return FileListResponse(files=[StoredFile.model_validate(m) for m in files])


@router.get("/shared", response_model=SharedFileListResponse, summary="Files shared with me")
def list_shared_files(
    file_manager: FileManagerDep,
    current_user: User = Depends(get_current_user),
) -> SharedFileListResponse:
    """List files teachers shared with the caller's live relations."""
    rows = file_manager.list_shared_with(current_user.user_id)
    return SharedFileListResponse(
        files=[
            SharedFile(
                id=stored.id,
                original_name=stored.original_name,
                size=stored.size,
                mime_type=stored.mime_type,
                file_type=stored.file_type,
                relation_id=share.relation_id,
                shared_at=share.created_at,
                shared_by=User.model_validate(relation.teacher),
            )
            for stored, share, relation in rows
        ]
    )


@router.get("/{file_id}", summary="Download a file")
def download_file(
    file_id: str,
    file_manager: FileManagerDep,
    current_user: User = Depends(get_current_user),
) -> FileResponse:
    """Send the stored bytes of a file the caller owns or was shared."""
    try:
        model = file_manager.get_downloadable_file(file_id, current_user.user_id)
    except StoredFileNotFoundError:
        raise _file_not_found()
    path = file_manager.file_path(model)
    if not path.is_file():
        logger.error("File %s is missing on disk at %s", file_id, path)
        raise _file_not_found()
    return FileResponse(path, media_type=model.mime_type, filename=model.original_name)


@router.delete("/{file_id}", summary="Delete a file")
def delete_file(
    file_id: str,
    file_manager: FileManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    try:
        file_manager.delete_file(file_id, current_user.user_id)
    except StoredFileNotFoundError:
        raise _file_not_found()
    return {"success": True}


@router.post("/{file_id}/share", response_model=FileShareListResponse, summary="Share a file")
def share_file(
    file_id: str,
    req: ShareFileRequest,
    file_manager: FileManagerDep,
    current_user: User = Depends(get_current_user),
) -> FileShareListResponse:
    """Share one of the caller's files with students of their relations.

    Raises:
        HTTPException: 404 if the caller has no such file; 400 if a relation
            is not a live relation in which the caller is the teacher.
    """
    try:
        shares = file_manager.share_file(file_id, current_user.user_id, req.relation_ids)
    except StoredFileNotFoundError:
        raise _file_not_found()
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return FileShareListResponse(shares=[FileShare.model_validate(s) for s in shares])


@router.get("/{file_id}/share", response_model=FileShareListResponse, summary="List shares")
def list_shares(
    file_id: str,
    file_manager: FileManagerDep,
    current_user: User = Depends(get_current_user),
) -> FileShareListResponse:
    try:
        shares = file_manager.list_shares(file_id, current_user.user_id)
    except StoredFileNotFoundError:
        raise _file_not_found()
    return FileShareListResponse(shares=[FileShare.model_validate(s) for s in shares])


@router.delete("/{file_id}/share", summary="Withdraw a share")
def unshare_file(
    file_id: str,
    file_manager: FileManagerDep,
    relation_id: str = Query(..., min_length=1, max_length=100),
    current_user: User = Depends(get_current_user),
) -> dict:
    try:
        removed = file_manager.unshare_file(file_id, current_user.user_id, relation_id)
    except StoredFileNotFoundError:
        raise _file_not_found()
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Share not found")
    return {"success": True}
