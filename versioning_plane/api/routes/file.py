from typing import Optional

from fastapi import APIRouter, Depends, Query

from versioning_plane.api.deps import get_file_registry
from versioning_plane.schemas.file import DeleteResponse, FileListResponse
from versioning_plane.schemas.file_upload import FileUploadRequest, FileUploadResponse
from versioning_plane.schemas.file_version import (
    CurrentLocationResponse,
    SetCurrentResponse,
    VersionListResponse,
    VersionView,
)
from versioning_plane.services.file_registry import FileRegistry

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload", response_model=FileUploadResponse)
def upload_file(
    payload: FileUploadRequest,
    registry: FileRegistry = Depends(get_file_registry),
):
    """
    Record a new file, or a new version when the entity already has one
    for this file type. The bytes must already be stored at `location`.
    """
    result = registry.upload(
        entity_type=payload.entity_type,
        entity_id=payload.entity_id,
        original_name=payload.original_name,
        location=payload.location,
        file_type=payload.file_type,
        description=payload.description,
        created_by=payload.created_by,
    )
    return FileUploadResponse(
        file_id=result.file.id,
        version_id=result.version.id,
        version_number=result.version.version_number,
        location=result.version.location,
        message=result.message,
    )


@router.get("/{file_id}/versions", response_model=VersionListResponse)
def list_versions(
    file_id: str,
    registry: FileRegistry = Depends(get_file_registry),
):
    versions = registry.list_versions(file_id)
    return VersionListResponse(
        versions=versions,
        total=len(versions),
        current=next((v for v in versions if v.is_current), None),
    )


@router.get("/{file_id}/versions/{version_number}", response_model=VersionView)
def get_version_by_number(
    file_id: str,
    version_number: int,
    registry: FileRegistry = Depends(get_file_registry),
):
    return VersionView.from_version(registry.get_version_by_number(file_id, version_number))


@router.get("/{file_id}/current", response_model=CurrentLocationResponse)
def get_current_location(
    file_id: str,
    registry: FileRegistry = Depends(get_file_registry),
):
    return CurrentLocationResponse(
        file_id=file_id,
        location=registry.get_current_location(file_id),
    )


@router.get("/version/{version_id}", response_model=VersionView)
def get_version(
    version_id: str,
    registry: FileRegistry = Depends(get_file_registry),
):
    return VersionView.from_version(registry.get_version(version_id))


@router.put("/version/{version_id}/set-current", response_model=SetCurrentResponse)
def set_current_version(
    version_id: str,
    registry: FileRegistry = Depends(get_file_registry),
):
    result = registry.set_current(version_id)
    return SetCurrentResponse(
        file_id=result.file.id,
        version_id=result.version.id,
        version_number=result.version.version_number,
        location=result.version.location,
        message=result.message,
    )


@router.get("/entity/{entity_type}/{entity_id}", response_model=FileListResponse)
def list_files_for_entity(
    entity_type: str,
    entity_id: str,
    file_type: Optional[str] = Query(None, description="Only files of this type"),
    registry: FileRegistry = Depends(get_file_registry),
):
    files = registry.list_by_entity(entity_type, entity_id, file_type)
    return FileListResponse(files=files, total=len(files))


@router.delete("/{file_id}", response_model=DeleteResponse)
def delete_file(
    file_id: str,
    registry: FileRegistry = Depends(get_file_registry),
):
    deleted = registry.delete_file(file_id)
    return DeleteResponse(
        status=deleted,
        message=(
            "File and all versions deleted successfully"
            if deleted
            else "File not found or could not be deleted"
        ),
    )


@router.delete("/version/{version_id}", response_model=DeleteResponse)
def delete_version(
    version_id: str,
    registry: FileRegistry = Depends(get_file_registry),
):
    # deleting the current version raises InvalidOperation -> 400
    registry.delete_version(version_id)
    return DeleteResponse(status=True, message="Version deleted successfully")
