from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class VersionView(BaseModel):
    version_id: str
    file_id: str
    version_number: int
    location: str
    is_current: bool
    original_name: str
    file_type: str
    description: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_version(cls, version) -> "VersionView":
        return cls(
            version_id=version.id,
            file_id=version.file_id,
            version_number=version.version_number,
            location=version.location,
            is_current=version.is_current,
            original_name=version.original_name,
            file_type=version.file_type,
            description=version.description,
            created_by=version.created_by,
            created_at=version.created_at,
        )


class VersionListResponse(BaseModel):
    versions: List[VersionView]
    total: int
    current: Optional[VersionView] = None


class SetCurrentResponse(BaseModel):
    file_id: str
    version_id: str
    version_number: int
    location: str
    message: str


class CurrentLocationResponse(BaseModel):
    file_id: str
    location: Optional[str] = None
