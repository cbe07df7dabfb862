from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class FileSummary(BaseModel):
    """A file together with the data of its current version."""

    file_id: str
    original_name: str
    file_type: str
    current_version_id: Optional[str] = None
    version_number: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None


class FileListResponse(BaseModel):
    files: List[FileSummary]
    total: int


class DeleteResponse(BaseModel):
    status: bool
    message: str
