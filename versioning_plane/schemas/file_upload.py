from typing import Optional

from pydantic import BaseModel, Field


class FileUploadRequest(BaseModel):
    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)
    original_name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    file_type: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None


class FileUploadResponse(BaseModel):
    file_id: str
    version_id: str
    version_number: int
    location: str
    message: str
