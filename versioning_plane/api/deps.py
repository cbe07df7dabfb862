from fastapi import Depends, Request
from sqlalchemy.orm import Session

from versioning_plane.core.config import settings
from versioning_plane.db.session import get_db
from versioning_plane.services.file_registry import FileRegistry


def get_file_registry(
    request: Request,
    db: Session = Depends(get_db),
) -> FileRegistry:
    return FileRegistry(
        db,
        locks=request.app.state.file_locks,
        default_file_type=settings.DEFAULT_FILE_TYPE,
        allowed_extensions=settings.ALLOWED_EXTENSIONS,
    )
