import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    DateTime,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from versioning_plane.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class File(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=_uuid)

    original_name = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)  # "department", "employee", "task", ...
    entity_id = Column(String, nullable=False)
    file_type = Column(String, nullable=False, default="document")

    # Plain column rather than a foreign key: files and file_versions would
    # otherwise reference each other. The registry keeps it in step with
    # FileVersion.is_current and repairs it on read.
    current_version_id = Column(String(36), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    versions = relationship(
        "FileVersion",
        back_populates="file",
        order_by="FileVersion.version_number.desc()",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "file_type", name="uq_file_entity_type"),
    )
