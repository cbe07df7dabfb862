from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from versioning_plane.db.base import Base
from versioning_plane.models.file import _utcnow, _uuid


class FileVersion(Base):
    __tablename__ = "file_versions"

    id = Column(String(36), primary_key=True, default=_uuid)

    file_id = Column(
        String(36),
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # opaque locator of the stored bytes, never dereferenced here
    location = Column(String, nullable=False)

    # snapshots taken at upload time, may drift from the parent File
    original_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False, default="document")

    version_number = Column(Integer, nullable=False)
    is_current = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    created_by = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    file = relationship("File", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("file_id", "version_number", name="uq_file_version_number"),
        # at most one current version per file
        Index(
            "uq_file_current_version",
            "file_id",
            unique=True,
            sqlite_where=text("is_current"),
            postgresql_where=text("is_current"),
        ),
    )
