from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from versioning_plane.core.exceptions import Conflict, InvalidOperation, NotFound
from versioning_plane.models.file_versions import FileVersion


def default_description(version_number: int) -> str:
    return "Initial version" if version_number == 1 else f"Version {version_number}"


class VersionStore:
    """
    Storage of FileVersion rows.

    The only writer of ``is_current`` and ``version_number``. Never commits:
    the caller decides the transaction boundary, and is expected to hold the
    owning file's lock around append / mark_current / delete.
    """

    def __init__(self, db: Session):
        self.db = db

    def _next_version_number(self, file_id: str) -> int:
        latest = (
            self.db.query(func.max(FileVersion.version_number))
            .filter(FileVersion.file_id == file_id)
            .scalar()
        )
        return 1 if latest is None else latest + 1

    def _clear_current(self, file_id: str) -> None:
        (
            self.db.query(FileVersion)
            .filter(FileVersion.file_id == file_id, FileVersion.is_current.is_(True))
            .update({FileVersion.is_current: False}, synchronize_session="fetch")
        )

    def append(
        self,
        file_id: str,
        location: str,
        original_name: str,
        file_type: str,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> FileVersion:
        version_number = self._next_version_number(file_id)

        # demote first: the partial unique index rejects two current rows
        self._clear_current(file_id)

        version = FileVersion(
            file_id=file_id,
            location=location,
            original_name=original_name,
            file_type=file_type,
            version_number=version_number,
            is_current=True,
            description=description or default_description(version_number),
            created_by=created_by,
        )
        self.db.add(version)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise Conflict(
                f"Version {version_number} of file {file_id} was written concurrently"
            ) from e
        return version

    def list_by_file(self, file_id: str) -> List[FileVersion]:
        return (
            self.db.query(FileVersion)
            .populate_existing()
            .filter(FileVersion.file_id == file_id)
            .order_by(FileVersion.version_number.desc())
            .all()
        )

    def get_by_id(self, version_id: str) -> FileVersion:
        version = (
            self.db.query(FileVersion)
            .populate_existing()
            .filter(FileVersion.id == version_id)
            .first()
        )
        if not version:
            raise NotFound("Version", version_id)
        return version

    def get_by_number(self, file_id: str, version_number: int) -> FileVersion:
        version = (
            self.db.query(FileVersion)
            .populate_existing()
            .filter(
                FileVersion.file_id == file_id,
                FileVersion.version_number == version_number,
            )
            .first()
        )
        if not version:
            raise NotFound(f"Version {version_number} of file", file_id)
        return version

    def get_current(self, file_id: str) -> Optional[FileVersion]:
        return (
            self.db.query(FileVersion)
            .populate_existing()
            .filter(FileVersion.file_id == file_id, FileVersion.is_current.is_(True))
            .order_by(FileVersion.version_number.desc())
            .first()
        )

    def mark_current(self, version_id: str) -> FileVersion:
        version = self.get_by_id(version_id)
        if version.is_current:
            return version

        self._clear_current(version.file_id)
        version.is_current = True
        try:
            self.db.flush()
        except IntegrityError as e:
            raise Conflict(
                f"Current version of file {version.file_id} changed concurrently"
            ) from e
        return version

    def delete(self, version_id: str) -> None:
        version = self.get_by_id(version_id)
        if version.is_current:
            raise InvalidOperation(
                "Cannot delete the current version. Set another version as current first."
            )
        self.db.delete(version)
        self.db.flush()

    def delete_all_for_file(self, file_id: str) -> int:
        return (
            self.db.query(FileVersion)
            .filter(FileVersion.file_id == file_id)
            .delete(synchronize_session="fetch")
        )
