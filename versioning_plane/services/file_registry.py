import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from versioning_plane.core.exceptions import (
    Conflict,
    FileVersioningError,
    InvalidOperation,
    NotFound,
    TransientStoreFailure,
)
from versioning_plane.models.file import File
from versioning_plane.models.file_versions import FileVersion
from versioning_plane.schemas.file import FileSummary
from versioning_plane.schemas.file_version import VersionView
from versioning_plane.services.locks import KeyedLock
from versioning_plane.services.version_store import VersionStore

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    file: File
    version: FileVersion
    message: str


@dataclass
class SetCurrentResult:
    file: File
    version: FileVersion
    message: str


class FileRegistry:
    """
    Maps (entity_type, entity_id, file_type) to a File and keeps the file's
    current_version_id in step with the version flagged current.

    Every mutation runs under the per-file lock and commits the file row and
    its versions in a single transaction. Reads re-derive the pointer from
    the version store when the two disagree.
    """

    def __init__(
        self,
        db: Session,
        locks: KeyedLock,
        versions: Optional[VersionStore] = None,
        default_file_type: str = "document",
        allowed_extensions: Iterable[str] = (),
    ):
        self.db = db
        self.locks = locks
        self.versions = versions or VersionStore(db)
        self.default_file_type = default_file_type
        self.allowed_extensions = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in allowed_extensions
        }

    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except FileVersioningError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store failure during %s", action, exc_info=True)
            raise TransientStoreFailure(f"Store failure during {action}: {e}") from e

    def _get_file(self, file_id: str, for_update: bool = False) -> File:
        query = self.db.query(File).populate_existing().filter(File.id == file_id)
        if for_update:
            query = query.with_for_update()
        file = query.first()
        if not file:
            raise NotFound("File", file_id)
        return file

    def _find_by_key(
        self,
        entity_type: str,
        entity_id: str,
        file_type: Optional[str],
    ) -> Optional[File]:
        query = self.db.query(File).populate_existing().filter(
            File.entity_type == entity_type,
            File.entity_id == entity_id,
        )
        if file_type:
            return query.filter(File.file_type == file_type).first()

        # no type given: the default-typed file wins, then the oldest one
        return query.order_by(
            case((File.file_type == self.default_file_type, 0), else_=1),
            File.created_at.asc(),
        ).first()

    def _validate_upload(self, original_name: str, location: str) -> None:
        if not location or not location.strip():
            raise InvalidOperation("A storage location is required")
        if not original_name or not original_name.strip():
            raise InvalidOperation("An original file name is required")
        if self.allowed_extensions:
            ext = os.path.splitext(original_name)[1].lower()
            if ext not in self.allowed_extensions:
                raise InvalidOperation(f"Unsupported file format: {ext or original_name}")

    def _pointer_is_stale(self, file: File) -> bool:
        current = self.versions.get_current(file.id)
        if current is None:
            # nothing flagged: stale unless the file has no versions at all
            return bool(self.versions.list_by_file(file.id))
        return file.current_version_id != current.id

    def reconcile(self, file_id: str) -> File:
        """
        Repoint a file at the version flagged current. When no version is
        flagged, the highest-numbered one is promoted.
        """
        with self.locks.hold(file_id):
            with self._transaction("reconcile"):
                file = self._get_file(file_id, for_update=True)
                current = self.versions.get_current(file.id)
                if current is None:
                    versions = self.versions.list_by_file(file.id)
                    if not versions:
                        return file
                    current = self.versions.mark_current(versions[0].id)
                    logger.warning(
                        "File %s had no current version; promoted version %s",
                        file.id,
                        current.version_number,
                    )
                if file.current_version_id != current.id:
                    logger.warning(
                        "File %s pointed at %s but version %s (%s) is current; repaired",
                        file.id,
                        file.current_version_id,
                        current.version_number,
                        current.id,
                    )
                    file.current_version_id = current.id
        return file

    def _repair_stale(self, files: List[File]) -> None:
        with self._transaction("reconcile"):
            stale = [file.id for file in files if self._pointer_is_stale(file)]
        for file_id in stale:
            try:
                self.reconcile(file_id)
            except NotFound:
                logger.info("File %s was deleted before it could be reconciled", file_id)

    def upload(
        self,
        entity_type: str,
        entity_id: str,
        original_name: str,
        location: str,
        file_type: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> UploadResult:
        self._validate_upload(original_name, location)

        with self._transaction("upload"):
            existing = self._find_by_key(entity_type, entity_id, file_type)

        if existing is None:
            result = self._create_file(
                entity_type, entity_id, original_name, location,
                file_type, description, created_by,
            )
            if result is not None:
                return result
            # another request created the same key first
            with self._transaction("upload"):
                existing = self._find_by_key(entity_type, entity_id, file_type)
            if existing is None:
                raise Conflict(
                    f"File for {entity_type}/{entity_id} was removed during upload"
                )

        return self._add_version(
            existing.id, original_name, location,
            file_type, description, created_by,
        )

    def _create_file(
        self,
        entity_type: str,
        entity_id: str,
        original_name: str,
        location: str,
        file_type: Optional[str],
        description: Optional[str],
        created_by: Optional[str],
    ) -> Optional[UploadResult]:
        resolved_type = file_type or self.default_file_type
        file = File(
            original_name=original_name,
            entity_type=entity_type,
            entity_id=entity_id,
            file_type=resolved_type,
        )

        with self._transaction("upload"):
            self.db.add(file)
            try:
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                logger.info(
                    "Lost race creating %s file for %s/%s; adding a version instead",
                    resolved_type,
                    entity_type,
                    entity_id,
                )
                return None

            version = self.versions.append(
                file.id,
                location=location,
                original_name=original_name,
                file_type=resolved_type,
                description=description,
                created_by=created_by,
            )
            file.current_version_id = version.id

        logger.info(
            "New file created: file=%s version=%s entity=%s/%s type=%s",
            file.id, version.id, entity_type, entity_id, resolved_type,
        )
        return UploadResult(file=file, version=version, message="File uploaded successfully")

    def _add_version(
        self,
        file_id: str,
        original_name: str,
        location: str,
        file_type: Optional[str],
        description: Optional[str],
        created_by: Optional[str],
    ) -> UploadResult:
        with self.locks.hold(file_id):
            with self._transaction("upload"):
                try:
                    file = self._get_file(file_id, for_update=True)
                except NotFound as e:
                    raise Conflict(f"File {file_id} was deleted during upload") from e

                version = self.versions.append(
                    file.id,
                    location=location,
                    original_name=original_name,
                    file_type=file_type or file.file_type,
                    description=description,
                    created_by=created_by,
                )
                file.current_version_id = version.id
                file.original_name = original_name
                if file_type:
                    file.file_type = file_type

        logger.info(
            "New version created: file=%s version=%s number=%s",
            file.id, version.id, version.version_number,
        )
        return UploadResult(
            file=file,
            version=version,
            message=f"New version ({version.version_number}) created successfully",
        )

    def get_version(self, version_id: str) -> FileVersion:
        with self._transaction("get_version"):
            return self.versions.get_by_id(version_id)

    def get_version_by_number(self, file_id: str, version_number: int) -> FileVersion:
        with self._transaction("get_version_by_number"):
            self._get_file(file_id)
            return self.versions.get_by_number(file_id, version_number)

    def get_current_location(self, file_id: str) -> Optional[str]:
        """Locator of the file's current version, None while it has no versions."""
        with self._transaction("get_current_location"):
            file = self._get_file(file_id)
        self._repair_stale([file])

        with self._transaction("get_current_location"):
            current = self.versions.get_current(file_id)
        return current.location if current else None

    def list_versions(self, file_id: str) -> List[VersionView]:
        with self._transaction("list_versions"):
            file = self._get_file(file_id)
        self._repair_stale([file])

        with self._transaction("list_versions"):
            versions = self.versions.list_by_file(file_id)
        return [VersionView.from_version(v) for v in versions]

    def set_current(self, version_id: str) -> SetCurrentResult:
        with self._transaction("set_current"):
            file_id = self.versions.get_by_id(version_id).file_id

        with self.locks.hold(file_id):
            with self._transaction("set_current"):
                file = self._get_file(file_id, for_update=True)
                version = self.versions.mark_current(version_id)
                file.current_version_id = version.id

        logger.info(
            "File %s current version set to %s (%s)",
            file.id, version.version_number, version.id,
        )
        return SetCurrentResult(
            file=file,
            version=version,
            message=f"Version {version.version_number} set as current",
        )

    def list_by_entity(
        self,
        entity_type: str,
        entity_id: str,
        file_type: Optional[str] = None,
    ) -> List[FileSummary]:
        with self._transaction("list_by_entity"):
            query = self.db.query(File).populate_existing().filter(
                File.entity_type == entity_type,
                File.entity_id == entity_id,
            )
            if file_type:
                query = query.filter(File.file_type == file_type)
            files = query.order_by(File.created_at.asc()).all()
        self._repair_stale(files)

        summaries = []
        with self._transaction("list_by_entity"):
            # re-read by id: files deleted since the first query drop out
            files = (
                self.db.query(File)
                .populate_existing()
                .filter(File.id.in_([file.id for file in files]))
                .order_by(File.created_at.asc())
                .all()
            )
            for file in files:
                current = (
                    self.db.get(FileVersion, file.current_version_id, populate_existing=True)
                    if file.current_version_id
                    else None
                )
                summaries.append(
                    FileSummary(
                        file_id=file.id,
                        original_name=file.original_name,
                        file_type=file.file_type,
                        current_version_id=current.id if current else None,
                        version_number=current.version_number if current else None,
                        location=current.location if current else None,
                        description=current.description if current else None,
                        updated_at=current.created_at if current else None,
                    )
                )
        return summaries

    def delete_file(self, file_id: str) -> bool:
        with self.locks.hold(file_id):
            with self._transaction("delete_file"):
                file = self.db.query(File).filter(File.id == file_id).with_for_update().first()
                if not file:
                    return False
                removed = self.versions.delete_all_for_file(file.id)
                self.db.delete(file)

        logger.info("Deleted file %s and %s version(s)", file_id, removed)
        return True

    def delete_version(self, version_id: str) -> bool:
        with self._transaction("delete_version"):
            file_id = self.versions.get_by_id(version_id).file_id

        with self.locks.hold(file_id):
            with self._transaction("delete_version"):
                self.versions.delete(version_id)

        logger.info("Deleted version %s of file %s", version_id, file_id)
        return True
