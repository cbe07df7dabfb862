from versioning_plane.db.base import Base
from versioning_plane.models.file import File
from versioning_plane.models.file_versions import FileVersion
