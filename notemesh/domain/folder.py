from pydantic import Field

from notemesh.domain.base import CamelModel
from notemesh.domain.note import new_id

DEFAULT_FOLDER_NAME = "New Folder"


class Folder(CamelModel):
    """Named container for notes. Folders nest through ``parent_id``."""

    id: str = Field(default_factory=new_id)
    user_id: str
    name: str = DEFAULT_FOLDER_NAME
    parent_id: str | None = None


class FolderSummary(Folder):
    note_count: int = 0
