from pathlib import Path

from pydantic import BaseModel


class DownloadedSchema(BaseModel):
    """Schema file written in the downloads directory.

    is_reference is False for the schemas requested for a chart dependency and
    True for the schemas only discovered through a $ref of another schema.
    """

    base_folder: Path
    path: str
    is_reference: bool = False

    def file(self) -> Path:
        return self.base_folder / self.path.lstrip("/")

    def __str__(self) -> str:
        return f"{self.base_folder.name}/{self.path.lstrip('/')}"
