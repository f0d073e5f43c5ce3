from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel


class CocoError(Exception):
    """Base class for all the errors that abort a dataset operation"""


class DatasetIOError(CocoError):
    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__()
        self.path = Path(path)
        self.reason = reason

    def __str__(self):
        return f"{self.path}: {self.reason}"


class LoadError(DatasetIOError):
    """Input manifest can't be read"""


class WriteError(DatasetIOError):
    """Output manifest or asset can't be written"""


class ParseError(CocoError):
    def __init__(self, path: Optional[Union[str, Path]], reason: str):
        super().__init__()
        self.path = Path(path) if path is not None else None
        self.reason = reason

    def __str__(self):
        source = self.path if self.path is not None else "<string>"
        return f"Could not parse COCO manifest {source}:\n{self.reason}"


class StructuralError(CocoError):
    """A reference between entities of a document doesn't resolve"""


class DuplicateIdError(StructuralError):
    def __init__(self, kind: str, entity_id: int):
        super().__init__()
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self):
        return f"Duplicate {self.kind} id {self.entity_id}"


class MergeError(CocoError):
    pass


class PartialFailure(BaseModel):
    """
    Failure of a single item during a parallel scan or copy.

    These get accumulated and reported, the operation itself keeps going.
    """

    path: str
    reason: str
    image_id: Optional[int] = None

    def __str__(self):
        if self.image_id is not None:
            return f"image {self.image_id} ({self.path}): {self.reason}"
        return f"{self.path}: {self.reason}"
