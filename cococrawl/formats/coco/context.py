from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({"png", "jpg", "jpeg", "gif", "bmp", "tiff", "svg", "webp"})


class ClashPolicy(str, Enum):
    """What happens to images of later files whose id is already taken during a merge"""

    IGNORE = "ignore"
    """Drop the clashing image (and its annotations), the image from the earlier file wins"""
    REASSIGN = "reassign"
    """Every entity of every file after the first one gets a fresh id"""


class CrawlContext(BaseModel):
    version: str = "1.0.0"
    """Version string written into the info section"""
    absolute_paths: bool = False
    """Always write absolute image paths"""
    base_dir: Optional[Path] = None
    """Image paths inside this directory are written relative to it, others are absolute.
    Current working directory if not set"""
    extensions: FrozenSet[str] = IMAGE_EXTENSIONS
    """Recognized image file extensions (without the dot), compared case-insensitively"""
    workers: Optional[int] = Field(default=None, gt=0)
    """Size of the worker pool reading image metadata"""

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value):
        return frozenset(ext.lower().lstrip(".") for ext in value)


class MergeContext(BaseModel):
    policy: ClashPolicy = ClashPolicy.IGNORE
    version: str = "1.0.0"
    absolute_paths: bool = False
    """Write absolute image paths into the merged file"""


class SplitContext(BaseModel):
    count: Optional[int] = Field(default=None, ge=0)
    """Number of images in the split. All the images that aren't blacklisted if not set"""
    seed: Optional[int] = None
    """Seed for the shuffle. OS randomness if not set"""
    shuffle: bool = True
    """Shuffle the candidates. When turned off, images are ordered by id"""
    offset: int = Field(default=0, ge=0)
    """How many candidates to skip before taking ``count``. Only valid without shuffling"""
    annotated_only: bool = False
    """Only take images that have at least one annotation"""
    absolute_paths: bool = False

    @model_validator(mode="after")
    def _check_offset(self) -> "SplitContext":
        if self.shuffle and self.offset:
            raise ValueError("offset can only be used when shuffling is turned off")
        return self


class CopyContext(BaseModel):
    absolute_paths: bool = False
    """Write absolute paths of the copied images instead of paths relative to the output directory"""
    workers: Optional[int] = Field(default=None, gt=0)
